"""Command line interface for Route Probe."""

from .main import app, main

__all__ = ['app', 'main']
