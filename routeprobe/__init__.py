"""Route Probe package.

Drives a headless Chromium session against a single application route and
reports status, console output, network activity and DOM state.
"""

from .capture.page_session import DiagnosticSession
from .capture.report import ExitCode, compute_exit_code
from .errors import (
    RouteProbeError,
    ConfigurationError,
    NavigationError,
    AssertionFailure,
    DiagnosticError,
    OutputFailure,
)
from .models.capture import ProbeOptions, ProbeResult, ResponseDescriptor

__all__ = [
    'DiagnosticSession',
    'ExitCode',
    'compute_exit_code',
    'ProbeOptions',
    'ProbeResult',
    'ResponseDescriptor',
    'RouteProbeError',
    'ConfigurationError',
    'NavigationError',
    'AssertionFailure',
    'DiagnosticError',
    'OutputFailure',
]

__version__ = "0.1.0"
