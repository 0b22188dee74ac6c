"""Shared test fixtures and configuration for Route Probe tests."""

import pytest
from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, MagicMock
import sys

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from routeprobe.capture.config import ProbeSettings
from routeprobe.models.capture import ProbeOptions, ProbeResult, ResponseDescriptor


@pytest.fixture
def mock_page():
    """Page mock whose ``on`` registrations can be fired with ``emit``."""
    page = AsyncMock()
    handlers: Dict[str, List[Callable[[Any], None]]] = {}

    def on(event, handler):
        handlers.setdefault(event, []).append(handler)

    def emit(event, payload):
        for handler in handlers.get(event, []):
            handler(payload)

    page.on = MagicMock(side_effect=on)
    page.handlers = handlers
    page.emit = emit
    return page


@pytest.fixture
def mock_context():
    """Browser context mock with no cookies."""
    context = AsyncMock()
    context.cookies.return_value = []
    return context


@pytest.fixture
def output_lines():
    """Collects report lines in place of typer.echo."""
    return []


@pytest.fixture
def sample_settings():
    """Settings pointing at a local application."""
    return ProbeSettings(base_url="http://localhost", auth_key="secret-key")


@pytest.fixture
def html_response():
    """Successful HTML response descriptor."""
    return ResponseDescriptor(
        status=200,
        headers={'content-type': 'text/html; charset=UTF-8'},
        url="http://localhost/dashboard",
    )


@pytest.fixture
def make_result(html_response):
    """Factory for ProbeResult with sensible defaults."""
    def _make(response=None, **option_values):
        option_values.setdefault('route', '/dashboard')
        options = ProbeOptions.build(**option_values)
        return ProbeResult(
            url="http://localhost" + options.route,
            options=options,
            response=response or html_response,
        )
    return _make


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
