"""Error taxonomy for diagnostic sessions.

Only ConfigurationError, NavigationError and AssertionFailure abort a run.
DiagnosticError and OutputFailure are caught where they occur and rendered
into the report.
"""

from typing import Optional


class RouteProbeError(Exception):
    """Base class for all route probe errors."""


class ConfigurationError(RouteProbeError):
    """Invalid options or settings; raised before a browser is launched."""


class NavigationError(RouteProbeError):
    """The page load failed or retries were exhausted."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url} - {reason}")


class AssertionFailure(RouteProbeError):
    """An expected element was not present on the settled page."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f"Expected element '{selector}' not found")


class DiagnosticError(RouteProbeError):
    """A post-load diagnostic could not complete."""

    def __init__(self, step: str, message: str, cause: Optional[Exception] = None):
        self.step = step
        self.message = message
        self.cause = cause
        super().__init__(f"{step}: {message}")


class OutputFailure(RouteProbeError):
    """An output artifact (screenshot) could not be written."""
