"""Navigation-and-capture engine.

Main Components:
- Browser Factory: Chromium, context and page lifecycle
- Request Header Injector: diagnostic/identity headers for same-origin requests
- Redirect Tracker: ordered 3xx chain
- Event Recorder: console, page errors, network failures, XHR/fetch pairs
- Navigation Controller: GET with retry or simulated POST, then settle
- Diagnostics Runner: wait-for, expect, dimensions, dump, evaluate
- Report Assembler: text report and exit code
- Diagnostic Session: orchestration and guaranteed teardown

Usage:
    from routeprobe.capture import DiagnosticSession
    from routeprobe.models import ProbeOptions

    options = ProbeOptions.build(route="/dashboard", headers=True)
    exit_code = await DiagnosticSession(options).run()
"""

__all__ = [
    "BrowserFactory",
    "BrowserConfig",
    "ProbeSettings",
    "RequestHeaderInjector",
    "build_diagnostic_headers",
    "RedirectTracker",
    "EventRecorder",
    "NavigationController",
    "DiagnosticsRunner",
    "ReportAssembler",
    "ExitCode",
    "compute_exit_code",
    "DiagnosticSession",
]

from .browser_factory import BrowserFactory, BrowserConfig
from .config import ProbeSettings
from .header_injector import RequestHeaderInjector, build_diagnostic_headers
from .redirect_tracker import RedirectTracker
from .event_recorder import EventRecorder
from .navigation import NavigationController
from .diagnostics import DiagnosticsRunner
from .report import ReportAssembler, ExitCode, compute_exit_code
from .page_session import DiagnosticSession
