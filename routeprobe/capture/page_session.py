"""Diagnostic session orchestration.

This module provides the DiagnosticSession class that owns the browser,
context and page for one invocation. It attaches the recorders and the
header injector before navigation, runs the navigation and the post-load
diagnostics, hands the accumulated state to the ReportAssembler and
releases the browser on every exit path.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import typer
from playwright.async_api import BrowserContext, Page

from .browser_factory import BrowserConfig, BrowserFactory, viewport_for_width
from .config import ProbeSettings
from .diagnostics import DiagnosticsRunner
from .event_recorder import EventRecorder
from .header_injector import RequestHeaderInjector, build_diagnostic_headers
from .navigation import NavigationController
from .redirect_tracker import RedirectTracker
from .report import ExitCode, ReportAssembler
from ..errors import AssertionFailure, NavigationError
from ..models.capture import ProbeOptions, ProbeResult

logger = logging.getLogger(__name__)


class DiagnosticSession:
    """Runs one route through the capture engine."""

    def __init__(
        self,
        options: ProbeOptions,
        settings: Optional[ProbeSettings] = None,
        echo: Callable[[str], None] = typer.echo,
        factory: Optional[BrowserFactory] = None,
    ):
        """Initialize the session.

        Args:
            options: Validated invocation options
            settings: Environment settings (base URL, auth key, log path)
            echo: Sink for report output
            factory: Browser factory; one is built from settings if omitted
        """
        self.options = options
        self.settings = settings or ProbeSettings()
        self.echo = echo
        self.factory = factory or BrowserFactory(BrowserConfig(headless=self.settings.headless))
        self.url = self.settings.url_for(options.route)
        self.result: Optional[ProbeResult] = None
        self.session_start_time: Optional[datetime] = None

    def context_options(self) -> dict:
        if self.options.screenshot_path:
            return {'viewport': viewport_for_width(self.options.effective_screenshot_width)}
        return {}

    async def run(self) -> ExitCode:
        """Execute the session and return the process exit code."""
        self.session_start_time = datetime.now(timezone.utc)
        logger.info(f"Starting diagnostic session for {self.url}")

        async with self.factory.session():
            async with self.factory.context(**self.context_options()) as context:
                page = await context.new_page()
                exit_code = await self.run_page(page, context)

        duration = (datetime.now(timezone.utc) - self.session_start_time).total_seconds()
        logger.info(f"Diagnostic session finished in {duration:.2f}s with exit code {int(exit_code)}")
        return exit_code

    async def run_page(self, page: Page, context: BrowserContext) -> ExitCode:
        """Capture, diagnose and report against an already created page."""
        opts = self.options

        recorder = EventRecorder(page, capture_console=opts.console_log, capture_xhr=opts.captures_xhr)
        tracker = RedirectTracker(page) if opts.follow_redirects else None

        headers = build_diagnostic_headers(opts.user_id, self.settings.auth_key)
        injector = RequestHeaderInjector(page, self.settings.base_url, headers)
        await injector.attach()

        navigator = NavigationController(page, opts.timeout_ms, headers)
        try:
            response = await navigator.navigate(self.url, opts.post_data)
        except NavigationError as e:
            logger.error(f"Navigation failed: {e}")
            self.echo(f"FAIL {e.url} - {e.reason}")
            return ExitCode.FAILURE

        runner = DiagnosticsRunner(page, opts, echo=self.echo)
        try:
            outcomes = await runner.run()
        except AssertionFailure as e:
            logger.error(str(e))
            self.echo(f"FAIL: {e}")
            return ExitCode.FAILURE

        if opts.captures_xhr and recorder.xhr_requests:
            await recorder.settle_xhr()

        self.result = ProbeResult(
            url=self.url,
            options=opts,
            response=response,
            console_errors=list(recorder.console_errors),
            console_messages=recorder.console_messages,
            network_failures=recorder.network_failures,
            xhr_requests=recorder.xhr_requests,
            redirect_chain=tracker.get_chain() if tracker else [],
            diagnostics=outcomes,
        )

        assembler = ReportAssembler(
            page,
            context,
            self.result,
            app_log_path=self.settings.app_log_path,
            echo=self.echo,
        )
        return await assembler.render()

    def __repr__(self) -> str:
        return f"DiagnosticSession(url={self.url})"
