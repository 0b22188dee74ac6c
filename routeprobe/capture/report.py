"""Text report rendering and exit code computation.

This module provides the ReportAssembler class, which turns a ProbeResult
plus the live page and context into the final text report. Sections appear
in a fixed order and only when requested. The exit code depends on status,
console errors and network failures alone, whatever was displayed.
"""

import logging
from collections import deque
from enum import IntEnum
from pathlib import Path
from typing import Callable, Deque, List, Optional

import aiofiles
import typer
from playwright.async_api import BrowserContext, Page, Error as PlaywrightError

from ..errors import OutputFailure
from ..models.capture import (
    CookieEntry,
    FormInput,
    ProbeResult,
    StorageSnapshot,
)

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = (301, 302, 303, 307, 308)
APP_LOG_TAIL_LINES = 50
MAX_SCREENSHOT_HEIGHT = 5000

_INPUTS_JS = """
() => Array.from(document.querySelectorAll('input, select, textarea')).map(el => ({
    tag: el.tagName.toLowerCase(),
    type: el.type || '',
    name: el.name || '',
    id: el.id || '',
    value: el.type !== 'password' ? (el.value || '') : '[hidden]',
    required: !!el.required,
    disabled: !!el.disabled
}))
"""

_STORAGE_JS = """
() => ({
    local: Object.fromEntries(Object.keys(localStorage).map(k => [k, localStorage.getItem(k)])),
    session: Object.fromEntries(Object.keys(sessionStorage).map(k => [k, sessionStorage.getItem(k)]))
})
"""

_SCROLL_HEIGHT_JS = "() => document.documentElement.scrollHeight"


class ExitCode(IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    FAILURE = 1


def compute_exit_code(status: int, console_errors: int, network_failures: int) -> ExitCode:
    """0 only for a sub-400 status with no console errors or network failures."""
    if status >= 400 or console_errors > 0 or network_failures > 0:
        return ExitCode.FAILURE
    return ExitCode.SUCCESS


async def read_log_tail(path: Optional[Path], lines: int = APP_LOG_TAIL_LINES) -> Optional[List[str]]:
    """Last lines of the application log, or None when it cannot be read.

    The file is streamed so only the retained lines are held in memory.
    """
    if path is None:
        return None

    tail: Deque[str] = deque(maxlen=lines)
    try:
        async with aiofiles.open(path, 'r', encoding='utf-8', errors='replace') as f:
            async for line in f:
                tail.append(line.rstrip('\r\n'))
    except OSError as e:
        logger.debug(f"Application log unavailable: {e}")
        return None

    while tail and not tail[-1].strip():
        tail.pop()
    return list(tail)


class ReportAssembler:
    """Renders the diagnostic report for one session."""

    def __init__(
        self,
        page: Page,
        context: BrowserContext,
        result: ProbeResult,
        app_log_path: Optional[Path] = None,
        echo: Callable[[str], None] = typer.echo,
    ):
        """Initialize the assembler.

        Args:
            page: Page the route was loaded into
            context: Browser context owning the page (for cookies)
            result: Accumulated session state
            app_log_path: Application log tailed for empty 500 responses
            echo: Sink for report lines
        """
        self.page = page
        self.context = context
        self.result = result
        self.options = result.options
        self.app_log_path = app_log_path
        self.echo = echo

    def summary_line(self) -> str:
        result = self.result
        response = result.response

        line = f"{response.status} {result.url}"
        if self.options.is_post:
            line += ' method:POST'
        if self.options.user_id:
            line += f" user:{self.options.user_id}"
        if response.content_type:
            line += f" type:{response.content_type}"
        if result.console_error_count:
            line += f" console-errors:{result.console_error_count}"
        if result.network_failure_count:
            line += f" network-failures:{result.network_failure_count}"
        return line

    @property
    def exit_code(self) -> ExitCode:
        return compute_exit_code(
            self.result.response.status,
            self.result.console_error_count,
            self.result.network_failure_count,
        )

    async def render(self) -> ExitCode:
        """Emit every requested section and return the exit code."""
        opts = self.options

        self.echo(self.summary_line())
        self.render_redirects()
        self.echo('')
        self.render_console()

        if opts.headers:
            self.render_headers()

        self.render_network_failures()

        if opts.captures_xhr and self.result.xhr_requests:
            self.render_xhr()

        if opts.input_elements:
            await self.render_inputs()

        if opts.cookies:
            await self.render_cookies()

        if opts.storage:
            await self.render_storage()

        if not opts.no_body:
            await self.render_body()

        if opts.screenshot_path:
            await self.render_screenshot()

        return self.exit_code

    def render_redirects(self) -> None:
        result = self.result
        response = result.response
        chain = result.redirect_chain

        if self.options.follow_redirects and chain:
            self.echo('\nRedirect Chain:')
            for i, hop in enumerate(chain, start=1):
                self.echo(f"  {i}. {hop.status} {hop.url} -> {hop.location}")
            self.echo(f"  {len(chain) + 1}. {response.status} {response.url} (final)")
        elif response.status in REDIRECT_STATUSES and response.location:
            self.echo(f"Redirect Location: {response.location}")

    def render_console(self) -> None:
        result = self.result

        if self.options.console_log and result.console_messages:
            self.echo('Console Output:')
            for message in result.console_messages:
                self.echo(f"  [{message.type}] {message.text}")
        elif result.console_errors:
            self.echo('Console Errors:')
            for error in result.console_errors:
                self.echo(f"  {error}")
        else:
            self.echo('Console Errors: None')
        self.echo('')

    def render_headers(self) -> None:
        headers = self.result.response.headers
        self.echo('Response Headers:')
        for name in sorted(headers):
            self.echo(f"  {name}: {headers[name]}")
        self.echo('')

    def render_network_failures(self) -> None:
        if not self.result.network_failures:
            return
        self.echo('Network Failures:')
        for failure in self.result.network_failures:
            self.echo(f"  {failure.url}")
        self.echo('')

    def render_xhr(self) -> None:
        entries = self.result.xhr_requests

        if self.options.xhr_list:
            self.echo('XHR/Fetch Requests:')
            for entry in entries:
                status = entry.response.status if entry.response else 'pending'
                self.echo(f"  {entry.method} {entry.url} - {status}")
            self.echo('')

        if self.options.xhr_dump:
            self.echo('XHR/Fetch Details:')
            for entry in entries:
                self.echo(f"  {entry.method} {entry.url}")
                if entry.post_data:
                    self.echo(f"    Body: {entry.post_data}")
                if entry.response:
                    self.echo(f"    Status: {entry.response.status}")
                    if entry.response.body:
                        self.echo(f"    Response: {entry.response.body}")
                self.echo('')

    async def render_inputs(self) -> None:
        try:
            raw_inputs = await self.page.evaluate(_INPUTS_JS)
        except PlaywrightError as e:
            logger.warning(f"Failed to list form inputs: {e.message}")
            raw_inputs = []

        inputs = [FormInput(**item) for item in raw_inputs]
        self.echo('Form Inputs:')
        if inputs:
            for item in inputs:
                self.echo(f"  {item.describe()}")
        else:
            self.echo('  None')
        self.echo('')

    async def render_cookies(self) -> None:
        self.echo('Cookies:')
        try:
            cookies = [CookieEntry.from_playwright_cookie(c) for c in await self.context.cookies()]
        except PlaywrightError as e:
            logger.warning(f"Failed to read cookies: {e.message}")
            self.echo(f"Warning: Could not read cookies: {e.message}")
            self.echo('')
            return

        if cookies:
            for cookie in cookies:
                self.echo(f"  {cookie.name}: {cookie.value}")
                if cookie.domain:
                    self.echo(f"    Domain: {cookie.domain}")
                if cookie.expires_iso:
                    self.echo(f"    Expires: {cookie.expires_iso}")
        else:
            self.echo('  None')
        self.echo('')

    async def render_storage(self) -> None:
        try:
            snapshot = StorageSnapshot(**await self.page.evaluate(_STORAGE_JS))
        except PlaywrightError as e:
            # about:blank and opaque origins deny storage access
            logger.warning(f"Failed to read storage: {e.message}")
            snapshot = StorageSnapshot()

        for label, store in (('localStorage', snapshot.local), ('sessionStorage', snapshot.session)):
            self.echo(f"{label}:")
            if store:
                for key, value in store.items():
                    self.echo(f"  {key}: {value}")
            else:
                self.echo('  (empty)')
            self.echo('')

    async def render_body(self) -> None:
        self.echo('Response Body:')
        try:
            body = await self.page.content()
        except PlaywrightError as e:
            # Script-triggered navigation can leave the page mid-load
            logger.warning(f"Failed to read page content: {e.message}")
            self.echo(f"Warning: Could not read page content: {e.message}")
            return

        if body and body.strip():
            self.echo(body)
            return

        self.echo('(empty)')
        if self.result.response.status == 500:
            tail = await read_log_tail(self.app_log_path)
            if tail is not None:
                self.echo('\nApplication Log:')
                self.echo('\n'.join(tail))

    async def render_screenshot(self) -> None:
        path = self.options.screenshot_path
        width = self.options.effective_screenshot_width
        try:
            await self.capture_screenshot(path, width)
        except OutputFailure as e:
            logger.error(str(e))
            typer.echo(f"Screenshot failed: {e}", err=True)
            return
        self.echo(f"\nScreenshot saved: {path} ({width}px)")

    async def capture_screenshot(self, path: Path, width: int) -> None:
        """Clip to the configured width and at most MAX_SCREENSHOT_HEIGHT.

        Raises:
            OutputFailure: If the page cannot be measured or the file written
        """
        try:
            height = await self.page.evaluate(_SCROLL_HEIGHT_JS)
            await self.page.screenshot(
                path=str(path),
                full_page=True,
                clip={'x': 0, 'y': 0, 'width': width, 'height': min(MAX_SCREENSHOT_HEIGHT, height)},
            )
        except PlaywrightError as e:
            raise OutputFailure(e.message) from e
        except OSError as e:
            raise OutputFailure(str(e)) from e
