"""Single page load for a diagnostic session.

This module provides the NavigationController class. A GET navigates and
waits for network quiescence, retrying only on connection refusal with
exponential backoff. A POST does not navigate: it issues an in-page fetch
carrying the payload and, for HTML responses, installs the body as the page
content so DOM diagnostics still work. Both paths return a
ResponseDescriptor and end with the same settle step.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

import typer
from playwright.async_api import Page, Error as PlaywrightError

from ..errors import NavigationError
from ..models.capture import ResponseDescriptor

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BACKOFF_BASE_MS = 1000
SETTLE_DELAY_MS = 300
CONNECTION_REFUSED = 'ERR_CONNECTION_REFUSED'

_POST_FETCH_JS = """
async ({ url, data, headers }) => {
    const structured = typeof data === 'object' && data !== null;
    const body = structured ? JSON.stringify(data) : data;
    const contentType = structured ? 'application/json' : 'application/x-www-form-urlencoded';

    const resp = await fetch(url, {
        method: 'POST',
        headers: { 'Content-Type': contentType, ...headers },
        body
    });

    return {
        status: resp.status,
        headers: Object.fromEntries(resp.headers.entries()),
        body: await resp.text(),
        url: resp.url
    };
}
"""

_SETTLE_JS = """
(delay) => new Promise(resolve => {
    if (document.readyState === 'complete') {
        setTimeout(resolve, delay);
    } else {
        window.addEventListener('load', () => setTimeout(resolve, delay));
    }
})
"""


def backoff_delay_ms(attempt: int) -> int:
    """Delay before retrying after the given (1-based) failed attempt."""
    return BACKOFF_BASE_MS * (2 ** (attempt - 1))


def is_connection_refused(error: Exception) -> bool:
    return CONNECTION_REFUSED in str(error)


class NavigationController:
    """Performs the route's page load and produces a ResponseDescriptor."""

    def __init__(
        self,
        page: Page,
        timeout_ms: int,
        headers: Optional[Dict[str, str]] = None,
        max_attempts: int = MAX_ATTEMPTS,
        settle_delay_ms: int = SETTLE_DELAY_MS,
    ):
        """Initialize the controller.

        Args:
            page: Playwright page to load into
            timeout_ms: Navigation timeout
            headers: Diagnostic headers sent with the simulated POST
            max_attempts: Total GET attempts when the connection is refused
            settle_delay_ms: Delay held after the document is complete
        """
        self.page = page
        self.timeout_ms = timeout_ms
        self.headers = dict(headers or {})
        self.max_attempts = max_attempts
        self.settle_delay_ms = settle_delay_ms
        self.attempts = 0

    async def navigate(
        self,
        url: str,
        post_data: Optional[Union[Dict[str, Any], list, str]] = None,
    ) -> ResponseDescriptor:
        """Load the URL and wait for the page to settle.

        Raises:
            NavigationError: On a non-retryable error or exhausted retries
        """
        if post_data is not None:
            descriptor = await self._post(url, post_data)
        else:
            descriptor = await self._get(url)

        await self.settle()
        return descriptor

    async def _get(self, url: str) -> ResponseDescriptor:
        response = None

        for attempt in range(1, self.max_attempts + 1):
            self.attempts = attempt
            try:
                logger.debug(f"Navigating to {url} (attempt {attempt})")
                response = await self.page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                break

            except PlaywrightError as e:
                if is_connection_refused(e) and attempt < self.max_attempts:
                    delay = backoff_delay_ms(attempt)
                    logger.warning(f"Connection refused for {url}, retry {attempt + 1} in {delay}ms")
                    typer.echo(f"Connection refused, retrying in {delay}ms...", err=True)
                    await asyncio.sleep(delay / 1000)
                    continue
                raise NavigationError(url, e.message) from e

        if response is None:
            raise NavigationError(url, "No response")

        return ResponseDescriptor(
            status=response.status,
            headers=response.headers,
            url=response.url,
        )

    async def _post(self, url: str, post_data: Union[Dict[str, Any], list, str]) -> ResponseDescriptor:
        self.attempts = 1
        try:
            await self.page.goto("about:blank")
            result = await self.page.evaluate(
                _POST_FETCH_JS,
                {'url': url, 'data': post_data, 'headers': self.headers},
            )
        except PlaywrightError as e:
            raise NavigationError(url, e.message) from e

        descriptor = ResponseDescriptor(
            status=result['status'],
            headers=result['headers'],
            url=result['url'] or url,
        )

        if descriptor.is_html:
            logger.debug("POST returned HTML, installing it as page content")
            try:
                await self.page.set_content(result['body'], wait_until="networkidle", timeout=self.timeout_ms)
            except PlaywrightError as e:
                raise NavigationError(url, e.message) from e

        return descriptor

    async def settle(self) -> None:
        """Wait for document readiness, then hold the settle delay."""
        try:
            await self.page.evaluate(_SETTLE_JS, self.settle_delay_ms)
        except PlaywrightError as e:
            # Late client-side navigation can destroy the context; diagnostics still run
            logger.warning(f"Settle wait interrupted: {e.message}")
