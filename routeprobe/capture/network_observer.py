"""Network observer for transport failures and XHR/fetch traffic.

This module provides the NetworkObserver class. Transport-level failures are
recorded unconditionally. XHR and fetch requests are recorded as pending
entries and correlated with their responses in arrival order: a response
binds to the earliest still-pending entry with the same URL.

Correlating by URL can mis-pair genuinely concurrent requests to the same
URL whose responses arrive out of order. Requests are not keyed by identity.
"""

import asyncio
import logging
from typing import List, Optional, Set

from playwright.async_api import Page, Request, Response

from ..models.capture import NetworkFailure, XhrEntry, XhrResponse

logger = logging.getLogger(__name__)

XHR_RESOURCE_TYPES = ('xhr', 'fetch')


class NetworkObserver:
    """Observes requests, responses and failures on a page."""

    def __init__(self, page: Page, capture_xhr: bool = False):
        """Initialize network observer for a page.

        Args:
            page: Playwright page to observe
            capture_xhr: Whether to record XHR/fetch request/response pairs
        """
        self.page = page
        self.capture_xhr = capture_xhr
        self.failures: List[NetworkFailure] = []
        self.xhr_requests: List[XhrEntry] = []
        self._body_tasks: Set[asyncio.Task] = set()

        self._setup_listeners()

    def _setup_listeners(self) -> None:
        """Setup Playwright event listeners for network events."""
        self.page.on("requestfailed", self._on_request_failed)

        if self.capture_xhr:
            self.page.on("request", self._on_request)
            self.page.on("response", self._on_response)

        logger.debug("Network observer listeners setup complete")

    def _on_request_failed(self, request: Request) -> None:
        error_text = None
        try:
            error_text = request.failure
        except Exception as e:
            logger.debug(f"Failed to read failure text: {e}")

        self.failures.append(NetworkFailure(url=request.url, error_text=error_text))
        logger.debug(f"Request failed: {request.url} ({error_text})")

    def _on_request(self, request: Request) -> None:
        if request.resource_type not in XHR_RESOURCE_TYPES:
            return

        self.xhr_requests.append(XhrEntry(
            url=request.url,
            method=request.method,
            headers=request.headers,
            post_data=request.post_data,
        ))
        logger.debug(f"XHR started: {request.method} {request.url}")

    def find_pending(self, url: str) -> Optional[XhrEntry]:
        """Earliest entry for url that has no response yet."""
        for entry in self.xhr_requests:
            if entry.url == url and entry.is_pending:
                return entry
        return None

    def _on_response(self, response: Response) -> None:
        request = response.request
        if request.resource_type not in XHR_RESOURCE_TYPES:
            return

        entry = self.find_pending(request.url)
        if entry is None:
            logger.debug(f"No pending XHR entry for response: {request.url}")
            return

        # Bind now so the next response for the same URL sees this one as taken
        entry.attach_response(XhrResponse(status=response.status, headers=response.headers))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        task = loop.create_task(self._read_body(entry, response))
        self._body_tasks.add(task)
        task.add_done_callback(self._body_tasks.discard)

    async def _read_body(self, entry: XhrEntry, response: Response) -> None:
        try:
            entry.response.body = await response.text()
        except Exception as e:
            logger.debug(f"Failed to read XHR body for {entry.url}: {e}")

    async def drain(self) -> None:
        """Wait for outstanding body reads to finish."""
        if self._body_tasks:
            await asyncio.gather(*list(self._body_tasks), return_exceptions=True)

    def get_failures(self) -> List[NetworkFailure]:
        return list(self.failures)

    def get_xhr_requests(self) -> List[XhrEntry]:
        return list(self.xhr_requests)

    def __repr__(self) -> str:
        return (
            f"NetworkObserver(failures={len(self.failures)}, "
            f"xhr={len(self.xhr_requests)})"
        )
