"""Combined event recorder for console, page error and network streams.

Listeners are registered before navigation and stay attached for the whole
session. Callbacks only append to the recorder's lists; readers take copies
after an explicit settle point.
"""

import asyncio
import logging
from typing import List

from playwright.async_api import Page

from .console_observer import ConsoleObserver, PageErrorObserver
from .network_observer import NetworkObserver
from ..models.capture import ConsoleEntry, NetworkFailure, XhrEntry

logger = logging.getLogger(__name__)

XHR_SETTLE_DELAY_MS = 500


class EventRecorder:
    """Records console output, uncaught errors, failures and XHR traffic."""

    def __init__(self, page: Page, capture_console: bool = False, capture_xhr: bool = False):
        """Attach all listeners to the page.

        Args:
            page: Playwright page to observe
            capture_console: Keep every console message, not just errors
            capture_xhr: Record XHR/fetch request/response pairs
        """
        self.page = page
        self.console_errors: List[str] = []
        self.console_observer = ConsoleObserver(page, self.console_errors, capture_messages=capture_console)
        self.error_observer = PageErrorObserver(page, self.console_errors)
        self.network_observer = NetworkObserver(page, capture_xhr=capture_xhr)

    async def settle_xhr(self, delay_ms: int = XHR_SETTLE_DELAY_MS) -> None:
        """Let in-flight XHR responses complete before they are read."""
        await asyncio.sleep(delay_ms / 1000)
        await self.network_observer.drain()

    @property
    def console_messages(self) -> List[ConsoleEntry]:
        return self.console_observer.get_messages()

    @property
    def network_failures(self) -> List[NetworkFailure]:
        return self.network_observer.get_failures()

    @property
    def xhr_requests(self) -> List[XhrEntry]:
        return self.network_observer.get_xhr_requests()

    def get_error_count(self) -> int:
        return len(self.console_errors)

    def __repr__(self) -> str:
        return (
            f"EventRecorder(errors={len(self.console_errors)}, "
            f"failures={len(self.network_observer.failures)}, "
            f"xhr={len(self.network_observer.xhr_requests)})"
        )
