"""Console and page error observers.

This module provides ConsoleObserver and PageErrorObserver, which listen to
Playwright console and pageerror events. Errors are always recorded because
the exit code depends on them; the full message list is only kept when
console display was requested.
"""

import logging
from typing import List

from playwright.async_api import Page, ConsoleMessage

from ..models.capture import ConsoleEntry

logger = logging.getLogger(__name__)


class ConsoleObserver:
    """Observer for console messages from the page."""

    def __init__(self, page: Page, errors: List[str], capture_messages: bool = False):
        """Initialize console observer for a page.

        Args:
            page: Playwright page to observe
            errors: Shared error list; console errors are appended to it
            capture_messages: Whether to keep every message regardless of type
        """
        self.page = page
        self.errors = errors
        self.capture_messages = capture_messages
        self.messages: List[ConsoleEntry] = []

        self.page.on("console", self._on_console_message)
        logger.debug("Console observer listener setup complete")

    def _on_console_message(self, message: ConsoleMessage) -> None:
        """Handle console message event."""
        entry = ConsoleEntry(type=message.type, text=message.text)

        if entry.type == 'error':
            self.errors.append(f"[ERROR] {entry.text}")
            logger.debug(f"Console error: {entry.text[:100]}")

        if self.capture_messages:
            self.messages.append(entry)

    def get_messages(self) -> List[ConsoleEntry]:
        return self.messages.copy()

    def __repr__(self) -> str:
        return f"ConsoleObserver(messages={len(self.messages)}, capture={self.capture_messages})"


class PageErrorObserver:
    """Observer for uncaught script errors."""

    def __init__(self, page: Page, errors: List[str]):
        self.page = page
        self.errors = errors
        self.page.on("pageerror", self._on_page_error)
        logger.debug("Page error observer listener setup complete")

    def _on_page_error(self, error: Exception) -> None:
        """Handle page error event.

        Args:
            error: Playwright Error raised by the page
        """
        text = getattr(error, 'message', None) or str(error)
        self.errors.append(f"[UNCAUGHT] {text}")
        logger.warning(f"Page error: {text}")
