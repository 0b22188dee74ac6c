"""Browser factory for the diagnostic session's Chromium instance.

This module provides the BrowserFactory class that owns the Playwright
driver, the launched browser and its contexts. Every resource it hands out
is scoped by an async context manager so it is released on all exit paths,
including fatal navigation and assertion failures.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Playwright,
    async_playwright,
)

logger = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = ['--no-sandbox', '--disable-setuid-sandbox']
DEFAULT_VIEWPORT_HEIGHT = 1080


class BrowserConfig:
    """Configuration for browser launch and context setup."""

    def __init__(
        self,
        headless: bool = True,
        viewport: Optional[Dict[str, int]] = None,
        ignore_https_errors: bool = True,
        launch_args: Optional[List[str]] = None,
    ):
        """Initialize browser configuration.

        Args:
            headless: Run browser in headless mode
            viewport: Viewport size dict with 'width' and 'height'; None keeps
                Playwright's default
            ignore_https_errors: Ignore SSL/TLS certificate errors
            launch_args: Extra Chromium command line switches
        """
        self.headless = headless
        self.viewport = viewport
        self.ignore_https_errors = ignore_https_errors
        self.launch_args = list(DEFAULT_LAUNCH_ARGS if launch_args is None else launch_args)

    def to_browser_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser launch options."""
        return {
            'headless': self.headless,
            'args': self.launch_args,
        }

    def to_context_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser context options."""
        options = {}

        if self.viewport:
            options['viewport'] = self.viewport

        if self.ignore_https_errors:
            options['ignore_https_errors'] = True

        return options


class BrowserFactory:
    """Owns one Playwright driver and one Chromium browser."""

    def __init__(self, config: BrowserConfig):
        self.config = config
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def start(self) -> None:
        """Start Playwright and launch Chromium."""
        if self.playwright is not None:
            logger.warning("Browser factory already started")
            return

        logger.debug("Starting browser factory")

        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(**self.config.to_browser_options())
            logger.debug(f"Browser launched (headless={self.config.headless})")

        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Close the browser and stop the driver."""
        try:
            if self.browser:
                await self.browser.close()
        except Exception as e:
            logger.warning(f"Error closing browser: {e}")
        finally:
            self.browser = None

        try:
            if self.playwright:
                await self.playwright.stop()
        except Exception as e:
            logger.warning(f"Error stopping Playwright: {e}")
        finally:
            self.playwright = None

        logger.debug("Browser factory stopped")

    @asynccontextmanager
    async def context(self, **context_overrides) -> AsyncGenerator[BrowserContext, None]:
        """Context manager for a browser context.

        Args:
            **context_overrides: Override default context options

        Yields:
            Browser context that will be closed on exit
        """
        if not self.browser:
            raise RuntimeError("Browser factory not started. Call start() first.")

        context_options = self.config.to_context_options()
        context_options.update(context_overrides)

        context = await self.browser.new_context(**context_options)
        try:
            yield context
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator['BrowserFactory', None]:
        """Start the factory and guarantee it is stopped."""
        try:
            await self.start()
            yield self
        finally:
            await self.stop()

    @property
    def is_running(self) -> bool:
        return self.browser is not None

    def __repr__(self) -> str:
        return f"BrowserFactory(headless={self.config.headless}, running={self.is_running})"


def viewport_for_width(width: int) -> Dict[str, int]:
    """Viewport used when a screenshot of the given width is requested."""
    return {'width': width, 'height': DEFAULT_VIEWPORT_HEIGHT}
