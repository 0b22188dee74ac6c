"""Request header injection for same-origin traffic."""

import logging
from typing import Dict, Optional
from urllib.parse import urlparse

from playwright.async_api import Page, Route, Request

logger = logging.getLogger(__name__)

HEADLESS_TEST_HEADER = 'X-Headless-Test'
USER_ID_HEADER = 'X-Dev-Auth-User-Id'
AUTH_KEY_HEADER = 'X-Dev-Auth-Key'


def build_diagnostic_headers(user_id: Optional[str] = None, auth_key: Optional[str] = None) -> Dict[str, str]:
    """Headers attached to every same-origin request.

    The impersonation pair is only sent when a user id is given. The auth
    key is supplied by the environment and never computed here.
    """
    headers = {HEADLESS_TEST_HEADER: '1'}
    if user_id:
        headers[USER_ID_HEADER] = str(user_id)
        if auth_key:
            headers[AUTH_KEY_HEADER] = auth_key
    return headers


def _origin(url: str) -> tuple:
    parsed = urlparse(url)
    return (parsed.scheme.lower(), parsed.netloc.lower())


class RequestHeaderInjector:
    """Adds diagnostic headers to requests bound for the application origin."""

    def __init__(self, page: Page, base_url: str, headers: Dict[str, str]):
        """Initialize the injector.

        Args:
            page: Playwright page whose requests are intercepted
            base_url: Application base URL; only its origin receives headers
            headers: Headers to merge into matching requests
        """
        self.page = page
        self.base_url = base_url
        self.headers = dict(headers)
        self._origin = _origin(base_url)
        self.injected_count = 0

    async def attach(self) -> None:
        """Install the route handler on the page."""
        await self.page.route("**/*", self._handle_route)
        logger.debug(f"Header injection active for {self.base_url}")

    def is_same_origin(self, url: str) -> bool:
        return _origin(url) == self._origin

    async def _handle_route(self, route: Route, request: Request) -> None:
        if self.is_same_origin(request.url):
            self.injected_count += 1
            await route.continue_(headers={**request.headers, **self.headers})
        else:
            await route.continue_()
