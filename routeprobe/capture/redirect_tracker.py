"""Passive redirect chain tracking."""

import logging
from typing import List

from playwright.async_api import Page, Response

from ..models.capture import RedirectHop

logger = logging.getLogger(__name__)


class RedirectTracker:
    """Records 3xx responses carrying a Location header, in arrival order."""

    def __init__(self, page: Page):
        self.page = page
        self.chain: List[RedirectHop] = []
        self.page.on("response", self._on_response)

    def _on_response(self, response: Response) -> None:
        status = response.status
        if not 300 <= status < 400:
            return

        location = response.headers.get('location')
        if not location:
            return

        self.chain.append(RedirectHop(url=response.url, status=status, location=location))
        logger.debug(f"Redirect {status} {response.url} -> {location}")

    def get_chain(self) -> List[RedirectHop]:
        return list(self.chain)

    def __repr__(self) -> str:
        return f"RedirectTracker(hops={len(self.chain)})"
