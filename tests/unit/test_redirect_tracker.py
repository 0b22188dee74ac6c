"""Unit tests for redirect chain tracking."""

from unittest.mock import MagicMock

from routeprobe.capture.redirect_tracker import RedirectTracker


def _response(url, status, location=None):
    response = MagicMock()
    response.url = url
    response.status = status
    response.headers = {'location': location} if location else {}
    return response


class TestRedirectTracker:
    """Tests for RedirectTracker."""

    def test_registers_response_listener(self, mock_page):
        RedirectTracker(mock_page)
        assert 'response' in mock_page.handlers

    def test_chain_in_traversal_order(self, mock_page):
        tracker = RedirectTracker(mock_page)

        mock_page.emit('response', _response("http://localhost/a", 301, "/b"))
        mock_page.emit('response', _response("http://localhost/b", 302, "/c"))
        mock_page.emit('response', _response("http://localhost/c", 200))

        chain = tracker.get_chain()
        assert [(hop.url, hop.status, hop.location) for hop in chain] == [
            ("http://localhost/a", 301, "/b"),
            ("http://localhost/b", 302, "/c"),
        ]

    def test_redirect_without_location_ignored(self, mock_page):
        tracker = RedirectTracker(mock_page)

        mock_page.emit('response', _response("http://localhost/a", 304))

        assert tracker.get_chain() == []

    def test_non_redirect_statuses_ignored(self, mock_page):
        tracker = RedirectTracker(mock_page)

        mock_page.emit('response', _response("http://localhost/x", 201, "/created"))
        mock_page.emit('response', _response("http://localhost/y", 400, "/login"))

        assert tracker.get_chain() == []
