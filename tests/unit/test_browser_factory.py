"""Unit tests for browser factory."""

import pytest
from unittest.mock import AsyncMock, patch

from routeprobe.capture.browser_factory import (
    BrowserConfig,
    BrowserFactory,
    DEFAULT_LAUNCH_ARGS,
    viewport_for_width,
)


class TestBrowserConfig:
    """Tests for BrowserConfig class."""

    def test_default_config(self):
        """Test default configuration values."""
        config = BrowserConfig()

        assert config.headless is True
        assert config.viewport is None
        assert config.ignore_https_errors is True
        assert config.launch_args == ['--no-sandbox', '--disable-setuid-sandbox']

    def test_browser_options_conversion(self):
        """Test conversion to browser launch options."""
        config = BrowserConfig(headless=False, launch_args=['--mute-audio'])

        options = config.to_browser_options()

        assert options['headless'] is False
        assert options == {'headless': False, 'args': ['--mute-audio']}

    def test_launch_args_not_shared(self):
        config = BrowserConfig()
        config.launch_args.append('--mute-audio')

        assert '--mute-audio' not in DEFAULT_LAUNCH_ARGS

    def test_context_options_conversion(self):
        """Test conversion to context options."""
        assert BrowserConfig().to_context_options() == {'ignore_https_errors': True}

        options = BrowserConfig(viewport={'width': 375, 'height': 1080}).to_context_options()
        assert options['viewport'] == {'width': 375, 'height': 1080}

    def test_viewport_for_width(self):
        assert viewport_for_width(768) == {'width': 768, 'height': 1080}


class TestBrowserFactory:
    """Tests for BrowserFactory class."""

    @pytest.fixture
    def mock_playwright(self):
        """Mock Playwright instance."""
        with patch('routeprobe.capture.browser_factory.async_playwright') as mock_pw:
            playwright_mock = AsyncMock()
            async_pw_instance = AsyncMock()
            async_pw_instance.start = AsyncMock(return_value=playwright_mock)
            mock_pw.return_value = async_pw_instance

            browser_mock = AsyncMock()
            playwright_mock.chromium.launch.return_value = browser_mock

            context_mock = AsyncMock()
            browser_mock.new_context.return_value = context_mock

            page_mock = AsyncMock()
            context_mock.new_page.return_value = page_mock

            yield {
                'playwright': playwright_mock,
                'browser': browser_mock,
                'context': context_mock,
                'page': page_mock,
            }

    @pytest.mark.asyncio
    async def test_start_launches_chromium(self, mock_playwright):
        factory = BrowserFactory(BrowserConfig())

        await factory.start()

        assert factory.is_running
        mock_playwright['playwright'].chromium.launch.assert_awaited_once_with(
            headless=True, args=DEFAULT_LAUNCH_ARGS
        )

        await factory.stop()

        assert not factory.is_running
        mock_playwright['browser'].close.assert_awaited_once()
        mock_playwright['playwright'].stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_requires_start(self):
        factory = BrowserFactory(BrowserConfig())

        with pytest.raises(RuntimeError, match="not started"):
            async with factory.context():
                pass

    @pytest.mark.asyncio
    async def test_context_overrides_and_close(self, mock_playwright):
        factory = BrowserFactory(BrowserConfig())

        async with factory.session():
            async with factory.context(viewport={'width': 375, 'height': 1080}) as context:
                assert context is mock_playwright['context']

        mock_playwright['browser'].new_context.assert_awaited_once_with(
            ignore_https_errors=True, viewport={'width': 375, 'height': 1080}
        )
        mock_playwright['context'].close.assert_awaited_once()
        mock_playwright['browser'].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_resources_released_on_error(self, mock_playwright):
        factory = BrowserFactory(BrowserConfig())

        with pytest.raises(ValueError):
            async with factory.session():
                async with factory.context() as context:
                    page = await context.new_page()
                    assert page is mock_playwright['page']
                    raise ValueError("boom")

        mock_playwright['context'].close.assert_awaited_once()
        mock_playwright['browser'].close.assert_awaited_once()
        assert not factory.is_running

    @pytest.mark.asyncio
    async def test_launch_failure_stops_driver(self, mock_playwright):
        mock_playwright['playwright'].chromium.launch.side_effect = Exception("no browser")
        factory = BrowserFactory(BrowserConfig())

        with pytest.raises(Exception, match="no browser"):
            await factory.start()

        mock_playwright['playwright'].stop.assert_awaited_once()
        assert factory.playwright is None

    @pytest.mark.asyncio
    async def test_close_errors_are_tolerated(self, mock_playwright):
        mock_playwright['browser'].close.side_effect = Exception("already closed")
        factory = BrowserFactory(BrowserConfig())

        await factory.start()
        await factory.stop()

        assert factory.browser is None
        mock_playwright['playwright'].stop.assert_awaited_once()
