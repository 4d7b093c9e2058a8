"""Tests for the Playwright page adapter and browser session, with a mocked page."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from cv_autofill.browser.agent_script import AGENT_SCRIPT, NOTIFY_BINDING
from cv_autofill.browser.page_target import PageTarget
from cv_autofill.browser.session import BrowserSession, create_browser_session
from cv_autofill.config import Settings
from cv_autofill.core.errors import CommunicationError


def _mock_page():
    page = MagicMock()
    page.url = "https://jobs.example.com/apply"
    page.evaluate = AsyncMock(return_value=None)
    page.expose_function = AsyncMock()
    page.add_init_script = AsyncMock()
    locator = MagicMock()
    locator.set_input_files = AsyncMock()
    page.locator.return_value = locator
    return page


class TestPageTarget:
    """Test cases for PageTarget."""

    @pytest.fixture
    def page(self):
        return _mock_page()

    @pytest.fixture
    def target(self, page):
        return PageTarget(page, config=Settings(feedback_duration_ms=1500))

    @pytest.mark.asyncio
    async def test_install_registers_binding_once(self, target, page):
        await target.install()
        await target.install()

        page.expose_function.assert_awaited_once()
        assert page.expose_function.await_args.args[0] == NOTIFY_BINDING
        page.add_init_script.assert_awaited_once_with(AGENT_SCRIPT)
        assert page.evaluate.await_count == 2

    @pytest.mark.asyncio
    async def test_ping(self, target, page):
        page.evaluate.return_value = "pong"
        await target.ping()

        page.evaluate.return_value = None
        with pytest.raises(CommunicationError):
            await target.ping()

    @pytest.mark.asyncio
    async def test_playwright_errors_become_communication_errors(self, target, page):
        page.evaluate.side_effect = PlaywrightError("Target page, context or browser has been closed")

        with pytest.raises(CommunicationError, match="has been closed"):
            await target.read_value("af-1")

    @pytest.mark.asyncio
    async def test_snapshot_from_agent_payload(self, target, page):
        page.evaluate.return_value = {
            "url": "https://jobs.example.com/apply",
            "root": {
                "tag": "html",
                "children": [{
                    "tag": "body",
                    "children": [{
                        "tag": "input",
                        "attrs": {"name": "email", "data-autofill-ref": "af-1"},
                        "ref": "af-1",
                        "style": {"display": "inline-block", "visibility": "visible", "opacity": "1"},
                    }],
                }],
            },
        }

        snapshot = await target.snapshot()

        assert snapshot.url == "https://jobs.example.com/apply"
        assert snapshot.by_ref("af-1").get("name") == "email"

    @pytest.mark.asyncio
    async def test_write_calls_agent_with_arguments(self, target, page):
        await target.write_value("af-2", "Jane")

        script, args = page.evaluate.await_args.args
        assert "writeValue" in script
        assert args == ["af-2", "Jane"]

    @pytest.mark.asyncio
    async def test_feedback_uses_configured_duration(self, target, page):
        await target.apply_feedback("af-2", True)

        _, args = page.evaluate.await_args.args
        assert args == ["af-2", True, 1500]

    @pytest.mark.asyncio
    async def test_attach_file_sets_buffer_and_notifies_agent(self, target, page):
        page.evaluate.return_value = ["resume.pdf"]

        await target.attach_file("af-3", "resume.pdf", "application/pdf", b"%PDF")

        page.locator.assert_called_once_with('[data-autofill-ref="af-3"]')
        files = page.locator.return_value.set_input_files.await_args.args[0]
        assert files == {"name": "resume.pdf", "mimeType": "application/pdf", "buffer": b"%PDF"}
        assert await target.read_file_names("af-3") == ["resume.pdf"]

    def test_page_mutations_reach_engine_debouncer(self, target):
        target.engine.debouncer = MagicMock()

        target._on_page_mutation()

        target.engine.debouncer.signal.assert_called_once()


class TestBrowserSession:
    """Test cases for BrowserSession construction."""

    def test_factory_reads_settings(self):
        config = Settings(browser_headless=False, viewport_width=1024, viewport_height=768, browser_timeout=10)

        session = create_browser_session(config)

        assert session.headless is False
        assert session.viewport_size == (1024, 768)
        assert session.timeout_seconds == 10
        assert not session.is_initialized

    @pytest.mark.asyncio
    async def test_close_without_initialize(self):
        session = BrowserSession()

        await session.close()

        assert session.page is None
        assert not session.is_initialized
