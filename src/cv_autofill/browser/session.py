"""Playwright browser session that hands out autofill-ready page targets."""

from typing import Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from cv_autofill.browser.page_target import PageTarget
from cv_autofill.config import Settings, settings as default_settings
from cv_autofill.detection.tables import ClassifierTables
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class BrowserSession:
    """
    Chromium session driven through Playwright.

    The session owns one browser context and one page. ``open_target`` wraps
    that page in a :class:`PageTarget` with the page agent installed.
    """

    def __init__(
        self,
        headless: bool = True,
        viewport_size: Tuple[int, int] = (1280, 900),
        timeout_seconds: int = 30,
        config: Optional[Settings] = None,
    ):
        """
        Initialize the session.

        Args:
            headless: Run browser in headless mode
            viewport_size: Browser viewport size (width, height)
            timeout_seconds: Default navigation and action timeout
            config: Settings passed on to page targets
        """
        self.headless = headless
        self.viewport_size = viewport_size
        self.timeout_seconds = timeout_seconds
        self.config = config or default_settings
        self.logger = logger.bind(component="browser_session")

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        self.is_initialized = False
        self.current_url: Optional[str] = None

    async def initialize(self) -> None:
        """Launch Chromium and open the session page."""
        if self.is_initialized:
            return

        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless)
        self.context = await self.browser.new_context(
            viewport={"width": self.viewport_size[0], "height": self.viewport_size[1]}
        )
        self.context.set_default_timeout(self.timeout_seconds * 1000)
        self.page = await self.context.new_page()

        self.is_initialized = True
        self.logger.info(
            "Browser session initialized",
            headless=self.headless,
            viewport_size=self.viewport_size,
        )

    async def navigate_to(self, url: str) -> None:
        """
        Navigate the session page to a URL.

        Args:
            url: Target URL, or a ``file://`` URL for local documents
        """
        await self.initialize()
        await self.page.goto(url, wait_until="load")
        self.current_url = url
        self.logger.info("Navigated to URL", url=url, title=await self.page.title())

    async def open_target(
        self,
        url: Optional[str] = None,
        tables: Optional[ClassifierTables] = None,
    ) -> PageTarget:
        """
        Return the session page as an autofill target.

        Args:
            url: Optional URL to navigate to first
            tables: Classifier tables for the target's engine

        Returns:
            PageTarget with the page agent installed
        """
        await self.initialize()
        target = PageTarget(self.page, config=self.config, tables=tables)
        await target.install()
        if url:
            await self.navigate_to(url)
        return target

    async def close(self) -> None:
        """Close the browser and release Playwright."""
        if self.context:
            await self.context.close()
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

        self.playwright = None
        self.browser = None
        self.context = None
        self.page = None
        self.is_initialized = False
        self.current_url = None
        self.logger.info("Browser session closed")

    async def __aenter__(self) -> "BrowserSession":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def create_browser_session(config: Optional[Settings] = None) -> BrowserSession:
    """
    Factory function to create a browser session from settings.

    Args:
        config: Settings to read browser options from

    Returns:
        Configured BrowserSession instance
    """
    config = config or default_settings
    return BrowserSession(
        headless=config.browser_headless,
        viewport_size=(config.viewport_width, config.viewport_height),
        timeout_seconds=config.browser_timeout,
        config=config,
    )
