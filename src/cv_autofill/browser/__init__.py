"""Playwright adapter: page agent, page targets and browser sessions."""

from cv_autofill.browser.page_target import PageTarget
from cv_autofill.browser.session import BrowserSession, create_browser_session

__all__ = ["PageTarget", "BrowserSession", "create_browser_session"]
