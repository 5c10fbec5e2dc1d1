"""
Browser session adapter.

The pipeline only talks to `BrowserSession`. `PlaywrightSession` implements
it over playwright's async API: one browser context and one page per
session, so cookies are never shared between crawler workers.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Optional
from urllib.parse import urlsplit

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from harvester.contexts.extraction.selectors import (
    CHALLENGE_CHECKBOX_SELECTOR,
    CHALLENGE_FRAME_SELECTOR,
)
from harvester.contexts.scraping.errors import NavigationError, SessionSetupError
from harvester.contexts.scraping.requests import FetchResponse

MS = 1000


class BrowserSession(ABC):
    """
    One rendered-page session: a page plus the cookie jar behind it.

    Timeouts are seconds throughout.
    """

    proxy_url: Optional[str] = None

    @property
    @abstractmethod
    def url(self) -> str:
        """URL of the currently loaded page."""
        pass

    @abstractmethod
    async def goto(self, url: str, wait_until: str, timeout: float) -> Optional[int]:
        """
        Navigate the page.

        Returns:
            HTTP status of the main document, if known

        Raises:
            NavigationError: On timeout or aborted navigation
        """
        pass

    @abstractmethod
    async def wait_for_load_state(self, state: str, timeout: float) -> None:
        """Best effort: returns quietly when the state is not reached in time."""
        pass

    @abstractmethod
    async def title(self) -> str:
        pass

    @abstractmethod
    async def body_text(self, limit: int = 2000) -> str:
        pass

    @abstractmethod
    async def content(self) -> str:
        pass

    @abstractmethod
    async def click_challenge_checkbox(self, timeout: float) -> bool:
        """Click the interactive challenge widget if one is present."""
        pass

    @abstractmethod
    async def cookie_header(self) -> str:
        pass

    @abstractmethod
    async def user_agent(self) -> str:
        pass

    @abstractmethod
    async def request(self, url: str, headers: Dict[str, str], timeout: float) -> FetchResponse:
        """HTTP GET through the browser context, sharing its cookies and fingerprint."""
        pass

    @abstractmethod
    async def render(self, url: str, timeout: float) -> str:
        """Load url in a fresh page of the same context and return its rendered HTML."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def wait(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


def playwright_proxy_settings(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    """Split a proxy URL with inline credentials into playwright's proxy mapping."""
    if not proxy_url:
        return None

    parts = urlsplit(proxy_url)
    server = f"{parts.scheme}://{parts.hostname}"
    if parts.port:
        server += f":{parts.port}"

    settings = {"server": server}
    if parts.username:
        settings["username"] = parts.username
    if parts.password:
        settings["password"] = parts.password
    return settings


class PlaywrightSession(BrowserSession):
    def __init__(self, context, page, proxy_url: Optional[str] = None):
        self.context = context
        self.page = page
        self.proxy_url = proxy_url

    @property
    def url(self) -> str:
        return self.page.url

    async def goto(self, url, wait_until, timeout):
        try:
            response = await self.page.goto(url, wait_until=wait_until, timeout=timeout * MS)
        except PlaywrightError as e:
            raise NavigationError(f"{wait_until} navigation to {url} failed: {e}") from e
        return response.status if response is not None else None

    async def wait_for_load_state(self, state, timeout):
        try:
            await self.page.wait_for_load_state(state, timeout=timeout * MS)
        except PlaywrightError as e:
            logger.debug(f"Load state '{state}' not reached: {e}")

    async def title(self):
        return await self.page.title()

    async def body_text(self, limit=2000):
        try:
            text = await self.page.inner_text("body")
        except PlaywrightError:
            return ""
        return text[:limit]

    async def content(self):
        return await self.page.content()

    async def click_challenge_checkbox(self, timeout):
        checkbox = self.page.frame_locator(CHALLENGE_FRAME_SELECTOR).locator(CHALLENGE_CHECKBOX_SELECTOR)
        try:
            await checkbox.click(timeout=timeout * MS)
        except PlaywrightError as e:
            logger.debug(f"No clickable challenge widget: {e}")
            return False
        return True

    async def cookie_header(self):
        cookies = await self.context.cookies()
        return "; ".join(f"{cookie['name']}={cookie['value']}" for cookie in cookies)

    async def user_agent(self):
        return await self.page.evaluate("() => navigator.userAgent")

    async def request(self, url, headers, timeout):
        response = await self.context.request.get(url, headers=headers, timeout=timeout * MS)
        try:
            return FetchResponse(status=response.status, text=await response.text(), url=response.url)
        finally:
            await response.dispose()

    async def render(self, url, timeout):
        page = await self.context.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout * MS)
            try:
                await page.wait_for_load_state("networkidle", timeout=timeout * MS)
            except PlaywrightError:
                pass
            return await page.content()
        finally:
            await page.close()

    async def close(self):
        await self.context.close()


class PlaywrightBrowser:
    """Owns the playwright driver and one browser; hands out isolated sessions."""

    def __init__(self, playwright, browser, locale: str, proxy_url: Optional[str]):
        self.playwright = playwright
        self.browser = browser
        self.locale = locale
        self.proxy_url = proxy_url

    @classmethod
    async def launch(
        cls,
        browser_name: str = "firefox",
        headless: bool = True,
        locale: str = "en-IN",
        proxy_url: Optional[str] = None,
    ) -> "PlaywrightBrowser":
        """
        Start playwright and launch a browser.

        Raises:
            SessionSetupError: If the driver or the browser cannot start
        """
        playwright = None
        try:
            playwright = await async_playwright().start()
            browser_type = getattr(playwright, browser_name)
            browser = await browser_type.launch(
                headless=headless,
                proxy=playwright_proxy_settings(proxy_url),
            )
        except (PlaywrightError, AttributeError) as e:
            if playwright is not None:
                await playwright.stop()
            raise SessionSetupError(f"Could not launch {browser_name}: {e}") from e

        logger.info(f"Launched {browser_name} (headless={headless}, proxy={'yes' if proxy_url else 'no'})")
        return cls(playwright, browser, locale, proxy_url)

    async def new_session(self) -> PlaywrightSession:
        try:
            context = await self.browser.new_context(locale=self.locale)
            page = await context.new_page()
        except PlaywrightError as e:
            raise SessionSetupError(f"Could not open a browser context: {e}") from e
        return PlaywrightSession(context, page, proxy_url=self.proxy_url)

    async def close(self) -> None:
        await self.browser.close()
        await self.playwright.stop()
