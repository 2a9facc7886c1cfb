import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PWError
from playwright.async_api import TimeoutError as PWTimeoutError
from playwright.async_api import async_playwright

from backend.arriendos.client import random_user_agent
from backend.py_models.source import SourceProfile

log = logging.getLogger("arriendos.browser")

NAV_TIMEOUT_MS = 30_000
CARD_WAIT_MS = 8_000


async def launch_browser():
    _p = await async_playwright().start()
    browser = await _p.chromium.launch(headless=True)
    # stash the driver so close_browser can stop it
    setattr(browser, "_playwright", _p)
    return browser


async def new_page(browser):
    context = await browser.new_context(
        user_agent=random_user_agent(),
        locale="es-CO",
        viewport={"width": 1366, "height": 900},
    )
    return await context.new_page()


async def close_browser(browser) -> None:
    try:
        await browser.close()
    finally:
        _p = getattr(browser, "_playwright", None)
        if _p is not None:
            await _p.stop()


async def _progressive_scroll(page, steps: int = 6, wait_ms: int = 600):
    for _ in range(steps):
        await page.evaluate("window.scrollBy(0, document.body.scrollHeight)")
        await page.wait_for_timeout(wait_ms)


async def _dismiss_banners(page):
    for text in ["Aceptar", "Acepto", "Entendido", "OK", "Accept"]:
        try:
            await page.locator(f"text={text}").first.click(timeout=1500)
            break
        except (PWTimeoutError, PWError):
            pass


async def _wait_for_listings(page, profile: SourceProfile) -> None:
    # cards are often lazy; scroll between attempts
    for _ in range(2):
        try:
            await page.wait_for_selector(profile.selectors.property_card, timeout=CARD_WAIT_MS // 2)
            return
        except PWTimeoutError:
            await _progressive_scroll(page, steps=2, wait_ms=500)
    log.debug("[%s] no card selector matched after render", profile.id)


async def _render(browser, url: str, profile: SourceProfile) -> str:
    page = await new_page(browser)
    try:
        await page.goto(url, wait_until="domcontentloaded", timeout=NAV_TIMEOUT_MS)
        await _dismiss_banners(page)
        await _wait_for_listings(page, profile)
        await _progressive_scroll(page, steps=3, wait_ms=500)
        return await page.content()
    finally:
        await page.context.close()


async def render(url: str, profile: SourceProfile, cancel: Optional[asyncio.Event] = None) -> str:
    """
    Render a results page in headless Chromium and return the final HTML.

    When `cancel` is set while the page is loading, the render is abandoned and
    asyncio.CancelledError is raised. The browser is always closed.
    """
    browser = await launch_browser()
    work = None
    try:
        work = asyncio.ensure_future(_render(browser, url, profile))
        if cancel is None:
            return await work
        stop = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait({work, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
        if work in done:
            return work.result()
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        log.info("[%s] render cancelled: %s", profile.id, url)
        raise asyncio.CancelledError()
    finally:
        if work is not None and not work.done():
            work.cancel()
        await close_browser(browser)
