"""
Playwright-based page renderer. Produces the PageSnapshot every analysis
starts from: rendered HTML, title, links, network resources, redirect
chains, load time, main-response headers and (plan permitting) a screenshot.

Browser launch failures and navigation failures surface as distinct
errors; the browser/context are always closed in finally blocks.
"""
import base64
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

from playwright.async_api import (
    async_playwright, Browser, BrowserContext, Response,
    Error as PlaywrightError,
)

from ..errors import BrowserLaunchError, NavigationError
from ..models import NetworkResource, PageLink, PageSnapshot

logger = logging.getLogger(__name__)

MAX_RESOURCES = 100
MAX_LINKS = 50

_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-extensions",
]

_LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]')).map(a => ({
    href: a.href,
    text: (a.textContent || '').trim(),
    rel: a.rel || '',
    target: a.target || ''
}))
"""


@dataclass(frozen=True)
class RenderOptions:
    timeout_ms: int = 30000
    viewport: Tuple[int, int] = (1366, 768)
    user_agent: Optional[str] = None
    screenshot: bool = False


class Renderer(Protocol):
    async def render(self, url: str, options: RenderOptions) -> PageSnapshot:
        ...


def _redirect_chain(response: Response) -> List[str]:
    """URLs the request passed through, oldest first, ending with its own URL."""
    request = response.request
    chain = []
    previous = request.redirected_from
    while previous is not None:
        chain.insert(0, previous.url)
        previous = previous.redirected_from
    if chain:
        chain.append(request.url)
    return chain


class PlaywrightRenderer:
    """Renders one URL per call in a fresh headless Chromium."""

    def __init__(self, headless: bool = True):
        self.headless = headless

    async def render(self, url: str, options: RenderOptions) -> PageSnapshot:
        resources: List[NetworkResource] = []
        redirect_chains: Dict[str, List[str]] = {}
        browser: Optional[Browser] = None
        context: Optional[BrowserContext] = None

        def on_response(response: Response) -> None:
            if len(resources) < MAX_RESOURCES:
                resources.append(NetworkResource(
                    url=response.url,
                    status=response.status,
                    content_type=response.headers.get("content-type", "unknown"),
                ))
            chain = _redirect_chain(response)
            if chain:
                redirect_chains[chain[0]] = chain

        async with async_playwright() as p:
            try:
                browser = await p.chromium.launch(headless=self.headless, args=_CHROMIUM_ARGS)
            except PlaywrightError as e:
                logger.error("Browser launch failed: %s", e)
                raise BrowserLaunchError(cause=str(e)[:200]) from e

            try:
                width, height = options.viewport
                context = await browser.new_context(
                    viewport={"width": width, "height": height},
                    user_agent=options.user_agent,
                )
                page = await context.new_page()
                page.set_default_timeout(options.timeout_ms)
                page.on("response", on_response)

                logger.info("Navigating to %s", url)
                start = time.monotonic()
                try:
                    main_response = await page.goto(url, wait_until="networkidle", timeout=options.timeout_ms)
                except PlaywrightError as e:
                    logger.warning("Navigation to %s failed: %s", url, e)
                    raise NavigationError(cause=str(e)[:200]) from e
                load_time_ms = round((time.monotonic() - start) * 1000)

                html = await page.content()
                title = await page.title()

                screenshot = None
                if options.screenshot:
                    try:
                        raw = await page.screenshot(type="jpeg", quality=80, full_page=False)
                        screenshot = base64.b64encode(raw).decode("ascii")
                    except PlaywrightError as e:
                        logger.warning("Screenshot failed for %s: %s", url, e)

                raw_links = await page.evaluate(_LINKS_SCRIPT)
                links = [PageLink(**link) for link in raw_links[:MAX_LINKS]]

                headers = None
                if main_response is not None:
                    headers = await main_response.all_headers()

                return PageSnapshot(
                    url=url,
                    final_url=page.url,
                    html=html,
                    title=title or "",
                    links=links,
                    resources=resources,
                    redirect_chains=redirect_chains,
                    load_time_ms=load_time_ms,
                    screenshot=screenshot,
                    response_headers=headers,
                )
            finally:
                if context is not None:
                    try:
                        await context.close()
                    except PlaywrightError:
                        pass
                if browser is not None:
                    try:
                        await browser.close()
                    except PlaywrightError:
                        pass
