"""
Crawl probes: robots.txt, sitemap discovery and link validation over aiohttp.

Network errors and timeouts from robots/sitemap probes propagate to the
caller's stage boundary; link checks never raise for an individual link.
"""
import asyncio
import logging
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import aiohttp

from ..config import Settings, get_settings
from ..models import LinkCheckResult, PageLink, RobotsData, SitemapData

logger = logging.getLogger(__name__)

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemap")
ROBOTS_CONTENT_LIMIT = 5000
SITEMAP_EXCERPT_LIMIT = 1000
MAX_REDIRECTS = 5
_SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "data:", "#")


class ProbeError(Exception):
    """A probe got an answer that means the artifact is unavailable."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class CrawlProbe(Protocol):
    async def fetch_robots(self, origin: str, page_url: str) -> Optional[RobotsData]:
        ...

    async def fetch_sitemap(self, origin: str) -> Optional[SitemapData]:
        ...

    async def check_links(self, links: Sequence[PageLink], max_count: int) -> List[LinkCheckResult]:
        ...


def origin_of(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}"


def parse_robots(robots_url: str, content: str, page_url: str, agent: str) -> RobotsData:
    parser = RobotFileParser(robots_url)
    parser.parse(content.splitlines())
    return RobotsData(
        url=robots_url,
        content=content[:ROBOTS_CONTENT_LIMIT],
        can_crawl=parser.can_fetch(agent, page_url),
        sitemaps=parser.site_maps() or [],
    )


def checkable_links(links: Sequence[PageLink], max_count: int) -> List[PageLink]:
    """First max_count links with an http(s) target, in page order."""
    selected = []
    for link in links:
        href = (link.href or "").strip()
        if not href or href.lower().startswith(_SKIPPED_SCHEMES):
            continue
        if urlparse(href).scheme not in ("http", "https"):
            continue
        selected.append(link)
        if len(selected) >= max_count:
            break
    return selected


class HttpCrawlProbe:
    """aiohttp implementation of the crawl probes. The session is caller-owned."""

    def __init__(self, session: aiohttp.ClientSession, settings: Settings = None):
        self.session = session
        self.settings = settings or get_settings()
        self._headers = {"User-Agent": self.settings.crawler_user_agent}

    def _timeout(self, seconds: float) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=seconds)

    async def fetch_robots(self, origin: str, page_url: str) -> Optional[RobotsData]:
        robots_url = f"{origin}/robots.txt"
        logger.debug("Checking robots.txt: %s", robots_url)
        async with self.session.get(
            robots_url,
            timeout=self._timeout(self.settings.probe_timeout_seconds),
            headers=self._headers,
            allow_redirects=True,
            ssl=False,
        ) as resp:
            if resp.status >= 400:
                raise ProbeError(f"HTTP {resp.status}")
            content = await resp.text(errors="replace")
        return parse_robots(robots_url, content, page_url, self.settings.robots_agent)

    async def fetch_sitemap(self, origin: str) -> Optional[SitemapData]:
        """Try the conventional locations in order; first 200 wins."""
        for path in SITEMAP_PATHS:
            sitemap_url = f"{origin}{path}"
            logger.debug("Checking sitemap: %s", sitemap_url)
            try:
                async with self.session.get(
                    sitemap_url,
                    timeout=self._timeout(self.settings.probe_timeout_seconds),
                    headers=self._headers,
                    allow_redirects=True,
                    ssl=False,
                ) as resp:
                    if resp.status != 200:
                        continue
                    content = await resp.text(errors="replace")
                    return SitemapData(url=sitemap_url, content_excerpt=content[:SITEMAP_EXCERPT_LIMIT])
            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                logger.debug("Sitemap candidate %s failed: %s", sitemap_url, e)
                continue
        return None

    async def _request_status(self, method: str, url: str) -> int:
        async with self.session.request(
            method,
            url,
            timeout=self._timeout(self.settings.link_check_timeout_seconds),
            headers=self._headers,
            allow_redirects=True,
            max_redirects=MAX_REDIRECTS,
            ssl=False,
        ) as resp:
            return resp.status

    async def _check_link(self, href: str) -> LinkCheckResult:
        """HEAD request with GET fallback. Never raises."""
        try:
            status = await self._request_status("HEAD", href)
            if status in (405, 501):   # HEAD not supported
                status = await self._request_status("GET", href)
        except asyncio.TimeoutError:
            return LinkCheckResult(href=href, status=0, reachable=False, error="Timeout")
        except aiohttp.ClientError:
            try:
                status = await self._request_status("GET", href)
            except asyncio.TimeoutError:
                return LinkCheckResult(href=href, status=0, reachable=False, error="Timeout")
            except aiohttp.ClientError as e:
                return LinkCheckResult(href=href, status=0, reachable=False,
                                       error=f"Connection error: {str(e)[:120]}")
        except ValueError as e:  # malformed URL rejected by aiohttp/yarl
            return LinkCheckResult(href=href, status=0, reachable=False, error=str(e)[:120])
        return LinkCheckResult(href=href, status=status, reachable=200 <= status < 400)

    async def check_links(self, links: Sequence[PageLink], max_count: int) -> List[LinkCheckResult]:
        selected = checkable_links(links, max_count)
        sem = asyncio.Semaphore(self.settings.link_check_concurrency)

        async def check_one(link: PageLink) -> LinkCheckResult:
            async with sem:
                return await self._check_link(link.href.strip())

        return list(await asyncio.gather(*[check_one(link) for link in selected]))
