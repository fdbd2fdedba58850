"""
conftest.py — shared pytest fixtures
Adds the project root to sys.path so `seo_checker.*` imports resolve correctly
regardless of where pytest is invoked from.
"""

import sys
from pathlib import Path

# This file lives at  <root>/tests/conftest.py
# We need   <root>/   on sys.path so  `from seo_checker.main import app`  works.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from unittest.mock import AsyncMock, MagicMock

import pytest

from seo_checker.config import Settings
from seo_checker.models import (
    AuxData, NetworkResource, PageSnapshot, RobotsData, SitemapData,
)

PAGE_URL = "https://example.com"

# 45-character title, no meta description, one h1, > 300 words of body text
CANNED_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example Domain Guide to Technical SEO Testing</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <link rel="canonical" href="https://example.com/">
</head>
<body>
  <h1>Technical SEO Testing</h1>
  <p>{body}</p>
  <script>var ignored = "these words are not counted";</script>
</body>
</html>
""".format(body=" ".join(["content"] * 320))


@pytest.fixture
def page_url():
    return PAGE_URL


@pytest.fixture
def canned_html():
    return CANNED_HTML


@pytest.fixture
def make_snapshot():
    """Factory for PageSnapshots based on the canned page."""
    def _make(**overrides):
        fields = {
            "url": PAGE_URL,
            "final_url": PAGE_URL + "/",
            "html": CANNED_HTML,
            "title": "Example Domain Guide to Technical SEO Testing",
            "links": [],
            "resources": [
                NetworkResource(url=PAGE_URL + "/", status=200, content_type="text/html"),
                NetworkResource(url=PAGE_URL + "/app.js", status=200, content_type="application/javascript"),
            ],
            "redirect_chains": {},
            "load_time_ms": 4000,
            "screenshot": None,
            "response_headers": {
                "strict-transport-security": "max-age=31536000",
                "x-content-type-options": "nosniff",
                "x-frame-options": "DENY",
            },
        }
        fields.update(overrides)
        return PageSnapshot(**fields)
    return _make


@pytest.fixture
def robots_data():
    return RobotsData(
        url=PAGE_URL + "/robots.txt",
        content="User-agent: *\nAllow: /\nSitemap: https://example.com/sitemap.xml",
        can_crawl=True,
        sitemaps=["https://example.com/sitemap.xml"],
    )


@pytest.fixture
def sitemap_data():
    return SitemapData(url=PAGE_URL + "/sitemap.xml", content_excerpt="<urlset></urlset>")


@pytest.fixture
def healthy_aux(robots_data, sitemap_data):
    return AuxData(robots=robots_data, sitemap=sitemap_data)


@pytest.fixture
def test_settings():
    return Settings(
        render_timeout_ms=1000,
        analysis_deadline_seconds=0.5,
        link_check_max=20,
        link_check_concurrency=5,
    )


@pytest.fixture
def fake_renderer(make_snapshot):
    """Renderer double; no real browser is launched."""
    renderer = MagicMock()
    renderer.render = AsyncMock(return_value=make_snapshot())
    return renderer


@pytest.fixture
def fake_probe(robots_data, sitemap_data):
    probe = MagicMock()
    probe.fetch_robots = AsyncMock(return_value=robots_data)
    probe.fetch_sitemap = AsyncMock(return_value=sitemap_data)
    probe.check_links = AsyncMock(return_value=[])
    return probe
