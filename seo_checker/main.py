"""
SEO Checker FastAPI Application — main entry point
Renders a page, runs the SEO rule set and returns a scored report.
"""
import asyncio
import logging
import sys
from contextlib import asynccontextmanager

if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

import aiohttp
from fastapi import FastAPI

from .config import get_settings
from .logging_config import configure_logging
from .middleware.rate_limit import RateLimitMiddleware
from .models import REPORT_SCHEMA_VERSION
from .routers.analysis_router import router as analysis_router
from .services.analyzer import SEOAnalyzer
from .services.crawler import HttpCrawlProbe
from .services.renderer import PlaywrightRenderer
from .services.report_cache import ReportCache

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    session = aiohttp.ClientSession()
    app.state.analyzer = SEOAnalyzer(
        renderer=PlaywrightRenderer(),
        probe=HttpCrawlProbe(session, settings),
        cache=ReportCache(settings.cache_ttl_seconds, settings.cache_max_entries),
        settings=settings,
    )
    logger.info("SEO Checker started (%s)", settings.environment)
    try:
        yield
    finally:
        await session.close()


app = FastAPI(
    title="SEO Checker API",
    description="On-page SEO and technical-health analysis of a single URL.",
    version="1.0.0",
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(RateLimitMiddleware)
app.include_router(analysis_router)


@app.get("/", tags=["Health"])
async def root():
    return {"service": "SEO Checker API", "version": "1.0.0", "status": "running", "docs": "/docs"}


@app.api_route("/api/health", methods=["GET", "HEAD"], tags=["Health"])
async def health():
    return {
        "status": "ok",
        "environment": settings.environment,
        "schema_version": REPORT_SCHEMA_VERSION,
    }
