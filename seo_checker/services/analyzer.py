"""
seo_checker/services/analyzer.py
Analysis orchestrator: validate -> render -> concurrent probes -> rules ->
aggregation -> report.

Render failures are fatal and raise AnalysisError subclasses. The robots,
sitemap and link stages degrade to "unavailable" markers on any failure,
including the shared deadline; they never abort the analysis.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import urlparse

import aiohttp

from ..config import Settings, get_settings
from ..errors import AnalysisError, InvalidURLError, NavigationError, RenderError
from ..models import AuxData, CategoryResult, Entitlement, PageSnapshot, Report
from .crawler import CrawlProbe, ProbeError, origin_of
from .renderer import RenderOptions, Renderer
from .report_cache import ReportCache
from .rule_registry import RuleInputs, RuleRegistry
from .score_calculator import score_and_summarize
from .seo_rules import registry as default_registry

logger = logging.getLogger(__name__)

# Extra time granted on top of the renderer's own navigation timeout
RENDER_GRACE_SECONDS = 15


def validate_url(url: str) -> str:
    """Return the stripped URL or raise InvalidURLError."""
    candidate = (url or "").strip()
    try:
        parsed = urlparse(candidate)
    except ValueError as e:
        raise InvalidURLError(cause=str(e)) from e
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InvalidURLError(cause=f"unsupported or incomplete URL: {candidate[:200]}")
    return candidate


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return "timeout"
    if isinstance(exc, ProbeError):
        return exc.reason
    if isinstance(exc, aiohttp.ClientError):
        return f"network error: {str(exc)[:120]}"
    return f"{type(exc).__name__}: {str(exc)[:120]}"


class SEOAnalyzer:
    """One instance per process; owns the freshness cache."""

    def __init__(
        self,
        renderer: Renderer,
        probe: CrawlProbe,
        cache: ReportCache = None,
        settings: Settings = None,
        registry: RuleRegistry = None,
        now: Callable[[], datetime] = None,
    ):
        self.settings = settings or get_settings()
        self.renderer = renderer
        self.probe = probe
        self.cache = cache or ReportCache(
            ttl_seconds=self.settings.cache_ttl_seconds,
            max_entries=self.settings.cache_max_entries,
        )
        self.registry = registry or default_registry
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def analyze(self, url: str, entitlement: Entitlement) -> Report:
        url = validate_url(url)
        plan = entitlement.plan

        cached = self.cache.get(url, plan)
        if cached is not None:
            logger.info("Cache hit for %s (%s)", url, plan.value)
            snapshot, aux = cached
            return self.build_report(snapshot, aux, entitlement, cached=True)

        snapshot = await self._render(url, entitlement)
        aux = await self._gather_aux(snapshot, entitlement)
        self.cache.put(url, plan, snapshot, aux)
        return self.build_report(snapshot, aux, entitlement)

    # ── Stage 1: fetch & render ──────────────────────────────────────────────
    async def _render(self, url: str, entitlement: Entitlement) -> PageSnapshot:
        options = RenderOptions(
            timeout_ms=self.settings.render_timeout_ms,
            viewport=(self.settings.viewport_width, self.settings.viewport_height),
            user_agent=self.settings.user_agent,
            screenshot=entitlement.allows("screenshot"),
        )
        budget = self.settings.render_timeout_ms / 1000 + RENDER_GRACE_SECONDS
        try:
            return await asyncio.wait_for(self.renderer.render(url, options), timeout=budget)
        except AnalysisError as e:
            logger.error("Render failed for %s: %s (%s)", url, e.message, e.cause)
            raise
        except asyncio.TimeoutError as e:
            logger.error("Render timed out for %s after %.0fs", url, budget)
            raise NavigationError(cause="render timeout") from e
        except Exception as e:
            logger.exception("Unexpected renderer failure for %s", url)
            raise RenderError(cause=f"{type(e).__name__}: {str(e)[:200]}") from e

    # ── Stages 2–4: probes, concurrently, under one deadline ─────────────────
    async def _gather_aux(self, snapshot: PageSnapshot, entitlement: Entitlement) -> AuxData:
        origin = origin_of(snapshot.url)
        unavailable: Dict[str, str] = {}
        tasks: Dict[str, asyncio.Task] = {
            "robots": asyncio.ensure_future(self.probe.fetch_robots(origin, snapshot.url)),
            "sitemap": asyncio.ensure_future(self.probe.fetch_sitemap(origin)),
        }
        if not entitlement.allows("link_validation"):
            unavailable["links"] = "skipped: plan does not include link validation"
        elif not snapshot.links:
            unavailable["links"] = "skipped: no links on page"
        else:
            tasks["links"] = asyncio.ensure_future(
                self.probe.check_links(snapshot.links, self.settings.link_check_max)
            )

        pending = set(tasks.values())
        try:
            _, pending = await asyncio.wait(
                tasks.values(), timeout=self.settings.analysis_deadline_seconds,
            )
        finally:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        results = {}
        for name, task in tasks.items():
            value, reason = self._stage_outcome(task, task in pending)
            if reason:
                logger.warning("Stage %s unavailable for %s: %s", name, snapshot.url, reason)
                unavailable[name] = reason
            results[name] = value

        return AuxData(
            robots=results.get("robots"),
            sitemap=results.get("sitemap"),
            link_checks=results.get("links"),
            unavailable=unavailable,
        )

    @staticmethod
    def _stage_outcome(task: asyncio.Task, timed_out: bool) -> Tuple[Optional[object], Optional[str]]:
        if timed_out:
            return None, "timeout: analysis deadline exceeded"
        if task.cancelled():
            return None, "cancelled"
        exc = task.exception()
        if exc is not None:
            return None, describe_failure(exc)
        value = task.result()
        if value is None:
            return None, "not found"
        if value == []:
            return None, "nothing to check"
        return value, None

    # ── Stages 5–7: rules, aggregation, assembly ─────────────────────────────
    def build_report(
        self, snapshot: PageSnapshot, aux: AuxData, entitlement: Entitlement, cached: bool = False,
    ) -> Report:
        findings_by_category, skipped = self.registry.evaluate(RuleInputs(snapshot, aux), entitlement)
        scored = score_and_summarize(findings_by_category)

        categories = [
            CategoryResult(id=cat, findings=findings, score=scored["category_scores"][cat.value])
            for cat, findings in findings_by_category.items()
        ]
        report = Report(
            url=snapshot.url,
            timestamp=self._now().isoformat(),
            plan=entitlement.plan,
            categories=categories,
            category_scores=scored["category_scores"],
            overall_score=scored["overall_score"],
            summary=scored["summary"],
            skipped_categories=skipped,
            cached=cached,
            snapshot=snapshot,
            aux=aux,
        )
        logger.info("Analysis complete for %s: %d/100", snapshot.url, report.overall_score)
        return report
