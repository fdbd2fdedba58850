from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


REPORT_SCHEMA_VERSION = "1.0"


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


# Features each plan unlocks inside the engine
PLAN_FEATURES: Dict[Plan, frozenset] = {
    Plan.FREE: frozenset(),
    Plan.PRO: frozenset({"screenshot", "link_validation"}),
    Plan.ENTERPRISE: frozenset({"screenshot", "link_validation"}),
}


class FindingStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    INFO = "info"


class CategoryId(str, Enum):
    """Canonical category set. Declaration order is report order."""
    CONTENT = "content"
    TECHNICAL = "technical"
    MOBILE = "mobile"
    SECURITY = "security"
    STRUCTURED_DATA = "structured_data"
    CRAWLABILITY = "crawlability"
    LINKS = "links"
    PERFORMANCE = "performance"


# ─── Request Models ────────────────────────────────────────────────────────────

class Entitlement(BaseModel):
    model_config = {"frozen": True}

    plan: Plan = Plan.FREE

    def allows(self, feature: str) -> bool:
        return feature in PLAN_FEATURES[self.plan]


class AnalyzeRequest(BaseModel):
    url: str = Field(..., description="The URL to analyze")
    plan: Plan = Field(Plan.FREE, description="Plan tier of the requesting user")

    model_config = {
        "json_schema_extra": {
            "example": {
                "url": "https://example.com",
                "plan": "pro"
            }
        }
    }


# ─── Crawl Artifacts ───────────────────────────────────────────────────────────

class PageLink(BaseModel):
    model_config = {"frozen": True}

    href: str
    text: str = ""
    rel: str = ""
    target: str = ""


class NetworkResource(BaseModel):
    model_config = {"frozen": True}

    url: str
    status: int
    content_type: str = "unknown"


class PageSnapshot(BaseModel):
    """Rendered page, captured once per analysis request."""
    model_config = {"frozen": True}

    url: str
    final_url: str
    html: str
    title: str = ""
    links: List[PageLink] = []
    resources: List[NetworkResource] = []
    redirect_chains: Dict[str, List[str]] = {}
    load_time_ms: int = 0
    screenshot: Optional[str] = None          # base64 JPEG
    response_headers: Optional[Dict[str, str]] = None


class RobotsData(BaseModel):
    model_config = {"frozen": True}

    url: str
    content: str = ""
    can_crawl: bool = True
    sitemaps: List[str] = []


class SitemapData(BaseModel):
    model_config = {"frozen": True}

    url: str
    content_excerpt: str = ""


class LinkCheckResult(BaseModel):
    model_config = {"frozen": True}

    href: str
    status: int = 0
    reachable: bool = False
    error: Optional[str] = None


class AuxData(BaseModel):
    """Secondary artifacts. None means the stage was unavailable."""
    model_config = {"frozen": True}

    robots: Optional[RobotsData] = None
    sitemap: Optional[SitemapData] = None
    link_checks: Optional[List[LinkCheckResult]] = None
    unavailable: Dict[str, str] = {}   # stage -> reason


# ─── Result Models ─────────────────────────────────────────────────────────────

class Finding(BaseModel):
    model_config = {"frozen": True}

    rule: str
    name: str
    status: FindingStatus
    message: str = ""
    details: Optional[Any] = None


class CategoryResult(BaseModel):
    model_config = {"frozen": True}

    id: CategoryId
    findings: List[Finding] = []
    score: int = Field(0, ge=0, le=100)


class Report(BaseModel):
    model_config = {"frozen": True}

    schema_version: str = REPORT_SCHEMA_VERSION
    url: str
    timestamp: str
    plan: Plan
    categories: List[CategoryResult] = []
    category_scores: Dict[str, int] = {}
    overall_score: int = Field(0, ge=0, le=100)
    summary: str = ""
    skipped_categories: List[CategoryId] = []
    cached: bool = False
    snapshot: PageSnapshot
    aux: AuxData

    def category(self, category_id: CategoryId) -> Optional[CategoryResult]:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def to_document(self, include_raw: bool = True) -> Dict[str, Any]:
        """JSON-ready dict. include_raw=False drops html and screenshot."""
        exclude = None if include_raw else {"snapshot": {"html", "screenshot"}}
        return self.model_dump(mode="json", exclude=exclude)


class AnalyzeResponse(BaseModel):
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    kind: Optional[str] = None
