from .analyzer import SEOAnalyzer, validate_url
from .crawler import HttpCrawlProbe, ProbeError
from .renderer import PlaywrightRenderer, RenderOptions
from .report_cache import ReportCache
from .score_calculator import score_and_summarize
from .seo_rules import registry
