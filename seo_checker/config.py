from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )
    # App
    environment: str = "development"
    log_level: str = "INFO"
    # Renderer (Playwright)
    render_timeout_ms: int = 30000
    viewport_width: int = 1366
    viewport_height: int = 768
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36 SEOChecker/1.0"
    )
    # Crawl probes (robots.txt, sitemap, links)
    crawler_user_agent: str = "SEOChecker/1.0"
    robots_agent: str = "SEOChecker"
    probe_timeout_seconds: float = 5
    link_check_timeout_seconds: float = 5
    link_check_max: int = 20
    link_check_concurrency: int = 5
    # Upper bound for the concurrent probe stages of one analysis
    analysis_deadline_seconds: float = 45
    # Freshness cache
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 256
    # Rate limiting
    rate_limit_per_minute: int = 10


@lru_cache()
def get_settings() -> Settings:
    return Settings()
