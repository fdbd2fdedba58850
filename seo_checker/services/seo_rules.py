"""
seo_checker/services/seo_rules.py
The rule library. Every check is a pure function of the slices named by its
parameters and returns one Finding or a list of them.

Families:
  1. Content (title, meta description, headings, word count, image alts)
  2. Technical (canonical, robots meta, hreflang, redirects, lang, URL)
  3. Mobile (viewport)
  4. Security (HTTPS, mixed content, security headers)
  5. Structured data (JSON-LD)
  6. Crawlability (robots.txt, sitemap)
  7. Links (link validation, pro feature)
  8. Performance (load-time heuristics, failed resources)
"""
import json
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urljoin, urlparse

from ..models import CategoryId, Finding, FindingStatus
from .rule_registry import RuleRegistry

registry = RuleRegistry()

PASS, WARN, FAIL, INFO = (
    FindingStatus.PASS, FindingStatus.WARN, FindingStatus.FAIL, FindingStatus.INFO,
)

TITLE_MIN_LENGTH, TITLE_MAX_LENGTH = 30, 60
DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH = 120, 160
MIN_WORDS_OK, MIN_WORDS_WARN = 300, 150
MAX_URL_LENGTH = 115
MAX_LISTED = 10
ROBOTS_DIRECTIVES = ("noindex", "nofollow", "noarchive", "nosnippet", "noodp", "noimageindex")
TRACKING_PARAMS = ("utm_source", "utm_medium", "utm_campaign", "fbclid", "gclid")
REQUIRED_SECURITY_HEADERS = (
    "Strict-Transport-Security",
    "X-Content-Type-Options",
    "X-Frame-Options",
)
FAST_LOAD_MS, SLOW_LOAD_MS = 3000, 6000

_INITIAL_SCALE_RE = re.compile(r"initial-scale=1(\.0+)?(?![\d.])")


def _finding(rule: str, name: str, status: FindingStatus, message: str, details: Any = None) -> Finding:
    return Finding(rule=rule, name=name, status=status, message=message, details=details)


def _same_url(a: str, b: str) -> bool:
    return a.rstrip("/") == b.rstrip("/")


# ═══════════════════════════════════════════════════════════════════════════════
# 1. CONTENT
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.CONTENT, "title_length", "Page Title")
def check_title(title: Optional[str]) -> Finding:
    text = (title or "").strip()
    if not text:
        return _finding("title_length", "Page Title", FAIL, "No title tag found",
                        "Add a descriptive title tag to your page")

    length = len(text)
    details = {"title": text, "length": length,
               "recommended": f"{TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH}"}
    if length < TITLE_MIN_LENGTH:
        return _finding("title_length", "Page Title", WARN, f"Title too short ({length} chars)", details)
    if length > TITLE_MAX_LENGTH:
        return _finding("title_length", "Page Title", WARN, f"Title too long ({length} chars)", details)
    return _finding("title_length", "Page Title", PASS, f"Title is optimized ({length} chars)", details)


@registry.rule(CategoryId.CONTENT, "meta_description_length", "Meta Description")
def check_meta_description(meta_description: Optional[str]) -> Finding:
    text = (meta_description or "").strip()
    if not text:
        return _finding("meta_description_length", "Meta Description", FAIL,
                        "No meta description found",
                        "Add a meta description to improve click-through rates")

    length = len(text)
    details = {"description": text, "length": length,
               "recommended": f"{DESCRIPTION_MIN_LENGTH}-{DESCRIPTION_MAX_LENGTH}"}
    if length < DESCRIPTION_MIN_LENGTH:
        return _finding("meta_description_length", "Meta Description", WARN,
                        f"Description too short ({length} chars)", details)
    if length > DESCRIPTION_MAX_LENGTH:
        return _finding("meta_description_length", "Meta Description", WARN,
                        f"Description too long ({length} chars)", details)
    return _finding("meta_description_length", "Meta Description", PASS,
                    f"Description is optimized ({length} chars)", details)


@registry.rule(CategoryId.CONTENT, "h1_count", "H1 Heading")
def check_h1(h1_texts: List[str]) -> Finding:
    if not h1_texts:
        return _finding("h1_count", "H1 Heading", FAIL, "No H1 tag found",
                        "Add an H1 tag to define the main topic of your page")
    if len(h1_texts) > 1:
        return _finding("h1_count", "H1 Heading", WARN,
                        f"Multiple H1 tags found ({len(h1_texts)})", list(h1_texts))
    return _finding("h1_count", "H1 Heading", PASS, "Single H1 tag found", h1_texts[0])


@registry.rule(CategoryId.CONTENT, "heading_hierarchy", "Heading Hierarchy")
def check_heading_hierarchy(headings: Dict[str, List[str]]) -> Finding:
    counts = [f"{tag.upper()}: {len(texts)} found" for tag, texts in headings.items() if texts]
    gaps = [
        f"h{level + 1} used without h{level}"
        for level in range(1, 6)
        if not headings.get(f"h{level}") and headings.get(f"h{level + 1}")
    ]
    if gaps:
        return _finding("heading_hierarchy", "Heading Hierarchy", WARN,
                        "Gaps found in heading hierarchy", gaps + counts)
    return _finding("heading_hierarchy", "Heading Hierarchy", PASS,
                    "Proper heading hierarchy", counts)


@registry.rule(CategoryId.CONTENT, "content_length", "Content Length")
def check_content_length(word_count: int) -> Finding:
    if word_count > MIN_WORDS_OK:
        status, details = PASS, "Good content length"
    elif word_count > MIN_WORDS_WARN:
        status, details = WARN, "Consider adding more content for better SEO"
    else:
        status, details = FAIL, "Thin content: aim for more than 300 words"
    return _finding("content_length", "Content Length", status, f"{word_count} words found", details)


@registry.rule(CategoryId.CONTENT, "image_alt", "Image Alt Attributes")
def check_image_alts(images: List[Dict[str, Optional[str]]]) -> Finding:
    if not images:
        return _finding("image_alt", "Image Alt Attributes", PASS, "No images found on the page")

    missing = [img for img in images if not (img.get("alt") or "").strip()]
    if not missing:
        return _finding("image_alt", "Image Alt Attributes", PASS,
                        f"All {len(images)} images have alt attributes")
    return _finding(
        "image_alt", "Image Alt Attributes", WARN,
        f"{len(missing)} of {len(images)} images missing alt attributes",
        [img.get("src") or "unknown source" for img in missing[:MAX_LISTED]],
    )


# ═══════════════════════════════════════════════════════════════════════════════
# 2. TECHNICAL
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.TECHNICAL, "canonical", "Canonical URL")
def check_canonical(canonical: Optional[str], url: str) -> Finding:
    if canonical is None:
        return _finding("canonical", "Canonical URL", WARN, "No canonical URL found",
                        "Add a canonical URL to prevent duplicate content issues")
    if not canonical:
        return _finding("canonical", "Canonical URL", WARN, "Canonical tag has an empty href")

    resolved = urljoin(url, canonical)
    if _same_url(resolved, url):
        return _finding("canonical", "Canonical URL", PASS,
                        "Canonical URL properly set to current page", resolved)
    # Cross-page conflicts need a multi-page corpus, so a mismatch is only flagged
    return _finding("canonical", "Canonical URL", WARN,
                    "Canonical URL points to a different page", resolved)


@registry.rule(CategoryId.TECHNICAL, "robots_meta", "Robots Meta Directives")
def check_robots_meta(robots_directives) -> List[Finding]:
    findings = []
    for directive in ROBOTS_DIRECTIVES:
        name = f"Robots Meta: {directive}"
        if directive in robots_directives:
            findings.append(_finding("robots_meta", name, WARN,
                                     f"Page sets the {directive} directive",
                                     sorted(robots_directives)))
        else:
            findings.append(_finding("robots_meta", name, PASS, f"No {directive} directive"))
    return findings


@registry.rule(CategoryId.TECHNICAL, "hreflang", "Hreflang Tags")
def check_hreflang(hreflangs: List[str]) -> Finding:
    if not hreflangs:
        return _finding("hreflang", "Hreflang Tags", WARN, "No hreflang tags found",
                        "Add hreflang annotations if the page has language variants")

    seen, duplicates = set(), []
    for value in hreflangs:
        key = value.lower()
        if key in seen and key not in duplicates:
            duplicates.append(key)
        seen.add(key)
    if duplicates:
        return _finding("hreflang", "Hreflang Tags", FAIL,
                        f"Duplicate hreflang values: {', '.join(duplicates)}", duplicates)
    return _finding("hreflang", "Hreflang Tags", PASS,
                    f"{len(hreflangs)} unique hreflang value(s)", list(hreflangs))


def check_redirect_chain(chain: List[str]) -> List[Finding]:
    """Classify one redirect chain by length, and separately flag loops."""
    findings = []
    length = len(chain)
    start = chain[0] if chain else ""
    if length <= 1:
        findings.append(_finding("redirect_chains", "Redirect Chain", PASS,
                                 "No redirect hops", list(chain)))
    elif length <= 3:
        findings.append(_finding("redirect_chains", "Redirect Chain", INFO,
                                 f"Redirect chain of {length} URLs from {start}", list(chain)))
    else:
        findings.append(_finding("redirect_chains", "Redirect Chain", WARN,
                                 f"Long redirect chain of {length} URLs from {start}", list(chain)))

    repeated = sorted({u for u in chain if chain.count(u) > 1})
    if repeated:
        findings.append(_finding("redirect_chains", "Redirect Loop", FAIL,
                                 f"Redirect loop detected from {start}",
                                 {"chain": list(chain), "repeated": repeated}))
    return findings


@registry.rule(CategoryId.TECHNICAL, "redirect_chains", "Redirect Chains")
def check_redirect_chains(redirect_chains: Dict[str, List[str]]) -> List[Finding]:
    if not redirect_chains:
        return [_finding("redirect_chains", "Redirect Chains", PASS, "No redirect chains detected")]
    findings = []
    for chain in redirect_chains.values():
        findings.extend(check_redirect_chain(chain))
    return findings


@registry.rule(CategoryId.TECHNICAL, "language", "Language Declaration")
def check_language(html_lang: Optional[str]) -> Finding:
    if html_lang:
        return _finding("language", "Language Declaration", PASS, f'Language set to "{html_lang}"')
    return _finding("language", "Language Declaration", WARN, "No language attribute found",
                    "Add a lang attribute to the html tag")


@registry.rule(CategoryId.TECHNICAL, "url_structure", "URL Structure")
def check_url_structure(url: str) -> Finding:
    parsed = urlparse(url)
    problems = []
    if "_" in parsed.path:
        problems.append("URL contains underscores (_), prefer hyphens (-)")
    if len(url) > MAX_URL_LENGTH:
        problems.append(f"URL is long ({len(url)} characters, recommended <= {MAX_URL_LENGTH})")
    params = parse_qs(parsed.query, keep_blank_values=True)
    for param in TRACKING_PARAMS:
        if param in params:
            problems.append(f"URL contains tracking parameter: {param}")

    if problems:
        return _finding("url_structure", "URL Structure", WARN, "; ".join(problems), problems)
    return _finding("url_structure", "URL Structure", PASS, "URL structure looks good")


# ═══════════════════════════════════════════════════════════════════════════════
# 3. MOBILE
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.MOBILE, "viewport", "Viewport Meta Tag")
def check_viewport(viewport: Optional[str]) -> Finding:
    if viewport is None:
        return _finding("viewport", "Viewport Meta Tag", FAIL, "No viewport meta tag found",
                        "Add a viewport meta tag for mobile optimization")

    content = viewport.replace(" ", "").lower()
    has_width = "width=device-width" in content
    has_scale = bool(_INITIAL_SCALE_RE.search(content))
    if has_width and has_scale:
        return _finding("viewport", "Viewport Meta Tag", PASS, "Viewport is set correctly", viewport)
    missing = [p for p, ok in (("width=device-width", has_width), ("initial-scale=1", has_scale)) if not ok]
    return _finding("viewport", "Viewport Meta Tag", FAIL, "Viewport is not set correctly",
                    {"content": viewport, "missing": missing})


# ═══════════════════════════════════════════════════════════════════════════════
# 4. SECURITY
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.SECURITY, "https", "HTTPS")
def check_https(url: str) -> Finding:
    if urlparse(url).scheme == "https":
        return _finding("https", "HTTPS", PASS, "Site is served over HTTPS")
    return _finding("https", "HTTPS", FAIL, "Site is not using HTTPS",
                    "Implement an SSL/TLS certificate for security")


@registry.rule(CategoryId.SECURITY, "mixed_content", "Mixed Content")
def check_mixed_content(url: str, insecure_elements: List[str]) -> List[Finding]:
    if urlparse(url).scheme != "https":
        return []
    if not insecure_elements:
        return [_finding("mixed_content", "Mixed Content", PASS, "No mixed content detected")]
    return [_finding(
        "mixed_content", "Mixed Content", FAIL,
        f"{len(insecure_elements)} element(s) loaded over insecure http://",
        list(insecure_elements[:MAX_LISTED]),
    )]


@registry.rule(CategoryId.SECURITY, "security_headers", "Security Headers")
def check_security_headers(response_headers: Optional[Dict[str, str]]) -> Finding:
    if response_headers is None:
        return _finding("security_headers", "Security Headers", INFO,
                        "Response headers were not captured",
                        [f"Recommended: {h}" for h in REQUIRED_SECURITY_HEADERS])

    present = {k.lower() for k in response_headers}
    missing = [h for h in REQUIRED_SECURITY_HEADERS if h.lower() not in present]
    if missing:
        return _finding("security_headers", "Security Headers", WARN,
                        f"Missing security headers: {', '.join(missing)}",
                        [f"Add the HTTP header: {h}" for h in missing])
    return _finding("security_headers", "Security Headers", PASS,
                    "All important security headers are present")


# ═══════════════════════════════════════════════════════════════════════════════
# 5. STRUCTURED DATA
# ═══════════════════════════════════════════════════════════════════════════════

def _schema_types(data: Any) -> List[str]:
    if isinstance(data, list):
        return [t for item in data for t in _schema_types(item)]
    if not isinstance(data, dict):
        return []
    if "@graph" in data:
        return _schema_types(data["@graph"])
    declared = data.get("@type")
    if isinstance(declared, list):
        return [str(t) for t in declared]
    return [str(declared)] if declared else []


@registry.rule(CategoryId.STRUCTURED_DATA, "json_ld", "Structured Data")
def check_structured_data(jsonld_blocks: List[str]) -> List[Finding]:
    if not jsonld_blocks:
        return [_finding("json_ld", "Structured Data", WARN, "No structured data found",
                         "Add Schema.org markup to help search engines understand your content")]

    findings = []
    for index, block in enumerate(jsonld_blocks, start=1):
        try:
            types = _schema_types(json.loads(block))
        except (ValueError, RecursionError) as e:
            if isinstance(e, json.JSONDecodeError):
                reason = f"{e.msg} at line {e.lineno}, column {e.colno}"
            elif isinstance(e, RecursionError):
                reason = "nesting too deep"
            else:
                reason = str(e)[:120]
            findings.append(_finding(
                "json_ld", f"Structured Data #{index}", FAIL,
                f"Invalid JSON-LD syntax (parse error: {reason})",
                {"block": index, "error": str(e)[:200]},
            ))
            continue
        schema_type = ", ".join(types) or "Unknown"
        findings.append(_finding(
            "json_ld", f"Schema.org {schema_type}", PASS,
            f"Valid {schema_type} schema found",
            {"block": index, "type": schema_type},
        ))
    return findings


# ═══════════════════════════════════════════════════════════════════════════════
# 6. CRAWLABILITY
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.CRAWLABILITY, "robots_txt", "Robots.txt")
def check_robots_txt(robots, unavailable: Dict[str, str]) -> Finding:
    if robots is None:
        return _finding("robots_txt", "Robots.txt", FAIL, "robots.txt unavailable",
                        {"reason": unavailable.get("robots", "not found")})
    if not robots.can_crawl:
        return _finding("robots_txt", "Robots.txt", FAIL, "Page is disallowed in robots.txt",
                        {"robots_url": robots.url})
    return _finding("robots_txt", "Robots.txt", PASS, "robots.txt found and page is allowed",
                    {"robots_url": robots.url, "sitemaps": list(robots.sitemaps)})


@registry.rule(CategoryId.CRAWLABILITY, "sitemap", "Sitemap")
def check_sitemap(sitemap, robots, unavailable: Dict[str, str]) -> Finding:
    if sitemap is not None:
        return _finding("sitemap", "Sitemap", PASS, "Sitemap is accessible", {"location": sitemap.url})
    details = {"reason": unavailable.get("sitemap", "not found")}
    if robots is not None and robots.sitemaps:
        details["declared_in_robots"] = list(robots.sitemaps)
    return _finding("sitemap", "Sitemap", FAIL, "Sitemap unavailable", details)


# ═══════════════════════════════════════════════════════════════════════════════
# 7. LINKS
# ═══════════════════════════════════════════════════════════════════════════════

@registry.rule(CategoryId.LINKS, "link_validation", "Link Validation", requires="link_validation")
def check_links(link_checks, unavailable: Dict[str, str]) -> List[Finding]:
    if not link_checks:
        return [_finding("link_validation", "Link Validation", WARN, "No links were checked",
                         {"reason": unavailable.get("links", "no links to validate")})]

    findings = []
    for link in link_checks:
        name = f"Link: {link.href}"
        if link.reachable:
            findings.append(_finding("link_validation", name, PASS,
                                     f"Link is valid (HTTP {link.status})"))
        else:
            reason = f"HTTP {link.status}" if link.status else (link.error or "no response")
            findings.append(_finding("link_validation", name, FAIL,
                                     f"Link is broken ({reason})",
                                     {"status": link.status, "error": link.error}))
    return findings


# ═══════════════════════════════════════════════════════════════════════════════
# 8. PERFORMANCE
# ═══════════════════════════════════════════════════════════════════════════════

def estimate_performance_score(load_time_ms: int) -> int:
    """Load-time heuristic standing in for a real Lighthouse run."""
    if load_time_ms < FAST_LOAD_MS:
        return 90
    if load_time_ms < SLOW_LOAD_MS:
        return 70
    return 50


@registry.rule(CategoryId.PERFORMANCE, "load_time", "Page Load Time")
def check_load_time(load_time_ms: int) -> Finding:
    if not load_time_ms or load_time_ms <= 0:
        return _finding("load_time", "Page Load Time", WARN, "Performance data not available")
    if load_time_ms < FAST_LOAD_MS:
        status = PASS
    elif load_time_ms < SLOW_LOAD_MS:
        status = WARN
    else:
        status = FAIL
    return _finding("load_time", "Page Load Time", status,
                    f"Page loaded in {load_time_ms / 1000:.2f}s",
                    "Target: under 3 seconds for optimal user experience")


@registry.rule(CategoryId.PERFORMANCE, "performance_score", "Performance Score")
def check_performance_score(load_time_ms: int) -> Finding:
    if not load_time_ms or load_time_ms <= 0:
        return _finding("performance_score", "Performance Score", WARN, "Performance data not available")
    score = estimate_performance_score(load_time_ms)
    status = PASS if score >= 90 else WARN
    seconds = load_time_ms / 1000
    return _finding("performance_score", "Performance Score", status,
                    f"Estimated performance score: {score}/100", [
                        f"First Contentful Paint (est.): {seconds * 0.3:.1f}s",
                        f"Largest Contentful Paint (est.): {seconds * 0.8:.1f}s",
                        f"Total Blocking Time (est.): {round(load_time_ms * 0.1)}ms",
                        f"Speed Index (est.): {seconds * 0.7:.1f}s",
                    ])


@registry.rule(CategoryId.PERFORMANCE, "failed_resources", "Failed Resources")
def check_failed_resources(resources) -> Finding:
    failed = [r for r in resources if r.status >= 400]
    if not failed:
        return _finding("failed_resources", "Failed Resources", PASS,
                        f"All {len(resources)} network resources loaded")
    return _finding("failed_resources", "Failed Resources", WARN,
                    f"{len(failed)} of {len(resources)} network resources failed to load",
                    [f"{r.url} (HTTP {r.status})" for r in failed[:MAX_LISTED]])
