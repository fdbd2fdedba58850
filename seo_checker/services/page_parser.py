"""
seo_checker/services/page_parser.py
Pulls the individual data slices the rules consume out of the rendered DOM.
Every helper is read-only on the soup; rules share a single parse.
"""
from typing import Dict, List, Optional, Set

from bs4 import BeautifulSoup
from bs4.element import Comment, Doctype

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
_NON_CONTENT_TAGS = {"script", "style", "noscript", "template"}


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def _attr_text(tag, name: str) -> str:
    value = tag.get(name, "")
    if isinstance(value, list):     # multi-valued attributes such as rel
        value = " ".join(value)
    return (value or "").strip()


def _rel_values(tag) -> List[str]:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return [r.lower() for r in rel]


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """Text of the first <title>, or None when the tag is missing."""
    tag = soup.find("title")
    if tag is None:
        return None
    return tag.get_text(strip=True)


def extract_meta_content(soup: BeautifulSoup, name: str) -> Optional[str]:
    """Content of <meta name=...> or <meta property=...>, matched case-insensitively."""
    wanted = name.lower()
    for meta in soup.find_all("meta"):
        key = _attr_text(meta, "name") or _attr_text(meta, "property")
        if key.lower() == wanted:
            return _attr_text(meta, "content")
    return None


def extract_headings(soup: BeautifulSoup) -> Dict[str, List[str]]:
    return {
        tag: [h.get_text(" ", strip=True) for h in soup.find_all(tag)]
        for tag in HEADING_TAGS
    }


def extract_canonical(soup: BeautifulSoup) -> Optional[str]:
    for link in soup.find_all("link"):
        if "canonical" in _rel_values(link):
            return _attr_text(link, "href")
    return None


def extract_jsonld_blocks(soup: BeautifulSoup) -> List[str]:
    """Raw text of every <script type="application/ld+json">, in document order."""
    blocks = []
    for script in soup.find_all("script"):
        if _attr_text(script, "type").lower() == "application/ld+json":
            blocks.append(script.string if script.string is not None else script.get_text())
    return blocks


def extract_robots_directives(soup: BeautifulSoup) -> Set[str]:
    content = extract_meta_content(soup, "robots")
    if not content:
        return set()
    directives = {d.strip().lower() for d in content.split(",") if d.strip()}
    if "none" in directives:
        directives |= {"noindex", "nofollow"}
    return directives


def extract_hreflangs(soup: BeautifulSoup) -> List[str]:
    values = []
    for link in soup.find_all("link"):
        if "alternate" in _rel_values(link) and link.get("hreflang") is not None:
            values.append(_attr_text(link, "hreflang"))
    return values


def extract_images(soup: BeautifulSoup) -> List[Dict[str, Optional[str]]]:
    return [
        {"src": img.get("src"), "alt": img.get("alt")}
        for img in soup.find_all("img")
    ]


def extract_html_lang(soup: BeautifulSoup) -> Optional[str]:
    html_tag = soup.find("html")
    if html_tag is None:
        return None
    return _attr_text(html_tag, "lang") or None


def extract_insecure_elements(soup: BeautifulSoup) -> List[str]:
    """Describe every img/script/link element loading over plain http://."""
    found = []
    for tag_name, attr in (("img", "src"), ("script", "src"), ("link", "href")):
        for tag in soup.find_all(tag_name):
            value = _attr_text(tag, attr)
            if value.lower().startswith("http://"):
                found.append(f"<{tag_name}> {value}")
    return found


def count_words(soup: BeautifulSoup) -> int:
    root = soup.body or soup
    words = 0
    for text in root.find_all(string=True):
        if isinstance(text, (Comment, Doctype)):
            continue
        if text.parent is not None and text.parent.name in _NON_CONTENT_TAGS:
            continue
        words += len(text.split())
    return words
