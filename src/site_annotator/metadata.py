"""
SEO metadata derivation: canonical URL, title and description.

Documents are parsed with BeautifulSoup for reading only. The annotator
never re-serializes the parse tree, so author markup stays byte-for-byte
intact outside the injected blocks.
"""

import re
from typing import Optional

from bs4 import BeautifulSoup

from .config import SiteConfig
from .models import PageMetadata

# Target window for synthesized descriptions
DESCRIPTION_MIN_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 165

ELLIPSIS = "…"

INDEX_FILE = "index.html"

_DESCRIPTION_NAME = re.compile(r"^\s*description\s*$", re.I)
_ROBOTS_NAME = re.compile(r"^\s*robots\s*$", re.I)
_SENTENCE_END = re.compile(r"[.!?](?=\s|$)")


def _clean(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    if not text:
        return ""
    return " ".join(text.split())


def parse_html(document_text: str) -> BeautifulSoup:
    return BeautifulSoup(document_text, "lxml")


def derive_canonical_url(relative_path: str, site_url: str) -> str:
    """
    Map a document path to its canonical absolute URL.

    Args:
        relative_path: Path of the document relative to the site root.
        site_url: Site base URL (with or without trailing slash).

    Returns:
        Canonical URL. Directory index files map to their folder with a
        trailing slash.

    Examples:
        >>> derive_canonical_url("about/index.html", "https://example.com")
        'https://example.com/about/'
        >>> derive_canonical_url("about/team.html", "https://example.com/")
        'https://example.com/about/team.html'
    """
    parts = [p for p in relative_path.replace("\\", "/").split("/") if p and p != "."]

    is_index = bool(parts) and parts[-1] == INDEX_FILE
    if is_index:
        parts = parts[:-1]

    path = "/" + "/".join(parts)
    if is_index and parts:
        path += "/"

    return site_url.strip().rstrip("/") + path


def _first_text(soup: BeautifulSoup, selectors: list[str]) -> str:
    for selector in selectors:
        el = soup.select_one(selector)
        if el is not None:
            text = _clean(el.get_text(separator=" ", strip=True))
            if text:
                return text
    return ""


def _head_tag(soup: BeautifulSoup, name: str, **kwargs):
    """Find a tag inside <head> only; body markup such as inline SVG never counts."""
    head = soup.head
    if head is None:
        return None
    return head.find(name, **kwargs)


def _existing_title(soup: BeautifulSoup) -> str:
    title_tag = _head_tag(soup, "title")
    if title_tag is None:
        return ""
    return _clean(title_tag.get_text(separator=" ", strip=True))


def _existing_description(soup: BeautifulSoup) -> str:
    tag = _head_tag(soup, "meta", attrs={"name": _DESCRIPTION_NAME})
    if tag is None:
        return ""
    return _clean(tag.get("content", ""))


def _title_from_soup(soup: BeautifulSoup, site_name: str) -> str:
    title = _existing_title(soup)
    if title:
        return title

    heading = _first_text(soup, ["main h1", "h1"])
    if heading:
        if heading == site_name:
            return site_name
        return f"{heading} | {site_name}"

    return site_name


def derive_title(document_text: str, site_name: str) -> str:
    """
    Derive a page title.

    Uses the existing <title> when non-empty, otherwise the first h1
    suffixed with the site name, otherwise the site name alone.
    """
    return _title_from_soup(parse_html(document_text), site_name)


def clamp_description(
    text: str,
    min_length: int = DESCRIPTION_MIN_LENGTH,
    max_length: int = DESCRIPTION_MAX_LENGTH,
) -> str:
    """
    Clamp text to the description window.

    Cuts at the last sentence end inside [min_length, max_length] when one
    exists, otherwise at the last word boundary with an ellipsis.
    """
    clean = _clean(text)
    if len(clean) <= max_length:
        return clean

    best = 0
    for match in _SENTENCE_END.finditer(clean):
        if match.end() > max_length:
            break
        if match.end() >= min_length:
            best = match.end()
    if best:
        return clean[:best]

    # leave room for the ellipsis
    cut = clean[: max_length - 1]
    space = cut.rfind(" ")
    if space >= min_length:
        cut = cut[:space]
    return cut.rstrip(" ,;:-") + ELLIPSIS


def _content_candidates(soup: BeautifulSoup) -> list[str]:
    """Page text in description priority order: lead, paragraphs, headings."""
    candidates: list[str] = []

    lead = _first_text(soup, [".lead"])
    if lead:
        candidates.append(lead)

    main = soup.find("main")
    paragraphs = (main.find_all("p") if main is not None else []) + soup.find_all("p")
    for heading_name in ("h1", "h2", "h3"):
        paragraphs.extend(soup.find_all(heading_name))

    for el in paragraphs:
        text = _clean(el.get_text(separator=" ", strip=True))
        if text and text not in candidates:
            candidates.append(text)
    return candidates


def _description_from_soup(soup: BeautifulSoup, default_description: str) -> str:
    existing = _existing_description(soup)
    if existing:
        return existing

    text = ""
    for candidate in _content_candidates(soup):
        text = f"{text} {candidate}".strip()
        if len(text) >= DESCRIPTION_MIN_LENGTH:
            break

    if len(text) < DESCRIPTION_MIN_LENGTH:
        return _clean(default_description)
    return clamp_description(text)


def derive_description(document_text: str, default_description: str) -> str:
    """
    Derive a meta description.

    Keeps an existing description meta tag. Otherwise synthesizes one from
    the lead element, paragraphs and headings, expanding across blocks
    until the window minimum is reached and clamping to the maximum. Pages
    without enough text fall back to the default description.
    """
    return _description_from_soup(parse_html(document_text), default_description)


def extract_metadata(document_text: str, relative_path: str, config: SiteConfig) -> PageMetadata:
    """
    Derive all SEO values for a (stripped) document in one parse.

    Args:
        document_text: Document text with previously injected blocks removed.
        relative_path: Path relative to the site root.
        config: Site configuration.

    Returns:
        PageMetadata for rendering the SEO block.
    """
    soup = parse_html(document_text)

    # Flags follow tag presence: an empty authored <title> still blocks a second one
    return PageMetadata(
        title=_title_from_soup(soup, config.site_name),
        description=_description_from_soup(soup, config.default_description) or config.site_name,
        canonical_url=derive_canonical_url(relative_path, config.site_url),
        has_title=_head_tag(soup, "title") is not None,
        has_description=_head_tag(soup, "meta", attrs={"name": _DESCRIPTION_NAME}) is not None,
        has_robots=_head_tag(soup, "meta", attrs={"name": _ROBOTS_NAME}) is not None,
    )
