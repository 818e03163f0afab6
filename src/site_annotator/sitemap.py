"""
Sitemap generation.

Lists every fully processed page (partials and excluded paths are left
out) with its canonical URL, last modification time and priority.
"""

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union
from xml.etree import ElementTree

from .config import ExclusionRules, SiteConfig
from .discovery import classify, discover_documents, relative_posix
from .metadata import derive_canonical_url
from .models import PageClass

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"


@dataclass
class SitemapEntry:
    """A single <url> element."""
    loc: str
    lastmod: str
    priority: str


def git_last_modified(path: Path, cwd: Optional[Path] = None) -> Optional[str]:
    """Committer date of the last commit touching a file, or None."""
    try:
        result = subprocess.run(
            ["git", "log", "-1", "--format=%cI", "--", str(path)],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git unavailable: {e}")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def file_last_modified(path: Path) -> str:
    """File mtime as an ISO-8601 UTC timestamp."""
    mtime = path.stat().st_mtime
    return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()


def priority_for(url: str, site_url: str) -> str:
    """Home page 1.0, directory indexes 0.8, everything else 0.7."""
    if url == site_url.rstrip("/") + "/":
        return "1.0"
    if url.endswith("/"):
        return "0.8"
    return "0.7"


def build_sitemap(
    root: Union[str, Path],
    config: SiteConfig,
    rules: Optional[ExclusionRules] = None,
    git_dates: bool = True,
) -> list[SitemapEntry]:
    """
    Collect sitemap entries for a site tree.

    Args:
        root: Site root directory.
        config: Site configuration (base URL).
        rules: Exclusion rules.
        git_dates: Prefer git commit dates over file mtimes.

    Returns:
        Entries in lexical path order.
    """
    root = Path(root)
    rules = rules or ExclusionRules()

    entries: list[SitemapEntry] = []
    for path in discover_documents(root, rules):
        rel = relative_posix(path, root)
        if classify(rel, rules) != PageClass.PROCESS:
            continue

        loc = derive_canonical_url(rel, config.site_url)
        lastmod = git_last_modified(path, cwd=root) if git_dates else None
        entries.append(SitemapEntry(
            loc=loc,
            lastmod=lastmod or file_last_modified(path),
            priority=priority_for(loc, config.site_url),
        ))
    return entries


def build_urlset(entries: list[SitemapEntry]) -> ElementTree.Element:
    root = ElementTree.Element("urlset", xmlns=SITEMAP_NS)
    for entry in entries:
        url_node = ElementTree.SubElement(root, "url")
        ElementTree.SubElement(url_node, "loc").text = entry.loc
        ElementTree.SubElement(url_node, "lastmod").text = entry.lastmod
        ElementTree.SubElement(url_node, "priority").text = entry.priority
    return root


def render_sitemap(entries: list[SitemapEntry]) -> str:
    root = build_urlset(entries)
    ElementTree.indent(root, space="  ")
    body = ElementTree.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def write_sitemap(
    root: Union[str, Path],
    config: SiteConfig,
    output: Union[str, Path] = "sitemap.xml",
    rules: Optional[ExclusionRules] = None,
    git_dates: bool = True,
) -> tuple[Path, int]:
    """
    Build and write a sitemap.

    A relative output path is resolved against the site root.

    Returns:
        Tuple of (output path, number of URLs written).
    """
    root = Path(root)
    output = Path(output)
    if not output.is_absolute():
        output = root / output

    entries = build_sitemap(root, config, rules, git_dates=git_dates)
    output.write_text(render_sitemap(entries), encoding="utf-8")
    logger.info(f"Wrote {output} with {len(entries)} URLs.")
    return output, len(entries)
