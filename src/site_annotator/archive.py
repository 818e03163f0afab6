"""
Web archive submission.

Submits site URLs to the Wayback Machine and archive.today. Each service
either accepts a URL or not; failures are logged and reported per URL,
never raised. archive.today is tried across its mirror hosts in order.
"""

import logging
import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Union
from urllib.parse import urljoin, urlparse
from xml.etree import ElementTree

import requests

from .config import ExclusionRules, SiteConfig
from .discovery import DiscoveryError, classify, discover_documents, relative_posix
from .metadata import derive_canonical_url
from .models import PageClass

logger = logging.getLogger(__name__)

WAYBACK_SAVE_URL = "https://web.archive.org/save"
WAYBACK_HOST = "https://web.archive.org"
ARCHIVE_TODAY_HOSTS = (
    "https://archive.today",
    "https://archive.ph",
    "https://archive.vn",
    "https://archive.is",
)

DEFAULT_TIMEOUT = 60
WAYBACK_DELAY = 2.0
ARCHIVE_TODAY_DELAY = 2.5

_REFRESH_URL = re.compile(r"url=(\S+)", re.IGNORECASE)


@dataclass
class ArchiveResult:
    """Outcome of one submission."""
    service: str
    url: str
    ok: bool
    snapshot: Optional[str] = None
    status_code: Optional[int] = None


def parse_sitemap(path: Union[str, Path]) -> list[str]:
    """Return the <loc> URLs of a sitemap file, or [] when it can't be read."""
    try:
        xml = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"No sitemap at {path}: {e}")
        return []
    urls: list[str] = []
    try:
        root = ElementTree.fromstring(xml)
    except ElementTree.ParseError as e:
        logger.warning(f"Failed to parse sitemap {path}: {e}")
        return urls

    ns = root.tag.split("}")[0] + "}" if root.tag.startswith("{") else ""
    for elem in root.iter(f"{ns}loc"):
        if elem.text and elem.text.strip():
            urls.append(elem.text.strip())
    return urls


def changed_html_files(base_ref: Optional[str] = None, cwd: Optional[Path] = None) -> list[str]:
    """
    HTML files changed by the latest commit, or against a PR base branch.

    Returns an empty list when git is unavailable or the diff fails.
    """
    diff_range = f"origin/{base_ref}...HEAD" if base_ref else "HEAD~1..HEAD"
    try:
        result = subprocess.run(
            ["git", "diff", "--name-only", diff_range, "--", "*.html"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug(f"git unavailable: {e}")
        return []
    if result.returncode != 0:
        return []
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def _is_excluded(url: str, patterns: list[re.Pattern]) -> bool:
    path = urlparse(url).path
    return any(p.search(path) for p in patterns)


def collect_urls(
    root: Union[str, Path],
    config: SiteConfig,
    rules: Optional[ExclusionRules] = None,
    sitemap_path: Optional[Union[str, Path]] = None,
    include_urls: Iterable[str] = (),
    exclude_patterns: Iterable[str] = (),
    changed_files: Iterable[str] = (),
) -> list[str]:
    """
    Gather the URLs to archive.

    Changed files come first so a cut-short run still covers what was
    just deployed, then sitemap entries, crawled pages and explicit
    includes. Duplicates keep their first position.

    Args:
        root: Site root directory.
        config: Site configuration (base URL).
        rules: Exclusion rules for crawling.
        sitemap_path: Sitemap to read. Relative paths resolve against root.
        include_urls: Extra absolute URLs.
        exclude_patterns: Regexes matched case-insensitively against URL paths.
        changed_files: Relative paths of changed HTML files.

    Returns:
        De-duplicated URL list.
    """
    root = Path(root)
    rules = rules or ExclusionRules()
    patterns = [re.compile(p, re.IGNORECASE) for p in exclude_patterns]

    candidates: list[str] = []
    for rel in changed_files:
        if classify(rel, rules) == PageClass.PROCESS:
            candidates.append(derive_canonical_url(rel, config.site_url))

    if sitemap_path:
        sitemap = Path(sitemap_path)
        if not sitemap.is_absolute():
            sitemap = root / sitemap
        candidates.extend(parse_sitemap(sitemap))

    try:
        for path in discover_documents(root, rules):
            rel = relative_posix(path, root)
            if classify(rel, rules) == PageClass.PROCESS:
                candidates.append(derive_canonical_url(rel, config.site_url))
    except DiscoveryError as e:
        logger.warning(f"Skipping crawl: {e}")

    candidates.extend(include_urls)

    urls: list[str] = []
    seen: set[str] = set()
    for url in candidates:
        if url in seen or _is_excluded(url, patterns):
            continue
        seen.add(url)
        urls.append(url)
    return urls


class ArchiveClient:
    """
    Client for web archive submission services.

    Args:
        session: Optional requests session (injectable for tests).
        timeout: Request timeout in seconds.
        sleep: Delay function, time.sleep by default.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.sleep = sleep

    def save_to_wayback(self, url: str) -> ArchiveResult:
        """Submit a URL to the Wayback Machine's Save Page Now endpoint."""
        try:
            response = self.session.post(
                WAYBACK_SAVE_URL,
                data={"url": url},
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.warning(f"Wayback error for {url}: {e}")
            return ArchiveResult("wayback", url, ok=False)

        content_location = response.headers.get("Content-Location")
        snapshot = (
            WAYBACK_HOST + content_location if content_location
            else response.headers.get("Location")
        )
        ok = response.status_code < 400
        logger.info(f"Wayback: {response.status_code} {snapshot or ''}".rstrip())
        return ArchiveResult("wayback", url, ok, snapshot, response.status_code)

    def save_to_archive_today(self, url: str) -> ArchiveResult:
        """Submit a URL to archive.today, falling through its mirror hosts."""
        for host in ARCHIVE_TODAY_HOSTS:
            try:
                response = self.session.post(
                    f"{host}/submit/",
                    data={"url": url},
                    timeout=self.timeout,
                    allow_redirects=False,
                )
            except requests.RequestException as e:
                logger.warning(f"archive.today error at {host}: {e}")
                continue

            snapshot = None
            location = response.headers.get("Location")
            refresh = response.headers.get("Refresh")
            if location:
                snapshot = urljoin(host, location)
            elif refresh:
                match = _REFRESH_URL.search(refresh)
                if match:
                    snapshot = urljoin(host, match.group(1))

            logger.info(f"archive.today: {host} {response.status_code} {snapshot or ''}".rstrip())
            self.sleep(ARCHIVE_TODAY_DELAY)
            if response.status_code < 400:
                return ArchiveResult("archive.today", url, True, snapshot, response.status_code)

        return ArchiveResult("archive.today", url, ok=False)


def archive_urls(
    urls: Iterable[str],
    client: ArchiveClient,
    wayback: bool = True,
    archive_today: bool = True,
) -> list[ArchiveResult]:
    """Submit each URL to the enabled services, one at a time."""
    results: list[ArchiveResult] = []
    for url in urls:
        logger.info(f"Archiving: {url}")
        if wayback:
            results.append(client.save_to_wayback(url))
            client.sleep(WAYBACK_DELAY)
        if archive_today:
            results.append(client.save_to_archive_today(url))
    return results
