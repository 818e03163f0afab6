"""
Command-line interface for Site Annotator.

Provides commands for annotating a static site, generating its sitemap,
submitting pages to web archives and cleaning conflict markers.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .archive import ArchiveClient, archive_urls, changed_html_files, collect_urls
from .config import ConfigError, ExclusionRules, SiteConfig
from .conflicts import clean_conflicts_tree
from .discovery import DiscoveryError
from .injector import annotate_tree
from .models import RunSummary
from .sitemap import write_sitemap

console = Console()

ROOT_ARGUMENT = click.argument(
    "root",
    type=click.Path(path_type=Path),
    default=".",
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _load_config(**overrides) -> SiteConfig:
    try:
        return SiteConfig.from_env(**overrides)
    except ConfigError as e:
        _fail(str(e))


@click.group()
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable verbose output.",
)
def main(verbose: bool) -> None:
    """
    Site Annotator - build-time maintenance for static HTML sites.

    Examples:

        site-annotator annotate public/ --site-url https://example.com

        site-annotator sitemap public/ -o sitemap.xml
    """
    _setup_logging(verbose)


@main.command()
@ROOT_ARGUMENT
@click.option("--site-url", type=str, envvar="SITE_URL", help="Site base URL (SITE_URL).")
@click.option("--site-name", type=str, envvar="SITE_NAME", help="Site display name (SITE_NAME).")
@click.option("--default-image", type=str, envvar="DEFAULT_IMAGE", help="Social preview image URL.")
@click.option("--description", type=str, envvar="SITE_DESC", help="Default meta description.")
@click.option("--profile-url", type=str, envvar="FACEBOOK_URL", help="External profile URL.")
@click.option("--adsense-id", type=str, envvar="ADSENSE_ID", help="AdSense client id.")
@click.option("--analytics-id", type=str, envvar="GA_MEASUREMENT_ID", help="GA4 measurement id.")
@click.option("--direct-link-url", type=str, envvar="DIRECT_LINK_URL", help="Sponsored link target.")
def annotate(
    root: Path,
    site_url: Optional[str],
    site_name: Optional[str],
    default_image: Optional[str],
    description: Optional[str],
    profile_url: Optional[str],
    adsense_id: Optional[str],
    analytics_id: Optional[str],
    direct_link_url: Optional[str],
) -> None:
    """Inject SEO, analytics and ad blocks into every page under ROOT."""
    config = _load_config(
        site_url=site_url,
        site_name=site_name,
        default_image=default_image,
        default_description=description,
        profile_url=profile_url,
        adsense_client_id=adsense_id,
        analytics_id=analytics_id,
        direct_link_url=direct_link_url,
    )
    rules = ExclusionRules.from_env()

    console.print(Panel.fit(
        f"[bold blue]Site Annotator[/bold blue]\n{config.site_name} - {config.site_url}",
        border_style="blue",
    ))

    try:
        summary = annotate_tree(root, config, rules)
    except DiscoveryError as e:
        _fail(str(e))

    _display_summary(summary)


def _display_summary(summary: RunSummary) -> None:
    """Display annotator run summary."""
    if summary.changed:
        table = Table(title="Updated Files", show_header=True)
        table.add_column("Path", style="green")
        for rel in summary.changed:
            table.add_row(rel)
        console.print(table)

    for result in summary.failed:
        console.print(f"[red]Failed:[/red] {result.relative_path} ({result.error})")

    console.print(f"\n[bold green]Done.[/bold green] {summary.summary_line}")


@main.command()
@ROOT_ARGUMENT
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default="sitemap.xml",
    envvar="OUTPUT_FILE",
    show_default=True,
    help="Sitemap path, relative to ROOT unless absolute.",
)
@click.option("--base-url", type=str, envvar="BASE_URL", help="Site base URL (BASE_URL or SITE_URL).")
@click.option("--no-git", is_flag=True, default=False, help="Use file mtimes instead of git dates.")
def sitemap(root: Path, output: Path, base_url: Optional[str], no_git: bool) -> None:
    """Write a sitemap.xml listing every page under ROOT."""
    config = _load_config(site_url=base_url)
    try:
        path, count = write_sitemap(
            root, config, output, ExclusionRules.from_env(), git_dates=not no_git
        )
    except DiscoveryError as e:
        _fail(str(e))
    except OSError as e:
        _fail(f"Could not write sitemap: {e}")

    console.print(f"[bold green]Success![/bold green] Wrote {path} with {count} URLs.")


@main.command()
@ROOT_ARGUMENT
@click.option("--sitemap", "sitemap_path", type=str, default="sitemap.xml", envvar="SITEMAP_PATH",
              show_default=True, help="Sitemap to read URLs from.")
@click.option("--include", "include_urls", type=str, multiple=True,
              help="Extra URL to archive (repeatable; INCLUDE_URLS is comma separated).")
@click.option("--exclude", "exclude_patterns", type=str, multiple=True,
              help="Regex of URL paths to skip (repeatable; EXCLUDE_PATTERNS).")
@click.option("--no-wayback", is_flag=True, default=False, help="Skip the Wayback Machine.")
@click.option("--no-archive-today", is_flag=True, default=False, help="Skip archive.today.")
@click.option("--base-ref", type=str, envvar="GITHUB_BASE_REF",
              help="Branch to diff against for changed pages.")
def archive(
    root: Path,
    sitemap_path: str,
    include_urls: tuple[str, ...],
    exclude_patterns: tuple[str, ...],
    no_wayback: bool,
    no_archive_today: bool,
    base_ref: Optional[str],
) -> None:
    """Submit the pages under ROOT to web archives."""
    config = _load_config(site_url=os.environ.get("SITE_ROOT"))
    include = list(include_urls) or _env_list("INCLUDE_URLS")
    exclude = list(exclude_patterns) or _env_list("EXCLUDE_PATTERNS")

    urls = collect_urls(
        root,
        config,
        ExclusionRules.from_env(),
        sitemap_path=sitemap_path,
        include_urls=include,
        exclude_patterns=exclude,
        changed_files=changed_html_files(base_ref or None, cwd=root if root.is_dir() else None),
    )
    if not urls:
        console.print("No URLs to archive.")
        return

    console.print(f"Total URLs to archive: {len(urls)}")
    results = archive_urls(
        urls,
        ArchiveClient(),
        wayback=not no_wayback and _env_flag("WAYBACK_ENABLED"),
        archive_today=not no_archive_today and _env_flag("ARCHIVE_TODAY_ENABLED"),
    )
    saved = sum(1 for r in results if r.ok)
    console.print(f"[bold green]Done.[/bold green] {saved}/{len(results)} submissions accepted.")


def _env_list(key: str) -> list[str]:
    return [s.strip() for s in os.environ.get(key, "").split(",") if s.strip()]


def _env_flag(key: str) -> bool:
    return os.environ.get(key, "true").strip().lower() == "true"


@main.command(name="strip-conflicts")
@ROOT_ARGUMENT
def strip_conflicts(root: Path) -> None:
    """Remove Git conflict markers from site sources under ROOT."""
    try:
        cleaned = clean_conflicts_tree(root)
    except DiscoveryError as e:
        _fail(str(e))

    if cleaned:
        console.print(f"[bold green]Done.[/bold green] {len(cleaned)} files cleaned.")
    else:
        console.print("No conflict markers found.")


def run_cli() -> None:
    """Entry point for the CLI."""
    main()


if __name__ == "__main__":
    run_cli()
