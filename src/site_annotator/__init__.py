"""
Site Annotator

Build-time maintenance for static HTML websites:
- Idempotently injects SEO, analytics and ad tags into marked blocks
- Strips legacy third-party snippets and Git conflict markers
- Generates sitemaps and submits pages to web archives
"""

__version__ = "1.0.0"
__author__ = "Site Annotator Team"

from .config import ConfigError, ExclusionRules, SiteConfig

from .models import (
    Document,
    DocumentResult,
    MarkerKind,
    Outcome,
    PageClass,
    PageMetadata,
    RunSummary,
    SEO_MARKER,
    ANALYTICS_MARKER,
    ADS_MARKER,
)

from .discovery import DiscoveryError, classify, discover_documents

from .metadata import (
    clamp_description,
    derive_canonical_url,
    derive_description,
    derive_title,
    extract_metadata,
)

from .markers import (
    strip_authored_canonical,
    strip_conflict_markers,
    strip_legacy_and_marked_content,
    strip_marked_blocks,
)

from .blocks import build_ads_block, build_analytics_block, build_seo_block

from .injector import annotate_text, annotate_tree, insert_block, process_document

from .sitemap import build_sitemap, render_sitemap, write_sitemap

__all__ = [
    "__version__",
    # Config
    "ConfigError",
    "ExclusionRules",
    "SiteConfig",
    # Models
    "Document",
    "DocumentResult",
    "MarkerKind",
    "Outcome",
    "PageClass",
    "PageMetadata",
    "RunSummary",
    "SEO_MARKER",
    "ANALYTICS_MARKER",
    "ADS_MARKER",
    # Discovery
    "DiscoveryError",
    "classify",
    "discover_documents",
    # Metadata
    "clamp_description",
    "derive_canonical_url",
    "derive_description",
    "derive_title",
    "extract_metadata",
    # Markers
    "strip_authored_canonical",
    "strip_conflict_markers",
    "strip_legacy_and_marked_content",
    "strip_marked_blocks",
    # Blocks
    "build_ads_block",
    "build_analytics_block",
    "build_seo_block",
    # Annotator
    "annotate_text",
    "annotate_tree",
    "insert_block",
    "process_document",
    # Sitemap
    "build_sitemap",
    "render_sitemap",
    "write_sitemap",
]
