"""
The idempotent page annotator.

For every eligible document: strip prior marked blocks, legacy snippets
and conflict markers, derive metadata, re-insert fresh blocks, and write
the file back only when the text changed. Running it twice with the same
inputs leaves every file byte-identical after the first run.

Runs are single-threaded. Two concurrent runs against the same tree are
unsafe since files are not locked.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from .blocks import build_ads_block, build_analytics_block, build_seo_block
from .config import ExclusionRules, SiteConfig
from .discovery import classify, discover_documents, relative_posix
from .markers import (
    strip_authored_canonical,
    strip_conflict_markers,
    strip_legacy_and_marked_content,
)
from .metadata import extract_metadata
from .models import (
    ADS_MARKER,
    ANALYTICS_MARKER,
    SEO_MARKER,
    Anchor,
    Document,
    DocumentResult,
    Outcome,
    PageClass,
    RunSummary,
)

logger = logging.getLogger(__name__)

_ANCHORS = {
    "head": re.compile(r"</head\s*>", re.IGNORECASE),
    "body": re.compile(r"</body\s*>", re.IGNORECASE),
}


def insert_block(document_text: str, block: str, anchor: Anchor = "head") -> str:
    """
    Insert a block immediately before the first closing head/body tag.

    Args:
        document_text: Document text.
        block: Rendered marked block.
        anchor: "head" or "body".

    Returns:
        Text with the block followed by a newline inserted, or the
        unmodified text when the anchor element is missing.
    """
    match = _ANCHORS[anchor].search(document_text)
    if match is None:
        return document_text
    pos = match.start()
    return f"{document_text[:pos]}{block}\n{document_text[pos:]}"


def clean_document(document_text: str, config: Optional[SiteConfig] = None) -> str:
    """Strip everything the annotator owns or has retired."""
    include_adsense = bool(config and config.adsense_client_id)
    text = strip_legacy_and_marked_content(document_text, include_adsense=include_adsense)
    # Applies to the whole file, including <pre> and <code> content
    return strip_conflict_markers(text)


def annotate_text(document_text: str, relative_path: str, config: SiteConfig) -> str:
    """
    Run the full pipeline on in-memory text.

    Args:
        document_text: Raw document text.
        relative_path: Path relative to the site root (for the canonical URL).
        config: Site configuration.

    Returns:
        Annotated text.
    """
    text = strip_authored_canonical(clean_document(document_text, config))

    metadata = extract_metadata(text, relative_path, config)
    blocks: list[tuple[Optional[str], Anchor]] = [
        (build_seo_block(metadata, config), SEO_MARKER.anchor),
        (build_analytics_block(config), ANALYTICS_MARKER.anchor),
        (build_ads_block(config), ADS_MARKER.anchor),
    ]
    for block, anchor in blocks:
        if block is not None:
            text = insert_block(text, block, anchor)
    return text


def _read_document(path: Path, relative_path: str, page_class: PageClass) -> Document:
    # newline="" on both read and write keeps the document's own line endings
    with path.open("r", encoding="utf-8", newline="") as fh:
        text = fh.read()
    return Document(path=path, relative_path=relative_path, text=text, page_class=page_class)


def process_document(
    path: Union[str, Path],
    root: Union[str, Path],
    config: SiteConfig,
    rules: ExclusionRules,
) -> DocumentResult:
    """
    Annotate one document in place.

    Read and write errors are logged and reported as FAILED; they are
    never raised, so one bad file cannot stop a run.

    Args:
        path: Path to the HTML file.
        root: Site root the canonical URL is derived against.
        config: Site configuration.
        rules: Exclusion rules.

    Returns:
        DocumentResult describing what happened.
    """
    path = Path(path)
    root = Path(root)
    rel = relative_posix(path, root)

    page_class = classify(rel, rules)
    if page_class == PageClass.SKIP:
        return DocumentResult(rel, Outcome.SKIPPED)

    try:
        document = _read_document(path, rel, page_class)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read {rel}: {e}")
        return DocumentResult(rel, Outcome.FAILED, str(e))

    if document.is_partial:
        updated = clean_document(document.text, config)
    else:
        updated = annotate_text(document.text, rel, config)

    if updated == document.text:
        return DocumentResult(rel, Outcome.UNCHANGED)

    try:
        with path.open("w", encoding="utf-8", newline="") as fh:
            fh.write(updated)
    except OSError as e:
        logger.error(f"Failed to write {rel}: {e}")
        return DocumentResult(rel, Outcome.FAILED, str(e))

    logger.info(f"Updated: {rel}")
    return DocumentResult(rel, Outcome.WRITTEN)


def annotate_tree(
    root: Union[str, Path],
    config: SiteConfig,
    rules: Optional[ExclusionRules] = None,
) -> RunSummary:
    """
    Annotate every eligible document under a site root.

    Raises:
        DiscoveryError: If root does not exist.
    """
    root = Path(root)
    rules = rules or ExclusionRules()

    summary = RunSummary()
    for path in discover_documents(root, rules):
        summary.results.append(process_document(path, root, config, rules))

    logger.info(summary.summary_line)
    return summary
