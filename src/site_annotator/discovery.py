"""
Document discovery and classification.

Walks a site tree and produces a finite, lexically ordered list of HTML
files. Excluded and hidden directories are pruned during the walk so
nothing under them is ever read.
"""

import logging
import os
from pathlib import Path
from typing import Union

from .config import ExclusionRules
from .models import PageClass

logger = logging.getLogger(__name__)

HTML_SUFFIXES = (".html", ".htm")


class DiscoveryError(Exception):
    """Raised when the site root cannot be traversed at all."""
    pass


def relative_posix(path: Path, root: Path) -> str:
    """Relative path from root using forward slashes."""
    return path.relative_to(root).as_posix()


def discover_documents(root: Union[str, Path], rules: ExclusionRules) -> list[Path]:
    """
    Collect HTML documents under a root directory.

    Args:
        root: Site root directory.
        rules: Exclusion rules used to prune directories.

    Returns:
        Absolute paths of HTML files, sorted by relative path.

    Raises:
        DiscoveryError: If root does not exist or is not a directory.
    """
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(f"Site root not found: {root}")

    def _on_error(err: OSError) -> None:
        logger.error(f"Cannot read {err.filename}: {err.strerror}")

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        # Prune in place so os.walk never descends into excluded dirs
        dirnames[:] = sorted(d for d in dirnames if not rules.is_excluded_dir(d))
        for name in filenames:
            if name.lower().endswith(HTML_SUFFIXES):
                found.append(Path(dirpath) / name)

    found.sort(key=lambda p: relative_posix(p, root))
    logger.debug(f"Discovered {len(found)} HTML files under {root}")
    return found


def classify(relative_path: str, rules: ExclusionRules) -> PageClass:
    """
    Decide how a document should be treated.

    - SKIP: not HTML, under an excluded/hidden directory, or listed as
      never-touched.
    - STRIP_ONLY: a shared fragment (navigation, footer, underscore files,
      configured strip-only paths).
    - PROCESS: everything else.
    """
    rel = relative_path.replace("\\", "/").lstrip("/")
    segments = rel.split("/")

    if not segments[-1].lower().endswith(HTML_SUFFIXES):
        return PageClass.SKIP
    if any(rules.is_excluded_dir(seg) for seg in segments[:-1]):
        return PageClass.SKIP
    if rules.is_never_touched(rel):
        return PageClass.SKIP
    if rules.is_partial(rel):
        return PageClass.STRIP_ONLY
    return PageClass.PROCESS
