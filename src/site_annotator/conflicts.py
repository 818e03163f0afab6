"""
Repository-wide Git conflict marker cleanup for site source files.
"""

import logging
import os
from pathlib import Path
from typing import Union

from .discovery import DiscoveryError
from .markers import strip_conflict_markers

logger = logging.getLogger(__name__)

CLEANABLE_SUFFIXES = (".html", ".css", ".js", ".mjs", ".json", ".md")
SKIP_DIRS = frozenset({".git", "node_modules", "dist", "build", "vendor"})


def clean_conflicts_tree(root: Union[str, Path]) -> list[str]:
    """
    Strip conflict markers from every text asset under root.

    Args:
        root: Directory to clean.

    Returns:
        Relative paths of the files that were rewritten, in lexical order.

    Raises:
        DiscoveryError: If root does not exist.
    """
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(f"Site root not found: {root}")

    cleaned: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            if not name.lower().endswith(CLEANABLE_SUFFIXES):
                continue
            path = Path(dirpath) / name
            rel = path.relative_to(root).as_posix()
            try:
                with path.open("r", encoding="utf-8", newline="") as fh:
                    text = fh.read()
                updated = strip_conflict_markers(text)
                if updated == text:
                    continue
                with path.open("w", encoding="utf-8", newline="") as fh:
                    fh.write(updated)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to clean {rel}: {e}")
                continue
            logger.info(f"Cleaned: {rel}")
            cleaned.append(rel)

    return sorted(cleaned)
