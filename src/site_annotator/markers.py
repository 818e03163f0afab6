"""
Removal of tool-owned marked blocks, legacy third-party snippets and
stray Git conflict markers.

Every function here is safe to apply to any text: no match simply
returns the input unchanged.
"""

import re

from .models import MARKER_KINDS, MarkerKind


def _marked_block_pattern(kind: MarkerKind) -> re.Pattern:
    """Match a block of this kind in any version, plus the newline the inserter adds."""
    name = re.escape(kind.name)
    start = rf"<!--\s*{name}(?:\s+v\d+)?\s+START\s*-->"
    end = rf"<!--\s*{name}(?:\s+v\d+)?\s+END\s*-->"
    # The body may not contain another START, so a leftover one cannot swallow author markup
    return re.compile(
        rf"{start}(?:(?!{start}).)*?{end}\n?",
        re.IGNORECASE | re.DOTALL,
    )


def _lone_marker_pattern(kind: MarkerKind) -> re.Pattern:
    name = re.escape(kind.name)
    return re.compile(
        rf"<!--\s*{name}(?:\s+v\d+)?\s+(?:START|END)\s*-->\n?",
        re.IGNORECASE,
    )


_MARKED_BLOCK_PATTERNS = {kind.name: _marked_block_pattern(kind) for kind in MARKER_KINDS}
_LONE_MARKER_PATTERNS = {kind.name: _lone_marker_pattern(kind) for kind in MARKER_KINDS}

# Snippets that predate the START/END marker convention
LEGACY_PATTERNS = [
    # Old SEO blocks: <!-- AUTO-SEO-INJECT v2 --> ... <!-- /AUTO-SEO-INJECT -->
    re.compile(
        r"<!--\s*AUTO-SEO-INJECT\s+v\d+\s*-->.*?<!--\s*/AUTO-SEO-INJECT\s*-->\n?",
        re.IGNORECASE | re.DOTALL,
    ),
    # Old JSON-LD written outside any marker
    re.compile(
        r"<script[^>]*data-techability=[\"']seo[\"'][^>]*>.*?</script>\n?",
        re.IGNORECASE | re.DOTALL,
    ),
    # Monetag
    re.compile(r"<script[^>]+monetag[^>]*>\s*</script>\n?", re.IGNORECASE),
    re.compile(r"<script[^>]+fpyf8\.com/\d+/tag\.min\.js[^>]*>\s*</script>\n?", re.IGNORECASE),
    # AdRoll loader and inline pixel setup
    re.compile(r"<script[^>]+s\.adroll\.com/j/[^>]*>\s*</script>\n?", re.IGNORECASE),
    re.compile(
        r"<script\b[^>]*>(?:(?!</script>).)*?adroll_adv_id.*?</script>\n?",
        re.IGNORECASE | re.DOTALL,
    ),
]

# Unmarked AdSense account tags; only removed when the analytics block re-emits them
ADSENSE_PATTERNS = [
    re.compile(r"<meta[^>]+name=[\"']google-adsense-account[\"'][^>]*>\n?", re.IGNORECASE),
    re.compile(
        r"<script[^>]+pagead2\.googlesyndication\.com/pagead/js/adsbygoogle\.js[^>]*>\s*</script>\n?",
        re.IGNORECASE,
    ),
]

_CANONICAL_LINK = re.compile(
    r"(?:^[ \t]*)?<link\b[^>]*\srel\s*=\s*[\"']?canonical[\"']?[^>]*>(?:[ \t]*\n)?",
    re.IGNORECASE | re.MULTILINE,
)

_CONFLICT_BLOCK = re.compile(
    r"^<<<<<<<[^\n]*\n.*?^=======[ \t]*\n.*?^>>>>>>>[^\n]*(?:\n|\Z)",
    re.MULTILINE | re.DOTALL,
)
_CONFLICT_LINE = re.compile(
    r"^[ \t]*(?:<<<<<<<|>>>>>>>)[^\n]*(?:\n|\Z)|^[ \t]*=======[ \t]*(?:\n|\Z)",
    re.MULTILINE,
)
_BLANK_RUN = re.compile(r"\n{3,}")


def strip_marked_blocks(text: str, kind: MarkerKind) -> str:
    """
    Remove every block of the given kind, whatever its marker version.

    Complete START/END pairs go first, then any START or END comment left
    without its partner.
    """
    text = _MARKED_BLOCK_PATTERNS[kind.name].sub("", text)
    return _LONE_MARKER_PATTERNS[kind.name].sub("", text)


def strip_legacy_snippets(text: str, include_adsense: bool = False) -> str:
    patterns = LEGACY_PATTERNS + ADSENSE_PATTERNS if include_adsense else LEGACY_PATTERNS
    for pattern in patterns:
        text = pattern.sub("", text)
    return text


def strip_authored_canonical(text: str) -> str:
    """Remove hand-written canonical links so the derived one is the only one."""
    return _CANONICAL_LINK.sub("", text)


def strip_legacy_and_marked_content(text: str, include_adsense: bool = False) -> str:
    """
    Remove all tool-owned blocks and known legacy snippets.

    Args:
        text: Document text.
        include_adsense: Also remove unmarked AdSense account tags. Only
            set this when the analytics block will emit them again.

    Returns:
        Text with every marked block (any kind, any version) and every
        legacy third-party snippet removed.
    """
    for kind in MARKER_KINDS:
        text = strip_marked_blocks(text, kind)
    return strip_legacy_snippets(text, include_adsense=include_adsense)


def strip_conflict_markers(text: str) -> str:
    """
    Remove Git conflict blocks and stray marker lines.

    Whole <<<<<<< / ======= / >>>>>>> blocks are dropped, then any leftover
    single marker lines. Runs of blank lines are tidied only when something
    was removed.
    """
    cleaned = _CONFLICT_BLOCK.sub("", text)
    cleaned = _CONFLICT_LINE.sub("", cleaned)
    if cleaned == text:
        return text
    return _BLANK_RUN.sub("\n\n", cleaned)
