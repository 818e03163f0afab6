# -*- coding: utf-8 -*-
"""
Centralized configuration for Site Annotator.

Both dataclasses are built once at process start (usually from the
environment) and passed explicitly into every transformation. They are
frozen so a run cannot mutate them halfway through a tree.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


DEFAULT_SITE_URL = "https://example.com"
DEFAULT_SITE_NAME = "My Site"

DEFAULT_EXCLUDED_DIRS = frozenset(
    {"beta", "backup", "backups", "node_modules", "dist", "build", "vendor"}
)
DEFAULT_PARTIAL_NAMES = frozenset({"nav.html", "footer.html", "header.html"})


class ConfigError(Exception):
    """Raised when an environment value cannot be parsed."""
    pass


def _split_list(raw: Optional[str]) -> list[str]:
    """Split a comma separated env value, dropping blanks."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _normalize_rel(path: str) -> str:
    """Lowercase a relative path and strip leading slashes."""
    return path.replace("\\", "/").lstrip("/").lower()


def _parse_number(environ: Mapping[str, str], key: str, default, cast):
    raw = environ.get(key, "")
    if not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


@dataclass(frozen=True)
class SiteConfig:
    """
    Site-wide values used to derive and render injected tags.

    Attributes:
        site_url: Base URL of the site, without trailing slash.
        site_name: Display name used for titles and structured data.
        default_image: Social preview image URL.
        default_description: Fallback meta description.
        profile_url: External profile (e.g. a Facebook page). Empty disables
            sameAs/publisher tags.
        adsense_client_id: AdSense publisher id. Empty disables the tag.
        analytics_id: GA4 measurement id. Empty disables the tag.
        direct_link_url: Sponsored direct-link target. Empty disables the
            ad snippet.
        daily_cap: Maximum ad shows per device per day.
        show_probability: Chance of showing the ad on a page view.
    """

    site_url: str = DEFAULT_SITE_URL
    site_name: str = DEFAULT_SITE_NAME
    default_image: str = ""
    default_description: str = ""
    profile_url: str = ""
    adsense_client_id: str = ""
    analytics_id: str = ""
    direct_link_url: str = ""
    daily_cap: int = 2
    show_probability: float = 0.05

    def __post_init__(self) -> None:
        # frozen: go through object.__setattr__ for normalization
        site_url = (self.site_url or DEFAULT_SITE_URL).strip().rstrip("/")
        object.__setattr__(self, "site_url", site_url)
        site_name = (self.site_name or DEFAULT_SITE_NAME).strip()
        object.__setattr__(self, "site_name", site_name)
        if not self.default_image:
            object.__setattr__(self, "default_image", f"{site_url}/og.png")
        if not self.default_description:
            object.__setattr__(self, "default_description", site_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "SiteConfig":
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.
            **overrides: Explicit values that win over the environment
                (None values are ignored).

        Returns:
            A frozen SiteConfig.

        Raises:
            ConfigError: If DAILY_CAP or SHOW_PROB is not a number.
        """
        env = os.environ if environ is None else environ
        values = {
            "site_url": env.get("SITE_URL", ""),
            "site_name": env.get("SITE_NAME", ""),
            "default_image": env.get("DEFAULT_IMAGE", ""),
            "default_description": env.get("SITE_DESC", ""),
            "profile_url": env.get("FACEBOOK_URL", ""),
            "adsense_client_id": env.get("ADSENSE_ID", ""),
            "analytics_id": env.get("GA_MEASUREMENT_ID", ""),
            "direct_link_url": env.get("DIRECT_LINK_URL", ""),
            "daily_cap": _parse_number(env, "DAILY_CAP", 2, int),
            "show_probability": _parse_number(env, "SHOW_PROB", 0.05, float),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def has_analytics(self) -> bool:
        return bool(self.adsense_client_id or self.analytics_id)

    @property
    def has_ads(self) -> bool:
        return bool(self.direct_link_url)


@dataclass(frozen=True)
class ExclusionRules:
    """
    Path predicates deciding whether a document is skipped, stripped only,
    or fully processed.

    Directory names and file paths are compared case-insensitively.
    Hidden directories (leading dot) are always excluded.
    """

    excluded_dirs: frozenset = field(default=DEFAULT_EXCLUDED_DIRS)
    partial_names: frozenset = field(default=DEFAULT_PARTIAL_NAMES)
    strip_only_paths: frozenset = field(default_factory=frozenset)
    never_touch: frozenset = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "excluded_dirs", frozenset(d.lower() for d in self.excluded_dirs)
        )
        object.__setattr__(
            self, "partial_names", frozenset(n.lower() for n in self.partial_names)
        )
        object.__setattr__(
            self, "strip_only_paths", frozenset(_normalize_rel(p) for p in self.strip_only_paths)
        )
        object.__setattr__(
            self, "never_touch", frozenset(_normalize_rel(p) for p in self.never_touch)
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExclusionRules":
        """Build rules from EXCLUDE_DIRS, SKIP_PATHS and NEVER_TOUCH."""
        env = os.environ if environ is None else environ
        excluded = _split_list(env.get("EXCLUDE_DIRS"))
        return cls(
            excluded_dirs=frozenset(excluded) if excluded else DEFAULT_EXCLUDED_DIRS,
            strip_only_paths=frozenset(_split_list(env.get("SKIP_PATHS"))),
            never_touch=frozenset(_split_list(env.get("NEVER_TOUCH"))),
        )

    def is_excluded_dir(self, name: str) -> bool:
        """Check whether a single directory name is pruned from traversal."""
        return name.startswith(".") or name.lower() in self.excluded_dirs

    def is_partial(self, relative_path: str) -> bool:
        """Check whether a relative path names a shared fragment."""
        rel = _normalize_rel(relative_path)
        name = rel.rsplit("/", 1)[-1]
        return (
            rel in self.partial_names
            or name in self.partial_names
            or name.startswith("_")
            or rel in self.strip_only_paths
        )

    def is_never_touched(self, relative_path: str) -> bool:
        return _normalize_rel(relative_path) in self.never_touch
