"""
Pytest fixtures and configuration for Site Annotator tests.
"""

import pytest
from pathlib import Path

from site_annotator.config import ExclusionRules, SiteConfig


LONG_PARAGRAPH = (
    "Our technicians set up fibre broadband, fix home Wi-Fi dead spots and get "
    "smart devices talking to each other. We visit homes and small offices across "
    "the region every day of the week. Bookings are simple and quotes are free."
)


@pytest.fixture
def site_config() -> SiteConfig:
    """A minimal site configuration."""
    return SiteConfig(site_url="https://x.test", site_name="X")


@pytest.fixture
def full_config() -> SiteConfig:
    """A configuration with every integration enabled."""
    return SiteConfig(
        site_url="https://example.com/",
        site_name="Example Co",
        default_description="Example Co helps you with technology at home and at work.",
        profile_url="https://facebook.com/exampleco",
        adsense_client_id="ca-pub-123456",
        analytics_id="G-ABC123",
        direct_link_url="https://ads.example.net/4/1",
    )


@pytest.fixture
def rules() -> ExclusionRules:
    """Default exclusion rules."""
    return ExclusionRules()


@pytest.fixture
def home_html() -> str:
    """The smallest page the annotator should handle."""
    return "<html><head><title>Home</title></head><body></body></html>"


@pytest.fixture
def content_html() -> str:
    """A page with a heading and enough copy to synthesize a description."""
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
</head>
<body>
<main>
<h1>Home Tech Help</h1>
<p>{LONG_PARAGRAPH}</p>
</main>
</body>
</html>
"""


@pytest.fixture
def site_tree(tmp_path: Path, home_html: str, content_html: str) -> Path:
    """Build a small site tree in a temporary directory."""
    root = tmp_path / "site"
    files = {
        "index.html": home_html,
        "about/index.html": content_html,
        "about/team.html": content_html,
        "nav.html": "<nav><a href='/'>Home</a></nav>\n",
        "_partial.html": "<div>Shared</div>\n",
        "beta/index.html": home_html,
        "Backups/old.html": home_html,
        ".github/page.html": home_html,
        "node_modules/pkg/readme.html": home_html,
        "styles.css": "body { color: red; }\n",
    }
    for rel, text in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return root
