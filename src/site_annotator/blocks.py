"""
Rendering of the marked blocks the annotator inserts.

Rendering is deterministic: equal metadata and config always produce
byte-identical blocks, which is what makes strip-then-reinsert idempotent.
"""

import html
import json
from string import Template
from typing import Optional

from .config import SiteConfig
from .models import ADS_MARKER, ANALYTICS_MARKER, SEO_MARKER, PageMetadata

ADSENSE_LOADER = "https://pagead2.googlesyndication.com/pagead/js/adsbygoogle.js"
GTAG_LOADER = "https://www.googletagmanager.com/gtag/js"


def escape_attr(value: str) -> str:
    """Escape a value for a double-quoted HTML attribute."""
    return html.escape(value, quote=True)


def _meta_name(name: str, content: str) -> str:
    return f'<meta name="{name}" content="{escape_attr(content)}">'


def _meta_property(prop: str, content: str) -> str:
    return f'<meta property="{prop}" content="{escape_attr(content)}">'


def _json_for_script(data) -> str:
    """Serialize JSON for an inline <script>; '</' would end the element early."""
    return json.dumps(data, ensure_ascii=False, sort_keys=True).replace("</", "<\\/")


def build_structured_data(metadata: PageMetadata, config: SiteConfig) -> list[dict]:
    """
    Build the JSON-LD payload: Organization, WebSite and WebPage.

    Args:
        metadata: Derived page values.
        config: Site configuration.

    Returns:
        List of schema.org objects.
    """
    organization = {
        "@context": "https://schema.org",
        "@type": "Organization",
        "name": config.site_name,
        "url": config.site_url,
        "logo": config.default_image,
    }
    if config.profile_url:
        organization["sameAs"] = [config.profile_url]

    return [
        organization,
        {
            "@context": "https://schema.org",
            "@type": "WebSite",
            "name": config.site_name,
            "url": config.site_url,
        },
        {
            "@context": "https://schema.org",
            "@type": "WebPage",
            "name": metadata.title,
            "url": metadata.canonical_url,
        },
    ]


def build_seo_block(metadata: PageMetadata, config: SiteConfig) -> str:
    """
    Render the SEO marked block for one page.

    Tags the author already wrote (title, robots, description) are not
    duplicated. The canonical link is always emitted, since authored ones
    are removed before rendering.
    """
    lines: list[str] = []

    if not metadata.has_title:
        lines.append(f"<title>{html.escape(metadata.title, quote=False)}</title>")
    if not metadata.has_robots:
        lines.append(_meta_name("robots", "index,follow"))
    lines.append(f'<link rel="canonical" href="{escape_attr(metadata.canonical_url)}">')
    if not metadata.has_description:
        lines.append(_meta_name("description", metadata.description))

    # Open Graph
    lines.extend([
        _meta_property("og:type", "website"),
        _meta_property("og:site_name", config.site_name),
        _meta_property("og:url", metadata.canonical_url),
        _meta_property("og:title", metadata.title),
        _meta_property("og:description", metadata.description),
        _meta_property("og:image", config.default_image),
    ])

    # Twitter
    lines.extend([
        _meta_name("twitter:card", "summary_large_image"),
        _meta_name("twitter:title", metadata.title),
        _meta_name("twitter:description", metadata.description),
        _meta_name("twitter:image", config.default_image),
    ])

    if config.profile_url:
        lines.append(_meta_property("article:publisher", config.profile_url))
        lines.append(_meta_property("og:see_also", config.profile_url))

    payload = _json_for_script(build_structured_data(metadata, config))
    lines.append(f'<script type="application/ld+json">{payload}</script>')

    return SEO_MARKER.wrap("\n".join(lines))


def build_analytics_block(config: SiteConfig) -> Optional[str]:
    """Render AdSense and GA4 tags, or None when neither is configured."""
    if not config.has_analytics:
        return None

    lines: list[str] = []

    if config.adsense_client_id:
        client = escape_attr(config.adsense_client_id)
        lines.append(_meta_name("google-adsense-account", config.adsense_client_id))
        lines.append(
            f'<script async src="{ADSENSE_LOADER}?client={client}" crossorigin="anonymous"></script>'
        )

    if config.analytics_id:
        lines.append(f'<script async src="{GTAG_LOADER}?id={escape_attr(config.analytics_id)}"></script>')
        lines.append(
            "<script>\n"
            "window.dataLayer = window.dataLayer || [];\n"
            "function gtag(){dataLayer.push(arguments);}\n"
            "gtag('js', new Date());\n"
            f"gtag('config', {_json_for_script(config.analytics_id)});\n"
            "</script>"
        )

    return ANALYTICS_MARKER.wrap("\n".join(lines))


# Sponsored direct-link call to action. Shown with a given probability,
# capped per device per day via localStorage. <html class="no-ads"> opts a
# page out.
_ADS_SCRIPT = Template("""<script>
(function () {
  var DIRECT_URL = $direct_url;
  var DAILY_CAP = $daily_cap;
  var SHOW_PROB = $show_prob;

  if (document.documentElement.classList.contains('no-ads')) return;

  var today = new Date();
  var y = today.getFullYear();
  var m = String(today.getMonth() + 1).padStart(2, '0');
  var d = String(today.getDate()).padStart(2, '0');
  var DAY_KEY = 'ta_ad_count_' + y + '-' + m + '-' + d;

  function canShow() {
    try {
      var count = Number(localStorage.getItem(DAY_KEY) || '0');
      if (count >= DAILY_CAP) return false;
      return Math.random() < SHOW_PROB;
    } catch (e) { return false; }
  }

  function markShown() {
    try {
      var c = Number(localStorage.getItem(DAY_KEY) || '0') + 1;
      localStorage.setItem(DAY_KEY, String(c));
    } catch (e) {}
  }

  function inject() {
    var box = document.createElement('div');
    box.className = 'ta-ad-cta';
    box.setAttribute('aria-hidden', 'true');
    box.style.cssText = 'position:fixed;bottom:16px;right:16px;z-index:2147483646;display:flex;align-items:center;gap:8px';

    var a = document.createElement('a');
    a.href = DIRECT_URL;
    a.target = '_blank';
    a.rel = 'nofollow sponsored';
    a.tabIndex = -1;
    a.style.cssText = 'display:inline-block;padding:10px 12px;background:#111;color:#fff;border-radius:12px;text-decoration:none;font:600 14px/1.2 system-ui,sans-serif;opacity:.94';
    a.textContent = 'Sponsored: useful tech offers';

    var close = document.createElement('button');
    close.type = 'button';
    close.tabIndex = -1;
    close.style.cssText = 'background:transparent;border:0;color:#fff;font-size:16px;cursor:pointer;line-height:1';
    close.textContent = '\\u00D7';
    close.onclick = function () { box.remove(); };

    box.appendChild(a);
    box.appendChild(close);
    document.body.appendChild(box);
    markShown();
  }

  try {
    if (!canShow()) return;
    if (document.readyState === 'loading') {
      document.addEventListener('DOMContentLoaded', inject, { once: true });
    } else {
      inject();
    }
  } catch (e) {}
})();
</script>""")


def build_ads_block(config: SiteConfig) -> Optional[str]:
    """Render the direct-link ad snippet, or None when no URL is configured."""
    if not config.has_ads:
        return None

    script = _ADS_SCRIPT.substitute(
        direct_url=_json_for_script(config.direct_link_url),
        daily_cap=_json_for_script(config.daily_cap),
        show_prob=_json_for_script(config.show_probability),
    )
    return ADS_MARKER.wrap(script)
