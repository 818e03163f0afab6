"""Tests for the idempotent page annotator."""

import pytest
from pathlib import Path
from unittest.mock import patch

from site_annotator.config import ExclusionRules, SiteConfig
from site_annotator.discovery import DiscoveryError
from site_annotator.injector import (
    annotate_text,
    annotate_tree,
    insert_block,
    process_document,
)
from site_annotator.models import ADS_MARKER, ANALYTICS_MARKER, SEO_MARKER, Outcome


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestInsertBlock:
    """Tests for block insertion."""

    def test_before_closing_head(self):
        """Test head blocks go right before </head>."""
        result = insert_block("<head><title>T</title></HEAD >", "BLOCK", "head")
        assert result == "<head><title>T</title>BLOCK\n</HEAD >"

    def test_before_closing_body(self):
        """Test body blocks go right before </body>."""
        assert insert_block("<body><p>x</p></body>", "AD", "body") == "<body><p>x</p>AD\n</body>"

    def test_missing_anchor_is_noop(self):
        """Test malformed documents are left unmodified."""
        text = "<div>fragment</div>"
        assert insert_block(text, "BLOCK", "head") == text
        assert insert_block(text, "BLOCK", "body") == text


class TestAnnotateText:
    """Tests for the in-memory pipeline."""

    def test_end_to_end_home(self, site_config: SiteConfig, home_html: str):
        """Test the minimal home page gets exactly one block and canonical."""
        result = annotate_text(home_html, "index.html", site_config)
        assert result.count(SEO_MARKER.start) == 1
        assert result.count(SEO_MARKER.end) == 1
        assert result.count('rel="canonical"') == 1
        assert '<link rel="canonical" href="https://x.test/">' in result

        head = result.split("</head>")[0]
        assert SEO_MARKER.end in head
        assert result.startswith("<html><head><title>Home</title>" + SEO_MARKER.start)

    def test_idempotent(self, full_config: SiteConfig, content_html: str):
        """Test a second pass yields byte-identical output."""
        once = annotate_text(content_html, "about/index.html", full_config)
        twice = annotate_text(once, "about/index.html", full_config)
        assert twice == once

    def test_all_blocks_inserted_in_order(self, full_config: SiteConfig, content_html: str):
        """Test SEO then analytics in head, ads in body."""
        result = annotate_text(content_html, "about/index.html", full_config)
        head, body = result.split("</head>")
        assert head.index(SEO_MARKER.end) < head.index(ANALYTICS_MARKER.start)
        assert ADS_MARKER.start in body
        assert body.index(ADS_MARKER.end) < body.index("</body>")

    def test_reannotation_replaces_stale_block(self, site_config: SiteConfig, home_html: str):
        """Test an old block from a different config is replaced, not duplicated."""
        old = annotate_text(home_html, "index.html", SiteConfig(site_url="https://old.test", site_name="Old"))
        new = annotate_text(old, "index.html", site_config)
        assert "old.test" not in new
        assert new == annotate_text(home_html, "index.html", site_config)

    def test_legacy_removed_and_replaced(self, site_config: SiteConfig):
        """Test legacy tags are gone after processing."""
        text = (
            "<html><head><title>Home</title>"
            '<script src="https://fpyf8.com/88/tag.min.js"></script>'
            "<!-- AUTO-ADS-INJECT v1 START --><script>old()</script><!-- AUTO-ADS-INJECT v1 END -->"
            "</head><body>"
            '<script src="https://fpyf8.com/88/tag.min.js"></script>'
            "</body></html>"
        )
        result = annotate_text(text, "index.html", site_config)
        assert "fpyf8" not in result
        assert "old()" not in result
        assert result.count(SEO_MARKER.start) == 1

    def test_description_from_content(self, site_config: SiteConfig, content_html: str):
        """Test a synthesized description and heading-based title are used."""
        result = annotate_text(content_html, "about/team.html", site_config)
        assert "<title>Home Tech Help | X</title>" in result
        assert '<meta name="description" content="Our technicians' in result
        assert '<link rel="canonical" href="https://x.test/about/team.html">' in result

    def test_leftover_start_marker(self, site_config: SiteConfig):
        """Test a START left without its END never eats author markup on rerun."""
        text = (
            "<html><head><title>T</title>\n"
            f"{SEO_MARKER.start}\n"
            '<link rel="stylesheet" href="/site.css">\n'
            "</head><body></body></html>"
        )
        once = annotate_text(text, "index.html", site_config)
        twice = annotate_text(once, "index.html", site_config)

        assert '<link rel="stylesheet" href="/site.css">' in once
        assert once.count(SEO_MARKER.start) == 1
        assert twice == once

    def test_authored_adsense_kept_without_client_id(self, site_config: SiteConfig):
        """Test authored AdSense tags survive when no client id is configured."""
        meta = '<meta name="google-adsense-account" content="ca-pub-9">'
        loader = (
            '<script async src="https://pagead2.googlesyndication.com/pagead/js/adsbygoogle.js'
            '?client=ca-pub-9" crossorigin="anonymous"></script>'
        )
        text = f"<html><head><title>T</title>{meta}{loader}</head><body></body></html>"
        result = annotate_text(text, "index.html", site_config)
        assert meta in result
        assert loader in result

    def test_authored_adsense_replaced_with_client_id(self, full_config: SiteConfig):
        """Test authored AdSense tags give way to the analytics block."""
        text = (
            "<html><head><title>T</title>"
            '<meta name="google-adsense-account" content="ca-pub-9">'
            "</head><body></body></html>"
        )
        result = annotate_text(text, "index.html", full_config)
        assert "ca-pub-9" not in result
        assert result.count('name="google-adsense-account"') == 1

    def test_svg_title_not_mistaken_for_page_title(self, site_config: SiteConfig):
        """Test a page whose only <title> is inside an SVG gets a real one."""
        text = "<html><head></head><body><svg><title>Menu icon</title></svg><h1>Services</h1></body></html>"
        result = annotate_text(text, "services.html", site_config)
        head = result.split("</head>")[0]
        assert "<title>Services | X</title>" in head
        assert '<meta property="og:title" content="Services | X">' in result
        assert "Menu icon" not in head

    def test_empty_authored_tags_not_duplicated(self, site_config: SiteConfig):
        """Test empty authored title and description are not doubled."""
        text = (
            '<html><head><title></title><meta name="description" content="">'
            "</head><body><h1>Services</h1></body></html>"
        )
        result = annotate_text(text, "services.html", site_config)
        assert result.count("<title>") == 1
        assert result.count('name="description"') == 1

    def test_stale_authored_canonical_replaced(self, site_config: SiteConfig):
        """Test an authored canonical is replaced by the path-derived one."""
        text = (
            "<html><head><title>About</title>\n"
            '<link rel="canonical" href="https://old.example/x.html">\n'
            "</head><body></body></html>"
        )
        once = annotate_text(text, "about/index.html", site_config)

        assert "old.example" not in once
        assert once.count('rel="canonical"') == 1
        assert '<link rel="canonical" href="https://x.test/about/">' in once
        assert '<meta property="og:url" content="https://x.test/about/">' in once
        assert annotate_text(once, "about/index.html", site_config) == once


class TestProcessDocument:
    """Tests for per-file processing."""

    def test_written_then_unchanged(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules,
                                   home_html: str):
        """Test the second run reports unchanged and keeps bytes identical."""
        path = _write(tmp_path, "index.html", home_html)

        first = process_document(path, tmp_path, site_config, rules)
        after_first = path.read_bytes()
        second = process_document(path, tmp_path, site_config, rules)

        assert first.outcome == Outcome.WRITTEN
        assert second.outcome == Outcome.UNCHANGED
        assert path.read_bytes() == after_first

    def test_partial_stripped_not_annotated(self, tmp_path: Path, site_config: SiteConfig,
                                            rules: ExclusionRules):
        """Test partials lose old blocks but never get new ones."""
        text = (
            "<html><head><title>Nav</title>"
            f"{SEO_MARKER.wrap('<meta name=old>')}\n"
            "</head><body><nav></nav></body></html>"
        )
        path = _write(tmp_path, "nav.html", text)

        result = process_document(path, tmp_path, site_config, rules)

        assert result.outcome == Outcome.WRITTEN
        content = path.read_text(encoding="utf-8")
        assert content == "<html><head><title>Nav</title></head><body><nav></nav></body></html>"
        assert SEO_MARKER.start not in content

    def test_skip_never_read(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules,
                             home_html: str):
        """Test skipped documents are not modified."""
        path = _write(tmp_path, "beta/index.html", home_html)
        result = process_document(path, tmp_path, site_config, rules)
        assert result.outcome == Outcome.SKIPPED
        assert path.read_text(encoding="utf-8") == home_html

    def test_no_head_left_alone(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules):
        """Test documents without head/body are not an error."""
        path = _write(tmp_path, "fragment.html", "<div>hello</div>\n")
        result = process_document(path, tmp_path, site_config, rules)
        assert result.outcome == Outcome.UNCHANGED

    def test_crlf_preserved(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules):
        """Test Windows line endings in author content survive."""
        path = tmp_path / "index.html"
        path.write_bytes(b"<html>\r\n<head><title>T</title></head>\r\n<body></body>\r\n</html>\r\n")
        process_document(path, tmp_path, site_config, rules)
        assert b"</head>\r\n<body></body>\r\n</html>\r\n" in path.read_bytes()

    def test_read_failure_reported(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules):
        """Test undecodable files fail without raising."""
        path = tmp_path / "bad.html"
        path.write_bytes(b"<html>\xff\xfe</html>")
        result = process_document(path, tmp_path, site_config, rules)
        assert result.outcome == Outcome.FAILED
        assert result.error

    def test_write_failure_reported(self, tmp_path: Path, site_config: SiteConfig, rules: ExclusionRules,
                                    home_html: str):
        """Test write errors fail the document only."""
        path = _write(tmp_path, "index.html", home_html)
        real_open = Path.open

        def fake_open(self, mode="r", *args, **kwargs):
            if "w" in mode:
                raise PermissionError("read-only file system")
            return real_open(self, mode, *args, **kwargs)

        with patch.object(Path, "open", fake_open):
            result = process_document(path, tmp_path, site_config, rules)

        assert result.outcome == Outcome.FAILED
        assert "read-only" in result.error
        assert path.read_text(encoding="utf-8") == home_html


class TestAnnotateTree:
    """Tests for whole-tree runs."""

    def test_run_summary(self, site_tree: Path, site_config: SiteConfig, rules: ExclusionRules):
        """Test changed files and totals are reported."""
        summary = annotate_tree(site_tree, site_config, rules)
        assert summary.scanned == 5
        assert summary.changed == ["about/index.html", "about/team.html", "index.html"]
        assert summary.summary_line == "Updated 3/5 HTML files."
        assert not summary.failed

    def test_second_run_changes_nothing(self, site_tree: Path, full_config: SiteConfig,
                                        rules: ExclusionRules):
        """Test idempotence across the whole tree."""
        annotate_tree(site_tree, full_config, rules)
        snapshot = {p: p.read_bytes() for p in site_tree.rglob("*.html")}

        summary = annotate_tree(site_tree, full_config, rules)

        assert summary.changed == []
        assert {p: p.read_bytes() for p in site_tree.rglob("*.html")} == snapshot

    def test_excluded_untouched(self, site_tree: Path, site_config: SiteConfig, rules: ExclusionRules,
                                home_html: str):
        """Test files under excluded directories are never modified or reported."""
        summary = annotate_tree(site_tree, site_config, rules)
        for rel in ("beta/index.html", "Backups/old.html", ".github/page.html"):
            assert (site_tree / rel).read_text(encoding="utf-8") == home_html
            assert rel not in summary.changed

    def test_failure_does_not_stop_run(self, site_tree: Path, site_config: SiteConfig,
                                       rules: ExclusionRules):
        """Test one bad file is reported and the rest are processed."""
        (site_tree / "about" / "broken.html").write_bytes(b"\xff\xfe\xfd")
        summary = annotate_tree(site_tree, site_config, rules)
        assert [r.relative_path for r in summary.failed] == ["about/broken.html"]
        assert "index.html" in summary.changed

    def test_missing_root(self, tmp_path: Path, site_config: SiteConfig):
        """Test a missing root aborts the run."""
        with pytest.raises(DiscoveryError):
            annotate_tree(tmp_path / "nope", site_config)
