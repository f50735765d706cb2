"""Tests for newsletter.composer — clipboard HTML and plain text."""

from __future__ import annotations

from conftest import make_records
from newsletter.composer import compose, render_html, render_text
from newsletter.models import ArticleRecord


class TestRenderText:
    def test_blocks_separated_by_blank_line(self) -> None:
        text = render_text(make_records("A", "B"))
        assert text == (
            "A\nSummary of A.\nhttps://news.example.com/a"
            "\n\n"
            "B\nSummary of B.\nhttps://news.example.com/b"
        )

    def test_missing_source_url_is_empty_line(self) -> None:
        assert render_text([ArticleRecord(headline="H", summary="S")]) == "H\nS\n"

    def test_empty_list(self) -> None:
        assert render_text([]) == ""


class TestRenderHtml:
    def test_articles_in_order(self) -> None:
        html = render_html(make_records("First", "Second"))
        assert html.index("First") < html.index("Second")

    def test_fixed_width_table_layout(self) -> None:
        html = render_html(make_records("A"))
        assert '<table width="600"' in html
        assert "max-width: 600px" in html

    def test_headline_links_to_source(self) -> None:
        html = render_html(make_records("A"))
        assert '<a href="https://news.example.com/a"' in html

    def test_headline_without_source_is_plain(self) -> None:
        html = render_html([ArticleRecord(headline="Lonely", summary="S")])
        assert "<a href" not in html
        assert '<span style="color: #2563eb;">Lonely</span>' in html

    def test_image_only_when_set(self) -> None:
        with_image = ArticleRecord(headline="Pic", image_url="https://img.example.com/p.jpg")
        html = render_html([with_image, ArticleRecord(headline="NoPic")])
        assert html.count("<img ") == 1
        assert 'src="https://img.example.com/p.jpg"' in html
        assert 'alt="Pic"' in html

    def test_content_is_escaped(self) -> None:
        html = render_html([ArticleRecord(headline="<script>x</script>", summary="Tom & Jerry")])
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Tom &amp; Jerry" in html


class TestCompose:
    def test_payload_carries_both_formats(self) -> None:
        records = make_records("A")
        payload = compose(records)
        assert payload.html == render_html(records)
        assert payload.text == render_text(records)
        assert payload.as_mime_map() == {"text/html": payload.html, "text/plain": payload.text}
