"""Tests for the transformation routines."""

import pytest

from docmorph.conversion import TransformationFailure
from docmorph.conversion.routines import (
    PDF_PLACEHOLDER_NOTICE,
    describe_pages,
    flatten_html,
    html_to_text,
    text_to_html,
    wrap_text_as_html,
)


class TestTextToHtml:
    """Test wrapping plain text as an HTML document."""

    def test_lines_become_paragraphs(self):
        html = text_to_html("first\nsecond", title="notes.txt")
        assert "<p>first</p>\n<p>second</p>" in html
        assert "<title>notes.txt</title>" in html
        assert html.startswith("<!DOCTYPE html>")

    def test_blank_lines_become_breaks(self):
        html = text_to_html("a\n\nb")
        assert "<p>a</p>\n<br>\n<p>b</p>" in html

    def test_markup_is_escaped(self):
        html = text_to_html("1 < 2 & 3")
        assert "<p>1 &lt; 2 &amp; 3</p>" in html


class TestHtmlToText:
    """Test extracting text from HTML."""

    def test_strips_tags_and_collapses_whitespace(self):
        assert html_to_text("<div>\n  <b>Hello</b>   world\n</div>") == "Hello world"

    def test_drops_head_script_and_style(self):
        html = (
            "<html><head><title>Title</title><style>p {color: red}</style></head>"
            "<body><script>alert(1)</script><p>Body</p><!-- note --></body></html>"
        )
        assert html_to_text(html) == "Body"

    def test_unescapes_entities(self):
        assert html_to_text("<p>Fish &amp; Chips</p>") == "Fish & Chips"

    def test_keeps_literal_angle_brackets_in_text(self):
        assert html_to_text("<p>1 < 2 and 3 > 2</p>") == "1 < 2 and 3 > 2"

    def test_angle_bracket_inside_attribute_is_not_text(self):
        assert html_to_text('<p><a title="a>b">link</a></p>') == "link"

    def test_paragraphs_are_separate_words(self):
        assert html_to_text("<p>Hello</p><p>World</p>") == "Hello World"

    def test_round_trip_reproduces_lines(self):
        text = "The quick brown fox\njumps over\n\nthe lazy dog"
        restored = html_to_text(text_to_html(text, title="fox.txt"))
        assert restored == " ".join(text.split())


class TestFlattenHtml:
    """Test the plain-text flattening used for DOCX output."""

    def test_paragraphs_and_breaks_become_lines(self):
        html = '<p class="x">One</p>\n  <p id="y">Two<br/>Three</p>'
        assert flatten_html(html) == "One\nTwo\nThree"

    def test_removes_scripts_and_styles(self):
        html = "<style>.a{}</style><p>Kept</p><script>var x = 1;</script>"
        assert flatten_html(html) == "Kept"

    def test_attribute_values_do_not_leak_into_text(self):
        html = '<p><a title="a>b" href="/x">link</a> &lt;tag&gt;</p><p>x < y</p>'
        assert flatten_html(html) == "link <tag>\nx < y"

    def test_comments_and_doctype_are_dropped(self):
        html = "<!DOCTYPE html><html><body><!-- hidden --><p>Shown</p></body></html>"
        assert flatten_html(html) == "Shown"

    def test_wrapped_text_keeps_blank_lines(self):
        assert flatten_html(wrap_text_as_html("a\n\nb")) == "a\n\nb"


class TestDescribePages:
    """Test the PDF placeholder text."""

    def test_one_description_per_page(self):
        text = describe_pages([(612.0, 792.0), (595.5, 842.0)])
        assert text == "Page 1 content (612x792)\n\nPage 2 content (595.5x842)\n\n"

    def test_no_pages(self):
        assert describe_pages([]) == PDF_PLACEHOLDER_NOTICE


class TestTransformer:
    """Test step dispatch and failure wrapping."""

    def test_text_steps_decode_bytes(self, transformer):
        out = transformer.apply("html_to_txt", "<p>café</p>".encode("utf-8"))
        assert out == "café"

    def test_unknown_step(self, transformer):
        with pytest.raises(TransformationFailure, match="Unknown conversion routine"):
            transformer.apply("txt_to_rtf", "x")

    def test_codec_errors_are_wrapped(self, transformer):
        with pytest.raises(TransformationFailure, match="^Failed to extract text from PDF: "):
            transformer.apply("pdf_to_txt", b"definitely not a pdf")

    def test_txt_to_docx_produces_paragraphs(self, transformer, docx_codec):
        data = transformer.apply("txt_to_docx", "alpha\n\nbeta")
        assert docx_codec.to_text(data) == "alpha\n\nbeta"

    def test_html_to_docx_flattens(self, transformer, docx_codec):
        data = transformer.apply("html_to_docx", "<h1>Title</h1><p>Body <b>bold</b></p>")
        assert docx_codec.to_text(data) == "Title\nBody bold"

    def test_pdf_to_txt_is_placeholder(self, transformer, pdf_codec):
        text = transformer.apply("pdf_to_txt", pdf_codec.render_text("anything"))
        assert text == "Page 1 content (612x792)\n\n"
