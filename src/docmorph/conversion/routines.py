"""
Transformation routines behind the route table.

The text helpers at the top of this module are pure functions. `Transformer`
binds every routine identifier used in `routing.ROUTES` to an implementation,
delegating byte-level DOCX and PDF work to the codec gateways.
"""

import html
import re
from dataclasses import dataclass
from typing import Callable

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction

from .errors import TransformationFailure
from .interfaces import DocxCodec, PdfCodec

_HIDDEN_TAGS = ["head", "script", "style"]
_BLOCK_TAGS = ["p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr"]
_NON_TEXT = (Comment, Declaration, Doctype, ProcessingInstruction)
_WHITESPACE = re.compile(r"\s+")

PDF_PLACEHOLDER_NOTICE = (
    "Text extraction is not implemented for PDF input; "
    "only page descriptions are produced."
)


def create_printable_html(content: str, title: str = "Document") -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
        body {{
            font-family: Arial, sans-serif;
            line-height: 1.6;
            margin: 40px;
            color: #333;
        }}
        h1, h2, h3, h4, h5, h6 {{
            color: #2c3e50;
            margin-top: 30px;
            margin-bottom: 15px;
        }}
        p {{
            margin-bottom: 15px;
        }}
        @media print {{
            body {{
                margin: 20px;
            }}
        }}
    </style>
</head>
<body>
{content}
</body>
</html>"""


def text_to_html(text: str, title: str = "Document") -> str:
    """Wrap each line of `text` in a paragraph; blank lines become <br>."""
    body = "\n".join(
        "<br>" if not line.strip() else f"<p>{html.escape(line, quote=False)}</p>"
        for line in text.splitlines()
    )
    return create_printable_html(body, title)


def _parse(markup: str) -> BeautifulSoup:
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(_HIDDEN_TAGS):
        tag.decompose()
    for node in soup.find_all(string=lambda s: isinstance(s, _NON_TEXT)):
        node.extract()
    return soup


def _mark_boundaries(soup: BeautifulSoup, separator: str) -> None:
    for br in soup.find_all("br"):
        br.replace_with(NavigableString(separator))
    for block in soup.find_all(_BLOCK_TAGS):
        block.append(NavigableString(separator))


def html_to_text(markup: str) -> str:
    soup = _parse(markup)
    # Block boundaries separate words; inline tags do not.
    _mark_boundaries(soup, " ")
    return _WHITESPACE.sub(" ", soup.get_text()).strip()


def flatten_html(markup: str) -> str:
    """Reduce HTML to plain text lines, one per paragraph or line break.

    Source whitespace is insignificant, as in a browser; paragraph ends and
    <br> tags are the only line boundaries kept.
    """
    soup = _parse(markup)
    for string in soup.find_all(string=True):
        if type(string) is NavigableString:
            string.replace_with(NavigableString(_WHITESPACE.sub(" ", string)))
    _mark_boundaries(soup, "\n")
    lines = [line.strip() for line in soup.get_text().split("\n")]
    return "\n".join(lines).strip("\n")


def wrap_text_as_html(text: str) -> str:
    paragraphs = "".join(
        f"<p>{html.escape(line, quote=False) if line else '&nbsp;'}</p>"
        for line in text.splitlines()
    )
    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8">'
        "<title>Converted Document</title></head><body>"
        '<div style="font-family: Arial, sans-serif; font-size: 12pt; line-height: 1.5;">'
        f"{paragraphs}</div></body></html>"
    )


def describe_pages(sizes: list[tuple[float, float]]) -> str:
    """Placeholder text for PDF input: one description per page."""
    if not sizes:
        return PDF_PLACEHOLDER_NOTICE
    return "".join(
        f"Page {i} content ({width:g}x{height:g})\n\n"
        for i, (width, height) in enumerate(sizes, start=1)
    )


def decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Routine:
    func: Callable[[str | bytes, str], str | bytes]
    takes_text: bool
    action: str


class Transformer:
    """Runs single conversion steps by routine identifier."""

    def __init__(self, docx_codec: DocxCodec, pdf_codec: PdfCodec) -> None:
        self._docx = docx_codec
        self._pdf = pdf_codec
        self._routines: dict[str, Routine] = {
            "txt_to_html": Routine(self._txt_to_html, True, "convert text to HTML"),
            "html_to_txt": Routine(self._html_to_txt, True, "convert HTML to text"),
            "docx_to_html": Routine(self._docx_to_html, False, "convert DOCX to HTML"),
            "docx_to_txt": Routine(self._docx_to_txt, False, "extract text from DOCX"),
            "txt_to_pdf": Routine(self._txt_to_pdf, True, "create PDF"),
            "txt_to_docx": Routine(self._txt_to_docx, True, "convert text to DOCX"),
            "html_to_pdf": Routine(self._html_to_pdf, True, "convert HTML to PDF"),
            "html_to_docx": Routine(self._html_to_docx, True, "convert HTML to DOCX"),
            "pdf_to_txt": Routine(self._pdf_to_txt, False, "extract text from PDF"),
        }

    @property
    def steps(self) -> frozenset[str]:
        return frozenset(self._routines)

    def apply(self, step: str, data: str | bytes, source_name: str = "Document") -> str | bytes:
        """Run one step. Failures of any kind surface as TransformationFailure."""
        routine = self._routines.get(step)
        if routine is None:
            raise TransformationFailure(f"Unknown conversion routine: {step}")
        if routine.takes_text and isinstance(data, bytes):
            data = decode_text(data)
        elif not routine.takes_text and isinstance(data, str):
            data = data.encode("utf-8")
        try:
            return routine.func(data, source_name)
        except Exception as e:
            raise TransformationFailure(f"Failed to {routine.action}: {e}") from e

    def _txt_to_html(self, text, source_name):
        return text_to_html(text, title=source_name)

    def _html_to_txt(self, markup, source_name):
        return html_to_text(markup)

    def _docx_to_html(self, data, source_name):
        return self._docx.to_html(data)

    def _docx_to_txt(self, data, source_name):
        return self._docx.to_text(data)

    def _txt_to_pdf(self, text, source_name):
        return self._pdf.render_text(text)

    def _txt_to_docx(self, text, source_name):
        return self._html_to_docx(wrap_text_as_html(text), source_name)

    def _html_to_pdf(self, markup, source_name):
        return self._pdf.render_html(markup)

    def _html_to_docx(self, markup, source_name):
        return self._docx.from_paragraphs(flatten_html(markup).split("\n"))

    def _pdf_to_txt(self, data, source_name):
        return describe_pages(self._pdf.page_sizes(data))
