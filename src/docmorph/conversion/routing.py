"""
Route table for document conversions.

Every supported (input, output) pair maps to an ordered list of routine
identifiers. Two-stage routes feed the output of the first step as the sole
input of the second. Adding a hop is a table edit; `Transformer` in
`routines.py` owns the implementation behind each identifier.
"""

from dataclasses import dataclass
from typing import Mapping

from .errors import UnsupportedConversion
from .formats import Format
from .validation import MAX_FILE_SIZE, PDF_OUTPUT_MAX_FILE_SIZE


@dataclass(frozen=True)
class Route:
    input_format: Format
    output_format: Format
    steps: tuple[str, ...]
    max_size: int | None = None

    @property
    def is_identity(self) -> bool:
        return not self.steps

    @property
    def key(self) -> str:
        return f"{self.input_format.value}-to-{self.output_format.value}"


def _route(src: Format, dst: Format, *steps: str) -> tuple[tuple[Format, Format], Route]:
    max_size = PDF_OUTPUT_MAX_FILE_SIZE if dst is Format.PDF else None
    return (src, dst), Route(src, dst, tuple(steps), max_size)


ROUTES: dict[tuple[Format, Format], Route] = dict(
    [
        _route(Format.TXT, Format.HTML, "txt_to_html"),
        _route(Format.HTML, Format.TXT, "html_to_txt"),
        _route(Format.DOCX, Format.HTML, "docx_to_html"),
        _route(Format.DOCX, Format.TXT, "docx_to_txt"),
        _route(Format.TXT, Format.PDF, "txt_to_pdf"),
        _route(Format.TXT, Format.DOCX, "txt_to_docx"),
        _route(Format.HTML, Format.PDF, "html_to_pdf"),
        _route(Format.HTML, Format.DOCX, "html_to_docx"),
        _route(Format.DOCX, Format.PDF, "docx_to_html", "html_to_pdf"),
        # PDF input only yields placeholder page text; see routines.describe_pages.
        _route(Format.PDF, Format.TXT, "pdf_to_txt"),
        _route(Format.PDF, Format.DOCX, "pdf_to_txt", "txt_to_docx"),
        _route(Format.PDF, Format.HTML, "pdf_to_txt", "txt_to_html"),
    ]
)


class ConversionRouter:
    def __init__(self, routes: Mapping[tuple[Format, Format], Route] | None = None) -> None:
        self._routes = dict(ROUTES if routes is None else routes)

    @property
    def routes(self) -> dict[tuple[Format, Format], Route]:
        return dict(self._routes)

    def resolve(self, input_format: Format, output_format: Format) -> Route:
        if input_format is output_format:
            return Route(input_format, output_format, ())
        route = self._routes.get((input_format, output_format))
        if route is None:
            raise UnsupportedConversion(input_format.value, output_format.value)
        return route

    def size_limit(self, input_format: Format, output_format: Format) -> int | None:
        """Ceiling declared by the route, if any.

        Unknown pairs return None: they are rejected during orchestration,
        not at submission.
        """
        if input_format is output_format:
            return None
        route = self._routes.get((input_format, output_format))
        return route.max_size if route else None


@dataclass(frozen=True)
class ConversionTool:
    id: str
    name: str
    description: str
    input_format: Format
    output_format: Format
    icon: str
    is_available: bool
    max_file_size: int

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "input_format": self.input_format.value,
            "output_format": self.output_format.value,
            "icon": self.icon,
            "is_available": self.is_available,
            "max_file_size": self.max_file_size,
        }


# Recommended conversions shown to users, most reliable first. Descriptive
# only: the router accepts every pair in ROUTES.
SUPPORTED_TOOLS: tuple[ConversionTool, ...] = (
    ConversionTool(
        id="txt-to-html",
        name="Text to HTML",
        description="Convert plain text to HTML format",
        input_format=Format.TXT,
        output_format=Format.HTML,
        icon="📝→🌐",
        is_available=True,
        max_file_size=MAX_FILE_SIZE,
    ),
    ConversionTool(
        id="html-to-txt",
        name="HTML to Text",
        description="Extract plain text from HTML documents",
        input_format=Format.HTML,
        output_format=Format.TXT,
        icon="🌐→📝",
        is_available=True,
        max_file_size=MAX_FILE_SIZE,
    ),
    ConversionTool(
        id="docx-to-html",
        name="Word to HTML",
        description="Convert Word documents to HTML format",
        input_format=Format.DOCX,
        output_format=Format.HTML,
        icon="📄→🌐",
        is_available=True,
        max_file_size=MAX_FILE_SIZE,
    ),
    ConversionTool(
        id="docx-to-txt",
        name="Word to Text",
        description="Extract plain text from Word documents",
        input_format=Format.DOCX,
        output_format=Format.TXT,
        icon="📄→📝",
        is_available=True,
        max_file_size=MAX_FILE_SIZE,
    ),
    ConversionTool(
        id="txt-to-pdf",
        name="Text to PDF",
        description="Convert plain text to PDF format (experimental)",
        input_format=Format.TXT,
        output_format=Format.PDF,
        icon="📝→📄",
        is_available=True,
        max_file_size=PDF_OUTPUT_MAX_FILE_SIZE,
    ),
    ConversionTool(
        id="html-to-pdf",
        name="HTML to PDF",
        description="Convert HTML pages to PDF documents (experimental)",
        input_format=Format.HTML,
        output_format=Format.PDF,
        icon="🌐→📄",
        is_available=True,
        max_file_size=PDF_OUTPUT_MAX_FILE_SIZE,
    ),
)
