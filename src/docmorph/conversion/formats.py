from enum import Enum

from .errors import UnsupportedFormat


class Format(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    HTML = "html"
    TXT = "txt"

    def __str__(self) -> str:
        return self.value


# Extensions accepted on input; `htm` is an alias for html.
EXTENSIONS: dict[str, Format] = {
    "pdf": Format.PDF,
    "docx": Format.DOCX,
    "html": Format.HTML,
    "htm": Format.HTML,
    "txt": Format.TXT,
}

MEDIA_TYPES: dict[Format, str] = {
    Format.PDF: "application/pdf",
    Format.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    Format.HTML: "text/html",
    Format.TXT: "text/plain",
}


def file_extension(filename: str) -> str:
    """Lowercase text after the last dot, or "" when the name has none."""
    _, dot, ext = (filename or "").rpartition(".")
    return ext.lower() if dot else ""


def classify(filename: str) -> Format:
    ext = file_extension(filename)
    try:
        return EXTENSIONS[ext]
    except KeyError:
        raise UnsupportedFormat(ext or None) from None


def parse_format(value: "Format | str") -> Format:
    """Coerce a requested output format such as "PDF" or "htm" to a Format."""
    if isinstance(value, Format):
        return value
    key = str(value or "").strip().lower().lstrip(".")
    try:
        return EXTENSIONS[key]
    except KeyError:
        raise UnsupportedFormat(key or None) from None
