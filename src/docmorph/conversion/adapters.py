from __future__ import annotations

import json
import threading
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

import fitz  # PyMuPDF
from docx import Document

from .interfaces import DocxCodec, HistoryEntry, HistoryGateway, JobStore, PdfCodec

if TYPE_CHECKING:
    from .service import Job

LETTER_SIZE = (612.0, 792.0)


class InMemoryJobStore(JobStore):
    """Job table owned by a single ConversionService.

    Records are immutable snapshots; `put` replaces a record atomically.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(job_id)

    def put(self, job: Job) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def all(self) -> list[Job]:
        with self._lock:
            return list(self._jobs.values())

    def remove(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None


class LocalHistoryStore(HistoryGateway):
    def __init__(self, data_dir: str, *, limit: int = 50) -> None:
        self._path = Path(data_dir).resolve() / "history.json"
        self._limit = limit
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, entry: HistoryEntry) -> None:
        with self._lock:
            items = [e for e in self._load() if e.id != entry.id]
            items.insert(0, entry)
            self._save(items[: self._limit])

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return self._load()

    def remove(self, entry_id: str) -> bool:
        with self._lock:
            items = self._load()
            kept = [e for e in items if e.id != entry_id]
            if len(kept) == len(items):
                return False
            self._save(kept)
            return True

    def clear(self) -> None:
        with self._lock:
            self._path.unlink(missing_ok=True)

    def _load(self) -> list[HistoryEntry]:
        if not self._path.exists():
            return []
        with self._path.open("r", encoding="utf-8") as f:
            return [HistoryEntry.from_dict(item) for item in json.load(f)]

    def _save(self, items: list[HistoryEntry]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump([e.to_dict() for e in items], f, ensure_ascii=False, indent=2)


class DoclingDocxCodec(DocxCodec):
    """Reads DOCX through Docling and writes the minimal container with python-docx."""

    def __init__(self) -> None:
        self._converter = None
        # Guards creation of the shared converter on first use.
        self._lock = threading.Lock()

    def to_html(self, data: bytes) -> str:
        doc = self._convert(data)
        for m in ("export_to_html", "to_html", "as_html"):
            fn = getattr(doc, m, None)
            if callable(fn):
                return fn()
        raise RuntimeError("Doc object lacks an HTML export method")

    def to_text(self, data: bytes) -> str:
        doc = self._convert(data)
        for m in ("export_to_text", "export_to_markdown", "to_markdown"):
            fn = getattr(doc, m, None)
            if callable(fn):
                return fn()
        raise RuntimeError("Doc object lacks a text export method")

    def from_paragraphs(self, paragraphs: list[str]) -> bytes:
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        buffer = BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    def _convert(self, data: bytes):
        from docling.datamodel.base_models import DocumentStream  # type: ignore
        from docling.document_converter import DocumentConverter  # type: ignore

        with self._lock:
            if self._converter is None:
                self._converter = DocumentConverter()
            converter = self._converter
        result = converter.convert(DocumentStream(name="document.docx", stream=BytesIO(data)))
        # generic extraction across variants
        doc = getattr(result, "document", None)
        if doc is None:
            to_doc = getattr(result, "to_doc", None)
            if not callable(to_doc):
                raise RuntimeError("Unexpected result type from Docling converter")
            doc = to_doc()
        return doc


# MuPDF keeps global state, so PDF work from concurrent jobs is serialized:
# a PDF routine that never returns holds up other PDF routines.
_FITZ_LOCK = threading.Lock()


class PyMuPdfCodec(PdfCodec):
    def __init__(
        self,
        *,
        font_name: str = "helv",
        font_size: float = 12,
        margin: float = 50,
        line_spacing: float = 1.2,
        html_margin: float = 36,
    ) -> None:
        self.font_name = font_name
        self.font_size = font_size
        self.margin = margin
        self.line_height = font_size * line_spacing
        self.html_margin = html_margin

    def render_text(self, text: str) -> bytes:
        """Draw text line by line onto letter pages, starting a page when full."""
        width, height = LETTER_SIZE
        max_width = width - 2 * self.margin
        with _FITZ_LOCK:
            doc = fitz.open()
            try:
                page = None
                y = 0.0
                for line in self._wrap(text.expandtabs(4).splitlines(), max_width):
                    if page is None or y > height - self.margin:
                        page = doc.new_page(width=width, height=height)
                        y = self.margin + self.font_size
                    if line:
                        page.insert_text(
                            (self.margin, y),
                            line,
                            fontname=self.font_name,
                            fontsize=self.font_size,
                            color=(0, 0, 0),
                        )
                    y += self.line_height
                if page is None:
                    doc.new_page(width=width, height=height)
                return doc.tobytes()
            finally:
                doc.close()

    def render_html(self, html: str) -> bytes:
        """Lay HTML out off-screen and paginate it onto letter pages."""
        buffer = BytesIO()
        with _FITZ_LOCK:
            story = fitz.Story(html=html)
            writer = fitz.DocumentWriter(buffer)
            mediabox = fitz.paper_rect("letter")
            m = self.html_margin
            where = mediabox + (m, m, -m, -m)
            more = 1
            while more:
                device = writer.begin_page(mediabox)
                more, _ = story.place(where)
                story.draw(device)
                writer.end_page()
            writer.close()
        return buffer.getvalue()

    def page_sizes(self, data: bytes) -> list[tuple[float, float]]:
        with _FITZ_LOCK:
            with fitz.open(stream=data, filetype="pdf") as doc:
                return [(page.rect.width, page.rect.height) for page in doc]

    def _wrap(self, lines: list[str], max_width: float) -> list[str]:
        out: list[str] = []
        for line in lines:
            if self._measure(line) <= max_width:
                out.append(line)
                continue
            current = ""
            for word in line.split(" "):
                candidate = f"{current} {word}" if current else word
                if current and self._measure(candidate) > max_width:
                    out.append(current)
                    current = word
                else:
                    current = candidate
            out.append(current)
        return out

    def _measure(self, text: str) -> float:
        return fitz.get_text_length(text, fontname=self.font_name, fontsize=self.font_size)
