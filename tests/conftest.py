"""Shared fixtures for the conversion engine tests."""

import asyncio
import threading
from io import BytesIO

import pytest
from docx import Document

from docmorph.conversion import ConversionService, InputFile
from docmorph.conversion.adapters import DoclingDocxCodec, InMemoryJobStore, PyMuPdfCodec
from docmorph.conversion.routines import Transformer


class PythonDocxReader(DoclingDocxCodec):
    """DOCX codec that reads with python-docx so tests do not load Docling models."""

    def to_html(self, data: bytes) -> str:
        paragraphs = Document(BytesIO(data)).paragraphs
        return "<html><body>" + "".join(f"<p>{p.text}</p>" for p in paragraphs) + "</body></html>"

    def to_text(self, data: bytes) -> str:
        return "\n".join(p.text for p in Document(BytesIO(data)).paragraphs)


class GatedPdfCodec(PyMuPdfCodec):
    """Blocks text rendering until released, to observe a job mid-flight."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def render_text(self, text: str) -> bytes:
        self.entered.set()
        self.release.wait(5)
        return super().render_text(text)


@pytest.fixture
def docx_codec():
    return PythonDocxReader()


@pytest.fixture
def pdf_codec():
    return PyMuPdfCodec()


@pytest.fixture
def transformer(docx_codec, pdf_codec):
    return Transformer(docx_codec, pdf_codec)


@pytest.fixture
def samples(docx_codec, pdf_codec):
    """Minimal well-formed input file per format."""
    return {
        "txt": InputFile("notes.txt", b"Hello world\nSecond line\n", "text/plain"),
        "html": InputFile(
            "page.html",
            b"<html><head><title>T</title></head><body><p>Hello</p><p>World</p></body></html>",
            "text/html",
        ),
        "docx": InputFile("letter.docx", docx_codec.from_paragraphs(["Hello", "World"])),
        "pdf": InputFile("scan.pdf", pdf_codec.render_text("Hello\nWorld"), "application/pdf"),
    }


def make_service(transformer, **kwargs) -> ConversionService:
    return ConversionService(InMemoryJobStore(), transformer=transformer, **kwargs)


def run_jobs(service: ConversionService, *submissions):
    """Start `service`, submit each (file, output_format) and wait for all jobs."""

    async def _run():
        await service.start()
        try:
            ids = [service.submit(file, fmt) for file, fmt in submissions]
            await service.join()
            return [service.get_job(job_id) for job_id in ids]
        finally:
            await service.stop()

    return asyncio.run(_run())
