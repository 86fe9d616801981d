from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from .formats import Format

if TYPE_CHECKING:
    from .service import Job


class DocxCodec(Protocol):
    def to_html(self, data: bytes) -> str:
        """Convert DOCX bytes into HTML, preserving document structure.
        This is a blocking call; callers should offload to threads if needed.
        """

    def to_text(self, data: bytes) -> str:
        """Extract the raw text of DOCX bytes."""

    def from_paragraphs(self, paragraphs: list[str]) -> bytes:
        """Build a minimal DOCX container holding one paragraph per item."""


class PdfCodec(Protocol):
    def render_text(self, text: str) -> bytes:
        ...

    def render_html(self, html: str) -> bytes:
        ...

    def page_sizes(self, data: bytes) -> list[tuple[float, float]]:
        ...


class JobStore(Protocol):
    def get(self, job_id: str) -> Job | None:
        ...

    def put(self, job: Job) -> None:
        ...

    def all(self) -> list[Job]:
        ...

    def remove(self, job_id: str) -> bool:
        ...


class HistoryGateway(Protocol):
    def record(self, entry: HistoryEntry) -> None:
        ...

    def entries(self) -> list[HistoryEntry]:
        ...

    def remove(self, entry_id: str) -> bool:
        ...

    def clear(self) -> None:
        ...


@dataclass(frozen=True)
class InputFile:
    name: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class OutputArtifact:
    format: Format
    content: bytes
    media_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    file_name: str
    input_format: Format
    output_format: Format
    file_size: int
    converted_at: datetime

    @classmethod
    def from_job(cls, job: Job) -> HistoryEntry:
        return cls(
            id=job.id,
            file_name=job.input_file.name,
            input_format=job.input_format,
            output_format=job.output_format,
            file_size=job.input_file.size,
            converted_at=job.completed_at or job.created_at,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "input_format": self.input_format.value,
            "output_format": self.output_format.value,
            "file_size": self.file_size,
            "converted_at": self.converted_at.isoformat().replace("+00:00", "Z"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> HistoryEntry:
        converted_at = str(data["converted_at"]).replace("Z", "+00:00")
        return cls(
            id=str(data["id"]),
            file_name=str(data["file_name"]),
            input_format=Format(str(data["input_format"])),
            output_format=Format(str(data["output_format"])),
            file_size=int(data["file_size"]),  # type: ignore[arg-type]
            converted_at=datetime.fromisoformat(converted_at),
        )
