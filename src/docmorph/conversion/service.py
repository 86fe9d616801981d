import asyncio
import logging
import re
import time
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable

from .errors import ConversionError
from .formats import MEDIA_TYPES, Format, classify, parse_format
from .interfaces import InputFile, JobStore, OutputArtifact
from .routing import SUPPORTED_TOOLS, ConversionRouter, ConversionTool
from .routines import Transformer
from .validation import validate_file

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"


class JobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    TERMINAL = frozenset({COMPLETED, ERROR})


@dataclass(frozen=True)
class Job:
    id: str
    input_file: InputFile
    input_format: Format
    output_format: Format
    status: str = JobStatus.PENDING
    progress: int = 0
    created_at: datetime | None = None
    completed_at: datetime | None = None
    output: OutputArtifact | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in JobStatus.TERMINAL

    def to_dict(self) -> dict[str, object]:
        output = None
        if self.output is not None:
            output = {
                "filename": self.output.filename,
                "format": self.output.format.value,
                "media_type": self.output.media_type,
                "size_bytes": self.output.size,
            }
        return {
            "id": self.id,
            "filename": self.input_file.name,
            "size_bytes": self.input_file.size,
            "input_format": self.input_format.value,
            "output_format": self.output_format.value,
            "status": self.status,
            "progress": self.progress,
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
            "output": output,
            "error": self.error,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex}"


def output_filename(input_name: str, output_format: Format, now: datetime | None = None) -> str:
    """`<base>_converted_<YYYYMMDDTHHMM>.<ext>`, base being the name minus its last extension."""
    base = re.sub(r"\.[^/.]+$", "", input_name)
    stamp = (now or _now()).astimezone(timezone.utc).strftime("%Y%m%dT%H%M")
    return f"{base}_converted_{stamp}.{output_format.value}"


class ConversionService:
    """Core domain service orchestrating conversion jobs.

    This service is framework-agnostic. Submission is synchronous and either
    rejects the file or records a pending job; one task per job then drives
    it through routing and transformation, so a routine that never returns
    stalls only its own job. Failures after a job exists are captured on the
    job record and never raised to the caller.

    Public methods must be called from the thread running the event loop.
    Blocking routines run on the loop's default thread executor, whose size
    bounds how many routines can be stuck at once before new ones queue.
    """

    def __init__(
        self,
        store: JobStore | None = None,
        router: ConversionRouter | None = None,
        transformer: Transformer | None = None,
    ) -> None:
        if store is None or transformer is None:
            from .adapters import DoclingDocxCodec, InMemoryJobStore, PyMuPdfCodec

            store = store if store is not None else InMemoryJobStore()
            if transformer is None:
                transformer = Transformer(DoclingDocxCodec(), PyMuPdfCodec())
        self._store = store
        self._router = router or ConversionRouter()
        self._transformer = transformer
        self._running = False
        self._tasks: set[asyncio.Task] = set()
        self._listeners: list[Callable[[Job], None]] = []

    async def start(self) -> None:
        """Begin orchestrating; jobs submitted before start are picked up now."""
        self._running = True
        for job in self.list_jobs():
            if job.status == JobStatus.PENDING:
                self._dispatch(job.id)

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks)
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def join(self) -> None:
        """Wait until every dispatched job has finished orchestrating."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def add_listener(self, listener: Callable[[Job], None]) -> None:
        """Register `listener(job)` to be called with every new job snapshot."""
        self._listeners.append(listener)

    def submit(
        self,
        file: InputFile,
        output_format: Format | str,
        *,
        expected_format: Format | str | None = None,
    ) -> str:
        """Validate `file`, record a pending job and start orchestrating it.

        Raises UnsupportedFormat, FileTooLarge or FormatMismatch before any job
        exists. Returns the new job id without waiting for the conversion.
        """
        input_format = classify(file.name)
        target = parse_format(output_format)
        expected = parse_format(expected_format) if expected_format is not None else None
        validate_file(
            file,
            expected_format=expected,
            max_size=self._router.size_limit(input_format, target),
        )

        job = Job(
            id=new_job_id(),
            input_file=file,
            input_format=input_format,
            output_format=target,
            created_at=_now(),
        )
        self._store.put(job)
        self._notify(job)
        if self._running:
            self._dispatch(job.id)
        logger.info(
            "Queued job %s: %s (%d bytes) %s -> %s",
            job.id, file.name, file.size, input_format.value, target.value,
        )
        return job.id

    def get_job(self, job_id: str) -> Job | None:
        return self._store.get(job_id)

    def list_jobs(self) -> list[Job]:
        return sorted(self._store.all(), key=lambda j: j.created_at or _now())

    def remove_job(self, job_id: str) -> bool:
        """Drop a terminal job record. Active jobs are kept."""
        job = self._store.get(job_id)
        if job is None or not job.is_terminal:
            return False
        return self._store.remove(job_id)

    def cancel(self, job_id: str) -> bool:
        job = self._store.get(job_id)
        if job is None or job.status != JobStatus.PROCESSING:
            return False
        self._commit(
            replace(job, status=JobStatus.ERROR, error=CANCELLED_MESSAGE, completed_at=_now())
        )
        logger.info("Cancelled job %s at %d%%", job_id, job.progress)
        return True

    def supported_tools(self) -> tuple[ConversionTool, ...]:
        return SUPPORTED_TOOLS

    def _dispatch(self, job_id: str) -> None:
        task = asyncio.get_running_loop().create_task(
            self._orchestrate(job_id), name=f"orchestrate-{job_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Unexpected failure in %s", task.get_name(), exc_info=exc)

    async def _orchestrate(self, job_id: str) -> None:
        job = self._store.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return
        self._update(job_id, status=JobStatus.PROCESSING, progress=10)
        logger.info(
            "Starting job %s: %s -> %s for %s",
            job_id, job.input_format.value, job.output_format.value, job.input_file.name,
        )

        try:
            if not self._update(job_id, progress=30):
                return
            route = self._router.resolve(job.input_format, job.output_format)
            if not self._update(job_id, progress=50):
                return

            if route.is_identity:
                logger.info("No conversion needed for %s", job_id)
                content = await asyncio.to_thread(bytes, job.input_file.content)
                media_type = job.input_file.content_type or MEDIA_TYPES[job.output_format]
            else:
                logger.info("Converting %s for job %s via %s", route.key, job_id, " -> ".join(route.steps))
                data: str | bytes = job.input_file.content
                for step in route.steps:
                    data = await asyncio.to_thread(
                        self._transformer.apply, step, data, job.input_file.name
                    )
                    if self._is_terminal(job_id):
                        logger.info("Discarding output of %s for job %s: job already finished", step, job_id)
                        return
                content = data.encode("utf-8") if isinstance(data, str) else data
                media_type = MEDIA_TYPES[job.output_format]

            if not self._update(job_id, progress=90):
                return

            artifact = OutputArtifact(
                format=job.output_format,
                content=content,
                media_type=media_type,
                filename=output_filename(job.input_file.name, job.output_format),
            )
            finished = self._update(
                job_id,
                status=JobStatus.COMPLETED,
                progress=100,
                output=artifact,
                completed_at=_now(),
            )
            if finished:
                elapsed = (_now() - job.created_at).total_seconds() if job.created_at else 0.0
                logger.info(
                    "Conversion completed for job %s: %s (%d bytes) in %.2fs",
                    job_id, artifact.filename, artifact.size, elapsed,
                )
        except ConversionError as e:
            self._fail(job_id, e.message)
        except Exception as e:
            self._fail(job_id, str(e) or "Unknown conversion error")

    def _fail(self, job_id: str, message: str) -> None:
        if self._update(job_id, status=JobStatus.ERROR, error=message, completed_at=_now()):
            logger.error("Conversion failed for job %s: %s", job_id, message)

    def _is_terminal(self, job_id: str) -> bool:
        job = self._store.get(job_id)
        return job is None or job.is_terminal

    def _update(self, job_id: str, **changes: object) -> bool:
        """Replace the job record with `changes` applied.

        Returns False, leaving the record untouched, once the job is terminal
        or gone. Progress never moves backwards.
        """
        job = self._store.get(job_id)
        if job is None or job.is_terminal:
            return False
        progress = changes.get("progress")
        if isinstance(progress, int) and progress < job.progress:
            changes["progress"] = job.progress
        self._commit(replace(job, **changes))
        return True

    def _commit(self, job: Job) -> None:
        self._store.put(job)
        self._notify(job)

    def _notify(self, job: Job) -> None:
        for listener in list(self._listeners):
            try:
                listener(job)
            except Exception:
                logger.exception("Job listener failed for %s", job.id)
