import asyncio
import logging
import os
from pathlib import Path
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import JSONResponse, Response

from docmorph import __version__
from docmorph.conversion import (
    ConversionError,
    ConversionService,
    FileTooLarge,
    FormatMismatch,
    HistoryEntry,
    InputFile,
    Job,
    JobStatus,
    MAX_FILE_SIZE,
    UnsupportedFormat,
)
from docmorph.conversion.adapters import LocalHistoryStore
from docmorph.log import setup_logging

logger = logging.getLogger(__name__)

app = FastAPI(
    title="DocMorph",
    version=os.getenv("DOCMORPH_VERSION", __version__),
    description="Convert documents between PDF, DOCX, HTML and plain text.",
)

# Global configuration defaults
DATA_DIR = Path(os.getenv("DATA_DIR", "./data")).resolve()
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SUBMISSION_ERRORS: dict[type[ConversionError], int] = {
    UnsupportedFormat: 415,
    FormatMismatch: 400,
    FileTooLarge: 413,
}

CHUNK = 1024 * 1024


def get_service(request: Request) -> ConversionService:
    return request.app.state.service


def get_history(request: Request) -> LocalHistoryStore:
    return request.app.state.history


def _not_found(message: str = "job not found") -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "not_found", "message": message})


def _load_job(service: ConversionService, job_id: str) -> Job:
    job = service.get_job(job_id)
    if job is None:
        raise _not_found()
    return job


@app.on_event("startup")
async def _startup() -> None:
    setup_logging(LOG_LEVEL)
    history = LocalHistoryStore(str(DATA_DIR), limit=HISTORY_LIMIT)
    service = ConversionService()
    writes: set[asyncio.Task] = set()

    def record_history(job: Job) -> None:
        # Listeners run on the event loop; the JSON rewrite goes to a thread.
        if job.status != JobStatus.COMPLETED:
            return
        task = asyncio.create_task(asyncio.to_thread(history.record, HistoryEntry.from_job(job)))
        writes.add(task)
        task.add_done_callback(_history_written)

    def _history_written(task: asyncio.Task) -> None:
        writes.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Failed to record history entry", exc_info=task.exception())

    service.add_listener(record_history)
    app.state.history = history
    app.state.history_writes = writes
    app.state.service = service
    await service.start()


@app.on_event("shutdown")
async def _shutdown() -> None:
    service = getattr(app.state, "service", None)
    if service is not None:
        await service.stop()
        app.state.service = None
    writes = getattr(app.state, "history_writes", None)
    if writes:
        await asyncio.gather(*list(writes), return_exceptions=True)


@app.get("/health")
def health() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}


@app.get("/tools")
async def list_tools(service: ConversionService = Depends(get_service)) -> list[dict[str, object]]:
    return [tool.to_dict() for tool in service.supported_tools()]


@app.post("/jobs", status_code=status.HTTP_202_ACCEPTED)
async def create_job(
    file: UploadFile = File(...),
    output_format: str = Form(...),
    expected_format: str | None = Form(None),
    service: ConversionService = Depends(get_service),
) -> JSONResponse:
    """Create a new conversion job from an uploaded document.

    Accepts multipart/form-data with a file part and the requested output
    format. Rejected files never become jobs; accepted ones are converted in
    the background and polled through `/jobs/{job_id}`.
    """
    # Stop reading one byte past the ceiling; validation reports the size error.
    chunks: list[bytes] = []
    size_bytes = 0
    while size_bytes <= MAX_FILE_SIZE:
        chunk = await file.read(CHUNK)
        if not chunk:
            break
        chunks.append(bytes(chunk))
        size_bytes += len(chunk)

    upload = InputFile(
        name=file.filename or "upload",
        content=b"".join(chunks),
        content_type=file.content_type,
    )
    try:
        job_id = service.submit(upload, output_format, expected_format=expected_format or None)
    except ConversionError as e:
        code = SUBMISSION_ERRORS.get(type(e), status.HTTP_400_BAD_REQUEST)
        raise HTTPException(status_code=code, detail={"code": e.code, "message": e.message})

    job = _load_job(service, job_id)
    body = {
        "id": job_id,
        "status": job.status,
        "progress": job.progress,
        "links": {
            "self": f"/jobs/{job_id}",
            "result": f"/jobs/{job_id}/result",
        },
    }
    headers = {"Location": f"/jobs/{job_id}"}
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=body, headers=headers)


@app.get("/jobs")
async def list_jobs(service: ConversionService = Depends(get_service)) -> list[dict[str, object]]:
    return [job.to_dict() for job in service.list_jobs()]


@app.get("/jobs/{job_id}")
async def get_job(job_id: str, service: ConversionService = Depends(get_service)) -> dict[str, object]:
    return _load_job(service, job_id).to_dict()


@app.post("/jobs/{job_id}/cancel")
async def cancel_job(job_id: str, service: ConversionService = Depends(get_service)) -> dict[str, object]:
    _load_job(service, job_id)
    return {"id": job_id, "cancelled": service.cancel(job_id)}


@app.delete("/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(job_id: str, service: ConversionService = Depends(get_service)) -> Response:
    job = _load_job(service, job_id)
    if not service.remove_job(job_id):
        raise HTTPException(
            status_code=409,
            detail={"code": "job_active", "message": f"job is {job.status}"},
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/jobs/{job_id}/result")
async def get_result(job_id: str, service: ConversionService = Depends(get_service)) -> Response:
    job = _load_job(service, job_id)
    if job.status != JobStatus.COMPLETED or job.output is None:
        raise HTTPException(
            status_code=409,
            detail={"code": "not_ready", "message": f"result not available, job is {job.status}"},
        )
    artifact = job.output
    fallback = artifact.filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    disposition = f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(artifact.filename)}"
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": disposition},
    )


@app.get("/history")
def list_history(history: LocalHistoryStore = Depends(get_history)) -> list[dict[str, object]]:
    return [entry.to_dict() for entry in history.entries()]


@app.delete("/history", status_code=status.HTTP_204_NO_CONTENT)
def clear_history(history: LocalHistoryStore = Depends(get_history)) -> Response:
    history.clear()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.delete("/history/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_history_entry(entry_id: str, history: LocalHistoryStore = Depends(get_history)) -> Response:
    if not history.remove(entry_id):
        raise _not_found("history entry not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("docmorph.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
