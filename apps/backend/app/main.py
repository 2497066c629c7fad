"""FastAPI application exposing PDF to DOCX conversion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from tempfile import TemporaryDirectory

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse

from pdf2docxauto import ConversionMode, ConversionOrchestrator, Settings, default_orchestrator, get_settings
from pdf2docxauto.utils import configure_logging

LOGGER = logging.getLogger("pdf2docxauto.api")

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

app = FastAPI(title="pdf2docx-auto API", version="0.1.0")


@lru_cache(maxsize=1)
def get_orchestrator() -> ConversionOrchestrator:
    """Build the orchestrator once; capabilities are probed at first use."""
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.ensure_directories()
    return default_orchestrator()


def _safe_filename(filename: str | None, default: str) -> str:
    """Return a filesystem-safe filename derived from user input."""

    if not filename:
        return default

    candidate = Path(filename).name
    if candidate in ("", ".", ".."):
        return default
    return candidate


def _parse_mode(raw_value: str | None) -> ConversionMode | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return ConversionMode.parse(raw_value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _output_filename(original: str) -> str:
    stamp = datetime.now(tz=timezone.utc).strftime("%Y%m%d%H%M%S%f")
    return f"{Path(original).stem}_{stamp}.docx"


def _remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        LOGGER.error("Error deleting %s: %s", path, exc)


@app.get("/health", response_class=JSONResponse)
async def health() -> dict[str, str]:
    """Lightweight health endpoint for uptime checks."""
    return {"status": "healthy", "timestamp": datetime.now(tz=timezone.utc).isoformat()}


@app.get("/status", response_class=JSONResponse)
async def status(
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> dict[str, object]:
    """Report the configured mode and which converters are usable."""
    return {
        "status": "ok",
        "config": {"mode": settings.conversion_mode.value},
        "converters": orchestrator.status(),
    }


@app.post("/convert", response_class=JSONResponse)
async def convert(
    file: UploadFile = File(..., description="PDF document to convert."),
    mode: str | None = Form(None, description="Conversion mode: basic, advanced or auto."),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """Convert an uploaded PDF and return the conversion record.

    The DOCX is kept in the output directory until it is fetched through
    ``/download/{filename}``.
    """

    requested_mode = _parse_mode(mode)
    original_name = _safe_filename(file.filename, "document.pdf")
    if file.content_type not in (None, "application/pdf") and not original_name.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are accepted.")

    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail=f"File '{original_name}' is empty.")
    if len(contents) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"File is too large (maximum {settings.max_upload_mb}MB).",
        )

    output_filename = _output_filename(original_name)
    settings.output_dir.mkdir(parents=True, exist_ok=True)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    output_path = settings.output_dir / output_filename

    with TemporaryDirectory(dir=settings.upload_dir) as temp_dir:
        input_path = Path(temp_dir) / original_name
        input_path.write_bytes(contents)
        LOGGER.info("New conversion request: %s (%.2f MB)", original_name, len(contents) / 1024 / 1024)
        result = await run_in_threadpool(orchestrator.convert, input_path, output_path, requested_mode)

    payload = result.as_dict()
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": result.error, "method": result.method.value},
        )

    payload.update(
        {
            "message": result.message or "Conversion completed",
            "filename": output_filename,
            "downloadUrl": f"/download/{output_filename}",
        }
    )
    return JSONResponse(payload)


@app.get("/download/{filename}", response_class=FileResponse)
async def download(
    filename: str,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    """Stream a converted DOCX once and delete it afterwards."""

    safe_name = _safe_filename(filename, "")
    if not safe_name or safe_name != filename or not safe_name.lower().endswith(".docx"):
        raise HTTPException(status_code=400, detail="Invalid file name.")

    path = settings.output_dir / safe_name
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found.")

    background_tasks.add_task(_remove_file, path)
    return FileResponse(path, media_type=DOCX_MEDIA_TYPE, filename=safe_name)


__all__ = ["app", "get_orchestrator"]
