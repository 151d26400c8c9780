"""
FastAPI backend for CSV Data Studio.
Provides REST API for CSV upload, editing, integrity validation and export.
"""

import asyncio
import contextlib
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from io import BytesIO
from typing import Dict, List, Any, Optional

from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
import structlog

from api.csv_io import (
    AVAILABLE_FILES,
    ALLOWED_EXTENSIONS,
    CsvFormatError,
    CsvManager,
    dataframe_to_records,
    get_empty_row,
    sanitize_rows,
)
from api.logging_config import configure_logging
from api.session_store import (
    Dataset,
    DatasetNotFoundError,
    InMemorySessionStore,
    SessionNotFoundError,
    SessionStore,
)
from api.settings import Settings, get_settings
from validation import (
    validate_data_integrity,
    suggest_corrections,
    validate_row,
    validate_csv_structure,
)

settings = get_settings()
configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(__name__)

session_store = InMemorySessionStore(ttl=timedelta(hours=settings.session_ttl_hours))
csv_manager = CsvManager()


def get_session_store() -> SessionStore:
    """Dependency returning the session store; override in tests."""
    return session_store


# ============================================================================
# Lifespan
# ============================================================================

async def _cleanup_sessions(store: SessionStore, interval_seconds: float):
    """Evict expired sessions periodically."""
    while True:
        await asyncio.sleep(interval_seconds)
        store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("csv_studio_starting", version=settings.app_version,
                session_ttl_hours=settings.session_ttl_hours)
    cleanup_task = asyncio.create_task(
        _cleanup_sessions(session_store, settings.cleanup_interval_minutes * 60)
    )
    yield
    cleanup_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await cleanup_task
    logger.info("csv_studio_stopped")


app = FastAPI(
    title=settings.app_name,
    description="API for editing and cross-validating strings and classifications CSV files",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models
# ============================================================================

class UpdateRequest(BaseModel):
    session_id: str
    file_type: str
    data: List[Dict[str, Any]]


class ValidateRequest(BaseModel):
    session_id: str


class RowValidationRequest(BaseModel):
    file_type: str
    row_data: Dict[str, Any]
    row_number: Optional[int] = Field(default=None, ge=1)


class ValidationResponse(BaseModel):
    is_valid: bool
    errors: List[Dict[str, Any]]
    warnings: List[Dict[str, Any]]


def _check_file_type(file_type: str):
    if file_type not in AVAILABLE_FILES:
        raise HTTPException(status_code=400, detail=f"Unknown file type: {file_type}")


def _get_dataset(store: SessionStore, session_id: str, file_type: str) -> Dataset:
    _check_file_type(file_type)
    try:
        return store.get_dataset(session_id, file_type)
    except (SessionNotFoundError, DatasetNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


# ============================================================================
# Configuration Endpoints
# ============================================================================

@app.get("/api/csv/config/files")
async def get_files_config() -> Dict[str, Any]:
    """Get column configuration for both file types."""
    config = {}
    for file_type, file_info in AVAILABLE_FILES.items():
        columns = []
        for col_name in file_info["column_order"]:
            col_def = file_info["columns"][col_name]
            columns.append({
                "name": col_def.name,
                "display_name": col_def.display_name,
                "data_type": col_def.data_type,
                "required": col_def.required,
                "allowed_values": col_def.allowed_values,
                "help_text": col_def.help_text,
            })

        config[file_type] = {
            "name": file_info["name"],
            "description": file_info["description"],
            "columns": columns,
            "column_order": file_info["column_order"],
        }

    return config


@app.get("/api/csv/empty-row/{file_type}")
async def get_empty_row_template(file_type: str) -> Dict[str, Any]:
    """Get an empty row for a file type."""
    _check_file_type(file_type)
    return get_empty_row(file_type)


# ============================================================================
# Upload / Update Endpoints
# ============================================================================

@app.post("/api/csv/upload")
async def upload_files(
    strings: Optional[UploadFile] = File(None),
    classifications: Optional[UploadFile] = File(None),
    session_id: Optional[str] = Form(None),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    """Upload strings and/or classifications CSV files into a session."""
    uploads = {
        file_type: file
        for file_type, file in (("strings", strings), ("classifications", classifications))
        if file is not None
    }
    if not uploads:
        raise HTTPException(
            status_code=400,
            detail="No files uploaded. Please upload both strings and classifications CSV files."
        )

    datasets = {}
    structure = {}
    for file_type, file in uploads.items():
        filename = file.filename or ""
        if not filename.lower().endswith(ALLOWED_EXTENSIONS):
            raise HTTPException(status_code=400, detail=f"{file_type} file must be a CSV file (.csv)")

        content = await file.read()
        if len(content) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"{file_type} file exceeds {settings.max_upload_mb:g} MB"
            )

        try:
            headers, df = csv_manager.parse(content, file_type)
        except CsvFormatError as e:
            logger.warning("csv_rejected", file_type=file_type, filename=filename, reason=str(e))
            raise HTTPException(status_code=400, detail=f"Error processing {file_type} file: {str(e)}")

        structure[file_type] = validate_csv_structure(dataframe_to_records(df), headers)

        datasets[file_type] = Dataset(
            headers=headers,
            df=df,
            original_file_name=filename,
            upload_time=datetime.now(),
        )

    if session_id:
        try:
            for file_type, dataset in datasets.items():
                store.put_dataset(session_id, file_type, dataset)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
    else:
        session_id = store.create(datasets)

    logger.info("csv_uploaded", session_id=session_id, file_types=list(datasets.keys()))

    return {
        "success": True,
        "session_id": session_id,
        "files": {
            file_type: {
                "headers": dataset.headers,
                "data": dataframe_to_records(dataset.df),
                "row_count": dataset.row_count,
                "structure": structure[file_type].to_dict(),
            }
            for file_type, dataset in datasets.items()
        },
    }


@app.put("/api/csv/update")
async def update_data(
    request: UpdateRequest,
    store: SessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """Replace the rows of one dataset with edited rows."""
    dataset = _get_dataset(store, request.session_id, request.file_type)

    rows = sanitize_rows(request.data)
    df = csv_manager.to_dataframe(rows, dataset.headers)
    dataset = store.update_rows(request.session_id, request.file_type, df)

    return {
        "success": True,
        "row_count": dataset.row_count,
        "last_modified": dataset.last_modified.isoformat(),
    }


# ============================================================================
# Validation Endpoints
# ============================================================================

@app.post("/api/csv/validate")
async def validate_data(
    request: ValidateRequest,
    store: SessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """Cross-validate strings against classifications and suggest corrections."""
    try:
        strings = store.get_dataset(request.session_id, "strings")
        classifications = store.get_dataset(request.session_id, "classifications")
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DatasetNotFoundError:
        raise HTTPException(
            status_code=400,
            detail="Both strings and classifications files are required for validation"
        )

    try:
        report = validate_data_integrity(
            dataframe_to_records(strings.df),
            dataframe_to_records(classifications.df),
        )

        suggestions = []
        if report.invalid_combinations:
            suggestions = suggest_corrections(report.invalid_combinations, report.reference_index)
    except Exception as e:
        logger.exception("validation_failed", session_id=request.session_id)
        raise HTTPException(status_code=500, detail=f"Validation failed: {str(e)}")

    logger.info(
        "validation_completed",
        session_id=request.session_id,
        is_valid=report.is_valid,
        errors=report.error_count,
        warnings=report.warning_count,
        suggestions=len(suggestions),
    )

    result = report.to_dict()
    result["suggestions"] = [s.to_dict() for s in suggestions]
    return result


@app.post("/api/csv/validate/row")
async def validate_row_data(request: RowValidationRequest) -> ValidationResponse:
    """Validate a single edited row."""
    _check_file_type(request.file_type)

    result = validate_row(request.row_data, request.file_type, row_number=request.row_number)

    return ValidationResponse(
        is_valid=result.is_valid,
        errors=[e.to_dict() for e in result.errors],
        warnings=[w.to_dict() for w in result.warnings],
    )


# ============================================================================
# Data / Export Endpoints
# ============================================================================

@app.get("/api/csv/data/{session_id}/{file_type}")
async def get_data(
    session_id: str,
    file_type: str,
    store: SessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """Get the stored rows and metadata of one dataset."""
    dataset = _get_dataset(store, session_id, file_type)

    return {
        "success": True,
        **dataset.metadata(),
        "data": dataframe_to_records(dataset.df),
    }


@app.get("/api/csv/export/{session_id}/{file_type}")
async def export_csv(
    session_id: str,
    file_type: str,
    store: SessionStore = Depends(get_session_store),
):
    """Download one dataset as a CSV file."""
    dataset = _get_dataset(store, session_id, file_type)

    content = csv_manager.to_csv_bytes(dataset.df, dataset.headers)
    file_name = f"{file_type}_{int(time.time() * 1000)}.csv"
    logger.info("csv_exported", session_id=session_id, file_type=file_type, rows=dataset.row_count)

    return StreamingResponse(
        BytesIO(content),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={file_name}"}
    )


@app.get("/api/csv/export/{session_id}")
async def export_workbook(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
):
    """Download every dataset in the session as one Excel workbook."""
    try:
        session = store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not session.datasets:
        raise HTTPException(status_code=400, detail="Session has no data")

    try:
        content = csv_manager.to_workbook_bytes({
            file_type: (dataset.headers, dataset.df)
            for file_type, dataset in session.datasets.items()
        })
    except Exception as e:
        logger.exception("workbook_export_failed", session_id=session_id)
        raise HTTPException(status_code=500, detail=f"Error generating file: {str(e)}")

    return StreamingResponse(
        BytesIO(content),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": "attachment; filename=csv_data_studio.xlsx"}
    )


# ============================================================================
# Session Endpoints
# ============================================================================

@app.delete("/api/csv/session/{session_id}")
async def delete_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """Delete a session and its data."""
    success = store.delete(session_id)
    return {
        "success": success,
        "message": "Session deleted successfully" if success else "Session not found",
    }


@app.get("/api/csv/sessions/stats")
async def get_session_stats(store: SessionStore = Depends(get_session_store)) -> Dict[str, Any]:
    """Session counts, for debugging."""
    return store.stats()


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "timestamp": datetime.now().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    import argparse

    parser = argparse.ArgumentParser(description="CSV Data Studio API")
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (requires import string)")
    parser.add_argument("--no-reload", dest="reload", action="store_false", help="Disable auto-reload")
    parser.set_defaults(reload=False)
    args = parser.parse_args()

    if args.reload:
        # When reload is enabled, must use import string
        uvicorn.run("main:app", host=args.host, port=args.port, reload=True)
    else:
        uvicorn.run(app, host=args.host, port=args.port)
