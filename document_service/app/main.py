from typing import Optional

from fastapi import FastAPI, UploadFile, File, HTTPException, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from . import auth, database, exceptions, models, schemas
from .config import get_settings
from .ingestion import IngestionService
from .lifecycle import DocumentStatus
from .logger import configure_logging, get_logger

_settings = get_settings()
configure_logging(_settings.log_level, _settings.log_file)
logger = get_logger(__name__)

app = FastAPI(title="Document Service")

# Locally stored blobs are served from the same path their locator records
app.mount(
    _settings.upload_url_prefix,
    StaticFiles(directory=_settings.upload_dir, check_dir=False),
    name="uploads",
)

_FAILURE_MESSAGES = {
    "POST": "Upload failed",
    "GET": "Fetch failed",
    "PUT": "Update failed",
    "DELETE": "Delete failed",
}


@app.on_event("startup")
def on_startup():
    # Create DB tables
    models.Base.metadata.create_all(bind=database.engine)


get_db = database.get_db


def get_ingestion_service(db: Session = Depends(get_db)) -> IngestionService:
    return IngestionService(db, get_settings())


# Global exception handlers
@app.exception_handler(exceptions.DocumentServiceException)
async def document_exception_handler(request: Request, exc: exceptions.DocumentServiceException):
    logger.warning(f"{request.method} {request.url.path}: {exc.error_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.warning(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "error_code": f"HTTP_{exc.status_code}"},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Invalid request body for {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "error_code": "VALIDATION_ERROR"},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": _FAILURE_MESSAGES.get(request.method, "Request failed"),
            "error_code": "INTERNAL_ERROR",
        },
    )


# POST /documents
@app.post(
    "/documents",
    response_model=schemas.UploadResponse,
    response_model_exclude_none=True,
    responses={400: {"model": schemas.ErrorResponse}, 500: {"model": schemas.ErrorResponse}},
)
def upload_document(
    file: Optional[UploadFile] = File(None),
    owner_id: str = Depends(auth.get_current_owner),
    service: IngestionService = Depends(get_ingestion_service),
):
    content = size = filename = mime_type = None
    if file is not None:
        # one byte past the limit is enough to reject an oversized upload
        content = file.file.read(service.settings.max_upload_bytes + 1)
        size = file.size if file.size is not None else len(content)
        filename = file.filename
        mime_type = file.content_type

    document = service.ingest(owner_id, content, filename, mime_type, size)
    if document.status == DocumentStatus.ERROR:
        # The error-state row is already saved; callers re-fetch to see it
        raise exceptions.ProcessingError()
    return {"success": True, "document": document}


# GET /documents
@app.get("/documents", response_model=schemas.DocumentListResponse, response_model_exclude_none=True)
def list_documents(
    owner_id: str = Depends(auth.get_current_owner),
    service: IngestionService = Depends(get_ingestion_service),
):
    return {"documents": service.list_documents(owner_id)}


# GET /documents/{document_id}
@app.get(
    "/documents/{document_id}",
    response_model=schemas.DocumentEnvelope,
    response_model_exclude_none=True,
    responses={404: {"model": schemas.ErrorResponse}},
)
def read_document(
    document_id: str,
    owner_id: str = Depends(auth.get_current_owner),
    service: IngestionService = Depends(get_ingestion_service),
):
    return {"document": service.get_document(owner_id, document_id)}


# PUT /documents
@app.put(
    "/documents",
    response_model=schemas.UploadResponse,
    response_model_exclude_none=True,
    responses={400: {"model": schemas.ErrorResponse}, 404: {"model": schemas.ErrorResponse}},
)
def update_document(
    body: schemas.DocumentUpdate,
    owner_id: str = Depends(auth.get_current_owner),
    service: IngestionService = Depends(get_ingestion_service),
):
    document = service.update_document(owner_id, body.id, body.extracted_text, body.status)
    return {"success": True, "document": document}


# DELETE /documents?id=...
@app.delete(
    "/documents",
    response_model=schemas.SuccessResponse,
    responses={400: {"model": schemas.ErrorResponse}, 404: {"model": schemas.ErrorResponse}},
)
def delete_document(
    id: Optional[str] = Query(None),
    owner_id: str = Depends(auth.get_current_owner),
    service: IngestionService = Depends(get_ingestion_service),
):
    service.delete(owner_id, id)
    return {"success": True}
