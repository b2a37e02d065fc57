"""
Document ingestion pipeline.

Upload:
  1. Validate presence, type (MIME or .pdf suffix) and size; nothing is
     written before all three pass
  2. Pick the storage backend from the current settings
  3. Store the blob; a failure here aborts before any row exists
  4. Insert the document row with status=processing
  5. Extract text from the in-memory bytes
  6. Move the row to completed or error and return it

Delete:
  1. Owner-scoped delete of the row ("not found" and "not yours" look the same)
  2. If the blob lives in the cloud, remove it; failures are logged only
"""
import re
import secrets
import string
import time
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from . import crud, exceptions, lifecycle, models
from .config import Settings
from .extractor import extract_text
from .logger import get_logger
from .storage import BlobStore, StorageBackend, build_blob_store, select_backend

logger = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_TOKEN_LENGTH = 11
_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_SAFE_EXTENSION_RE = re.compile(r"^[A-Za-z0-9]+$")


def display_name(filename: str) -> str:
    """Original name minus its last extension: 'a.b.pdf' -> 'a.b'."""
    return _EXTENSION_RE.sub("", filename)


def generate_stored_filename(filename: str, now_ms: Optional[int] = None) -> str:
    """Collision-resistant `{unix_millis}_{token}.{ext}` name for the blob."""
    ext = filename.rsplit(".", 1)[-1]
    if not _SAFE_EXTENSION_RE.match(ext):
        # keep path separators and odd characters out of storage keys
        ext = "pdf"
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))
    return f"{timestamp}_{token}.{ext}"


def is_pdf(filename: str, mime_type: Optional[str]) -> bool:
    return mime_type == PDF_MIME_TYPE or filename.lower().endswith(".pdf")


class IngestionService:
    """
    One instance per request. Settings are passed in rather than read from
    the environment, so backend choice is a function of the inputs.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings,
        store_factory: Callable[[StorageBackend, Settings], BlobStore] = build_blob_store,
        extractor: Callable[..., str] = extract_text,
    ) -> None:
        self.db = db
        self.settings = settings
        self.store_factory = store_factory
        self.extractor = extractor

    def validate_upload(
        self,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str],
        size: Optional[int] = None,
    ) -> None:
        """`size` is the full upload size; `content` may be a bounded prefix of it."""
        if content is None or not filename:
            raise exceptions.ValidationError("No file provided")

        if not is_pdf(filename, mime_type):
            raise exceptions.ValidationError("Only PDF allowed")

        if size is None:
            size = len(content)
        if size > self.settings.max_upload_bytes:
            limit_mb = self.settings.max_upload_bytes // (1024 * 1024)
            raise exceptions.ValidationError(f"Max {limit_mb}MB allowed")

    def ingest(
        self,
        owner_id: str,
        content: Optional[bytes],
        filename: Optional[str],
        mime_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> models.Document:
        if not owner_id:
            raise exceptions.AuthenticationError()

        try:
            self.validate_upload(content, filename, mime_type, size)
        except exceptions.ValidationError as e:
            logger.info(f"Rejected upload '{filename}' for {owner_id}: {e.detail}")
            raise

        stored_file_name = generate_stored_filename(filename)
        backend = select_backend(self.settings.is_production, self.settings.cloud_storage_configured)
        logger.info(f"Uploading '{filename}' as {stored_file_name} via {backend.value} storage")

        try:
            store = self.store_factory(backend, self.settings)
            blob = store.store(content, stored_file_name)
        except Exception as e:
            logger.error(f"Blob storage failed for {stored_file_name}: {e}", exc_info=True)
            raise exceptions.StorageError() from e

        document = crud.create_document(
            self.db,
            owner_id=owner_id,
            name=display_name(filename),
            original_file_name=filename,
            stored_file_name=stored_file_name,
            storage_locator=blob.locator,
            public_url=blob.public_url,
            file_size_bytes=len(content),
            storage_bucket=blob.bucket,
            mime_type=mime_type,
            **lifecycle.initial_state(),
        )

        try:
            text = self.extractor(content, timeout=self.settings.extraction_timeout_seconds)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Extraction failed for document {document.id}: {message}")
            patch = lifecycle.mark_failed(document.status, message)
        else:
            logger.info(f"Extracted {len(text)} characters from document {document.id}")
            patch = lifecycle.mark_completed(document.status, text)

        updated = crud.update_document(self.db, document.id, owner_id, patch)
        if updated is None:
            # deleted by the owner while we were extracting
            raise exceptions.DocumentNotFoundError()
        logger.info(f"Document {updated.id} is {updated.status}")
        return updated

    def list_documents(self, owner_id: str) -> List[models.Document]:
        return crud.get_documents(self.db, owner_id)

    def get_document(self, owner_id: str, document_id: str) -> models.Document:
        document = crud.get_document(self.db, document_id, owner_id)
        if document is None:
            raise exceptions.DocumentNotFoundError()
        return document

    def update_document(
        self,
        owner_id: str,
        document_id: Optional[str],
        extracted_text: Optional[str] = None,
        status: Optional[lifecycle.DocumentStatus] = None,
    ) -> models.Document:
        if not document_id:
            raise exceptions.ValidationError("Missing ID")

        document = self.get_document(owner_id, document_id)
        try:
            patch = lifecycle.external_update(
                document.status,
                document.extracted_text,
                document.error_message,
                status=status,
                extracted_text=extracted_text,
            )
        except lifecycle.InvalidStatusTransition as e:
            raise exceptions.ValidationError(str(e)) from e

        updated = crud.update_document(self.db, document_id, owner_id, patch)
        if updated is None:
            raise exceptions.DocumentNotFoundError()
        logger.info(f"Owner {owner_id} updated document {document_id} to {updated.status}")
        return updated

    def delete(self, owner_id: str, document_id: Optional[str]) -> None:
        if not document_id:
            raise exceptions.ValidationError("Document ID required")

        document = crud.delete_document(self.db, document_id, owner_id)
        if document is None:
            raise exceptions.DocumentNotFoundError()
        logger.info(f"Deleted document {document_id} for {owner_id}")

        if not document.public_url:
            logger.info(f"Local blob {document.storage_locator} is not purged")
            return

        try:
            settings = self.settings
            if document.storage_bucket:
                # clean up in the bucket that received the blob
                settings = settings.model_copy(update={"s3_bucket": document.storage_bucket})
            store = self.store_factory(StorageBackend.CLOUD, settings)
            store.delete(document.storage_locator)
        except Exception as e:
            logger.error(f"Cloud cleanup failed for {document.storage_locator}: {e}")
