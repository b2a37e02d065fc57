from fastapi import HTTPException
from typing import Any, Dict, Optional


class DocumentServiceException(HTTPException):
    """Base exception for document service errors"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code or f"DOCUMENT_{status_code}"


class ValidationError(DocumentServiceException):
    """Bad input, rejected before any side effect"""

    def __init__(self, detail: str = "Invalid input data"):
        super().__init__(status_code=400, detail=detail, error_code="VALIDATION_ERROR")


class AuthenticationError(DocumentServiceException):
    """No usable session"""

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(
            status_code=401,
            detail=detail,
            error_code="AUTH_ERROR",
            headers={"WWW-Authenticate": "Basic"},
        )


class DocumentNotFoundError(DocumentServiceException):
    """Document absent or owned by someone else; the two are not distinguished"""

    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail, error_code="DOCUMENT_NOT_FOUND")


class StorageError(DocumentServiceException):
    """Blob store rejected the upload"""

    def __init__(self, detail: str = "Upload failed"):
        super().__init__(status_code=500, detail=detail, error_code="STORAGE_ERROR")


class ProcessingError(DocumentServiceException):
    """Text extraction failed; the document row is kept in error state"""

    def __init__(self, detail: str = "PDF parse failed"):
        super().__init__(status_code=500, detail=detail, error_code="EXTRACTION_ERROR")
