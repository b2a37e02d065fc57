from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .lifecycle import DocumentStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DocumentResponse(CamelModel):
    id: str
    owner_id: str
    name: str
    original_file_name: str
    stored_file_name: str
    storage_locator: str
    public_url: Optional[str] = None
    file_size_bytes: int
    mime_type: Optional[str] = None
    status: DocumentStatus
    extracted_text: Optional[str] = None
    error_message: Optional[str] = None
    uploaded_at: datetime
    processed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class DocumentUpdate(CamelModel):
    id: Optional[str] = None
    extracted_text: Optional[str] = None
    status: Optional[DocumentStatus] = None


class UploadResponse(BaseModel):
    success: bool = True
    document: DocumentResponse


class DocumentEnvelope(BaseModel):
    document: DocumentResponse


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse]


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    error_code: str
