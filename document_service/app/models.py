import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Text, DateTime

from .database import Base
from .lifecycle import DocumentStatus


def _utcnow():
    return datetime.now(timezone.utc)


class Document(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    original_file_name = Column(String, nullable=False)
    stored_file_name = Column(String, nullable=False)
    storage_locator = Column(String, nullable=False)  # '/uploads/documents/<file>' or an S3 public id
    public_url = Column(String, nullable=True)  # only set for cloud storage
    storage_bucket = Column(String, nullable=True)  # S3 bucket the blob went to, cloud only
    file_size_bytes = Column(Integer, nullable=False)
    mime_type = Column(String, nullable=True)
    status = Column(String(20), nullable=False, default=DocumentStatus.PROCESSING.value)
    extracted_text = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
