"""
Document status state machine.

    processing --+--> completed
                 +--> error

`completed` and `error` are terminal for the ingestion pipeline. The only way
out of them is an explicit owner update (`external_update`), which may set any
status but must still leave the row in a consistent shape:

    extracted_text is set  <=>  status == completed
    error_message is set   <=>  status == error

Functions here never touch the database. They return column patches that the
caller hands to `crud.update_document`.
"""
import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

OWNER_MARKED_ERROR = "Marked as failed by owner"


class DocumentStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


_TRANSITIONS = {
    DocumentStatus.PROCESSING: {DocumentStatus.COMPLETED, DocumentStatus.ERROR},
    DocumentStatus.COMPLETED: set(),
    DocumentStatus.ERROR: set(),
}


class InvalidStatusTransition(ValueError):
    pass


def check_transition(current, target) -> None:
    current = DocumentStatus(current)
    target = DocumentStatus(target)
    if target not in _TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"Cannot move document from '{current.value}' to '{target.value}'"
        )


def initial_state() -> Dict[str, Any]:
    return {
        "status": DocumentStatus.PROCESSING.value,
        "extracted_text": None,
        "error_message": None,
        "processed_at": None,
    }


def mark_completed(current, text: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    check_transition(current, DocumentStatus.COMPLETED)
    if text is None:
        raise InvalidStatusTransition("A completed document needs extracted text")
    return {
        "status": DocumentStatus.COMPLETED.value,
        "extracted_text": text,
        "error_message": None,
        "processed_at": now or datetime.now(timezone.utc),
    }


def mark_failed(current, message: str) -> Dict[str, Any]:
    # processed_at stays unset; it records successful processing only
    check_transition(current, DocumentStatus.ERROR)
    return {
        "status": DocumentStatus.ERROR.value,
        "extracted_text": None,
        "error_message": message or "Unknown extraction error",
    }


def external_update(
    current_status,
    current_text: Optional[str],
    current_error: Optional[str] = None,
    status=None,
    extracted_text: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Patch for an owner-initiated update of status and/or text.

    Any status may be requested. Text can only live on a completed document;
    asking for `completed` without text (new or existing) is rejected.
    """
    now = now or datetime.now(timezone.utc)
    target = DocumentStatus(status) if status is not None else DocumentStatus(current_status)

    if target is DocumentStatus.COMPLETED:
        text = extracted_text if extracted_text is not None else current_text
        if text is None:
            raise InvalidStatusTransition("extractedText is required for a completed document")
        patch = {"status": target.value, "extracted_text": text, "error_message": None}
        if DocumentStatus(current_status) is not DocumentStatus.COMPLETED:
            patch["processed_at"] = now
        return patch

    if extracted_text is not None:
        raise InvalidStatusTransition(
            f"extractedText cannot be set on a document in '{target.value}' status"
        )

    if target is DocumentStatus.ERROR:
        patch = {
            "status": target.value,
            "extracted_text": None,
            "error_message": current_error or OWNER_MARKED_ERROR,
        }
        if DocumentStatus(current_status) is not DocumentStatus.ERROR:
            patch["processed_at"] = None
        return patch

    return initial_state()
