import pytest

from document_service.app.lifecycle import (
    DocumentStatus,
    InvalidStatusTransition,
    OWNER_MARKED_ERROR,
    check_transition,
    external_update,
    initial_state,
    mark_completed,
    mark_failed,
)


def test_initial_state_is_processing():
    state = initial_state()

    assert state["status"] == "processing"
    assert state["extracted_text"] is None
    assert state["error_message"] is None


@pytest.mark.parametrize("target", [DocumentStatus.COMPLETED, DocumentStatus.ERROR])
def test_processing_can_finish(target):
    check_transition(DocumentStatus.PROCESSING, target)


@pytest.mark.parametrize("current,target", [
    ("completed", "processing"),
    ("completed", "error"),
    ("error", "completed"),
    ("error", "processing"),
    ("processing", "processing"),
])
def test_invalid_transitions_rejected(current, target):
    with pytest.raises(InvalidStatusTransition):
        check_transition(current, target)


def test_mark_completed_patch():
    patch = mark_completed("processing", "some text")

    assert patch["status"] == "completed"
    assert patch["extracted_text"] == "some text"
    assert patch["error_message"] is None
    assert patch["processed_at"] is not None


def test_mark_failed_patch():
    patch = mark_failed("processing", "cannot open broken document")

    assert patch["status"] == "error"
    assert patch["error_message"] == "cannot open broken document"
    assert patch["extracted_text"] is None
    assert "processed_at" not in patch


def test_mark_completed_twice_rejected():
    with pytest.raises(InvalidStatusTransition):
        mark_completed("completed", "again")


def test_external_update_text_only_on_completed():
    patch = external_update("completed", "old", extracted_text="new")

    assert patch == {"status": "completed", "extracted_text": "new", "error_message": None}


def test_external_update_completed_needs_text():
    with pytest.raises(InvalidStatusTransition):
        external_update("error", None, "boom", status=DocumentStatus.COMPLETED)


def test_external_update_to_error_clears_text():
    patch = external_update("completed", "text", status="error")

    assert patch["status"] == "error"
    assert patch["extracted_text"] is None
    assert patch["error_message"] == OWNER_MARKED_ERROR
    assert patch["processed_at"] is None


def test_external_update_error_keeps_existing_message():
    patch = external_update("error", None, "broken xref", status="error")

    assert patch["error_message"] == "broken xref"
    assert "processed_at" not in patch


def test_external_update_text_with_error_status_rejected():
    with pytest.raises(InvalidStatusTransition):
        external_update("completed", "text", status="error", extracted_text="more")


def test_external_update_back_to_processing_resets():
    patch = external_update("completed", "text", status="processing")

    assert patch == initial_state()
