import time

import fitz  # PyMuPDF
import pytest

from document_service.app import extractor
from document_service.app.extractor import PDFExtractionError, extract_text


def test_extracts_and_trims_text(make_pdf):
    text = extract_text(make_pdf("  Hello from page one  "))

    assert text == "Hello from page one"


def test_extracts_every_page(make_pdf):
    text = extract_text(make_pdf("repeated line", pages=3))

    assert text.count("repeated line") == 3


def test_garbage_bytes_raise():
    with pytest.raises(PDFExtractionError):
        extract_text(b"this is a text file with a .pdf name")


def test_image_only_pdf_raises(make_pdf):
    with pytest.raises(PDFExtractionError, match="no extractable text"):
        extract_text(make_pdf(text=None))


def test_encrypted_pdf_raises(make_pdf):
    doc = fitz.open(stream=make_pdf("secret"), filetype="pdf")
    encrypted = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="user",
    )
    doc.close()

    with pytest.raises(PDFExtractionError, match="password"):
        extract_text(encrypted)


def test_timeout_raises(monkeypatch):
    def slow(content):
        time.sleep(0.5)
        return "late"

    monkeypatch.setattr(extractor, "_read_text", slow)

    with pytest.raises(PDFExtractionError, match="timed out"):
        extract_text(b"%PDF", timeout=0.05)


def test_timeout_not_hit(make_pdf):
    assert extract_text(make_pdf("quick"), timeout=10) == "quick"
