from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Optional

import fitz  # PyMuPDF

from .logger import get_logger

logger = get_logger(__name__)


class PDFExtractionError(Exception):
    pass


def _read_text(content: bytes) -> str:
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except Exception as e:
        raise PDFExtractionError(f"Could not open PDF: {e}") from e

    try:
        if doc.needs_pass:
            raise PDFExtractionError("PDF is password protected")
        text = ""
        for page in doc:
            text += page.get_text()
    finally:
        doc.close()

    text = text.strip()
    if not text:
        raise PDFExtractionError("PDF has no extractable text layer")
    return text


def extract_text(content: bytes, timeout: Optional[float] = None) -> str:
    """
    Plain text of every page, trimmed.

    Raises PDFExtractionError for corrupt, encrypted or image-only PDFs, and
    when `timeout` seconds pass before extraction finishes.
    """
    if timeout is None:
        return _read_text(content)

    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(_read_text, content)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning(f"PDF extraction exceeded {timeout}s, abandoning")
        raise PDFExtractionError(f"PDF extraction timed out after {timeout:g}s")
    finally:
        # Don't wait on a runaway parse; the worker finishes on its own
        pool.shutdown(wait=False)
