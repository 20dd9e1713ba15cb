from __future__ import annotations  # Plain-text extraction from uploaded documents

import io
import logging
import zipfile
from pathlib import PurePath
from typing import Callable, Dict

import pypdf
import docx
from pypdf.errors import PdfReadError
from docx.opc.exceptions import PackageNotFoundError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".pdf", ".docx")


class ExtractionError(ValueError):  # User-facing reason an upload could not be read
    pass


def extract_text(data: bytes, filename: str) -> str:
    """Return the plain text of an uploaded ``.txt``, ``.pdf`` or ``.docx`` file.

    Raises:
        ExtractionError: If the file is empty, has an unsupported extension,
            cannot be parsed, or contains no readable text.
    """

    if not data:
        raise ExtractionError("The uploaded file is empty.")
    extension = PurePath(filename or "").suffix.lower()
    reader = _READERS.get(extension)
    if reader is None:
        raise ExtractionError("Unsupported file type. Upload a .txt, .pdf, or .docx file.")
    text = reader(data).strip()
    if not text:
        if extension == ".pdf":
            raise ExtractionError("No readable text found in this PDF. It may be a scanned image; paste the text instead.")
        raise ExtractionError("No readable text found in the uploaded file.")
    logger.info("Extracted %d chars from %s upload", len(text), extension)
    return text


def _read_txt(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _read_pdf(data: bytes) -> str:
    try:
        reader = pypdf.PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError, KeyError) as exc:
        logger.warning("PDF parsing failed: %s", exc)
        raise ExtractionError("Could not read this PDF. Try another file or paste the text.") from exc
    return "\n".join(pages)


def _read_docx(data: bytes) -> str:
    try:
        document = docx.Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, ValueError, KeyError) as exc:
        logger.warning("DOCX parsing failed: %s", exc)
        raise ExtractionError("Could not read this Word document. Try another file or paste the text.") from exc
    paragraphs = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            paragraphs.append(" | ".join(cell.text for cell in row.cells))
    return "\n".join(paragraphs)


_READERS: Dict[str, Callable[[bytes], str]] = {
    ".txt": _read_txt,
    ".pdf": _read_pdf,
    ".docx": _read_docx,
}


__all__ = ["ExtractionError", "SUPPORTED_EXTENSIONS", "extract_text"]
