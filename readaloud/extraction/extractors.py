import logging
from pathlib import Path
from typing import Callable, Dict

import docx
import fitz  # pymupdf

from readaloud.core.config import DOCX, PDF, PLAIN_TEXT
from readaloud.core.exceptions import UnsupportedDocumentType

logger = logging.getLogger(__name__)

def extract_plain_text(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8", errors="replace")

def extract_pdf(path: Path) -> str:
    doc = fitz.open(str(path))
    try:
        return "\n\n".join(page.get_text("text") for page in doc)
    finally:
        doc.close()

def extract_docx(path: Path) -> str:
    document = docx.Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)

EXTRACTORS: Dict[str, Callable[[Path], str]] = {
    PLAIN_TEXT: extract_plain_text,
    PDF: extract_pdf,
    DOCX: extract_docx,
}

def extract_text(path: Path, content_type: str) -> str:
    """
    Extract plain text from a stored upload.

    Blocking; run it in an executor from async code.

    Raises:
        UnsupportedDocumentType: no extractor for `content_type`
    """
    extractor = EXTRACTORS.get(content_type)
    if extractor is None:
        raise UnsupportedDocumentType(f"Unsupported file type: {content_type}")
    text = extractor(Path(path))
    logger.debug(f"Extracted {len(text)} chars from {content_type}", extra={"content_type": content_type})
    return text
