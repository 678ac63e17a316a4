from __future__ import annotations

import io
import logging

import docx
import pypdf

from brief_analyzer.errors import EmptyContent, InvalidBriefInput, UnsupportedFormat

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT = "text/plain"

SUPPORTED_MIME_TYPES = (PDF, DOCX, TEXT)


def _pdf_text(content: bytes) -> str:
    reader = pypdf.PdfReader(io.BytesIO(content))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _docx_text(content: bytes) -> str:
    document = docx.Document(io.BytesIO(content))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _plain_text(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


_READERS = {
    PDF: _pdf_text,
    DOCX: _docx_text,
    TEXT: _plain_text,
}


class TextExtractor:
    """Turns uploaded bytes into trimmed, non-empty text."""

    def extract(self, content: bytes, mime_type: str) -> str:
        reader = _READERS.get(mime_type)
        if reader is None:
            raise UnsupportedFormat(f"Unsupported file type: {mime_type}")

        try:
            text = reader(content)
        except Exception as exc:
            logger.error("Error extracting text from %s upload: %s", mime_type, exc)
            raise InvalidBriefInput(f"Failed to extract text from file: {exc}") from exc

        text = text.strip()
        if not text:
            raise EmptyContent("No text content found in file")

        logger.info("Extracted %d characters from %s upload", len(text), mime_type)
        return text
