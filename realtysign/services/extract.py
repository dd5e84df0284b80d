"""Text extraction from uploaded agreements (PDF, TXT)."""

from __future__ import annotations

from io import BytesIO
from pathlib import Path

ALLOWED_EXTENSIONS = {".pdf", ".txt"}


def extract_text(filename: str, content: bytes) -> str:
    """Extract plain text from file bytes based on the file extension.

    Raises:
        ValueError: If the file extension is not supported or the bytes
            cannot be read as that type.
    """
    ext = Path(filename).suffix.lower()

    if ext == ".txt":
        return content.decode("utf-8", errors="replace")

    if ext == ".pdf":
        return _extract_pdf(content)

    raise ValueError(f"Unsupported file type: {ext}")


def _extract_pdf(content: bytes) -> str:
    from pypdf import PdfReader
    from pypdf.errors import PdfReadError

    try:
        reader = PdfReader(BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except PdfReadError as exc:
        raise ValueError(f"Unreadable PDF: {exc}") from exc
    return "\n".join(pages)
