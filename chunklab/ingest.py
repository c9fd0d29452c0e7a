"""Read files from disk into SourceFile records."""

import io
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from .errors import ValidationError
from .store import SourceFile

FILE_TYPES = {
    ".txt": "text",
    ".text": "text",
    ".md": "markdown",
    ".markdown": "markdown",
    ".csv": "csv",
    ".pdf": "pdf",
}

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_file_id() -> str:
    """Random 9-character identifier."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))


def extract_pdf_text(raw: bytes) -> str:
    """Page text of a PDF, pages separated by a blank line."""
    reader = PdfReader(io.BytesIO(raw))
    pages = []
    for page in reader.pages:
        text = page.extract_text()
        if text and text.strip():
            pages.append(text.strip())
    return "\n\n".join(pages)


def load_source_file(path: str | Path) -> SourceFile:
    """
    Read a text, markdown or CSV file as UTF-8, or extract a PDF's text.

    Raises:
        ValidationError: If the suffix is unsupported or the file is unreadable
    """
    path = Path(path)
    file_type = FILE_TYPES.get(path.suffix.lower())
    if file_type is None:
        supported = ", ".join(sorted(FILE_TYPES))
        raise ValidationError(
            f"Unsupported file type '{path.suffix}' for {path.name}. Supported: {supported}"
        )

    try:
        raw = path.read_bytes()
        content = extract_pdf_text(raw) if file_type == "pdf" else raw.decode("utf-8")
    except (OSError, UnicodeDecodeError, PyPdfError) as e:
        raise ValidationError(f"Could not read {path.name}: {e}") from e

    return SourceFile(
        id=new_file_id(),
        name=path.name,
        type=file_type,
        size=len(raw),
        content=content,
        uploaded_at=datetime.now(timezone.utc).isoformat(),
    )
