"""File ingestion: turn images, PDFs, Word documents and text into attachments.

Each file is classified once, then handed to the reader registered for its
classification. Images become base64 data URLs; everything else becomes
plain text. Any failure surfaces as exactly one ``AttachmentError`` for that
file, and no half-built attachment is ever returned.
"""

from __future__ import annotations

import asyncio
import base64
from collections.abc import Callable, Sequence
from enum import Enum
import io
import logging
import mimetypes
from pathlib import Path

import docx
from pypdf import PdfReader

from .exceptions import AttachmentError
from .messages import Attachment, AttachmentKind

LOGGER = logging.getLogger(__name__)


class FileKind(str, Enum):
    """Extraction path chosen for a file."""

    IMAGE = "image"
    PDF = "pdf"
    DOCX = "docx"
    TEXT = "text"


def guess_mime(name: str) -> str:
    mime, _ = mimetypes.guess_type(name)
    return mime or "application/octet-stream"


def classify(name: str, mime: str | None = None) -> FileKind:
    """Pick the extraction path from MIME type first, then file extension."""
    mime = (mime or guess_mime(name)).lower()
    if mime.startswith("image/"):
        return FileKind.IMAGE
    if mime == "application/pdf":
        return FileKind.PDF
    if name.lower().endswith(".docx"):
        return FileKind.DOCX
    return FileKind.TEXT


def image_to_data_url(data: bytes, mime: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def extract_pdf_text(data: bytes) -> str:
    """Concatenate page text in order, one ``--- Page N ---`` marker per page."""
    reader = PdfReader(io.BytesIO(data))
    chunks: list[str] = []
    for number, page in enumerate(reader.pages, start=1):
        page_text = page.extract_text() or ""
        chunks.append(f"--- Page {number} ---\n{page_text}\n\n")
    return "".join(chunks).strip()


def extract_docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def decode_text(data: bytes) -> str:
    """Decode as UTF-8; invalid byte sequences become U+FFFD."""
    return data.decode("utf-8", errors="replace")


# (result kind, reader taking raw bytes and MIME type)
_READERS: dict[FileKind, tuple[AttachmentKind, Callable[[bytes, str], str]]] = {
    FileKind.IMAGE: (AttachmentKind.IMAGE, image_to_data_url),
    FileKind.PDF: (AttachmentKind.TEXT, lambda data, _mime: extract_pdf_text(data)),
    FileKind.DOCX: (AttachmentKind.TEXT, lambda data, _mime: extract_docx_text(data)),
    FileKind.TEXT: (AttachmentKind.TEXT, lambda data, _mime: decode_text(data)),
}


def build_attachment(name: str, data: bytes, mime: str | None = None) -> Attachment:
    """Convert already-read file contents into an attachment."""
    mime = mime or guess_mime(name)
    kind = classify(name, mime)
    attachment_kind, reader = _READERS[kind]
    try:
        payload = reader(data, mime)
    except Exception as exc:  # noqa: BLE001 - third-party parsers raise many types.
        LOGGER.info(
            "ingest.decode_failed",
            extra={
                "event": "ingest.decode_failed",
                "file_name": name,
                "file_kind": kind.value,
                "error_type": type(exc).__name__,
            },
        )
        raise AttachmentError(name, exc) from exc
    return Attachment(name=name, kind=attachment_kind, payload=payload)


class FileIngestor:
    """Validate, read and convert local files into pending attachments."""

    def __init__(
        self,
        *,
        max_image_bytes: int = 10 * 1024 * 1024,
        max_file_bytes: int = 2 * 1024 * 1024,
    ) -> None:
        self.max_image_bytes = max_image_bytes
        self.max_file_bytes = max_file_bytes

    def _read(self, path: Path) -> bytes:
        name = path.name
        try:
            resolved = path.expanduser().resolve()
            if not resolved.exists():
                raise AttachmentError(name, FileNotFoundError(str(path)))
            if not resolved.is_file():
                raise AttachmentError(name, IsADirectoryError(str(path)))
            limit = (
                self.max_image_bytes
                if classify(name) is FileKind.IMAGE
                else self.max_file_bytes
            )
            size = resolved.stat().st_size
            if size > limit:
                raise AttachmentError(
                    name, f"file too large (max {limit / (1024 * 1024):.1f}MB)"
                )
            return resolved.read_bytes()
        except AttachmentError:
            raise
        except OSError as exc:
            raise AttachmentError(name, exc) from exc

    def ingest_path(self, path: str | Path) -> Attachment:
        """Blocking ingestion of a single file."""
        target = Path(path)
        data = self._read(target)
        attachment = build_attachment(target.name, data)
        LOGGER.info(
            "ingest.complete",
            extra={
                "event": "ingest.complete",
                "file_name": attachment.name,
                "kind": attachment.kind.value,
                "bytes": len(data),
            },
        )
        return attachment

    async def ingest(self, path: str | Path) -> Attachment:
        """Ingest a file without blocking the event loop."""
        return await asyncio.to_thread(self.ingest_path, path)

    async def ingest_many(
        self, paths: Sequence[str | Path]
    ) -> tuple[list[Attachment], list[AttachmentError]]:
        """Ingest files concurrently; results keep the input order.

        A failing file is reported in the error list and does not stop the
        others.
        """
        results = await asyncio.gather(
            *(self.ingest(path) for path in paths), return_exceptions=True
        )
        attachments: list[Attachment] = []
        errors: list[AttachmentError] = []
        for path, result in zip(paths, results):
            if isinstance(result, Attachment):
                attachments.append(result)
            elif isinstance(result, AttachmentError):
                errors.append(result)
            elif isinstance(result, BaseException):
                errors.append(AttachmentError(Path(path).name, result))
        return attachments, errors
