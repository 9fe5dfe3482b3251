from __future__ import annotations

import base64
import binascii
import mimetypes
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from staffmatrix.errors import UnsupportedDocumentError

PDF = "application/pdf"
TEXT = "text/plain"
SUPPORTED_MEDIA_TYPES = {PDF, TEXT}


@dataclass(frozen=True, slots=True)
class DocumentPayload:
    """One uploaded document, ready to be sent inline to the completion service.

    Binary content is carried base64-encoded; pasted text is carried as-is with
    ``mime_type`` set to ``text/plain`` and ``text`` populated.
    """

    filename: str
    mime_type: str
    data: str = ""
    text: str | None = None

    @property
    def is_text(self) -> bool:
        return self.mime_type == TEXT

    def as_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def load(self) -> DocumentPayload:
        return self

    def decoded_text(self) -> str:
        if self.text is not None:
            return self.text
        try:
            return base64.b64decode(self.data).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as exc:
            raise UnsupportedDocumentError(f"{self.filename}: invalid base64 payload") from exc


@dataclass(frozen=True, slots=True)
class PendingDocument:
    """A document that is only read when a batch reaches it."""

    filename: str
    reader: Callable[[], DocumentPayload]

    def load(self) -> DocumentPayload:
        return self.reader()


DocumentSource = DocumentPayload | PendingDocument


def detect_media_type(filename: str, content_type: str | None = None) -> str:
    if content_type:
        value = content_type.split(";", 1)[0].strip().lower()
        if value in SUPPORTED_MEDIA_TYPES:
            return value

    guessed, _ = mimetypes.guess_type(filename)
    if guessed in SUPPORTED_MEDIA_TYPES:
        return guessed

    raise UnsupportedDocumentError(
        f"{filename}: unsupported document type {content_type or guessed or 'unknown'}; "
        "expected PDF or plain text"
    )


def document_from_bytes(filename: str, content: bytes, content_type: str | None = None) -> DocumentPayload:
    if not content:
        raise UnsupportedDocumentError(f"{filename}: empty file")
    mime_type = detect_media_type(filename, content_type)
    return DocumentPayload(
        filename=filename,
        mime_type=mime_type,
        data=base64.b64encode(content).decode("ascii"),
    )


def document_from_path(path: Path) -> DocumentPayload:
    return document_from_bytes(path.name, path.read_bytes())


def pending_document_from_path(path: Path) -> PendingDocument:
    return PendingDocument(filename=path.name, reader=lambda: document_from_path(path))


def document_from_text(text: str, filename: str = "pasted-text.txt") -> DocumentPayload:
    if not text.strip():
        raise UnsupportedDocumentError(f"{filename}: empty text")
    return DocumentPayload(
        filename=filename,
        mime_type=TEXT,
        data=base64.b64encode(text.encode("utf-8")).decode("ascii"),
        text=text,
    )
