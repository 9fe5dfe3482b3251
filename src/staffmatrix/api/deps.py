from __future__ import annotations

from collections.abc import Sequence
from functools import partial

from fastapi import Request, UploadFile

from staffmatrix.config import get_settings
from staffmatrix.core.documents import DocumentPayload, PendingDocument, document_from_bytes
from staffmatrix.core.session import StaffingSession
from staffmatrix.errors import UnsupportedDocumentError


def get_staffing(request: Request) -> StaffingSession:
    return request.app.state.staffing


def read_upload(upload: UploadFile) -> DocumentPayload:
    limit = get_settings().max_upload_bytes
    filename = upload.filename or "upload"
    content = upload.file.read(limit + 1)
    if len(content) > limit:
        raise UnsupportedDocumentError(f"{filename}: file exceeds {limit} bytes")
    return document_from_bytes(filename, content, upload.content_type)


def pending_uploads(uploads: Sequence[UploadFile]) -> list[PendingDocument]:
    # each upload is read when its turn in the batch comes
    return [
        PendingDocument(filename=upload.filename or "upload", reader=partial(read_upload, upload))
        for upload in uploads
    ]
