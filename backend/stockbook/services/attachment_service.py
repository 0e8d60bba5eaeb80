# Overview: Service-layer operations for attachments; stores uploaded files on local disk.

from __future__ import annotations

import os
import secrets
from typing import Iterable

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..extensions import db
from ..models import FileAttachment
from ..validation import ValidationError

ALLOWED_CONTENT_TYPES = {
    # Images
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    # PDF
    "application/pdf",
    # Spreadsheets
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    # Documents
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
}


def upload_dir() -> str:
    folder = current_app.config.get("UPLOAD_FOLDER", "uploads")
    if not os.path.isabs(folder):
        folder = os.path.join(current_app.instance_path, folder)
    os.makedirs(folder, exist_ok=True)
    return folder


def is_allowed_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    # "image/png; charset=binary" -> "image/png"
    return content_type.split(";", 1)[0].strip().lower() in ALLOWED_CONTENT_TYPES


def _read_upload(upload: FileStorage, max_bytes: int) -> tuple[str, str, bytes]:
    original_name = upload.filename or "upload"
    content_type = upload.mimetype or upload.content_type
    if not is_allowed_content_type(content_type):
        raise ValidationError(f"File type not allowed: {original_name}")

    data = upload.read()
    if len(data) > max_bytes:
        raise ValidationError(f"File too large: {original_name}")
    return original_name, content_type, data


def store_files(model_name: str, document_id, files: Iterable[FileStorage] | None) -> list[FileAttachment]:
    """
    Persist uploads for (model_name, document_id).

    Every file is checked before any is written, so a rejected upload leaves nothing behind.
    """
    uploads = [f for f in (files or []) if f is not None and f.filename]
    if not uploads:
        return []

    max_bytes = current_app.config.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
    checked = [_read_upload(u, max_bytes) for u in uploads]

    folder = upload_dir()
    attachments = []
    for original_name, content_type, data in checked:
        stored_name = f"{secrets.token_hex(8)}_{secure_filename(original_name) or 'file'}"
        with open(os.path.join(folder, stored_name), "wb") as fh:
            fh.write(data)

        attachment = FileAttachment(
            model_name=model_name,
            document_id=str(document_id),
            original_name=original_name,
            stored_name=stored_name,
            content_type=content_type,
            size_bytes=len(data),
        )
        db.session.add(attachment)
        attachments.append(attachment)

    db.session.commit()
    return attachments


def list_files(model_name: str, document_id) -> list[FileAttachment]:
    return (
        db.session.query(FileAttachment)
        .filter_by(model_name=model_name, document_id=str(document_id))
        .order_by(FileAttachment.id.asc())
        .all()
    )


def delete_files(model_name: str, document_id) -> int:
    """Remove rows and their files on disk. Returns how many attachments were deleted."""
    attachments = list_files(model_name, document_id)
    if not attachments:
        return 0

    folder = upload_dir()
    for attachment in attachments:
        path = os.path.join(folder, attachment.stored_name)
        if os.path.exists(path):
            os.remove(path)
        db.session.delete(attachment)

    db.session.commit()
    return len(attachments)
