from __future__ import annotations

from ..extensions import db
from stockbook.time_utils import to_utc_z


class FileAttachment(db.Model):
    """
    Media attached to another record, addressed by (model_name, document_id).

    The binary lives on disk under UPLOAD_FOLDER; this row is the index.
    """
    __tablename__ = "file_attachments"
    __table_args__ = (
        db.Index("ix_file_attachments_document", "model_name", "document_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    model_name = db.Column(db.String(64), nullable=False)
    document_id = db.Column(db.String(64), nullable=False)

    original_name = db.Column(db.String(255), nullable=False)
    stored_name = db.Column(db.String(255), nullable=False, unique=True)
    content_type = db.Column(db.String(128), nullable=False)
    size_bytes = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "model_name": self.model_name,
            "document_id": self.document_id,
            "name": self.original_name,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "created_at": to_utc_z(self.created_at),
        }
