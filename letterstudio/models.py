from __future__ import annotations

from datetime import datetime

from .extensions import db


class StoredValue(db.Model):
    """One key-value pair of a workspace's letter state."""

    __tablename__ = "stored_values"

    id = db.Column(db.Integer, primary_key=True)
    namespace = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(120), nullable=False)
    value = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("namespace", "key", name="uq_stored_value_namespace_key"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<StoredValue {self.namespace}:{self.key}>"
