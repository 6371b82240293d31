from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z, utcnow


class ClientStorageEntry(db.Model):
    """
    Durable client-local key/value storage.

    Holds the persisted bearer credential under a fixed key so the session
    survives restarts. One row per key.
    """
    __tablename__ = "client_storage"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True, index=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        # Values may hold credentials; only metadata is exposed.
        return {
            "key": self.key,
            "updated_at": to_utc_z(self.updated_at),
        }
