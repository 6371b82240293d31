# Overview: Service-layer operations for durable client storage of the bearer credential.

"""
Credential Storage Service

The persisted credential is a single string stored under a fixed key
(CREDENTIAL_STORAGE_KEY, default "jwt_token") in the client_storage table.
It survives restarts and is removed on logout or decode failure.

All methods need an application context (they use db.session).
"""

from __future__ import annotations

from ..extensions import db
from ..models import ClientStorageEntry
from storefront.time_utils import utcnow


class CredentialStorage:
    """Get/set/remove one string value under a fixed storage key."""

    def __init__(self, key: str):
        self.key = key

    def get(self) -> str | None:
        entry = db.session.query(ClientStorageEntry).filter_by(key=self.key).first()
        return entry.value if entry else None

    def set(self, value: str) -> None:
        entry = db.session.query(ClientStorageEntry).filter_by(key=self.key).first()
        if entry is None:
            entry = ClientStorageEntry(key=self.key, value=value)
            db.session.add(entry)
        else:
            entry.value = value
            entry.updated_at = utcnow()
        db.session.commit()

    def remove(self) -> bool:
        """Delete the stored value. Returns True if something was removed."""
        deleted = db.session.query(ClientStorageEntry).filter_by(key=self.key).delete()
        db.session.commit()
        return bool(deleted)
