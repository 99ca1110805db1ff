# core/sa/repositories/snapshot.py
from typing import Optional
from datetime import datetime, UTC
from sqlalchemy.orm import Session
from core.sa.models import AppSnapshot

class SnapshotRepository:
    """Repository for the single-document state slots."""

    def __init__(self, session: Session):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get(self, key: str) -> Optional[AppSnapshot]:
        """Get the snapshot stored under a key.

        Args:
            key: Storage slot name

        Returns:
            The AppSnapshot if found, None otherwise
        """
        return self.session.get(AppSnapshot, key)

    def get_payload(self, key: str) -> Optional[str]:
        snapshot = self.get(key)
        return snapshot.payload if snapshot else None

    def put(self, key: str, payload: str) -> AppSnapshot:
        """Create or overwrite the snapshot stored under a key.

        Args:
            key: Storage slot name
            payload: Serialized state document

        Returns:
            The stored AppSnapshot
        """
        snapshot = self.get(key)
        if snapshot is None:
            snapshot = AppSnapshot(key=key, payload=payload)
            self.session.add(snapshot)
        else:
            snapshot.payload = payload
            snapshot.updated_at = datetime.now(UTC)
        self.session.flush()
        return snapshot

    def delete(self, key: str) -> bool:
        """Delete the snapshot stored under a key.

        Returns:
            True if a snapshot was deleted, False if not found
        """
        result = (
            self.session.query(AppSnapshot)
            .filter(AppSnapshot.key == key)
            .delete()
        )
        self.session.flush()
        return result > 0
