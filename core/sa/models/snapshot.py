# core/sa/models/snapshot.py
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin

class AppSnapshot(Base, TimestampMixin):
    """One serialized AppState document stored under a fixed key"""
    __tablename__ = 'app_snapshot'

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self):
        return f"<AppSnapshot(key='{self.key}', bytes={len(self.payload or '')})>"
