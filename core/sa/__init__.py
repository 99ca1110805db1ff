# core/sa/__init__.py
from .database import Database
from .models import Base, AppSnapshot
from .repositories import SnapshotRepository

__all__ = [
    'Database',
    'Base',
    'AppSnapshot',
    'SnapshotRepository'
]
