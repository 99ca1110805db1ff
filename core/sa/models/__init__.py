# core/sa/models/__init__.py
from .base import Base, TimestampMixin
from .snapshot import AppSnapshot

__all__ = [
    'Base',
    'TimestampMixin',
    'AppSnapshot'
]
