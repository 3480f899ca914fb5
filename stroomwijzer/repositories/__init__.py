"""
Repository package for data access layer.
"""

from .base_repository import BaseProfileRepository
from .profile_repository import SqliteProfileRepository

__all__ = [
    "BaseProfileRepository",
    "SqliteProfileRepository"
]
