"""
Database repositories for Sentinel Auth.

This module exports all repository classes for database operations.
"""

from repositories.base import BaseRepository
from repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
]
