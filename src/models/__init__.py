"""
Database models for Sentinel Auth.

This module exports all SQLAlchemy models and the declarative base.
Import models from this module to ensure proper initialization.
"""

from models.base import Base
from models.enums import AuthProvider, UserRole, UserStatus
from models.mixins import TimestampMixin
from models.types import TZDateTime
from models.user import User

__all__ = [
    # Base
    "Base",
    "TZDateTime",
    # Mixins
    "TimestampMixin",
    # User models
    "User",
    "UserRole",
    "UserStatus",
    "AuthProvider",
]
