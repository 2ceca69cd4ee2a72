"""
Enums for the user model.

This module defines:
- UserRole: Authorization level (USER < ADMIN < SUPER_ADMIN)
- UserStatus: Account state; only ACTIVE accounts may use the API
- AuthProvider: How the account signs in

Stored as database ENUM types and serialized by value in the API.
"""

import enum


class UserRole(str, enum.Enum):
    """
    Authorization roles.

    Attributes:
        USER: Regular account, self-service routes only
        ADMIN: Can manage users
        SUPER_ADMIN: Can manage users and roles; cannot be deleted or blocked
    """

    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class UserStatus(str, enum.Enum):
    """Account states. Anything but ACTIVE is refused at authentication."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BLOCKED = "BLOCKED"
    PENDING = "PENDING"


class AuthProvider(str, enum.Enum):
    """Sign-in providers."""

    LOCAL = "LOCAL"
    GOOGLE = "GOOGLE"
