"""
Credential hashing and password policy.

This module provides:
- Password hashing with Argon2id (NIST-recommended, OWASP 2025 standard)
- Thread-offloaded async wrappers so hashing never blocks the event loop
- Password strength validation
- Password reset token generation and SHA-256 digests
"""

import asyncio
import hashlib
import re
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import (
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from core.config import Settings


# =============================================================================
# Password Hashing with Argon2id
# =============================================================================
# Argon2id is memory-hard (64MB vs bcrypt's 4KB) and resistant to GPU/ASIC
# attacks. Hashing costs tens of milliseconds of CPU, so request handlers
# must use the *_async methods.
# =============================================================================


class CredentialHasher:
    """
    One-way password hashing and verification.

    Wraps an argon2 PasswordHasher configured from Settings. The digest
    string carries algorithm, parameters and salt, so verification works
    across parameter changes.

    Example:
        >>> hasher = CredentialHasher.from_settings(settings)
        >>> digest = await hasher.hash_async("S3cure!pass")
        >>> await hasher.verify_async("S3cure!pass", digest)
        True
    """

    def __init__(self, hasher: PasswordHasher):
        self._hasher = hasher

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialHasher":
        """
        Build a hasher using the Argon2 parameters from settings.

        Args:
            settings: Application settings

        Returns:
            Configured CredentialHasher
        """
        return cls(
            PasswordHasher(
                time_cost=settings.argon2_time_cost,
                memory_cost=settings.argon2_memory_cost,
                parallelism=settings.argon2_parallelism,
                hash_len=32,  # 32-byte output
                salt_len=16,  # 16-byte salt
            )
        )

    def hash(self, password: str) -> str:
        """
        Hash a password using Argon2id.

        Args:
            password: Plain text password to hash

        Returns:
            Argon2id hash string (includes algorithm, parameters, salt, and hash)
        """
        return self._hasher.hash(password)

    def verify(self, password: str, hashed_password: str | None) -> bool:
        """
        Verify a password against an Argon2id hash.

        Never raises: a missing or malformed digest simply does not match.

        Args:
            password: Plain text password to verify
            hashed_password: Argon2id hash to verify against

        Returns:
            True if password matches hash, False otherwise
        """
        if not hashed_password:
            return False
        try:
            return self._hasher.verify(hashed_password, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    async def hash_async(self, password: str) -> str:
        """Hash on a worker thread."""
        return await asyncio.to_thread(self.hash, password)

    async def verify_async(self, password: str, hashed_password: str | None) -> bool:
        """Verify on a worker thread."""
        return await asyncio.to_thread(self.verify, password, hashed_password)


# Characters accepted as "special" by the password policy
SPECIAL_CHARACTERS = r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]"


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    """
    Validate password strength against security requirements.

    Requirements:
    - 8 to 100 characters
    - At least 1 lowercase letter
    - At least 1 uppercase letter
    - At least 1 digit
    - At least 1 special character

    Args:
        password: Password to validate

    Returns:
        Tuple of (is_valid, error_message)
        - (True, None) if valid
        - (False, error_message) if invalid

    Example:
        >>> validate_password_strength("weak")
        (False, "Password must be at least 8 characters")
        >>> validate_password_strength("StrongP@ss123")
        (True, None)
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters"

    if len(password) > 100:
        return False, "Password cannot exceed 100 characters"

    if not re.search(r"[a-z]", password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r"[A-Z]", password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r"\d", password):
        return False, "Password must contain at least one number"

    if not re.search(SPECIAL_CHARACTERS, password):
        return False, "Password must contain at least one special character"

    return True, None


# =============================================================================
# Password Reset Tokens
# =============================================================================
# Only the SHA-256 digest is stored. The plaintext token carries 256 bits of
# entropy, so an unsalted fast hash is sufficient.
# =============================================================================


def generate_reset_token() -> str:
    """
    Generate a password reset token.

    Returns:
        64 hex characters (32 random bytes)
    """
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    """
    Hash a password reset token using SHA-256.

    Args:
        token: Plaintext reset token

    Returns:
        SHA-256 hash of the token (hex string)
    """
    return hashlib.sha256(token.encode()).hexdigest()
