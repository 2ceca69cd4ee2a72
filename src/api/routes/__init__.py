"""
API routes for Sentinel Auth.

This package contains all API endpoint definitions organized by feature.
"""

from api.routes import auth, health, root, users

__all__ = ["auth", "health", "root", "users"]
