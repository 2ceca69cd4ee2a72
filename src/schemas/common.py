"""
Common Pydantic schemas for API request/response handling.

This module provides:
- CamelModel: camelCase JSON keys, snake_case accepted on input
- ApiResponse: the success envelope {success, message, data}
- Pagination parameters
"""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Type variable for generic response payloads
DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Base model for every API schema."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StrictCamelModel(CamelModel):
    """Request body base: unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")


class ApiResponse(CamelModel, Generic[DataT]):
    """
    Success envelope returned by every route.

    Example:
        {"success": true, "message": "Login successful", "data": {...}}
    """

    success: bool = True
    message: str
    data: DataT | None = None


class PaginationParams(BaseModel):
    """
    Query parameters for paginated list endpoints.

    Attributes:
        page: Page number (1-indexed)
        limit: Number of items per page (max 100)
    """

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(default=10, ge=1, le=100, description="Items per page (max 100)")

    @property
    def offset(self) -> int:
        """
        Calculate SQL OFFSET from page number.

        Example:
            >>> PaginationParams(page=2, limit=10).offset
            10
        """
        return (self.page - 1) * self.limit

    @staticmethod
    def calculate_total_pages(total: int, limit: int) -> int:
        """
        Calculate total pages from total count.

        Example:
            >>> PaginationParams.calculate_total_pages(25, 10)
            3
        """
        return math.ceil(total / limit) if limit > 0 else 0
