"""Response envelope shared by every endpoint."""

from typing import Any, List, Optional

from pydantic import BaseModel


class APIResponse(BaseModel):
    """Every JSON response carries ``success`` and an optional ``message``."""

    success: bool = True
    message: Optional[str] = None


class ErrorResponse(APIResponse):
    success: bool = False
    errors: Optional[List[Any]] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool
