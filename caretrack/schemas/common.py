"""Shared schema pieces."""

from pydantic import BaseModel, Field

from caretrack.utils.pagination import DEFAULT_LIMIT, MAX_LIMIT


class ListParams(BaseModel):
    """Offset pagination accepted by every list operation."""
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    offset: int = Field(0, ge=0)


class SearchParams(BaseModel):
    """Free-text search request."""
    search_term: str = Field(..., max_length=200)
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
