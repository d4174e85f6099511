"""Pagination limits for list operations."""

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
RECENT_LIMIT = 10
