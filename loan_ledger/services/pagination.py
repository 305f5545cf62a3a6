"""Page slicing shared by list operations."""

from typing import Sequence, TypeVar

T = TypeVar("T")


def paginate(items: Sequence[T], page: int | None = None, limit: int | None = None) -> list[T]:
    """Return the 1-based ``page`` of ``limit`` items, or everything when either is unset."""
    if not page or not limit:
        return list(items)
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")
    start = (page - 1) * limit
    return list(items[start : start + limit])
