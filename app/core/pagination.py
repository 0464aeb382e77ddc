import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, limit))


def clamp_page(page: Optional[int]) -> int:
    if page is None:
        return 1
    return max(1, page)


def effective_page(page: int, limit: int, total: int) -> int:
    """Requested page clamped to the last page implied by total/limit (1 when empty)."""
    last_page = max(1, math.ceil(total / limit))
    return min(page, last_page)


class Page(BaseModel):
    items: List[Dict[str, Any]]
    total: int
    page: int
    limit: int
    has_more: bool = Field(alias="hasMore")

    class Config:
        populate_by_name = True

    @classmethod
    def empty(cls, limit: int) -> "Page":
        return cls(items=[], total=0, page=1, limit=limit, has_more=False)
