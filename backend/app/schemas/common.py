import math
from typing import Generic, TypeVar, List
from pydantic import BaseModel

T = TypeVar("T")

# Keeps (page - 1) * page_size inside a 64-bit OFFSET
MAX_PAGE = 100_000

class BaseResponse(BaseModel):
    """Base response model."""
    pass

class PaginatedResponse(BaseResponse, Generic[T]):
    """Standard pagination response."""
    items: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def build(cls, items: List[T], total: int, page: int, page_size: int):
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if page_size else 0,
        )
