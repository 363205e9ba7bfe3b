from typing import Generic, List, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class ListResponse(BaseModel, Generic[T]):
    """Envelope returned by every list endpoint."""
    total_data: int
    total_page: int
    current_page: int
    per_page: int
    available_sort: List[str]
    available_search: List[str]
    data: List[T]
