"""
Pagination primitives shared by the repository and the list endpoints.
"""
import enum
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import or_
from app.core.exceptions import BadRequestException
from app.core.constants import StatusCodeError


class SortType(str, enum.Enum):
    """Sort direction understood by the repository."""
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Paging:
    """Limit/skip window applied by DatabaseRepository.find_all."""
    limit: int
    skip: int = 0


def skip(page: int, per_page: int) -> int:
    """Number of records before the first record of ``page`` (1-based)."""
    page = max(page, 1)
    return (page - 1) * per_page


def total_page(total_data: int, per_page: int) -> int:
    if per_page <= 0:
        return 0
    return math.ceil(total_data / per_page)


def parse_sort(
    sort: Optional[str],
    available_sort: List[str],
    default: Tuple[str, SortType] = ("created_at", SortType.ASC)
) -> Dict[str, SortType]:
    """
    Parse ``field@asc`` / ``field@desc`` into a repository sort mapping.

    Raises:
        BadRequestException if the field is not in ``available_sort``
    """
    if not sort:
        return {default[0]: default[1]}

    field, _, direction = sort.partition("@")
    if field not in available_sort:
        raise BadRequestException(
            detail=f"Sort field must be one of: {', '.join(available_sort)}",
            code=StatusCodeError.REQUEST_VALIDATION_ERROR
        )

    try:
        sort_type = SortType((direction or SortType.ASC.value).lower())
    except ValueError:
        raise BadRequestException(
            detail="Sort direction must be asc or desc",
            code=StatusCodeError.REQUEST_VALIDATION_ERROR
        )

    return {field: sort_type}


def search_filter(model, search: Optional[str], available_search: List[str]):
    """Case-insensitive ``LIKE`` over the searchable columns, or None."""
    if not search:
        return None
    pattern = f"%{search}%"
    return or_(*[getattr(model, field).ilike(pattern) for field in available_search])


def build_list_response(
    *,
    page: int,
    per_page: int,
    total_data: int,
    data: List[Any],
    available_sort: List[str],
    available_search: List[str]
) -> Dict[str, Any]:
    """Envelope shared by list endpoints (see app.schemas.pagination.ListResponse)."""
    return {
        "total_data": total_data,
        "total_page": total_page(total_data, per_page),
        "current_page": page,
        "per_page": per_page,
        "available_sort": available_sort,
        "available_search": available_search,
        "data": data,
    }
