import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    UNAVAILABLE = "unavailable"


@dataclass
class ServiceResult:
    """
    Outcome of a service call. Services never raise persistence or
    identity-provider exceptions to their callers; they return one of these.
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    is_update: bool = False

    @classmethod
    def ok(cls, data=None, message=None, is_update=False):
        return cls(True, data=data, message=message, is_update=is_update)

    @classmethod
    def fail(cls, kind, error):
        return cls(False, error=error, kind=kind)


# =================================
#         Helper Functions
# =================================


def round_rating(value):
    """Rounds half-up to one decimal place; None becomes 0."""
    if not value:
        return 0
    return math.floor(float(value) * 10 + 0.5) / 10


def resolve_sort(sort_fields, sort_by, sort_order):
    """
    Maps an API sort field/direction onto an ORDER BY clause.
    Returns None for unknown fields or directions.
    """
    column = sort_fields.get(sort_by)
    if column is None or sort_order not in ("asc", "desc"):
        return None
    return column.desc() if sort_order == "desc" else column.asc()


# SQL OFFSET is a signed 64-bit integer
MAX_OFFSET = 2**63 - 1


def page_out_of_range(page, page_size):
    return (page - 1) * page_size > MAX_OFFSET


def paginate(query, page, page_size):
    """
    Runs a Flask-SQLAlchemy paginated query and returns the items with the
    pagination descriptor used by every list endpoint.
    """
    pagination = query.paginate(page=page, per_page=page_size, error_out=False)
    skip = (page - 1) * page_size
    descriptor = {
        "currentPage": page,
        "totalPages": math.ceil(pagination.total / page_size),
        "totalCount": pagination.total,
        "hasNextPage": skip + len(pagination.items) < pagination.total,
        "hasPrevPage": page > 1,
    }
    return pagination.items, descriptor
