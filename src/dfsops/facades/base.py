"""Sort/filter DSL and paging helpers shared by entity facades.

A facade declares its sortable fields and filters as enums.  Callers pass
``SortBy`` / ``FilterBy`` values built from those enums; the facade turns
them into ``ORDER BY`` / ``WHERE`` clauses on a SQLModel ``select``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

from dfsops.fs.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from sqlmodel.sql.expression import SelectOfScalar

T = TypeVar("T")


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# ------------------------------------------------------------------
# Sort / filter values
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SortBy:
    """One ORDER BY request.

    Attributes:
        value: A member of the facade's ``Sorts`` enum.
        direction: ``ASC`` / ``DESC``, or ``None`` for the sort's default.
    """

    value: Enum
    direction: SortDirection | None = None


@dataclass(frozen=True, slots=True)
class FilterBy:
    """One WHERE request.

    Attributes:
        value: A member of the facade's ``Filters`` enum.
        param: The raw parameter as it came from the caller.
    """

    value: Enum
    param: str


@dataclass
class CollectionInfo(Generic[T]):
    """A page of results plus the total count across all pages."""

    count: int
    items: list[T] = field(default_factory=list)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def epoch_millis_to_datetime(value: str) -> datetime:
    """Parse an epoch-millisecond string into a UTC datetime."""
    try:
        millis = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"Expected epoch milliseconds, got {value!r}") from None
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


def set_offset_and_limit(
    statement: SelectOfScalar[T],
    offset: int | None,
    limit: int | None,
) -> SelectOfScalar[T]:
    """Apply paging; ``None`` or negative values leave that side unbounded."""
    if offset is not None and offset > 0:
        statement = statement.offset(offset)
    if limit is not None and limit > 0:
        statement = statement.limit(limit)
    return statement
