"""ValidationReportFacade — persistence and paged lookup of validation reports.

Stateless service that receives the report model at construction and a
session at call time.
"""

from __future__ import annotations

import logging
import operator
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import func, select

from dfsops.facades.base import (
    CollectionInfo,
    FilterBy,
    SortBy,
    SortDirection,
    epoch_millis_to_datetime,
    set_offset_and_limit,
)
from dfsops.fs.exceptions import InvalidArgumentError
from dfsops.models.reports import ValidationReport

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlmodel import Session

    from dfsops.models.reports import ValidationReportBase

logger = logging.getLogger(__name__)


# The upload timestamp stands in for the time the validation ran
class Sorts(Enum):
    VALIDATION_TIME = ("VALIDATION_TIME", "validation_time", SortDirection.DESC)

    def __init__(self, label: str, column: str, default_direction: SortDirection) -> None:
        self.label = label
        self.column = column
        self.default_direction = default_direction

    def __str__(self) -> str:
        return self.label


class Filters(Enum):
    VALIDATION_TIME_GT = ("VALIDATION_TIME_GT", "validation_time", operator.gt)
    VALIDATION_TIME_LT = ("VALIDATION_TIME_LT", "validation_time", operator.lt)
    VALIDATION_TIME_EQ = ("VALIDATION_TIME_EQ", "validation_time", operator.eq)

    def __init__(self, label: str, column: str, compare: Callable[[Any, Any], Any]) -> None:
        self.label = label
        self.column = column
        self.compare = compare

    def __str__(self) -> str:
        return self.label


class ValidationReportFacade:
    """Database access for validation reports.

    Constructor receives the concrete report model so callers can use
    custom SQLModel subclasses with different table names.
    """

    Sorts = Sorts
    Filters = Filters

    def __init__(self, report_model: type[ValidationReportBase] = ValidationReport) -> None:
        self._report_model = report_model

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def persist(self, session: Session, report: ValidationReportBase) -> None:
        """Add and flush *report*.

        The insert runs in its own savepoint. A constraint violation rolls
        back only that savepoint and is logged at WARNING; it is not raised.
        Earlier work in the caller's transaction is kept.
        """
        try:
            with session.begin_nested():
                session.add(report)
                session.flush()
        except IntegrityError:
            logger.warning("Could not persist the new validation report", exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, session: Session, report_id: int) -> ValidationReportBase | None:
        return session.get(self._report_model, report_id)

    def find_by_featuregroup(
        self,
        session: Session,
        offset: int | None,
        limit: int | None,
        sorts: Iterable[SortBy] | None,
        filters: Iterable[FilterBy] | None,
        featuregroup_id: int,
    ) -> CollectionInfo[ValidationReportBase]:
        """One page of a feature group's reports plus the unpaged total.

        Filter parameters are epoch-millisecond strings.  Without sorts
        the page is ordered by id.
        """
        model = self._report_model
        conditions = [
            model.featuregroup_id == featuregroup_id,
            *self._filter_conditions(filters or ()),
        ]

        count = session.exec(select(func.count(model.id)).where(*conditions)).one()

        statement = select(model).where(*conditions).order_by(*self._order_by(sorts or ()))
        statement = set_offset_and_limit(statement, offset, limit)
        return CollectionInfo(count=count, items=list(session.exec(statement).all()))

    def find_latest_by_featuregroup(
        self, session: Session, featuregroup_id: int
    ) -> ValidationReportBase | None:
        """The report with the latest validation time, or ``None``."""
        model = self._report_model
        statement = (
            select(model)
            .where(model.featuregroup_id == featuregroup_id)
            .order_by(model.validation_time.desc(), model.id.desc())  # type: ignore[union-attr]
            .limit(1)
        )
        return session.exec(statement).first()

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def _filter_conditions(self, filters: Iterable[FilterBy]) -> list[Any]:
        conditions = []
        for f in filters:
            if not isinstance(f.value, Filters):
                raise InvalidArgumentError(f"Unsupported validation report filter: {f.value}")
            column = getattr(self._report_model, f.value.column)
            conditions.append(f.value.compare(column, epoch_millis_to_datetime(f.param)))
        return conditions

    def _order_by(self, sorts: Iterable[SortBy]) -> list[Any]:
        clauses = []
        for s in sorts:
            if not isinstance(s.value, Sorts):
                raise InvalidArgumentError(f"Unsupported validation report sort: {s.value}")
            column = getattr(self._report_model, s.value.column)
            direction = s.direction or s.value.default_direction
            clauses.append(column.desc() if direction is SortDirection.DESC else column.asc())
        if not clauses:
            clauses.append(self._report_model.id)
        return clauses
