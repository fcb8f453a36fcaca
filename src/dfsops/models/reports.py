"""ValidationReport model — one data-validation run against a feature group.

Provides ``ValidationReportBase`` (non-table) and ``ValidationReport``
(concrete table).  Subclass the base with ``table=True`` and a custom
``__tablename__`` to store reports in a different table.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class IngestionResult(str, Enum):
    """What happened to the data that was validated."""

    INGESTED = "INGESTED"
    REJECTED = "REJECTED"
    EXPERIMENT = "EXPERIMENT"
    UNKNOWN = "UNKNOWN"
    FG_DATA = "FG_DATA"


class ValidationReportBase(SQLModel):
    """Base fields for a validation report. Subclass with ``table=True`` for a concrete table."""

    id: int | None = Field(default=None, primary_key=True)
    featuregroup_id: int = Field(index=True)
    validation_time: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
        index=True,
    )
    success: bool = Field(default=False)
    statistics: str = Field(default="{}")
    meta: str = Field(default="{}")
    evaluation_parameters: str = Field(default="{}")
    ingestion_result: IngestionResult = Field(default=IngestionResult.UNKNOWN)
    file_name: str | None = Field(default=None)
    """Name of the full JSON report stored on the filesystem, if any."""


class ValidationReport(ValidationReportBase, table=True):
    """Default validation report table, ``validation_report``."""

    __tablename__ = "validation_report"
