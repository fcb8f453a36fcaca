"""SQLModel database models for dfsops."""

from dfsops.models.reports import IngestionResult, ValidationReport, ValidationReportBase

__all__ = [
    "IngestionResult",
    "ValidationReport",
    "ValidationReportBase",
]
