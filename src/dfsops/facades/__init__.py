"""Entity facades — session-per-call query services over the SQLModel tables."""

from dfsops.facades.base import CollectionInfo, FilterBy, SortBy, SortDirection
from dfsops.facades.validation_reports import ValidationReportFacade

__all__ = [
    "CollectionInfo",
    "FilterBy",
    "SortBy",
    "SortDirection",
    "ValidationReportFacade",
]
