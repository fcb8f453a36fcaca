"""Feature-group xattr documents.

Two shapes are stored on feature-group directories: ``FullDTO`` on the
feature group's own directory and ``SimplifiedDTO`` where only a
back-reference is needed.  Both serialize to the compact JSON bytes
passed to ``DistributedFileSystemOps.set_xattr``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

FEATURESTORE_ID = "featurestore_id"
DESCRIPTION = "description"
CREATE_DATE = "create_date"
CREATOR = "creator"
FG_TYPE = "fg_type"
FG_FEATURES = "fg_features"
NAME = "name"
VERSION = "version"

XATTR_NAME = "user.featurestore.featuregroup"
"""Name the full document is stored under."""


class FGType(str, Enum):
    ON_DEMAND = "ON_DEMAND"
    CACHED = "CACHED"
    STREAM = "STREAM"


class _XAttrDocument(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    featurestore_id: int = Field(alias=FEATURESTORE_ID)

    def to_xattr(self) -> bytes:
        """Compact JSON bytes keyed by the wire field names."""
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def from_xattr(cls, value: bytes | str):
        return cls.model_validate_json(value)


class SimpleFeatureDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str | None = None


class FullDTO(_XAttrDocument):
    """Everything the feature store records about a feature group."""

    description: str | None = Field(default=None, alias=DESCRIPTION)
    create_date: int | None = Field(default=None, alias=CREATE_DATE)
    """Creation time in epoch milliseconds."""
    creator: str | None = Field(default=None, alias=CREATOR)
    fg_type: FGType | None = Field(default=None, alias=FG_TYPE)
    features: tuple[SimpleFeatureDTO, ...] = Field(default=(), alias=FG_FEATURES)

    @classmethod
    def build(
        cls,
        featurestore_id: int,
        description: str | None,
        created: datetime,
        creator: str | None,
        features: list[SimpleFeatureDTO] | None = None,
        fg_type: FGType | None = None,
    ) -> FullDTO:
        """Build from a ``datetime`` creation time (naive values are read as UTC)."""
        if created.tzinfo is None:
            created = created.replace(tzinfo=UTC)
        return cls(
            featurestore_id=featurestore_id,
            description=description,
            create_date=int(created.timestamp() * 1000),
            creator=creator,
            fg_type=fg_type,
            features=tuple(features or ()),
        )

    @property
    def created(self) -> datetime | None:
        if self.create_date is None:
            return None
        return datetime.fromtimestamp(self.create_date / 1000, tz=UTC)

    def with_features(self, *features: SimpleFeatureDTO) -> FullDTO:
        """Copy with *features* appended."""
        return self.model_copy(update={"features": (*self.features, *features)})


class SimplifiedDTO(_XAttrDocument):
    """Name, version and feature names plus the owning feature store."""

    name: str = Field(alias=NAME)
    version: int = Field(alias=VERSION)
    features: tuple[str, ...] = Field(default=(), alias=FG_FEATURES)
