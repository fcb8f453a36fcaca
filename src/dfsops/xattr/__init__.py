"""Attribute documents stored in filesystem xattrs."""

from dfsops.xattr.featuregroup import (
    XATTR_NAME,
    FGType,
    FullDTO,
    SimpleFeatureDTO,
    SimplifiedDTO,
)

__all__ = [
    "XATTR_NAME",
    "FGType",
    "FullDTO",
    "SimpleFeatureDTO",
    "SimplifiedDTO",
]
