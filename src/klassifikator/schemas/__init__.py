"""
Attribute schema and dataset definitions.

Schemas are validated with pandera at every boundary where rows enter
the engine (file loading, in-memory datasets).
"""

from klassifikator.schemas.attributes import (
    AttributeDescriptor,
    AttributeKind,
    AttributeSchema,
    Dataset,
    Value,
)

__all__ = [
    "AttributeDescriptor",
    "AttributeKind",
    "AttributeSchema",
    "Dataset",
    "Value",
]
