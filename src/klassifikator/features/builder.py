"""
Feature vector construction.

Turns a loosely typed request mapping (attribute name -> number or
string) into a row aligned with the schema a model was trained on.
The row always has exactly one slot per schema attribute, in schema
order, so serving replays the training layout.
"""

import math
from collections.abc import Mapping
from typing import Any

from klassifikator.errors import ValidationError
from klassifikator.schemas.attributes import AttributeDescriptor, AttributeSchema, Value
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)


def _coerce_numeric(attribute: AttributeDescriptor, value: Any) -> float | None:
    """Parse a numeric feature value; None and NaN mean missing, infinities are rejected."""
    if value is None:
        return None
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value) if isinstance(value, (int, float)) else float(str(value).strip())
    except (TypeError, ValueError) as e:
        msg = f"Attribute '{attribute.name}' expects a number, got {value!r}"
        raise ValidationError(msg) from e
    if math.isnan(number):
        return None
    if not math.isfinite(number):
        msg = f"Attribute '{attribute.name}' expects a finite number, got {value!r}"
        raise ValidationError(msg)
    return number


def _coerce_categorical(value: Any) -> str | None:
    """Categorical values pass through as strings, even outside the domain."""
    if value is None:
        return None
    return str(value)


class FeatureVectorBuilder:
    """Builds schema-aligned rows from request feature maps."""

    def build(self, features: Mapping[str, Any], schema: AttributeSchema) -> list[Value]:
        """
        Build a row for the given schema.

        Every non-class attribute is looked up by name. Present values are
        coerced to the attribute kind, absent ones are marked missing. The
        class slot is always missing. Keys unknown to the schema are
        ignored.

        Args:
            features: Attribute name -> value.
            schema: Schema the target model was trained on.

        Returns:
            Row with one slot per schema attribute (None = missing).

        Raises:
            ValidationError: If features is not a mapping or a numeric
                value cannot be parsed.
        """
        if not isinstance(features, Mapping):
            msg = f"Features must be a mapping of attribute name to value, got {type(features).__name__}"
            raise ValidationError(msg)

        row: list[Value] = [None] * len(schema)
        for attribute in schema.feature_attributes:
            if attribute.name not in features:
                continue
            value = features[attribute.name]
            if attribute.is_numeric:
                row[attribute.index] = _coerce_numeric(attribute, value)
            else:
                row[attribute.index] = _coerce_categorical(value)

        ignored = set(features) - set(schema.names)
        if ignored:
            log.debug("Ignoring unknown features", features=sorted(map(str, ignored)))
        return row


def build_feature_vector(features: Mapping[str, Any], schema: AttributeSchema) -> list[Value]:
    """
    Convenience function to build a single row.

    Args:
        features: Attribute name -> value.
        schema: Target schema.

    Returns:
        Schema-aligned row.
    """
    return FeatureVectorBuilder().build(features, schema)
