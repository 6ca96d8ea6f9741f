"""
Attribute schema and dataset containers.

An AttributeSchema is the ordered description of every column a model
was trained against. It is persisted next to the fitted classifier and
replayed at serving time, so it carries structure only, never rows.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
import pandera.pandas as pa
from pandera.errors import SchemaError, SchemaErrors

from klassifikator.errors import DatasetError

# A row slot: float for numeric attributes, label for categorical ones,
# None when the value is missing.
Value = float | str | None


class AttributeKind(str, Enum):
    """Kind of values an attribute holds."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


@dataclass(frozen=True)
class AttributeDescriptor:
    """
    Description of a single attribute.

    Attributes:
        name: Column name, unique within a schema.
        kind: Numeric or categorical.
        index: 0-based position in the schema.
        domain: Ordered category labels (categorical attributes only).
    """

    name: str
    kind: AttributeKind
    index: int
    domain: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if self.kind is AttributeKind.CATEGORICAL and self.domain is None:
            object.__setattr__(self, "domain", ())
        if self.kind is AttributeKind.NUMERIC and self.domain is not None:
            msg = f"Numeric attribute '{self.name}' cannot declare a domain"
            raise DatasetError(msg)

    @property
    def is_numeric(self) -> bool:
        """Whether the attribute holds numbers."""
        return self.kind is AttributeKind.NUMERIC

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        data: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind.value,
            "index": self.index,
        }
        if self.domain is not None:
            data["domain"] = list(self.domain)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttributeDescriptor":
        """Rebuild a descriptor from to_dict() output."""
        domain = data.get("domain")
        return cls(
            name=str(data["name"]),
            kind=AttributeKind(data["kind"]),
            index=int(data["index"]),
            domain=tuple(str(v) for v in domain) if domain is not None else None,
        )


@dataclass(frozen=True)
class AttributeSchema:
    """
    Ordered attribute descriptors with one designated class attribute.

    Attributes:
        attributes: Descriptors in column order.
        class_index: Position of the class attribute (last by default).
        relation: Dataset name, informational only.
    """

    attributes: tuple[AttributeDescriptor, ...]
    class_index: int = -1
    relation: str = "dataset"

    def __post_init__(self) -> None:
        if len(self.attributes) < 2:
            msg = (
                "A dataset needs at least two attributes (one feature and one "
                f"class), got {len(self.attributes)}"
            )
            raise DatasetError(msg)

        if self.class_index < 0:
            object.__setattr__(self, "class_index", len(self.attributes) - 1)
        if self.class_index >= len(self.attributes):
            msg = (
                f"Class index {self.class_index} out of range for "
                f"{len(self.attributes)} attributes"
            )
            raise DatasetError(msg)

        names = [a.name for a in self.attributes]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            msg = f"Duplicate attribute names: {', '.join(duplicates)}"
            raise DatasetError(msg)

        for position, attribute in enumerate(self.attributes):
            if attribute.index != position:
                msg = (
                    f"Attribute '{attribute.name}' has index {attribute.index} "
                    f"but sits at position {position}"
                )
                raise DatasetError(msg)

        if self.class_attribute.is_numeric:
            msg = (
                f"Class attribute '{self.class_attribute.name}' must be "
                "categorical; numeric targets are not supported"
            )
            raise DatasetError(msg)

    @classmethod
    def build(
        cls,
        columns: Sequence[tuple[str, AttributeKind, Sequence[str] | None]],
        class_index: int | None = None,
        relation: str = "dataset",
    ) -> "AttributeSchema":
        """
        Build a schema from (name, kind, domain) triples.

        Args:
            columns: Attribute definitions in column order.
            class_index: Class attribute position; None or negative means last.
            relation: Dataset name.

        Returns:
            Validated schema.
        """
        attributes = tuple(
            AttributeDescriptor(
                name=name,
                kind=kind,
                index=i,
                domain=tuple(domain) if domain is not None else None,
            )
            for i, (name, kind, domain) in enumerate(columns)
        )
        return cls(
            attributes=attributes,
            class_index=-1 if class_index is None else class_index,
            relation=relation,
        )

    def __len__(self) -> int:
        return len(self.attributes)

    @property
    def names(self) -> list[str]:
        """Attribute names in column order."""
        return [a.name for a in self.attributes]

    @property
    def class_attribute(self) -> AttributeDescriptor:
        """The designated class attribute."""
        return self.attributes[self.class_index]

    @property
    def class_labels(self) -> tuple[str, ...]:
        """Class domain in declaration order."""
        return self.class_attribute.domain or ()

    @property
    def feature_attributes(self) -> list[AttributeDescriptor]:
        """All non-class attributes in column order."""
        return [a for a in self.attributes if a.index != self.class_index]

    def attribute(self, name: str) -> AttributeDescriptor:
        """
        Look up an attribute by name.

        Raises:
            KeyError: If no attribute has that name.
        """
        for attribute in self.attributes:
            if attribute.name == name:
                return attribute
        raise KeyError(name)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "relation": self.relation,
            "class_index": self.class_index,
            "attributes": [a.to_dict() for a in self.attributes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttributeSchema":
        """Rebuild a schema from to_dict() output."""
        return cls(
            attributes=tuple(
                AttributeDescriptor.from_dict(a) for a in data["attributes"]
            ),
            class_index=int(data["class_index"]),
            relation=str(data.get("relation", "dataset")),
        )

    def to_pandera(self, *, check_feature_domains: bool = True) -> pa.DataFrameSchema:
        """
        Build a pandera schema for frames conforming to this schema.

        Numeric columns must be float, categorical columns must only hold
        labels from their domain. Missing values are allowed everywhere.

        Args:
            check_feature_domains: If False, categorical features may hold
                labels outside their domain (the class column is always
                checked).

        Returns:
            pandera DataFrameSchema with columns in schema order.
        """
        columns: dict[str, pa.Column] = {}
        for attribute in self.attributes:
            if attribute.is_numeric:
                columns[attribute.name] = pa.Column(float, nullable=True)
                continue
            is_class = attribute.index == self.class_index
            checks = (
                [pa.Check.isin(list(attribute.domain or ()))]
                if is_class or check_feature_domains
                else []
            )
            columns[attribute.name] = pa.Column(
                None, checks=checks, nullable=True
            )

        return pa.DataFrameSchema(
            columns,
            ordered=True,
            strict=True,
            name=self.relation,
        )


@dataclass
class Dataset:
    """
    A schema plus rows conforming to it.

    Attributes:
        schema: Attribute schema of the rows.
        frame: One column per attribute, in schema order. Numeric columns
            are float64 with NaN for missing values, categorical columns
            hold label strings with NaN for missing values.
    """

    schema: AttributeSchema
    frame: pd.DataFrame = field(repr=False)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        schema: AttributeSchema,
        *,
        check_feature_domains: bool = True,
    ) -> "Dataset":
        """
        Normalise column types and validate a frame against a schema.

        Args:
            frame: Frame whose columns are the schema's attributes in order.
            schema: Target schema.
            check_feature_domains: Reject categorical feature values outside
                their domain.

        Returns:
            Validated dataset.

        Raises:
            DatasetError: If the frame does not conform.
        """
        if list(frame.columns) != schema.names:
            msg = (
                f"Columns {list(frame.columns)} do not match schema "
                f"attributes {schema.names}"
            )
            raise DatasetError(msg)

        normalised = pd.DataFrame(index=pd.RangeIndex(len(frame)))
        for attribute in schema.attributes:
            column = frame[attribute.name].reset_index(drop=True)
            if attribute.is_numeric:
                try:
                    normalised[attribute.name] = pd.to_numeric(column).astype("float64")
                except (TypeError, ValueError) as e:
                    msg = f"Attribute '{attribute.name}' has non-numeric values"
                    raise DatasetError(msg) from e
            else:
                normalised[attribute.name] = pd.Series(
                    [np.nan if pd.isna(v) else str(v) for v in column],
                    dtype=object,
                )

        try:
            schema.to_pandera(check_feature_domains=check_feature_domains).validate(
                normalised
            )
        except (SchemaError, SchemaErrors) as e:
            msg = f"Dataset does not conform to schema '{schema.relation}': {e}"
            raise DatasetError(msg) from e

        return cls(schema=schema, frame=normalised)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def num_attributes(self) -> int:
        """Number of attributes including the class."""
        return len(self.schema)

    def class_values(self) -> pd.Series:
        """Class labels per row (NaN where missing)."""
        return self.frame[self.schema.class_attribute.name]

    def labeled(self) -> "Dataset":
        """Rows whose class label is present."""
        mask = self.class_values().notna().to_numpy()
        return self.subset(np.flatnonzero(mask))

    def subset(self, indices: Sequence[int] | np.ndarray) -> "Dataset":
        """Rows at the given positions, same schema."""
        return Dataset(
            schema=self.schema,
            frame=self.frame.iloc[list(indices)].reset_index(drop=True),
        )

    def rows(self) -> Iterator[list[Value]]:
        """Yield fixed-length rows aligned with the schema."""
        for record in self.frame.itertuples(index=False, name=None):
            yield [None if pd.isna(v) else v for v in record]
