"""
Dataset loading for training and evaluation.

Reads ARFF files (attribute types declared inline) and delimited text
files with a header row (attribute types inferred from the values).
Every loaded frame is validated against its AttributeSchema.
"""

import io
from pathlib import Path
from typing import IO, Literal

import numpy as np
import pandas as pd
from scipy.io import arff

from klassifikator.errors import DatasetError
from klassifikator.schemas.attributes import (
    AttributeKind,
    AttributeSchema,
    Dataset,
)
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)

Source = Path | str | IO[str]
SourceFormat = Literal["arff", "csv"]

# Cell values treated as missing in delimited files; pandas' default NA
# strings ("NA", "None", "null", ...) are ordinary values
MISSING_MARKERS = ["?", ""]

ARFF_SUFFIXES = {".arff"}


def _read_text(source: Source) -> tuple[str, str | None, str]:
    """
    Read the whole source as text.

    Returns:
        Tuple of (text, lowercase suffix or None, relation name).
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read dataset {path}: {e}"
            raise DatasetError(msg) from e
        return text, path.suffix.lower(), path.stem or "dataset"

    try:
        text = source.read()
        if isinstance(text, bytes):
            text = text.decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read dataset stream: {e}"
        raise DatasetError(msg) from e
    name = Path(getattr(source, "name", "dataset") or "dataset").stem
    return text, None, name or "dataset"


def _detect_format(text: str, suffix: str | None) -> SourceFormat:
    """ARFF if the suffix says so or the first content line is @relation."""
    if suffix in ARFF_SUFFIXES:
        return "arff"
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("%"):
            continue
        return "arff" if stripped.lower().startswith("@relation") else "csv"
    return "csv"


def _resolve_class_index(class_index: int | None, n_attributes: int) -> int:
    """Map None/negative to the last column and range-check the rest."""
    if class_index is None or class_index < 0:
        return n_attributes - 1
    if class_index >= n_attributes:
        msg = (
            f"Class index {class_index} out of range for "
            f"{n_attributes} attributes"
        )
        raise DatasetError(msg)
    return class_index


def _clean_column(series: pd.Series) -> pd.Series:
    """Strip cell text and turn empty cells and missing markers into NaN."""
    cleaned = []
    for value in series:
        if pd.isna(value):
            cleaned.append(np.nan)
            continue
        text = str(value).strip()
        cleaned.append(np.nan if text in MISSING_MARKERS else text)
    return pd.Series(cleaned, dtype=object, name=series.name)


def _infer_kind(
    values: pd.Series,
    *,
    force_categorical: bool = False,
) -> tuple[AttributeKind, tuple[str, ...] | None]:
    """
    Infer attribute kind from raw cell text.

    Numeric if every non-empty value parses as a number, otherwise
    categorical with the distinct values in first-seen order.
    """
    present = values.dropna()
    if not force_categorical:
        parsed = pd.to_numeric(present, errors="coerce")
        if parsed.notna().all():
            return AttributeKind.NUMERIC, None
    domain = tuple(str(v) for v in pd.unique(present))
    return AttributeKind.CATEGORICAL, domain


class DatasetLoader:
    """
    Loads tabular datasets into schema-validated Dataset objects.

    Two modes:
        - Inference (default): the schema comes from the source itself.
        - Validating (``reference`` given): the source is read against an
          existing schema, e.g. a test set for a trained model.
    """

    def load(
        self,
        source: Source,
        class_index: int | None = None,
        *,
        reference: AttributeSchema | None = None,
    ) -> Dataset:
        """
        Load a dataset.

        Args:
            source: Path or readable text stream.
            class_index: Class column position; None or negative means the
                last column. Ignored in validating mode, where the reference
                schema's class index applies.
            reference: Schema to validate against instead of inferring.

        Returns:
            Validated dataset.

        Raises:
            DatasetError: If the source is empty, has no rows, has fewer
                than two attributes or does not match the reference.
        """
        text, suffix, relation = _read_text(source)
        if not text.strip():
            msg = "Dataset is empty"
            raise DatasetError(msg)

        source_format = _detect_format(text, suffix)
        log.info(
            "Loading dataset",
            format=source_format,
            relation=relation,
            validating=reference is not None,
        )

        if source_format == "arff":
            dataset = self._load_arff(text, class_index, reference)
        else:
            dataset = self._load_delimited(text, relation, class_index, reference)

        log.info(
            "Loaded dataset",
            relation=dataset.schema.relation,
            rows=len(dataset),
            attributes=dataset.num_attributes,
            class_attribute=dataset.schema.class_attribute.name,
        )
        return dataset

    def _load_arff(
        self,
        text: str,
        class_index: int | None,
        reference: AttributeSchema | None,
    ) -> Dataset:
        """Parse an ARFF document with scipy."""
        try:
            data, meta = arff.loadarff(io.StringIO(text))
        except (arff.ArffError, ValueError, IndexError, NotImplementedError) as e:
            msg = f"Invalid ARFF data: {e}"
            raise DatasetError(msg) from e

        names = list(meta.names())
        types = list(meta.types())
        if len(names) < 2:
            msg = f"Dataset declares {len(names)} attribute(s); at least two are required"
            raise DatasetError(msg)
        if len(data) == 0:
            msg = "Dataset has no rows"
            raise DatasetError(msg)

        unsupported = [n for n, t in zip(names, types) if t not in ("numeric", "nominal")]
        if unsupported:
            msg = f"Unsupported ARFF attribute types for: {', '.join(unsupported)}"
            raise DatasetError(msg)

        frame = pd.DataFrame(data)
        for name, kind in zip(names, types):
            if kind == "nominal":
                frame[name] = [_decode_nominal(v) for v in frame[name]]

        if reference is not None:
            _check_attribute_count(len(names), reference)
            for attribute, kind in zip(reference.attributes, types):
                expected = "numeric" if attribute.is_numeric else "nominal"
                if kind != expected:
                    msg = (
                        f"Attribute {attribute.index} ('{attribute.name}') is "
                        f"{kind} in the data but {attribute.kind.value} in the model"
                    )
                    raise DatasetError(msg)
            return _against_reference(frame, reference)

        columns = [
            (
                name,
                AttributeKind.NUMERIC if kind == "numeric" else AttributeKind.CATEGORICAL,
                meta[name][1] if kind == "nominal" else None,
            )
            for name, kind in zip(names, types)
        ]
        schema = AttributeSchema.build(
            columns,
            class_index=_resolve_class_index(class_index, len(names)),
            relation=meta.name or "dataset",
        )
        return Dataset.from_frame(frame, schema)

    def _load_delimited(
        self,
        text: str,
        relation: str,
        class_index: int | None,
        reference: AttributeSchema | None,
    ) -> Dataset:
        """Parse delimited text with a header row."""
        try:
            raw = pd.read_csv(
                io.StringIO(text),
                dtype=str,
                na_values=MISSING_MARKERS,
                keep_default_na=False,
                skipinitialspace=True,
            )
        except pd.errors.EmptyDataError as e:
            msg = "Dataset is empty"
            raise DatasetError(msg) from e
        except pd.errors.ParserError as e:
            msg = f"Invalid delimited data: {e}"
            raise DatasetError(msg) from e

        raw.columns = [str(c).strip() for c in raw.columns]
        if len(raw.columns) < 2:
            msg = (
                f"Dataset declares {len(raw.columns)} attribute(s); "
                "at least two are required"
            )
            raise DatasetError(msg)
        if len(raw) == 0:
            msg = "Dataset has no rows"
            raise DatasetError(msg)

        frame = pd.DataFrame({name: _clean_column(raw[name]) for name in raw.columns})

        if reference is not None:
            _check_attribute_count(len(frame.columns), reference)
            return _against_reference(frame, reference)

        resolved = _resolve_class_index(class_index, len(frame.columns))
        columns = []
        for i, name in enumerate(frame.columns):
            kind, domain = _infer_kind(frame[name], force_categorical=i == resolved)
            columns.append((name, kind, domain))

        schema = AttributeSchema.build(columns, class_index=resolved, relation=relation)
        log.debug(
            "Inferred schema",
            attributes={a.name: a.kind.value for a in schema.attributes},
        )
        return Dataset.from_frame(frame, schema)


def _decode_nominal(value: object) -> str | float:
    """scipy returns nominal values as bytes with b'?' for missing."""
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if value is None or value == "?":
        return np.nan
    return str(value)


def _check_attribute_count(n_attributes: int, reference: AttributeSchema) -> None:
    """Raise if the source and the reference schema disagree on width."""
    if n_attributes != len(reference):
        msg = (
            f"Dataset has {n_attributes} attributes but the model schema "
            f"has {len(reference)}"
        )
        raise DatasetError(msg)


def _against_reference(frame: pd.DataFrame, reference: AttributeSchema) -> Dataset:
    """Map columns positionally onto the reference schema and validate."""
    renamed = dict(zip(frame.columns, reference.names))
    mismatched = {src: dst for src, dst in renamed.items() if src != dst}
    if mismatched:
        log.warning("Column names differ from model schema", renamed=mismatched)
    frame = frame.set_axis(reference.names, axis=1)
    return Dataset.from_frame(frame, reference, check_feature_domains=False)


def load_dataset(
    source: Source,
    class_index: int | None = None,
    *,
    reference: AttributeSchema | None = None,
) -> Dataset:
    """
    Convenience function to load a dataset.

    Args:
        source: Path or readable text stream.
        class_index: Class column position (last column if omitted).
        reference: Optional schema to validate against.

    Returns:
        Validated dataset.
    """
    return DatasetLoader().load(source, class_index, reference=reference)
