"""
Named registry of trained models.

Holds name -> ModelRecord plus the name of the active model. Reads run
concurrently, mutations take the write lock together with their commit
callback so durable storage and memory change as one step.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from klassifikator.errors import ConflictError, NotFoundError, ValidationError
from klassifikator.modeling.models import ALGORITHM_REGISTRY, Classifier
from klassifikator.schemas.attributes import AttributeSchema
from klassifikator.utils.locks import ReadWriteLock
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)

MODEL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9_.\-]*$")


def validate_model_name(name: str) -> str:
    """
    Check that a model name is usable as an artifact file stem.

    Args:
        name: Proposed model name.

    Returns:
        The name unchanged.

    Raises:
        ValidationError: If the name is empty, contains characters other
            than letters, digits, '_', '-', '.' or starts with '.'.
    """
    if not isinstance(name, str) or not MODEL_NAME_PATTERN.fullmatch(name):
        msg = (
            f"Invalid model name {name!r}: use letters, digits, '_', '-' "
            "or '.', not starting with '.'"
        )
        raise ValidationError(msg)
    return name


@dataclass(frozen=True)
class ModelRecord:
    """
    A trained model as held by the registry.

    Attributes:
        name: Registry key.
        algorithm: Canonical algorithm id.
        classifier: Fitted classifier.
        schema: Attribute schema the classifier was trained against.
        trained_at: When training finished.
    """

    name: str
    algorithm: str
    classifier: Classifier = field(repr=False)
    schema: AttributeSchema = field(repr=False)
    trained_at: datetime


@dataclass(frozen=True)
class ModelInfo:
    """Listing view of a registered model."""

    name: str
    algorithm: str
    model_type: str
    attributes: tuple[dict[str, Any], ...]
    class_attribute: str
    trained_at: datetime
    active: bool

    @classmethod
    def from_record(cls, record: ModelRecord, *, active: bool) -> "ModelInfo":
        """Describe a record."""
        entry = ALGORITHM_REGISTRY.get(record.algorithm)
        return cls(
            name=record.name,
            algorithm=record.algorithm,
            model_type=entry[2].family if entry else "unknown",
            attributes=tuple(a.to_dict() for a in record.schema.attributes),
            class_attribute=record.schema.class_attribute.name,
            trained_at=record.trained_at,
            active=active,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "algorithm": self.algorithm,
            "model_type": self.model_type,
            "attributes": [dict(a) for a in self.attributes],
            "class_attribute": self.class_attribute,
            "trained_at": self.trained_at.isoformat(),
            "active": self.active,
        }


CommitHook = Callable[[ModelRecord], Any]
DeleteHook = Callable[[str], Any]


class ModelRegistry:
    """
    Thread-safe mapping of model names to records with one active model.

    Invariant: whenever the registry is non-empty, the active name refers
    to a registered model. When it is empty, there is no active model.
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._records: dict[str, ModelRecord] = {}
        self._active: str | None = None

    def register(self, record: ModelRecord, *, on_commit: CommitHook | None = None) -> None:
        """
        Add or replace a record.

        The first model registered becomes active. Replacing the active
        model keeps it active.

        Args:
            record: Record to register.
            on_commit: Called with the record under the write lock before
                the in-memory change (e.g. to persist it). If it raises,
                the registry is unchanged.
        """
        with self._lock.write():
            if on_commit is not None:
                on_commit(record)
            replaced = record.name in self._records
            self._records[record.name] = record
            if self._active is None:
                self._active = record.name
            is_active = self._active == record.name

        log.info(
            "Model registered",
            model=record.name,
            algorithm=record.algorithm,
            replaced=replaced,
            active=is_active,
        )

    def activate(self, name: str) -> None:
        """
        Make a registered model the active one.

        Raises:
            NotFoundError: If the name is not registered.
        """
        with self._lock.write():
            if name not in self._records:
                raise NotFoundError(f"Model not found: {name}")
            previous = self._active
            self._active = name

        log.info("Model activated", model=name, previous=previous)

    def delete(self, name: str, *, on_commit: DeleteHook | None = None) -> None:
        """
        Remove a model.

        Deleting the only model is allowed and leaves no active model.

        Args:
            name: Model to delete.
            on_commit: Called with the name under the write lock before the
                in-memory change (e.g. to remove artifacts).

        Raises:
            NotFoundError: If the name is not registered.
            ConflictError: If the model is active and others remain.
        """
        with self._lock.write():
            if name not in self._records:
                raise NotFoundError(f"Model not found: {name}")
            if name == self._active and len(self._records) > 1:
                msg = (
                    f"Model '{name}' is the active model; activate another "
                    "model before deleting it"
                )
                raise ConflictError(msg)
            if on_commit is not None:
                on_commit(name)
            del self._records[name]
            if name == self._active:
                self._active = None

        log.info("Model deleted", model=name)

    def get(self, name: str | None = None) -> ModelRecord:
        """
        Look up a record by name, or the active record.

        Raises:
            NotFoundError: If the name is unknown, or no name was given and
                there is no active model.
        """
        with self._lock.read():
            if name is None:
                if self._active is None:
                    raise NotFoundError("No active model")
                return self._records[self._active]
            try:
                return self._records[name]
            except KeyError:
                raise NotFoundError(f"Model not found: {name}") from None

    @property
    def active_name(self) -> str | None:
        """Name of the active model, None when the registry is empty."""
        with self._lock.read():
            return self._active

    def names(self) -> list[str]:
        """Registered names, sorted."""
        with self._lock.read():
            return sorted(self._records)

    def records(self) -> list[ModelRecord]:
        """Registered records, sorted by name."""
        with self._lock.read():
            return [self._records[n] for n in sorted(self._records)]

    def describe(self, name: str) -> ModelInfo:
        """ModelInfo for one model (NotFoundError if absent)."""
        with self._lock.read():
            if name not in self._records:
                raise NotFoundError(f"Model not found: {name}")
            return ModelInfo.from_record(self._records[name], active=name == self._active)

    def describe_all(self) -> list[ModelInfo]:
        """ModelInfo for every model, sorted by name."""
        with self._lock.read():
            return [
                ModelInfo.from_record(self._records[n], active=n == self._active)
                for n in sorted(self._records)
            ]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._records)

    def __contains__(self, name: object) -> bool:
        with self._lock.read():
            return name in self._records
