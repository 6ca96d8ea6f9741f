"""
Model artifact persistence (save/load).

Each model is stored as two files in the models directory:
    - {name}.model.joblib: Pickled fitted classifier
    - {name}.schema.json: Attribute schema plus algorithm and timestamp

A model is only loadable when both halves are present.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any

import joblib

from klassifikator.errors import NotFoundError, StorageError, ValidationError
from klassifikator.modeling.models import Classifier
from klassifikator.modeling.registry import ModelRecord, validate_model_name
from klassifikator.schemas.attributes import AttributeSchema
from klassifikator.utils.logging import get_logger

log = get_logger(__name__)

FORMAT_VERSION = 1
MODEL_SUFFIX = ".model.joblib"
SCHEMA_SUFFIX = ".schema.json"


class ModelStore:
    """Reads and writes model artifact pairs in one directory."""

    def __init__(self, models_dir: Path | str) -> None:
        self.models_dir = Path(models_dir)

    def model_path(self, name: str) -> Path:
        """Path of the serialized classifier."""
        return self.models_dir / f"{validate_model_name(name)}{MODEL_SUFFIX}"

    def schema_path(self, name: str) -> Path:
        """Path of the schema metadata."""
        return self.models_dir / f"{validate_model_name(name)}{SCHEMA_SUFFIX}"

    def exists(self, name: str) -> bool:
        """Whether both halves of the artifact pair are present."""
        return self.model_path(name).is_file() and self.schema_path(name).is_file()

    def save(self, record: ModelRecord) -> tuple[Path, Path]:
        """
        Persist a record, replacing any previous artifacts of that name.

        Both files are written to hidden temporary siblings first and only
        renamed into place once both writes have succeeded.

        Args:
            record: Record to persist.

        Returns:
            Tuple of (model_path, schema_path).

        Raises:
            StorageError: If writing or serializing fails.
        """
        model_path = self.model_path(record.name)
        schema_path = self.schema_path(record.name)
        tmp_model = model_path.with_name(f".{model_path.name}.tmp")
        tmp_schema = schema_path.with_name(f".{schema_path.name}.tmp")

        metadata: dict[str, Any] = {
            "format_version": FORMAT_VERSION,
            "name": record.name,
            "algorithm": record.algorithm,
            "trained_at": record.trained_at.isoformat(),
            "schema": record.schema.to_dict(),
        }

        try:
            self.models_dir.mkdir(parents=True, exist_ok=True)
            joblib.dump(record.classifier, tmp_model)
            with open(tmp_schema, "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2)
            self._commit_pair(tmp_model, model_path, tmp_schema, schema_path)
        except (OSError, TypeError, ValueError, AttributeError) as e:
            tmp_model.unlink(missing_ok=True)
            tmp_schema.unlink(missing_ok=True)
            msg = f"Could not save model '{record.name}': {e}"
            raise StorageError(msg) from e

        log.info(
            "Saved model",
            model=record.name,
            model_path=str(model_path),
            schema_path=str(schema_path),
        )
        return model_path, schema_path

    def _commit_pair(
        self,
        tmp_model: Path,
        model_path: Path,
        tmp_schema: Path,
        schema_path: Path,
    ) -> None:
        """
        Rename both temporary files into place.

        The previous model file is kept as a hidden backup until the schema
        rename succeeds, so a failure leaves the old pair intact.
        """
        backup = model_path.with_name(f".{model_path.name}.bak")
        had_previous = model_path.is_file()
        if had_previous:
            os.replace(model_path, backup)
        try:
            os.replace(tmp_model, model_path)
            os.replace(tmp_schema, schema_path)
        except OSError:
            if had_previous:
                os.replace(backup, model_path)
            else:
                model_path.unlink(missing_ok=True)
            raise

        if had_previous:
            try:
                backup.unlink()
            except OSError as e:
                log.warning("Could not remove model backup", path=str(backup), error=str(e))

    def load(self, name: str) -> ModelRecord:
        """
        Load a record from its artifact pair.

        Raises:
            NotFoundError: If either file is missing.
            StorageError: If the files cannot be read or decoded.
        """
        model_path = self.model_path(name)
        schema_path = self.schema_path(name)
        missing = [p.name for p in (model_path, schema_path) if not p.is_file()]
        if missing:
            msg = f"Artifacts for model '{name}' not found: {', '.join(missing)}"
            raise NotFoundError(msg)

        try:
            with open(schema_path, encoding="utf-8") as f:
                metadata = json.load(f)
            schema = AttributeSchema.from_dict(metadata["schema"])
            algorithm = str(metadata["algorithm"])
            trained_at = datetime.fromisoformat(metadata["trained_at"])
            classifier = joblib.load(model_path)
        except Exception as e:
            msg = f"Could not load model '{name}': {e}"
            raise StorageError(msg) from e

        if not isinstance(classifier, Classifier) or not classifier.is_fitted:
            msg = f"Artifact {model_path.name} does not hold a fitted classifier"
            raise StorageError(msg)

        log.info("Loaded model", model=name, algorithm=algorithm)
        return ModelRecord(
            name=name,
            algorithm=algorithm,
            classifier=classifier,
            schema=schema,
            trained_at=trained_at,
        )

    def delete(self, name: str) -> None:
        """
        Remove both artifact files. Files already gone are not an error.

        Both files are first renamed to hidden siblings; if the second rename
        fails the first is moved back, so the pair is removed as a whole or
        not at all.

        Raises:
            StorageError: If a file exists but cannot be removed.
        """
        pending = [
            (path, path.with_name(f".{path.name}.del"))
            for path in (self.model_path(name), self.schema_path(name))
            if path.exists()
        ]

        moved: list[tuple[Path, Path]] = []
        try:
            for path, trash in pending:
                os.replace(path, trash)
                moved.append((path, trash))
        except OSError as e:
            for path, trash in reversed(moved):
                try:
                    os.replace(trash, path)
                except OSError as restore_error:
                    log.error(
                        "Could not restore model artifact",
                        path=str(path),
                        error=str(restore_error),
                    )
            msg = f"Could not delete model '{name}': {e}"
            raise StorageError(msg) from e

        for _, trash in moved:
            try:
                trash.unlink()
            except OSError as e:
                log.warning("Could not remove deleted artifact", path=str(trash), error=str(e))
        log.info("Deleted model artifacts", model=name)

    def scan(self) -> list[ModelRecord]:
        """
        Load every complete artifact pair in sorted name order.

        Incomplete pairs and unreadable artifacts are logged and skipped.

        Returns:
            Loaded records.
        """
        if not self.models_dir.is_dir():
            return []

        names: set[str] = set()
        for path in self.models_dir.iterdir():
            if path.name.startswith("."):
                continue
            for suffix in (MODEL_SUFFIX, SCHEMA_SUFFIX):
                if path.name.endswith(suffix):
                    names.add(path.name[: -len(suffix)])

        records: list[ModelRecord] = []
        for name in sorted(names):
            try:
                records.append(self.load(name))
            except NotFoundError as e:
                log.warning("Skipping incomplete model artifacts", model=name, error=str(e))
            except (StorageError, ValidationError) as e:
                log.warning("Skipping unreadable model artifacts", model=name, error=str(e))

        log.info("Scanned models directory", path=str(self.models_dir), loaded=len(records))
        return records
