"""Tests for the model registry and its lock."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace

import pytest

from klassifikator.errors import ConflictError, NotFoundError, StorageError, ValidationError
from klassifikator.modeling.registry import ModelRecord, ModelRegistry, validate_model_name
from klassifikator.utils.locks import ReadWriteLock


@pytest.fixture
def registry() -> ModelRegistry:
    """Empty registry."""
    return ModelRegistry()


class TestModelRegistry:
    """Tests for ModelRegistry state transitions."""

    def test_first_model_becomes_active(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test that the first registration sets the active model."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="second"))

        assert registry.active_name == "riskmodel"
        assert registry.names() == ["riskmodel", "second"]
        assert len(registry) == 2
        assert "second" in registry

    def test_get_by_name_and_active(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test looking up records by name and via the active pointer."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="second"))

        assert registry.get("second").name == "second"
        assert registry.get().name == "riskmodel"

    def test_get_unknown(self, registry: ModelRegistry) -> None:
        """Test lookups on an empty registry."""
        with pytest.raises(NotFoundError, match="nope"):
            registry.get("nope")
        with pytest.raises(NotFoundError, match="No active model"):
            registry.get()

    def test_replace_keeps_active(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test that retraining under the same name swaps the record."""
        registry.register(risk_record)
        retrained = replace(risk_record, algorithm="rules")

        registry.register(retrained)

        assert len(registry) == 1
        assert registry.active_name == "riskmodel"
        assert registry.get("riskmodel").algorithm == "rules"

    def test_activate(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test switching the active model."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="second"))

        registry.activate("second")

        assert registry.active_name == "second"
        with pytest.raises(NotFoundError):
            registry.activate("nope")
        assert registry.active_name == "second"

    def test_delete_only_model(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test that deleting the last model empties the registry."""
        registry.register(risk_record)

        registry.delete("riskmodel")

        assert len(registry) == 0
        assert registry.active_name is None

    def test_delete_active_with_others(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test that the active model cannot be deleted while others exist."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="second"))

        with pytest.raises(ConflictError, match="active model"):
            registry.delete("riskmodel")

        assert registry.names() == ["riskmodel", "second"]
        assert registry.active_name == "riskmodel"

    def test_delete_inactive(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test deleting a model that is not active."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="second"))

        registry.delete("second")

        assert registry.names() == ["riskmodel"]
        assert registry.active_name == "riskmodel"

    def test_delete_unknown(self, registry: ModelRegistry) -> None:
        """Test deleting a model that does not exist."""
        with pytest.raises(NotFoundError):
            registry.delete("nope")

    def test_failed_commit_leaves_registry_unchanged(
        self, registry: ModelRegistry, risk_record: ModelRecord
    ) -> None:
        """Test that a raising commit callback blocks the mutation."""

        def fail(_: object) -> None:
            raise StorageError("disk full")

        with pytest.raises(StorageError):
            registry.register(risk_record, on_commit=fail)
        assert len(registry) == 0
        assert registry.active_name is None

        registry.register(risk_record)
        with pytest.raises(StorageError):
            registry.delete("riskmodel", on_commit=fail)
        assert registry.names() == ["riskmodel"]

    def test_commit_callbacks_receive_arguments(
        self, registry: ModelRegistry, risk_record: ModelRecord
    ) -> None:
        """Test that commit callbacks see the record and the name."""
        seen: list[object] = []

        registry.register(risk_record, on_commit=seen.append)
        registry.delete("riskmodel", on_commit=seen.append)

        assert seen == [risk_record, "riskmodel"]

    def test_describe(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test the ModelInfo listing view."""
        registry.register(risk_record)
        registry.register(replace(risk_record, name="forest", algorithm="random_forest"))

        info = registry.describe("riskmodel")
        assert info.model_type == "trees"
        assert info.class_attribute == "risk"
        assert info.active is True
        assert [a["name"] for a in info.attributes] == ["age", "income", "credit_score", "risk"]
        assert info.to_dict()["trained_at"] == "2024-01-01T00:00:00+00:00"

        listing = registry.describe_all()
        assert [(i.name, i.model_type, i.active) for i in listing] == [
            ("forest", "ensemble", False),
            ("riskmodel", "trees", True),
        ]
        with pytest.raises(NotFoundError):
            registry.describe("nope")

    def test_concurrent_registration(self, registry: ModelRegistry, risk_record: ModelRecord) -> None:
        """Test that concurrent writers and readers keep the registry consistent."""
        names = [f"model-{i}" for i in range(16)]

        def register(name: str) -> None:
            registry.register(replace(risk_record, name=name))
            registry.get(name)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(register, names))

        assert registry.names() == sorted(names)
        assert registry.active_name in names


class TestValidateModelName:
    """Tests for model name validation."""

    @pytest.mark.parametrize("name", ["riskmodel", "risk-model_2", "v1.2", "A"])
    def test_valid(self, name: str) -> None:
        """Test accepted names."""
        assert validate_model_name(name) == name

    @pytest.mark.parametrize("name", ["", ".env", "a/b", "a\\b", "risk model", "ü"])
    def test_invalid(self, name: str) -> None:
        """Test rejected names."""
        with pytest.raises(ValidationError):
            validate_model_name(name)


class TestReadWriteLock:
    """Tests for ReadWriteLock."""

    def test_readers_share(self) -> None:
        """Test that two readers can hold the lock together."""
        lock = ReadWriteLock()
        second_reader_in = threading.Event()

        def reader() -> None:
            with lock.read():
                second_reader_in.set()

        with lock.read():
            thread = threading.Thread(target=reader)
            thread.start()
            assert second_reader_in.wait(timeout=5)
        thread.join(timeout=5)

    def test_writer_waits_for_readers(self) -> None:
        """Test that a writer is blocked while a reader holds the lock."""
        lock = ReadWriteLock()
        writer_in = threading.Event()

        def writer() -> None:
            with lock.write():
                writer_in.set()

        with lock.read():
            thread = threading.Thread(target=writer)
            thread.start()
            assert not writer_in.wait(timeout=0.2)
        assert writer_in.wait(timeout=5)
        thread.join(timeout=5)

    def test_reader_waits_for_writer(self) -> None:
        """Test that readers are blocked while a writer holds the lock."""
        lock = ReadWriteLock()
        reader_in = threading.Event()

        def reader() -> None:
            with lock.read():
                reader_in.set()

        with lock.write():
            thread = threading.Thread(target=reader)
            thread.start()
            assert not reader_in.wait(timeout=0.2)
        assert reader_in.wait(timeout=5)
        thread.join(timeout=5)
