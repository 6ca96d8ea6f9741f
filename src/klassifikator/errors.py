"""
Error taxonomy for the classifier engine.

Every failure the engine surfaces to a caller is one of these kinds.
Callers map them to their own transport (HTTP status, CLI exit code).
"""


class KlassifikatorError(Exception):
    """Base class for all engine errors."""


class ValidationError(KlassifikatorError):
    """Malformed input: bad feature value, invalid model name, unfittable data."""


class DatasetError(ValidationError):
    """Dataset cannot be loaded or does not match the expected schema."""


class NotFoundError(KlassifikatorError):
    """Unknown model name."""


class ConflictError(KlassifikatorError):
    """Operation conflicts with registry state (e.g. deleting the active model)."""


class StorageError(KlassifikatorError):
    """Durable read or write of a model artifact failed."""
