"""
Klassifikator: classifier lifecycle engine.

This package trains pluggable classification models on tabular datasets,
persists them together with their attribute schema, keeps a registry of
named models with one active model, and serves predictions and
evaluations against any registered model.
"""

from importlib.metadata import version

__version__ = version("klassifikator")

__all__ = ["__version__"]
