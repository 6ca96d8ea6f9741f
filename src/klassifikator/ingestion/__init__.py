"""Dataset ingestion from ARFF and delimited text sources."""

from klassifikator.ingestion.dataset import DatasetLoader, load_dataset

__all__ = ["DatasetLoader", "load_dataset"]
