"""Corpus ingestion into the document store."""

from .pipeline import FailureLogger, IngestionPipeline, IngestReport, run_import

__all__ = ["FailureLogger", "IngestionPipeline", "IngestReport", "run_import"]
