"""Ingestion pipeline: classify a locator, fetch and parse it, split into
chunks, sanitize metadata and upsert into a vector collection.

Public entry point is :class:`IngestionService`; sitemap fan-out runs
through :class:`IngestionDispatcher`.
"""

from vectorqa.services.ingestion.classifier import classify
from vectorqa.services.ingestion.collection_manager import CollectionManager, sanitize
from vectorqa.services.ingestion.dispatcher import DispatchStats, IngestionDispatcher
from vectorqa.services.ingestion.ingestion_service import IngestionService
from vectorqa.services.ingestion.splitter import RecursiveTextSplitter

__all__ = [
    "CollectionManager",
    "DispatchStats",
    "IngestionDispatcher",
    "IngestionService",
    "RecursiveTextSplitter",
    "classify",
    "sanitize",
]
