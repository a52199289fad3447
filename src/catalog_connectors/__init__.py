"""
Catalog Connectors for the Risk Recommendation Engine

Read-only snapshot providers:
- InMemorySnapshotProvider: snapshot passed in by the caller
- JsonSnapshotProvider: snapshot document on disk
- CatalogAPIConnector: upstream catalog REST API
"""

from .base import SnapshotProvider
from .catalog_api_connector import CatalogAPIConnector
from .snapshot_loader import InMemorySnapshotProvider, JsonSnapshotProvider

__all__ = [
    "SnapshotProvider",
    "CatalogAPIConnector",
    "InMemorySnapshotProvider",
    "JsonSnapshotProvider",
]
