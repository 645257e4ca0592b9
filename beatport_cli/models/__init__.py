"""
Data Models Layer.

This package contains the Pydantic configuration model and the dataclasses
that describe catalog items, resolved jobs and batch statistics.
"""

from .catalog import CatalogURL, ItemKind, Job, Store
from .config import AppConfig
from .stats import BatchStats

__all__ = ["AppConfig", "BatchStats", "CatalogURL", "ItemKind", "Job", "Store"]
