"""Adapters for catalog storage: in-memory (optional JSON file) and SQLAlchemy."""

from spring_catalog.adapters.catalog_store import CatalogStore, InMemoryCatalogStore
from spring_catalog.adapters.sql_store import SqlCatalogStore

__all__ = ["CatalogStore", "InMemoryCatalogStore", "SqlCatalogStore"]
