"""Adapters implementing the key-value store port."""

from .memory import InMemoryKeyValueStore
from .sqlalchemy_store import SQLAlchemyKeyValueStore

__all__ = ["InMemoryKeyValueStore", "SQLAlchemyKeyValueStore"]
