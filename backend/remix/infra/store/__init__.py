"""Persistence backends for the social graph."""

from .base import AcceptOutcome, Store
from .memory import InMemoryStore
from .postgres import PostgresStore

__all__ = ["AcceptOutcome", "InMemoryStore", "PostgresStore", "Store"]
