"""
Repository Pattern Implementations

Data access layer for household configuration.
"""

from repositories.base import (
    ConfigRepository,
    RepositoryError,
    NotFoundError,
    DuplicateError,
)

from repositories.memory_repository import InMemoryConfigRepository

__all__ = [
    # Base classes and exceptions
    "ConfigRepository",
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    # Repository implementations
    "InMemoryConfigRepository",
]
