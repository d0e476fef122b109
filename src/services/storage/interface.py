"""
Abstract Storage Medium

DESIGN DECISION: The record store never touches files or a database
directly. It talks to a key/value medium holding one JSON document per key.
This allows us to:
1. Use an in-memory medium in tests and ephemeral sessions
2. Persist to a directory of JSON files for a single-user desktop
3. Run with NO medium at all (reads empty, writes no-op)

The interface is intentionally tiny - string keys, string values.
Serialization is the store's job, not the medium's.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageMedium(ABC):
    """
    Abstract durable key/value medium.

    Any medium (in-memory, JSON files, browser-style local storage)
    must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the document stored under a key.

        Returns:
            The raw document, or None if the key is absent

        Raises:
            StorageUnavailableError: If the medium cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Replace the document stored under a key.

        Raises:
            StorageUnavailableError: If the medium cannot be written
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """All keys currently stored."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The durable medium cannot be reached (missing, read-only, full)."""
    pass


class CorruptDataError(StorageError):
    """A persisted document could not be parsed."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Corrupt document under '{key}': {message}")
