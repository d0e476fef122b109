"""
Storage Services Package

Provides the abstract storage medium, concrete mediums, and the record
store that owns the ledger collections on top of them.
"""

from src.services.storage.interface import (
    CorruptDataError,
    StorageError,
    StorageMedium,
    StorageUnavailableError,
)
from src.services.storage.mediums import InMemoryMedium, JsonFileMedium
from src.services.storage.record_store import (
    BACKUP_KEY,
    CONSOLIDATIONS_KEY,
    INVESTMENTS_KEY,
    RECORDS_KEY,
    RecordStore,
    generate_id,
    parse_snapshot,
    utc_now,
)

__all__ = [
    # Interfaces
    "StorageMedium",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    "StorageUnavailableError",
    # Mediums
    "InMemoryMedium",
    "JsonFileMedium",
    # Record store
    "BACKUP_KEY",
    "CONSOLIDATIONS_KEY",
    "INVESTMENTS_KEY",
    "RECORDS_KEY",
    "RecordStore",
    "generate_id",
    "parse_snapshot",
    "utc_now",
]
