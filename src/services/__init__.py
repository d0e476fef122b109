"""Services package."""

from src.services.quotes import (
    HttpQuoteSource,
    MockQuoteSource,
    QuoteCache,
    QuoteError,
    QuoteFetchError,
    QuoteSource,
    QuoteSourceError,
)
from src.services.storage import (
    CorruptDataError,
    InMemoryMedium,
    JsonFileMedium,
    RecordStore,
    StorageError,
    StorageMedium,
    StorageUnavailableError,
)

__all__ = [
    # Quote services
    "HttpQuoteSource",
    "MockQuoteSource",
    "QuoteCache",
    "QuoteError",
    "QuoteFetchError",
    "QuoteSource",
    "QuoteSourceError",
    # Storage services
    "CorruptDataError",
    "InMemoryMedium",
    "JsonFileMedium",
    "RecordStore",
    "StorageError",
    "StorageMedium",
    "StorageUnavailableError",
]
