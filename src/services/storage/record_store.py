"""
Record Store

Durable CRUD over the three ledger collections (records, investments,
consolidations) plus backup, export and import.

DESIGN DECISION: The store is the ONLY place ids and timestamps are assigned.
Callers hand in validated input models (or plain dicts, validated here);
nothing invalid is ever partially written.

FAILURE SEMANTICS:
- No medium attached (or medium unreachable): reads are empty, writes no-op
- Malformed persisted document: treated as an absent (empty) collection
- Unknown id on update/delete: reported as False, never raised
- Backup failure: logged, never blocks the primary write

OPEN RISK: every mutation is read-modify-write of a whole collection with no
locking. Two writers on the same medium (two processes sharing a data
directory) can lose updates. The ledger assumes a single writer.
"""

import json
import secrets
import string
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from src.audit import AuditLogger, get_logger
from src.models.audit import AuditEvent, AuditEventBuilder
from src.models.ledger import (
    FinancialRecord,
    ImportResult,
    Investment,
    InvestmentInput,
    LedgerSnapshot,
    MonthlyConsolidation,
    RecordInput,
    as_utc,
)
from src.services.storage.interface import (
    CorruptDataError,
    StorageError,
    StorageMedium,
)


RECORDS_KEY = "records"
INVESTMENTS_KEY = "investments"
CONSOLIDATIONS_KEY = "consolidations"
BACKUP_KEY = "backup"

ID_ALPHABET = string.ascii_lowercase + string.digits
ID_SUFFIX_LENGTH = 9

Clock = Callable[[], datetime]

logger = get_logger(__name__)

_RECORDS = TypeAdapter(list[FinancialRecord])
_INVESTMENTS = TypeAdapter(list[Investment])
_CONSOLIDATIONS = TypeAdapter(list[MonthlyConsolidation])

_ADAPTERS: dict[str, TypeAdapter] = {
    RECORDS_KEY: _RECORDS,
    INVESTMENTS_KEY: _INVESTMENTS,
    CONSOLIDATIONS_KEY: _CONSOLIDATIONS,
}


def utc_now() -> datetime:
    """Default store clock."""
    return datetime.now(timezone.utc)


def generate_id(now: datetime) -> str:
    """
    Wall-clock milliseconds plus a random base-36 suffix.

    Collisions are negligible, not impossible; the store re-draws on a clash
    with a live id.
    """
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{millis}_{suffix}"


def _sort_consolidations(items: list[MonthlyConsolidation]) -> list[MonthlyConsolidation]:
    return sorted(items, key=lambda c: c.month, reverse=True)


def _dedupe_consolidations(items: list[MonthlyConsolidation]) -> list[MonthlyConsolidation]:
    """At most one consolidation per month; the last one wins."""
    by_month: dict[str, MonthlyConsolidation] = {}
    for item in items:
        by_month[item.month] = item
    return _sort_consolidations(list(by_month.values()))


def _field_changes(
    model_cls: type[BaseModel],
    partial: Mapping[str, Any],
    protected: set[str],
) -> dict[str, Any]:
    """
    Map a partial update (snake_case or camelCase keys) onto field names.

    Unknown and protected keys are dropped.
    """
    by_alias = {to_camel(name): name for name in model_cls.model_fields}
    changes = {}
    for key, value in partial.items():
        name = key if key in model_cls.model_fields else by_alias.get(key)
        if name is None or name in protected:
            continue
        changes[name] = value
    return changes


def parse_snapshot(document: Union[str, bytes, Mapping[str, Any]]) -> ImportResult:
    """
    Parse an export document into typed collections.

    Never raises. Each collection is validated on its own: a malformed
    collection is reported in `errors` and left as None, the others are kept.
    Unknown extra fields are ignored.
    """
    data: Any = document
    if isinstance(document, (str, bytes, bytearray)):
        try:
            data = json.loads(document)
        except (ValueError, RecursionError) as e:
            return ImportResult(errors=[f"Invalid JSON: {e}"])

    if not isinstance(data, Mapping):
        return ImportResult(errors=["Import document must be a JSON object"])

    parsed: dict[str, Any] = {}
    errors: list[str] = []
    for key, adapter in _ADAPTERS.items():
        if data.get(key) is None:
            continue
        try:
            parsed[key] = adapter.validate_python(data[key])
        except ValidationError as e:
            errors.append(f"{key}: {e.error_count()} validation error(s)")
        except (TypeError, ValueError) as e:
            errors.append(f"{key}: {e}")

    return ImportResult(**parsed, errors=errors)


class RecordStore:
    """
    Persistent ledger store.

    Holds an explicit medium handle rather than reaching into global
    storage, so tests can hand it an InMemoryMedium and a frozen clock.
    """

    def __init__(
        self,
        medium: Optional[StorageMedium],
        clock: Clock = utc_now,
        audit_logger: Optional[AuditLogger] = None,
        backup_enabled: bool = True,
    ):
        """
        Initialize the store.

        Args:
            medium: Durable key/value medium. None means "no durable medium":
                    every read is empty and every write is a no-op.
            clock: Source of "now" for ids and timestamps.
            audit_logger: Receives one event per mutation. Optional.
            backup_enabled: Write a backup snapshot after each mutating write.
        """
        self._medium = medium
        self._clock = clock
        self._audit_logger = audit_logger
        self._backup_enabled = backup_enabled

    @property
    def is_available(self) -> bool:
        return self._medium is not None

    # =========================================================================
    # Low-level collection I/O
    # =========================================================================

    def _read_raw(self, key: str) -> Optional[str]:
        if self._medium is None:
            return None
        try:
            return self._medium.get_item(key)
        except StorageError as e:
            logger.warning("storage_read_failed", key=key, error=str(e))
            return None

    def _load(self, key: str) -> list:
        """
        Parse one persisted collection.

        Raises:
            CorruptDataError: If the document is not a valid collection
        """
        raw = self._read_raw(key)
        if raw is None:
            return []
        try:
            return _ADAPTERS[key].validate_json(raw)
        except ValidationError as e:
            raise CorruptDataError(key, f"{e.error_count()} validation error(s)")

    def _read_collection(self, key: str) -> list:
        try:
            return self._load(key)
        except CorruptDataError as e:
            logger.warning("corrupt_collection_ignored", key=key, error=str(e))
            return []

    def _write_raw(self, key: str, payload: Any) -> bool:
        if self._medium is None:
            return False
        try:
            self._medium.set_item(key, json.dumps(payload, ensure_ascii=False))
            return True
        except StorageError as e:
            logger.warning("storage_write_failed", key=key, error=str(e))
            return False

    def _write_collection(self, key: str, items: list) -> bool:
        written = self._write_raw(key, [item.to_document() for item in items])
        if written and self._backup_enabled:
            self.create_backup()
        return written

    def _audit(self, event: AuditEvent) -> None:
        if self._audit_logger:
            self._audit_logger.log(event)

    def _new_id(self, taken: set[str]) -> str:
        while True:
            candidate = generate_id(self._clock())
            if candidate not in taken:
                return candidate

    def _touch(self, created: datetime) -> datetime:
        """Update timestamp that never precedes the creation timestamp."""
        now = self._clock()
        return now if as_utc(now) >= as_utc(created) else created

    # =========================================================================
    # Records
    # =========================================================================

    def list_records(self) -> list[FinancialRecord]:
        """All records in insertion order."""
        return self._read_collection(RECORDS_KEY)

    def add_record(self, fields: Union[RecordInput, Mapping[str, Any]]) -> str:
        """
        Validate and append a new record.

        Returns:
            The new record's id

        Raises:
            pydantic.ValidationError: If the fields are invalid (nothing written)
        """
        data = fields if isinstance(fields, RecordInput) else RecordInput.model_validate(fields)
        records = self.list_records()
        now = self._clock()

        record = FinancialRecord.model_validate({
            **data.model_dump(),
            "id": self._new_id({r.id for r in records}),
            "created_at": now,
            "updated_at": now,
        })
        records.append(record)
        self._write_collection(RECORDS_KEY, records)

        self._audit(AuditEventBuilder.record_added(
            record_id=record.id,
            category=record.category.value,
            amount=str(record.amount),
        ))
        return record.id

    def update_record(self, record_id: str, partial: Mapping[str, Any]) -> bool:
        """
        Merge fields into an existing record.

        Changing `date` re-derives `month`. `id` and `createdAt` cannot change.

        Returns:
            True if a record with that id existed

        Raises:
            pydantic.ValidationError: If the merged record is invalid (nothing written)
        """
        records = self.list_records()
        index = next((i for i, r in enumerate(records) if r.id == record_id), None)
        if index is None:
            return False

        current = records[index]
        changes = _field_changes(
            FinancialRecord, partial, protected={"id", "created_at", "updated_at"}
        )
        merged = {**current.model_dump(), **changes}
        if "date" in changes and "month" not in changes:
            merged.pop("month")
        merged["updated_at"] = self._touch(current.created_at)

        records[index] = FinancialRecord.model_validate(merged)
        self._write_collection(RECORDS_KEY, records)

        self._audit(AuditEventBuilder.entity_updated("record", record_id, list(changes)))
        return True

    def delete_record(self, record_id: str) -> bool:
        """Remove a record. Returns False if no record had that id."""
        records = self.list_records()
        remaining = [r for r in records if r.id != record_id]
        if len(remaining) == len(records):
            return False

        self._write_collection(RECORDS_KEY, remaining)
        self._audit(AuditEventBuilder.entity_deleted("record", record_id))
        return True

    # =========================================================================
    # Investments
    # =========================================================================

    def list_investments(self) -> list[Investment]:
        """All investments in insertion order."""
        return self._read_collection(INVESTMENTS_KEY)

    def add_investment(self, fields: Union[InvestmentInput, Mapping[str, Any]]) -> str:
        """
        Validate and append a new position.

        current_price defaults to purchase_price.

        Raises:
            pydantic.ValidationError: If the fields are invalid (nothing written)
        """
        data = (
            fields
            if isinstance(fields, InvestmentInput)
            else InvestmentInput.model_validate(fields)
        )
        investments = self.list_investments()

        investment = Investment.model_validate({
            **data.model_dump(),
            "id": self._new_id({i.id for i in investments}),
            "last_updated": self._clock(),
        })
        investments.append(investment)
        self._write_collection(INVESTMENTS_KEY, investments)

        self._audit(AuditEventBuilder.investment_added(
            investment_id=investment.id,
            symbol=investment.symbol,
            quantity=str(investment.quantity),
        ))
        return investment.id

    def update_investment(self, investment_id: str, partial: Mapping[str, Any]) -> bool:
        """
        Merge fields into an existing position and refresh `lastUpdated`.

        Returns:
            True if an investment with that id existed

        Raises:
            pydantic.ValidationError: If the merged position is invalid (nothing written)
        """
        investments = self.list_investments()
        index = next(
            (i for i, inv in enumerate(investments) if inv.id == investment_id), None
        )
        if index is None:
            return False

        changes = _field_changes(
            Investment, partial, protected={"id", "last_updated"}
        )
        merged = {
            **investments[index].model_dump(),
            **changes,
            "last_updated": self._clock(),
        }

        investments[index] = Investment.model_validate(merged)
        self._write_collection(INVESTMENTS_KEY, investments)

        self._audit(AuditEventBuilder.entity_updated("investment", investment_id, list(changes)))
        return True

    def delete_investment(self, investment_id: str) -> bool:
        """Remove a position. Returns False if no investment had that id."""
        investments = self.list_investments()
        remaining = [inv for inv in investments if inv.id != investment_id]
        if len(remaining) == len(investments):
            return False

        self._write_collection(INVESTMENTS_KEY, remaining)
        self._audit(AuditEventBuilder.entity_deleted("investment", investment_id))
        return True

    # =========================================================================
    # Consolidations
    # =========================================================================

    def list_consolidations(self) -> list[MonthlyConsolidation]:
        """All consolidations, newest month first."""
        return _sort_consolidations(self._read_collection(CONSOLIDATIONS_KEY))

    def upsert_consolidation(
        self,
        consolidation: Union[MonthlyConsolidation, Mapping[str, Any]],
    ) -> bool:
        """
        Replace the consolidation for its month, or append it.

        Returns:
            True if an existing entry for the month was replaced
        """
        if not isinstance(consolidation, MonthlyConsolidation):
            consolidation = MonthlyConsolidation.model_validate(consolidation)

        consolidations = self._read_collection(CONSOLIDATIONS_KEY)
        index = next(
            (i for i, c in enumerate(consolidations) if c.month == consolidation.month),
            None,
        )
        replaced = index is not None
        if replaced:
            consolidations[index] = consolidation
        else:
            consolidations.append(consolidation)

        self._write_collection(CONSOLIDATIONS_KEY, _sort_consolidations(consolidations))
        self._audit(AuditEventBuilder.consolidation_saved(consolidation.month, replaced))
        return replaced

    # =========================================================================
    # Backup, export, import
    # =========================================================================

    def build_snapshot(self) -> LedgerSnapshot:
        """Typed snapshot of all three collections, stamped now."""
        return LedgerSnapshot(
            records=self.list_records(),
            investments=self.list_investments(),
            consolidations=self.list_consolidations(),
            export_date=self._clock(),
        )

    def export_snapshot(self) -> str:
        """Serialize all three collections plus an export timestamp to JSON."""
        snapshot = self.build_snapshot()
        self._audit(AuditEventBuilder.snapshot_exported({
            "records": len(snapshot.records),
            "investments": len(snapshot.investments),
            "consolidations": len(snapshot.consolidations),
        }))
        return json.dumps(snapshot.to_document(), ensure_ascii=False, indent=2)

    def import_snapshot(self, document: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """
        Replace collections from an export document.

        Each collection present in the document replaces the stored one
        wholesale. Absent collections are left untouched. Malformed
        collections are skipped; the parseable ones are still applied.

        Returns:
            True if the document and every collection in it were valid.
            Never raises.
        """
        result = parse_snapshot(document)
        applied: dict[str, int] = {}

        if result.records is not None:
            self._write_collection(RECORDS_KEY, result.records)
            applied[RECORDS_KEY] = len(result.records)
        if result.investments is not None:
            self._write_collection(INVESTMENTS_KEY, result.investments)
            applied[INVESTMENTS_KEY] = len(result.investments)
        if result.consolidations is not None:
            consolidations = _dedupe_consolidations(result.consolidations)
            self._write_collection(CONSOLIDATIONS_KEY, consolidations)
            applied[CONSOLIDATIONS_KEY] = len(consolidations)

        if applied:
            self._audit(AuditEventBuilder.snapshot_imported(applied))
        if not result.success:
            logger.warning("import_rejected", errors=result.errors)
            self._audit(AuditEventBuilder.import_failed(result.errors))
        return result.success

    def create_backup(self) -> bool:
        """
        Write a best-effort copy of all collections under the backup key.

        Returns False (and logs) on failure; never raises.
        """
        try:
            payload = {
                "timestamp": self._clock().isoformat(),
                RECORDS_KEY: [r.to_document() for r in self.list_records()],
                INVESTMENTS_KEY: [i.to_document() for i in self.list_investments()],
                CONSOLIDATIONS_KEY: [c.to_document() for c in self.list_consolidations()],
            }
        except (TypeError, ValueError) as e:
            self._audit(AuditEventBuilder.backup_failed(str(e)))
            return False

        if not self._write_raw(BACKUP_KEY, payload):
            if self._medium is not None:
                self._audit(AuditEventBuilder.backup_failed("backup write failed"))
            return False
        return True

    def get_backup(self) -> Optional[dict[str, Any]]:
        """The last backup document, or None if absent or unreadable."""
        raw = self._read_raw(BACKUP_KEY)
        if raw is None:
            return None
        try:
            backup = json.loads(raw)
        except (ValueError, RecursionError):
            logger.warning("corrupt_backup_ignored", key=BACKUP_KEY)
            return None
        return backup if isinstance(backup, dict) else None

    def clear_all(self) -> None:
        """Empty all three collections. The backup is kept."""
        if self._medium is None:
            return
        for key in (RECORDS_KEY, INVESTMENTS_KEY, CONSOLIDATIONS_KEY):
            try:
                self._medium.remove_item(key)
            except StorageError as e:
                logger.warning("storage_remove_failed", key=key, error=str(e))
        self._audit(AuditEventBuilder.store_cleared())
