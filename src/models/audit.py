"""
Audit Models for the Financial Ledger

Every write to the ledger produces an audit event. This provides:
1. Traceability of who-changed-what in the record store
2. Debugging information when a backup or import goes wrong
3. A local history without touching the persisted collections

DESIGN DECISION: Audit events are append-only and never persisted
alongside the ledger collections. They go to the structured log.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    One event type per mutating store operation.
    """
    # Records
    RECORD_ADDED = "record_added"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Investments
    INVESTMENT_ADDED = "investment_added"
    INVESTMENT_UPDATED = "investment_updated"
    INVESTMENT_DELETED = "investment_deleted"
    PRICES_REFRESHED = "prices_refreshed"

    # Consolidations
    CONSOLIDATION_SAVED = "consolidation_saved"

    # Whole-store operations
    SNAPSHOT_EXPORTED = "snapshot_exported"
    SNAPSHOT_IMPORTED = "snapshot_imported"
    IMPORT_FAILED = "import_failed"
    STORE_CLEARED = "store_cleared"
    BACKUP_FAILED = "backup_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant store mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'investment', 'consolidation')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Ledger id (or month, for consolidations) of the entity"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added(record_id, "despesas", "120.50")
        event = AuditEventBuilder.entity_deleted("investment", investment_id)
    """

    @staticmethod
    def record_added(record_id: str, category: str, amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            entity_type="record",
            entity_id=record_id,
            description=f"Record added to {category}",
            details={"category": category, "amount": amount},
        )

    @staticmethod
    def investment_added(investment_id: str, symbol: str, quantity: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVESTMENT_ADDED,
            entity_type="investment",
            entity_id=investment_id,
            description=f"Investment added: {symbol}",
            details={"symbol": symbol, "quantity": quantity},
        )

    @staticmethod
    def entity_updated(entity_type: str, entity_id: str, fields: list[str]) -> AuditEvent:
        event_type = (
            AuditEventType.RECORD_UPDATED
            if entity_type == "record"
            else AuditEventType.INVESTMENT_UPDATED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} updated",
            details={"fields": sorted(fields)},
        )

    @staticmethod
    def entity_deleted(entity_type: str, entity_id: str) -> AuditEvent:
        event_type = (
            AuditEventType.RECORD_DELETED
            if entity_type == "record"
            else AuditEventType.INVESTMENT_DELETED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} deleted",
        )

    @staticmethod
    def prices_refreshed(requested: int, updated: int) -> AuditEvent:
        severity = AuditSeverity.INFO if updated == requested else AuditSeverity.WARNING
        return AuditEvent(
            event_type=AuditEventType.PRICES_REFRESHED,
            severity=severity,
            entity_type="investment",
            description=f"Refreshed {updated} of {requested} investment prices",
            details={"requested": requested, "updated": updated},
        )

    @staticmethod
    def consolidation_saved(month: str, replaced: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONSOLIDATION_SAVED,
            entity_type="consolidation",
            entity_id=month,
            description=f"Consolidation {'replaced' if replaced else 'added'} for {month}",
            details={"replaced": replaced},
        )

    @staticmethod
    def snapshot_exported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_EXPORTED,
            description="Ledger exported",
            details=counts,
        )

    @staticmethod
    def snapshot_imported(counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_IMPORTED,
            description=f"Ledger imported: {', '.join(sorted(counts)) or 'nothing'}",
            details=counts,
        )

    @staticmethod
    def import_failed(errors: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            description="Import document rejected",
            details={"errors": errors},
            error_message=errors[0] if errors else None,
        )

    @staticmethod
    def store_cleared() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_CLEARED,
            severity=AuditSeverity.WARNING,
            description="All ledger collections cleared",
        )

    @staticmethod
    def backup_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            description="Backup snapshot could not be written",
            error_message=error_message,
        )
