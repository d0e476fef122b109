"""
Data Models Package

This package contains all Pydantic models used by the financial ledger.
All data flowing through the store and the engine conforms to these schemas.
"""

from src.models.ledger import (
    CategorySummary,
    ChartData,
    DashboardMetrics,
    FinancialCategory,
    FinancialRecord,
    ImportResult,
    Investment,
    InvestmentInput,
    InvestmentType,
    LedgerSnapshot,
    MonthlyConsolidation,
    RecordInput,
    StockQuote,
    Trend,
    month_of,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategorySummary",
    "ChartData",
    "DashboardMetrics",
    "FinancialCategory",
    "FinancialRecord",
    "ImportResult",
    "Investment",
    "InvestmentInput",
    "InvestmentType",
    "LedgerSnapshot",
    "MonthlyConsolidation",
    "RecordInput",
    "StockQuote",
    "Trend",
    "month_of",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
