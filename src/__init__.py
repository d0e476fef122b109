"""
Financial Ledger - Source Package

A personal finance ledger: income, expense and investment records kept in a
local store, derived reporting from a pure calculation engine, and market
prices from a TTL quote cache.

DESIGN PRINCIPLES:
1. The store is the single source of truth
2. Derived figures are recomputed, never edited
3. Quote failures degrade to missing prices, never to errors
4. Every store mutation is auditable
5. Storage medium is swappable
"""

__version__ = "1.0.0"
__author__ = "Financial Ledger Team"
