"""
UniBudget - Ledger Core Package

A personal ledger for income and expense transactions, per-category
budget limits and user-defined categories, stored in a local SQLite
file that survives restarts.

CORE PIECES:
1. Record store (four collections, versioned schema, atomic reset)
2. CSV backup codec (export/import with minute-precision dates)
3. Financial summary aggregation
4. Budget tracking against per-category limits
"""

__version__ = "1.0.0"
__author__ = "UniBudget Team"
