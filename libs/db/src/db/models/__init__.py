"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the envelope-budgeting ledger used by ``envelope_ledger``.
"""

from .ledger import (
    Base,
    ElAccount,
    ElBudget,
    ElCategory,
    ElDocument,
    ElPortion,
    ElSummary,
    ElTransaction,
    ElUnit,
    UnitType,
)

__all__ = [
    "Base",
    "UnitType",
    "ElDocument",
    "ElAccount",
    "ElTransaction",
    "ElUnit",
    "ElCategory",
    "ElBudget",
    "ElPortion",
    "ElSummary",
]
