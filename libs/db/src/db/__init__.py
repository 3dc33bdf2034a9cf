"""db: shared ledger database library (SQLAlchemy/Alembic).

Public exports
--------------
- ``Base`` and ``metadata`` for Alembic autogenerate/targeting
- ORM models in ``db.models.ledger`` (re-exported for convenience)
- ``Database`` engine/session owner in ``db.client``
"""

from __future__ import annotations

from .client import Database
from .models.ledger import (
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

# Re-export SQLAlchemy metadata for Alembic's env.py
metadata = Base.metadata

__all__ = [
    "Base",
    "Database",
    "metadata",
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
