"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the budget domain models used by ``budget_engine``.
"""

from .budget import NO_DIMENSION, Base, BtBudget, BtCategory, BtSource

__all__ = [
    "NO_DIMENSION",
    "Base",
    "BtBudget",
    "BtCategory",
    "BtSource",
]
