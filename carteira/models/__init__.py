"""SQLAlchemy ORM models for Carteira.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from carteira.models.base import Base
from carteira.models.enums import (
    AutoAdvanceStatus,
    Broker,
    DayCountBasis,
    InstrumentType,
    ReferenceIndex,
    ValueSource,
)
from carteira.models.holdings import (
    AssetRecord,
    CardSpendingRecord,
    DebtPreferencesRecord,
    LoanContractRecord,
    MonthlyForecastRecord,
    OtherDebtRecord,
    PortfolioSnapshotRecord,
)

__all__ = [
    "AssetRecord",
    "AutoAdvanceStatus",
    "Base",
    "Broker",
    "CardSpendingRecord",
    "DayCountBasis",
    "DebtPreferencesRecord",
    "InstrumentType",
    "LoanContractRecord",
    "MonthlyForecastRecord",
    "OtherDebtRecord",
    "PortfolioSnapshotRecord",
    "ReferenceIndex",
    "ValueSource",
]
