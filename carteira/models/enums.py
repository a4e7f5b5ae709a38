"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class ReferenceIndex(str, Enum):
    """Benchmark a fixed-income position is indexed to."""

    CDI = "CDI"
    SELIC = "SELIC"
    IPCA = "IPCA"
    IGPM = "IGP-M"
    PRE = "PRE"  # pre-fixed, flat annual rate
    OTHER = "OTHER"


class InstrumentType(str, Enum):
    """Kind of fixed-income instrument, as typed by the user."""

    CDB = "CDB"
    LCI = "LCI"
    LCA = "LCA"
    TESOURO = "TESOURO"  # Tesouro Direto
    DEBENTURE = "DEBENTURE"
    CRI = "CRI"
    CRA = "CRA"
    PREVIDENCIA = "PREVIDENCIA"
    OTHER = "OTHER"


class DayCountBasis(str, Enum):
    """Day-count convention used to compound a daily rate."""

    BUSINESS_252 = "BUS/252"
    CALENDAR_365 = "ACT/365"

    @property
    def days_per_year(self) -> int:
        return 252 if self is DayCountBasis.BUSINESS_252 else 365


class ValueSource(str, Enum):
    """Which value won when several candidates exist."""

    KNOWN = "known"              # user- or lender-supplied, used verbatim
    ESTIMATED = "estimated"      # derived by the engine
    UNAVAILABLE = "unavailable"  # inputs missing or degenerate


class AutoAdvanceStatus(str, Enum):
    """Outcome of the monthly instalment check for a loan contract."""

    APPLY = "apply"
    ALREADY_PROCESSED = "already_processed"
    TOO_EARLY = "too_early"              # before the processing day of the month
    NOT_APPLICABLE = "not_applicable"    # no lender snapshot or rate to advance


class Broker(str, Enum):
    """Brokerage account holding a position."""

    NUBANK = "Nubank"
    INCO = "Inco"
    XP = "XP"
    CLEAR = "Clear"
    SOFISA = "Sofisa"
    GRAO = "Grão"
    INTER = "Inter"
    NOMAD = "Nomad"
    GENIAL = "Genial"
    BINANCE = "Binance"
    OTHER = "Outros"
