"""Instrument reference data models."""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from firds.core.errors import InvariantViolation
from firds.models.debt import DebtAttributes
from firds.models.derivative import DerivativeAttributes
from firds.models.serialization import to_plain
from firds.models.validation import (
    check_cfi,
    check_currency,
    check_isin,
    check_lei,
    check_not_before,
)

# CFI categories (first letter) that describe derivatives or derivative-like
# entitlements: options, futures, swaps, non-standard, spot, forwards,
# strategies and rights/warrants.
_DERIVATIVE_CATEGORIES = frozenset("OFSHIJKR")


class InstrumentCategory(str, Enum):
    """Which attribute subtree an instrument may carry."""

    DEBT = "debt"
    DERIVATIVE = "derivative"
    OTHER = "other"

    @classmethod
    def from_cfi(cls, cfi: str) -> "InstrumentCategory":
        if cfi.startswith("D"):
            return cls.DEBT
        if cfi[:1] in _DERIVATIVE_CATEGORIES:
            return cls.DERIVATIVE
        return cls.OTHER


@dataclass(frozen=True)
class TradingVenueAttributes:
    """Admission to trading on one venue."""

    trading_venue: str
    requested_admission: bool
    approval_date: datetime | None = None
    request_date: datetime | None = None
    admission_or_first_trade_date: datetime | None = None
    termination_date: datetime | None = None

    def __post_init__(self):
        check_not_before(
            self.admission_or_first_trade_date,
            self.termination_date,
            "Termination date precedes admission or first trade date",
        )


@dataclass(frozen=True)
class PublicationPeriod:
    from_date: date
    to_date: date | None = None

    def __post_init__(self):
        check_not_before(self.from_date, self.to_date, "Publication period ends before it starts")


@dataclass(frozen=True)
class TechnicalAttributes:
    relevant_competent_authority: str | None = None
    publication_period: PublicationPeriod | None = None
    relevant_trading_venue: str | None = None


@dataclass(frozen=True)
class ReferenceData:
    """One instrument as reported by a competent authority.

    ``attributes`` holds either the debt or the derivative subtree, or
    nothing; the CFI category decides which one is allowed.
    """

    isin: str
    full_name: str
    cfi: str
    is_commodities_derivative: bool
    issuer_lei: str
    short_name: str
    notional_currency: str
    trading_venue_attributes: TradingVenueAttributes
    technical_attributes: TechnicalAttributes | None = None
    attributes: DebtAttributes | DerivativeAttributes | None = None

    def __post_init__(self):
        check_isin("isin", self.isin)
        check_cfi(self.cfi)
        check_lei("issuer_lei", self.issuer_lei)
        check_currency("notional_currency", self.notional_currency)

        category = self.category
        if isinstance(self.attributes, DebtAttributes) and category is InstrumentCategory.DERIVATIVE:
            raise InvariantViolation(f"Debt attributes on derivative instrument {self.cfi}")
        if isinstance(self.attributes, DerivativeAttributes) and category is InstrumentCategory.DEBT:
            raise InvariantViolation(f"Derivative attributes on debt instrument {self.cfi}")

    @property
    def category(self) -> InstrumentCategory:
        return InstrumentCategory.from_cfi(self.cfi)

    @property
    def debt_attributes(self) -> DebtAttributes | None:
        if isinstance(self.attributes, DebtAttributes):
            return self.attributes
        return None

    @property
    def derivative_attributes(self) -> DerivativeAttributes | None:
        if isinstance(self.attributes, DerivativeAttributes):
            return self.attributes
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_plain(self)
