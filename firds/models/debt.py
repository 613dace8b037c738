"""Debt instrument attributes and interest rate models."""
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar

from firds.core.errors import InvalidValue
from firds.core.registry import CodeTable
from firds.models.serialization import to_plain
from firds.models.validation import check_code, check_currency


@dataclass(frozen=True)
class Term:
    """Tenor of a floating rate, e.g. 3 MNTH."""

    number: int
    unit: str

    def __post_init__(self):
        check_code(CodeTable.TERM_UNIT, self.unit)


@dataclass(frozen=True)
class IndexCode:
    """Benchmark identified by a registered index code (EURO, LIBO, ...)."""

    kind: ClassVar[str] = "code"
    code: str

    def __post_init__(self):
        check_code(CodeTable.INDEX_CODE, self.code)


@dataclass(frozen=True)
class IndexText:
    """Benchmark identified only by its free-text name."""

    kind: ClassVar[str] = "text"
    text: str

    def __post_init__(self):
        if not self.text:
            raise InvalidValue("index_name", self.text)


IndexName = IndexCode | IndexText


@dataclass(frozen=True)
class FloatingRate:
    """Reference rate with an optional tenor."""

    name: IndexName | None = None
    term: Term | None = None


@dataclass(frozen=True)
class FixedRate:
    kind: ClassVar[str] = "fixed"
    rate: float

    @property
    def fixed(self) -> float:
        return self.rate

    @property
    def floating(self) -> None:
        return None


@dataclass(frozen=True)
class FloatingInterestRate:
    """Floating reference rate plus an optional spread in basis points."""

    kind: ClassVar[str] = "floating"
    reference: FloatingRate
    spread: int | None = None

    @property
    def fixed(self) -> None:
        return None

    @property
    def floating(self) -> FloatingRate:
        return self.reference


InterestRate = FixedRate | FloatingInterestRate


@dataclass(frozen=True)
class DebtAttributes:
    """Attributes reported for bonds and other debt instruments."""

    kind: ClassVar[str] = "debt"
    interest_rate: InterestRate
    total_issued_amount: float | None = None
    maturity_date: date | None = None
    nominal_currency: str | None = None
    nominal_value_per_unit: float | None = None
    seniority: str | None = None

    def __post_init__(self):
        check_currency("nominal_currency", self.nominal_currency)
        check_code(CodeTable.DEBT_SENIORITY, self.seniority)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_plain(self)
