"""Derivative instrument attributes.

Every "exactly one of" relationship in the FIRDS schema is a union of
variant classes here, so an instance can never hold two alternatives.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, ClassVar

from firds.core.errors import InvariantViolation
from firds.core.registry import CodeTable, get_registry
from firds.models.debt import FloatingRate, InterestRate
from firds.models.serialization import to_plain
from firds.models.validation import check_code, check_currency, check_isin, check_lei


class AssetClass(str, Enum):
    """Asset-class branches of ``AsstClssSpcfcAttrbts``, valued by XML tag."""

    COMMODITY = "Cmmdty"
    INTEREST_RATE = "Intrst"
    FOREIGN_EXCHANGE = "FX"

    @classmethod
    def from_cfi(cls, cfi: str) -> "AssetClass | None":
        """Asset class implied by a CFI code, or None if the code does not say."""
        category, group = cfi[0], cfi[1]
        if category == "F":
            if group == "C":
                return cls.COMMODITY
            if group == "F":
                return {"N": cls.INTEREST_RATE, "C": cls.FOREIGN_EXCHANGE}.get(cfi[2])
            return None
        if category == "O":
            return {
                "T": cls.COMMODITY,
                "N": cls.INTEREST_RATE,
                "C": cls.FOREIGN_EXCHANGE,
            }.get(cfi[3])
        if category in ("S", "H", "J", "I"):
            return {
                "T": cls.COMMODITY,
                "R": cls.INTEREST_RATE,
                "F": cls.FOREIGN_EXCHANGE,
            }.get(group)
        return None


# =============================================================================
# Underlying
# =============================================================================


@dataclass(frozen=True)
class Index:
    """Index reference of a single underlying."""

    name: FloatingRate
    isin: str | None = None

    def __post_init__(self):
        if self.isin is not None:
            check_isin("underlying_index_isin", self.isin)


@dataclass(frozen=True)
class UnderlyingIsin:
    kind: ClassVar[str] = "isin"
    isin: str

    def __post_init__(self):
        check_isin("underlying_isin", self.isin)


@dataclass(frozen=True)
class UnderlyingIndex:
    kind: ClassVar[str] = "index"
    index: Index


@dataclass(frozen=True)
class UnderlyingLei:
    kind: ClassVar[str] = "issuer"
    lei: str

    def __post_init__(self):
        check_lei("underlying_lei", self.lei)


@dataclass(frozen=True)
class UnderlyingBasket:
    """Basket of instruments and/or issuers."""

    kind: ClassVar[str] = "basket"
    isins: frozenset[str] = frozenset()
    issuer_leis: frozenset[str] = frozenset()

    def __post_init__(self):
        for isin in self.isins:
            check_isin("basket_isin", isin)
        for lei in self.issuer_leis:
            check_lei("basket_lei", lei)


DerivativeUnderlying = UnderlyingIsin | UnderlyingIndex | UnderlyingLei | UnderlyingBasket


# =============================================================================
# Strike price
# =============================================================================


@dataclass(frozen=True)
class MonetaryValue:
    kind: ClassVar[str] = "MONETARY_VALUE"
    amount: float
    currency: str | None = None

    def __post_init__(self):
        check_currency("strike_currency", self.currency)


@dataclass(frozen=True)
class Percentage:
    kind: ClassVar[str] = "PERCENTAGE"
    value: float


@dataclass(frozen=True)
class Yield:
    kind: ClassVar[str] = "YIELD"
    value: float


@dataclass(frozen=True)
class BasisPoints:
    kind: ClassVar[str] = "BASIS_POINTS"
    value: float


@dataclass(frozen=True)
class NoPrice:
    kind: ClassVar[str] = "NO_PRICE"
    currency: str | None = None

    def __post_init__(self):
        check_currency("strike_currency", self.currency)


StrikePriceValue = MonetaryValue | Percentage | Yield | BasisPoints | NoPrice


@dataclass(frozen=True)
class StrikePrice:
    """Strike price; ``pending`` only applies when no price is available."""

    price: StrikePriceValue
    pending: bool = False

    def __post_init__(self):
        check_code(CodeTable.STRIKE_PRICE_TYPE, self.price_type)
        if self.pending and not isinstance(self.price, NoPrice):
            raise InvariantViolation("A strike price cannot be both priced and pending")

    @property
    def price_type(self) -> str:
        return self.price.kind


# =============================================================================
# Asset class specific attributes
# =============================================================================


@dataclass(frozen=True)
class CommodityDerivativeAttributes:
    kind: ClassVar[str] = "commodity"
    base_product: str
    subproduct: str | None = None
    further_subproduct: str | None = None
    transaction_type: str | None = None
    final_price_type: str | None = None

    def __post_init__(self):
        get_registry().validate_product(
            self.base_product, self.subproduct, self.further_subproduct
        )
        check_code(CodeTable.TRANSACTION_TYPE, self.transaction_type)
        check_code(CodeTable.FINAL_PRICE_TYPE, self.final_price_type)


@dataclass(frozen=True)
class InterestRateDerivativeAttributes:
    kind: ClassVar[str] = "interest_rate"
    reference_rate: FloatingRate
    first_leg_rate: InterestRate | None = None
    other_notional_currency: str | None = None
    other_leg_rate: InterestRate | None = None

    def __post_init__(self):
        check_currency("other_notional_currency", self.other_notional_currency)


@dataclass(frozen=True)
class FxDerivativeAttributes:
    kind: ClassVar[str] = "foreign_exchange"
    other_notional_currency: str | None = None
    fx_type: str | None = None

    def __post_init__(self):
        check_currency("other_notional_currency", self.other_notional_currency)
        check_code(CodeTable.FX_TYPE, self.fx_type)


AssetClassSpecificAttributes = (
    CommodityDerivativeAttributes | InterestRateDerivativeAttributes | FxDerivativeAttributes
)

ASSET_CLASS_OF: dict[type, AssetClass] = {
    CommodityDerivativeAttributes: AssetClass.COMMODITY,
    InterestRateDerivativeAttributes: AssetClass.INTEREST_RATE,
    FxDerivativeAttributes: AssetClass.FOREIGN_EXCHANGE,
}


@dataclass(frozen=True)
class DerivativeAttributes:
    """Attributes reported for options, futures, swaps and other derivatives."""

    kind: ClassVar[str] = "derivative"
    expiry_date: date | None = None
    price_multiplier: float | None = None
    underlying: DerivativeUnderlying | None = None
    option_type: str | None = None
    strike_price: StrikePrice | None = None
    option_exercise_style: str | None = None
    delivery_type: str | None = None
    asset_class_attributes: AssetClassSpecificAttributes | None = None

    def __post_init__(self):
        check_code(CodeTable.OPTION_TYPE, self.option_type)
        check_code(CodeTable.OPTION_EXERCISE_STYLE, self.option_exercise_style)
        check_code(CodeTable.DELIVERY_TYPE, self.delivery_type)

    @property
    def asset_class(self) -> AssetClass | None:
        if self.asset_class_attributes is None:
            return None
        return ASSET_CLASS_OF[type(self.asset_class_attributes)]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_plain(self)
