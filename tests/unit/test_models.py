"""Tests for domain model construction rules."""
from datetime import date, datetime, timezone

import pytest

ISIN = "DE000A1EWWW0"
LEI = "529900T8BM49AURSDO55"


def make_venue(**overrides):
    from firds.models import TradingVenueAttributes

    values = dict(
        trading_venue="XFRA",
        requested_admission=False,
        admission_or_first_trade_date=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return TradingVenueAttributes(**values)


def make_reference_data(**overrides):
    from firds.models import ReferenceData

    values = dict(
        isin=ISIN,
        full_name="Example Bond",
        cfi="DBFTFB",
        is_commodities_derivative=False,
        issuer_lei=LEI,
        short_name="EXAMPLE/BD",
        notional_currency="EUR",
        trading_venue_attributes=make_venue(),
    )
    values.update(overrides)
    return ReferenceData(**values)


def test_reference_data_valid():
    record = make_reference_data()

    assert record.isin == ISIN
    assert record.debt_attributes is None
    assert record.derivative_attributes is None


def test_reference_data_is_immutable():
    from dataclasses import FrozenInstanceError

    record = make_reference_data()
    with pytest.raises(FrozenInstanceError):
        record.isin = "XX0000000000"


@pytest.mark.parametrize("field,value", [
    ("isin", "DE000A1EWW"),
    ("isin", "de000a1ewww0"),
    ("issuer_lei", "NOT-A-LEI"),
    ("notional_currency", "EURO"),
    ("cfi", "DBF"),
])
def test_reference_data_rejects_malformed_identifiers(field, value):
    from firds.core.errors import InvalidValue

    with pytest.raises(InvalidValue):
        make_reference_data(**{field: value})


def test_termination_before_admission_rejected():
    from firds.core.errors import InvariantViolation

    with pytest.raises(InvariantViolation):
        make_venue(termination_date=datetime(2023, 12, 31, tzinfo=timezone.utc))


def test_debt_attributes_on_derivative_rejected():
    from firds.core.errors import InvariantViolation
    from firds.models import DebtAttributes, FixedRate

    with pytest.raises(InvariantViolation):
        make_reference_data(cfi="FCEPSX", attributes=DebtAttributes(interest_rate=FixedRate(0.05)))


def test_derivative_attributes_on_debt_rejected():
    from firds.core.errors import InvariantViolation
    from firds.models import DerivativeAttributes

    with pytest.raises(InvariantViolation):
        make_reference_data(attributes=DerivativeAttributes())


def test_debt_attribute_view():
    from firds.models import DebtAttributes, FixedRate

    debt = DebtAttributes(interest_rate=FixedRate(0.05), maturity_date=date(2030, 1, 1))
    record = make_reference_data(attributes=debt)

    assert record.debt_attributes is debt
    assert record.derivative_attributes is None
    assert debt.interest_rate.fixed == 0.05
    assert debt.interest_rate.floating is None


def test_floating_interest_rate_views():
    from firds.models import FloatingInterestRate, FloatingRate, IndexCode, Term

    reference = FloatingRate(name=IndexCode("EURO"), term=Term(3, "MNTH"))
    rate = FloatingInterestRate(reference=reference, spread=50)

    assert rate.fixed is None
    assert rate.floating is reference


def test_unknown_codes_rejected_by_constructors():
    from firds.core.errors import UnknownCode
    from firds.models import DebtAttributes, FixedRate, IndexCode, Term

    with pytest.raises(UnknownCode):
        Term(3, "MNTHS")
    with pytest.raises(UnknownCode):
        IndexCode("SOFR")
    with pytest.raises(UnknownCode):
        DebtAttributes(interest_rate=FixedRate(1.0), seniority="SENR")


def test_pending_strike_must_be_unpriced():
    from firds.core.errors import InvariantViolation
    from firds.models import MonetaryValue, NoPrice, StrikePrice

    assert StrikePrice(price=NoPrice(), pending=True).price_type == "NO_PRICE"
    with pytest.raises(InvariantViolation):
        StrikePrice(price=MonetaryValue(10.0, "EUR"), pending=True)


def test_commodity_taxonomy_checked():
    from firds.core.errors import InvariantViolation
    from firds.models import CommodityDerivativeAttributes

    ok = CommodityDerivativeAttributes(base_product="NRGY", subproduct="ELEC")
    assert ok.further_subproduct is None

    with pytest.raises(InvariantViolation):
        CommodityDerivativeAttributes(base_product="AGRI", subproduct="ELEC")


def test_derivative_asset_class():
    from firds.models import AssetClass, DerivativeAttributes, FxDerivativeAttributes

    attributes = DerivativeAttributes(
        asset_class_attributes=FxDerivativeAttributes(other_notional_currency="USD", fx_type="FXMJ")
    )
    assert attributes.asset_class is AssetClass.FOREIGN_EXCHANGE
    assert DerivativeAttributes().asset_class is None


@pytest.mark.parametrize("cfi,expected", [
    ("FCEPSX", "COMMODITY"),
    ("FFNCSX", "INTEREST_RATE"),
    ("FFCCSX", "FOREIGN_EXCHANGE"),
    ("OCAFPS", None),
    ("OPETPN", "COMMODITY"),
    ("SRCCSP", "INTEREST_RATE"),
    ("JFTXFP", "FOREIGN_EXCHANGE"),
    ("IFXXXP", "FOREIGN_EXCHANGE"),
    ("ESVUFR", None),
])
def test_asset_class_from_cfi(cfi, expected):
    from firds.models import AssetClass

    result = AssetClass.from_cfi(cfi)
    assert (result.name if result else None) == expected


@pytest.mark.parametrize("cfi,expected", [
    ("DBFTFB", "DEBT"),
    ("FCEPSX", "DERIVATIVE"),
    ("OCASPS", "DERIVATIVE"),
    ("RWSTCA", "DERIVATIVE"),
    ("ESVUFR", "OTHER"),
    ("CIOGEU", "OTHER"),
])
def test_instrument_category_from_cfi(cfi, expected):
    from firds.models import InstrumentCategory

    assert InstrumentCategory.from_cfi(cfi).name == expected


def test_to_dict_tags_variants():
    from firds.models import (
        DerivativeAttributes,
        Index,
        FloatingRate,
        IndexText,
        NoPrice,
        StrikePrice,
        UnderlyingIndex,
    )

    derivative = DerivativeAttributes(
        expiry_date=date(2026, 6, 30),
        underlying=UnderlyingIndex(Index(name=FloatingRate(name=IndexText("DAX")))),
        strike_price=StrikePrice(price=NoPrice(currency="EUR"), pending=True),
    )
    record = make_reference_data(cfi="OCEICS", attributes=derivative)

    data = record.to_dict()
    attributes = data["attributes"]
    assert attributes["kind"] == "derivative"
    assert attributes["expiry_date"] == "2026-06-30"
    assert attributes["underlying"]["kind"] == "index"
    assert attributes["underlying"]["index"]["name"]["name"] == {"kind": "text", "text": "DAX"}
    assert attributes["strike_price"]["price"] == {"kind": "NO_PRICE", "currency": "EUR"}
    assert attributes["strike_price"]["pending"] is True
    assert data["trading_venue_attributes"]["admission_or_first_trade_date"] == "2024-01-02T00:00:00+00:00"


def test_basket_to_dict_is_sorted():
    from firds.models import UnderlyingBasket

    basket = UnderlyingBasket(isins=frozenset({"US0378331005", "DE0007164600"}))

    from firds.models.serialization import to_plain
    assert to_plain(basket) == {
        "kind": "basket",
        "isins": ["DE0007164600", "US0378331005"],
        "issuer_leis": [],
    }
