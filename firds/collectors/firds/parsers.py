"""Streaming decoder from FIRDS XML to the domain model.

Each record element is decoded independently; a record that fails to map
is reported as a ``MappingError`` in the output stream instead of raising,
so one bad record never stops the file.
"""
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import IO, Callable, Iterator

from firds.core.errors import (
    InvalidValue,
    InvariantViolation,
    MalformedDocument,
    MappingError,
    MissingField,
    UnexpectedAttributes,
)
from firds.models import (
    AssetClass,
    AssetClassSpecificAttributes,
    BasisPoints,
    CommodityDerivativeAttributes,
    DebtAttributes,
    DerivativeAttributes,
    DerivativeUnderlying,
    FixedRate,
    FloatingInterestRate,
    FloatingRate,
    FxDerivativeAttributes,
    Index,
    IndexCode,
    IndexText,
    InstrumentCategory,
    InterestRate,
    InterestRateDerivativeAttributes,
    MonetaryValue,
    NoPrice,
    Percentage,
    PublicationPeriod,
    ReferenceData,
    StrikePrice,
    TechnicalAttributes,
    Term,
    TradingVenueAttributes,
    UnderlyingBasket,
    UnderlyingIndex,
    UnderlyingIsin,
    UnderlyingLei,
    Yield,
)

logger = logging.getLogger(__name__)

RECORD_TAGS = frozenset({"RefData", "NewRcrd", "ModfdRcrd", "TermntdRcrd"})

_DECIMAL = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_INTEGER = re.compile(r"^[+-]?\d+$")
_BOOLEANS = {"true": True, "1": True, "false": False, "0": False}


@dataclass(frozen=True)
class MappedRecord:
    """Outcome of decoding one record element, in document order."""

    position: int
    action: str
    result: ReferenceData | MappingError

    @property
    def ok(self) -> bool:
        return isinstance(self.result, ReferenceData)


# =============================================================================
# Scalar helpers
# =============================================================================


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text(elem: ET.Element | None, path: str) -> str | None:
    if elem is None:
        return None
    child = elem.find(path)
    if child is None or child.text is None:
        return None
    value = child.text.strip()
    return value or None


def _required(elem: ET.Element | None, path: str, name: str | None = None) -> str:
    value = _text(elem, path)
    if value is None:
        raise MissingField(name or path)
    return value


def _required_child(elem: ET.Element, path: str, name: str | None = None) -> ET.Element:
    child = elem.find(path)
    if child is None:
        raise MissingField(name or path)
    return child


def _decimal(name: str, value: str | None) -> float | None:
    if value is None:
        return None
    if not _DECIMAL.match(value):
        raise InvalidValue(name, value)
    return float(value)


def _integer(name: str, value: str | None) -> int | None:
    if value is None:
        return None
    if not _INTEGER.match(value):
        raise InvalidValue(name, value)
    return int(value)


def _boolean(name: str, value: str) -> bool:
    try:
        return _BOOLEANS[value.lower()]
    except KeyError:
        raise InvalidValue(name, value) from None


def _datetime(name: str, value: str | None) -> datetime | None:
    """Parse a date or date-time; naive values are taken as UTC."""
    if value is None:
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidValue(name, value) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _date(name: str, value: str | None) -> date | None:
    if value is None:
        return None
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            raise InvalidValue(name, value) from None
    # calendar date as published, not shifted to UTC
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise InvalidValue(name, value) from None


def _exactly_one(elem: ET.Element, tags: tuple[str, ...], name: str) -> ET.Element:
    """Return the single child among ``tags``; zero or several is an error."""
    found = [child for child in elem if child.tag in tags]
    if not found:
        raise MissingField(f"{name}/({'|'.join(tags)})")
    if len(found) > 1:
        raise InvariantViolation(
            f"{name} must hold exactly one of {', '.join(tags)}, "
            f"found {', '.join(child.tag for child in found)}"
        )
    return found[0]


# =============================================================================
# Rates
# =============================================================================


def _floating_rate(elem: ET.Element) -> FloatingRate:
    """Decode a ``RefRate``/``Term`` pair (FloatingInterestRate8 in the schema)."""
    name = None
    ref_rate = elem.find("RefRate")
    if ref_rate is not None:
        choice = _exactly_one(ref_rate, ("Indx", "Nm"), "RefRate")
        value = _required(ref_rate, choice.tag, f"RefRate/{choice.tag}")
        name = IndexCode(value) if choice.tag == "Indx" else IndexText(value)

    term = None
    term_elem = elem.find("Term")
    if term_elem is not None:
        term = Term(
            number=_integer("Term/Val", _required(term_elem, "Val", "Term/Val")),
            unit=_required(term_elem, "Unit", "Term/Unit"),
        )

    return FloatingRate(name=name, term=term)


def _interest_rate(elem: ET.Element | None, name: str) -> InterestRate:
    """Decode an ``Fxd``/``Fltg`` choice; both or neither is an invariant violation."""
    if elem is None or not any(child.tag in ("Fxd", "Fltg") for child in elem):
        raise InvariantViolation(f"{name} must hold exactly one of Fxd, Fltg, found neither")
    choice = _exactly_one(elem, ("Fxd", "Fltg"), name)
    if choice.tag == "Fxd":
        return FixedRate(rate=_decimal(f"{name}/Fxd", _required(elem, "Fxd")))
    return FloatingInterestRate(
        reference=_floating_rate(choice),
        spread=_integer(f"{name}/Fltg/BsisPtSprd", _text(choice, "BsisPtSprd")),
    )


# =============================================================================
# Record level groups
# =============================================================================


def _trading_venue(elem: ET.Element) -> TradingVenueAttributes:
    return TradingVenueAttributes(
        trading_venue=_required(elem, "Id", "TradgVnRltdAttrbts/Id"),
        requested_admission=_boolean(
            "IssrReq", _required(elem, "IssrReq", "TradgVnRltdAttrbts/IssrReq")
        ),
        approval_date=_datetime("AdmssnApprvlDtByIssr", _text(elem, "AdmssnApprvlDtByIssr")),
        request_date=_datetime("ReqForAdmssnDt", _text(elem, "ReqForAdmssnDt")),
        admission_or_first_trade_date=_datetime("FrstTradDt", _text(elem, "FrstTradDt")),
        termination_date=_datetime("TermntnDt", _text(elem, "TermntnDt")),
    )


def _technical(elem: ET.Element) -> TechnicalAttributes:
    period = None
    period_elem = elem.find("PblctnPrd")
    if period_elem is not None:
        choice = _exactly_one(period_elem, ("FrDtToDt", "FrDt"), "PblctnPrd")
        if choice.tag == "FrDtToDt":
            period = PublicationPeriod(
                from_date=_date("FrDt", _required(choice, "FrDt", "PblctnPrd/FrDtToDt/FrDt")),
                to_date=_date("ToDt", _text(choice, "ToDt")),
            )
        else:
            period = PublicationPeriod(
                from_date=_date("FrDt", _required(period_elem, "FrDt", "PblctnPrd/FrDt"))
            )

    return TechnicalAttributes(
        relevant_competent_authority=_text(elem, "RlvntCmptntAuthrty"),
        publication_period=period,
        relevant_trading_venue=_text(elem, "RlvntTradgVn"),
    )


def _debt(elem: ET.Element) -> DebtAttributes:
    amount_elem = elem.find("TtlIssdNmnlAmt")
    nominal_elem = elem.find("NmnlValPerUnit")
    nominal_currency = None
    if amount_elem is not None:
        nominal_currency = amount_elem.get("Ccy")
    if nominal_currency is None and nominal_elem is not None:
        nominal_currency = nominal_elem.get("Ccy")

    return DebtAttributes(
        interest_rate=_interest_rate(elem.find("IntrstRate"), "DebtInstrmAttrbts/IntrstRate"),
        total_issued_amount=_decimal("TtlIssdNmnlAmt", _text(elem, "TtlIssdNmnlAmt")),
        maturity_date=_date("MtrtyDt", _text(elem, "MtrtyDt")),
        nominal_currency=nominal_currency,
        nominal_value_per_unit=_decimal("NmnlValPerUnit", _text(elem, "NmnlValPerUnit")),
        seniority=_text(elem, "DebtSnrty"),
    )


# =============================================================================
# Derivative groups
# =============================================================================


def _index(elem: ET.Element) -> Index:
    name_elem = _required_child(elem, "Nm", "Indx/Nm")
    return Index(name=_floating_rate(name_elem), isin=_text(elem, "ISIN"))


def _underlying(elem: ET.Element) -> DerivativeUnderlying:
    choice = _exactly_one(elem, ("Sngl", "Bskt"), "UndrlygInstrm")
    if choice.tag == "Bskt":
        return UnderlyingBasket(
            isins=frozenset(c.text.strip() for c in choice.findall("ISIN") if c.text),
            issuer_leis=frozenset(c.text.strip() for c in choice.findall("LEI") if c.text),
        )

    single = _exactly_one(choice, ("ISIN", "Indx", "LEI"), "UndrlygInstrm/Sngl")
    if single.tag == "ISIN":
        return UnderlyingIsin(isin=_required(choice, "ISIN", "UndrlygInstrm/Sngl/ISIN"))
    if single.tag == "LEI":
        return UnderlyingLei(lei=_required(choice, "LEI", "UndrlygInstrm/Sngl/LEI"))
    return UnderlyingIndex(index=_index(single))


def _strike_price(elem: ET.Element) -> StrikePrice:
    choice = _exactly_one(elem, ("Pric", "NoPric"), "StrkPric")
    if choice.tag == "NoPric":
        pending = _required(choice, "Pdg", "StrkPric/NoPric/Pdg")
        if pending not in ("PNDG", "NOAP"):
            raise InvalidValue("StrkPric/NoPric/Pdg", pending)
        return StrikePrice(price=NoPrice(currency=_text(choice, "Ccy")), pending=pending == "PNDG")

    value = _exactly_one(choice, ("MntryVal", "Pctg", "Yld", "BsisPts"), "StrkPric/Pric")
    if value.tag == "MntryVal":
        amount = _decimal("MntryVal/Amt", _required(value, "Amt", "StrkPric/Pric/MntryVal/Amt"))
        currency = _text(value, "Ccy") or value.find("Amt").get("Ccy")
        return StrikePrice(price=MonetaryValue(amount=amount, currency=currency))

    number = _decimal(f"StrkPric/Pric/{value.tag}", _required(choice, value.tag))
    variant = {"Pctg": Percentage, "Yld": Yield, "BsisPts": BasisPoints}[value.tag]
    return StrikePrice(price=variant(number))


def _commodity(elem: ET.Element) -> CommodityDerivativeAttributes:
    # Pdct/<base group>/[<sub group>/]BasePdct
    product = _required_child(elem, "Pdct", "Cmmdty/Pdct")
    holder = next((node for node in product.iter() if node.find("BasePdct") is not None), None)
    if holder is None:
        raise MissingField("Cmmdty/Pdct/BasePdct")

    return CommodityDerivativeAttributes(
        base_product=_required(holder, "BasePdct", "Cmmdty/Pdct/BasePdct"),
        subproduct=_text(holder, "SubPdct"),
        further_subproduct=_text(holder, "AddtlSubPdct"),
        transaction_type=_text(elem, "TxTp"),
        final_price_type=_text(elem, "FnlPricTp"),
    )


def _interest_rate_derivative(elem: ET.Element) -> InterestRateDerivativeAttributes:
    first_leg = elem.find("FirstLegIntrstRate")
    other_leg = elem.find("OthrLegIntrstRate")
    return InterestRateDerivativeAttributes(
        reference_rate=_floating_rate(_required_child(elem, "IntrstRate", "Intrst/IntrstRate")),
        first_leg_rate=_interest_rate(first_leg, "FirstLegIntrstRate") if first_leg is not None else None,
        other_notional_currency=_text(elem, "OthrNtnlCcy"),
        other_leg_rate=_interest_rate(other_leg, "OthrLegIntrstRate") if other_leg is not None else None,
    )


def _fx_derivative(elem: ET.Element) -> FxDerivativeAttributes:
    return FxDerivativeAttributes(
        other_notional_currency=_text(elem, "OthrNtnlCcy"),
        fx_type=_text(elem, "FxTp"),
    )


ASSET_CLASS_DECODERS: dict[AssetClass, Callable[[ET.Element], AssetClassSpecificAttributes]] = {
    AssetClass.COMMODITY: _commodity,
    AssetClass.INTEREST_RATE: _interest_rate_derivative,
    AssetClass.FOREIGN_EXCHANGE: _fx_derivative,
}


def _asset_class_attributes(elem: ET.Element, cfi: str) -> AssetClassSpecificAttributes:
    branch = _exactly_one(
        elem, tuple(asset_class.value for asset_class in AssetClass), "AsstClssSpcfcAttrbts"
    )
    asset_class = AssetClass(branch.tag)
    expected = AssetClass.from_cfi(cfi)
    if expected is not None and expected is not asset_class:
        raise UnexpectedAttributes(
            f"AsstClssSpcfcAttrbts/{branch.tag}",
            f"CFI {cfi} describes {expected.name.lower()} instruments",
        )
    return ASSET_CLASS_DECODERS[asset_class](branch)


_DERIVATIVE_CHILDREN = frozenset({
    "XpryDt",
    "PricMltplr",
    "UndrlygInstrm",
    "OptnTp",
    "StrkPric",
    "OptnExrcStyle",
    "DlvryTp",
    "AsstClssSpcfcAttrbts",
})


def _derivative(elem: ET.Element, cfi: str) -> DerivativeAttributes:
    for child in elem:
        if child.tag not in _DERIVATIVE_CHILDREN:
            raise UnexpectedAttributes(f"DerivInstrmAttrbts/{child.tag}")

    underlying = elem.find("UndrlygInstrm")
    strike = elem.find("StrkPric")
    asset_class = elem.find("AsstClssSpcfcAttrbts")

    return DerivativeAttributes(
        expiry_date=_date("XpryDt", _text(elem, "XpryDt")),
        price_multiplier=_decimal("PricMltplr", _text(elem, "PricMltplr")),
        underlying=_underlying(underlying) if underlying is not None else None,
        option_type=_text(elem, "OptnTp"),
        strike_price=_strike_price(strike) if strike is not None else None,
        option_exercise_style=_text(elem, "OptnExrcStyle"),
        delivery_type=_text(elem, "DlvryTp"),
        asset_class_attributes=(
            _asset_class_attributes(asset_class, cfi) if asset_class is not None else None
        ),
    )


# =============================================================================
# Record
# =============================================================================


def decode_reference_data(elem: ET.Element) -> ReferenceData:
    """Decode one namespace-stripped record element.

    Raises:
        MappingError: If any field is missing, malformed or inconsistent.
    """
    general = _required_child(elem, "FinInstrmGnlAttrbts")
    cfi = _required(general, "ClssfctnTp", "FinInstrmGnlAttrbts/ClssfctnTp")
    if len(cfi) != 6:
        raise InvalidValue("FinInstrmGnlAttrbts/ClssfctnTp", cfi)

    debt = elem.find("DebtInstrmAttrbts")
    derivative = elem.find("DerivInstrmAttrbts")
    category = InstrumentCategory.from_cfi(cfi)
    if debt is not None and derivative is not None:
        raise InvariantViolation("Record carries both debt and derivative attributes")
    if debt is not None and category is InstrumentCategory.DERIVATIVE:
        raise UnexpectedAttributes("DebtInstrmAttrbts", f"CFI {cfi} is a derivative")
    if derivative is not None and category is InstrumentCategory.DEBT:
        raise UnexpectedAttributes("DerivInstrmAttrbts", f"CFI {cfi} is a debt instrument")

    attributes = None
    if debt is not None:
        attributes = _debt(debt)
    elif derivative is not None:
        attributes = _derivative(derivative, cfi)

    technical = elem.find("TechAttrbts")

    return ReferenceData(
        isin=_required(general, "Id", "FinInstrmGnlAttrbts/Id"),
        full_name=_required(general, "FullNm", "FinInstrmGnlAttrbts/FullNm"),
        cfi=cfi,
        is_commodities_derivative=_boolean(
            "CmmdtyDerivInd",
            _required(general, "CmmdtyDerivInd", "FinInstrmGnlAttrbts/CmmdtyDerivInd"),
        ),
        issuer_lei=_required(elem, "Issr"),
        short_name=_required(general, "ShrtNm", "FinInstrmGnlAttrbts/ShrtNm"),
        notional_currency=_required(general, "NtnlCcy", "FinInstrmGnlAttrbts/NtnlCcy"),
        trading_venue_attributes=_trading_venue(_required_child(elem, "TradgVnRltdAttrbts")),
        technical_attributes=_technical(technical) if technical is not None else None,
        attributes=attributes,
    )


class SchemaMapper:
    """Lazily maps a FIRDS XML byte stream to reference data records."""

    def __init__(self, record_tags: frozenset[str] = RECORD_TAGS):
        self.record_tags = record_tags

    def map(self, stream: IO[bytes]) -> Iterator[MappedRecord]:
        """Yield one ``MappedRecord`` per record element in document order.

        Decoded elements are detached from the tree as soon as they are
        mapped, so memory does not grow with the number of records.

        Raises:
            MalformedDocument: If the XML stops being well formed. Records
                before the fault have already been yielded.
        """
        position = 0
        stack: list[ET.Element] = []
        open_records = 0
        try:
            for event, elem in ET.iterparse(stream, events=("start", "end")):
                if event == "start":
                    stack.append(elem)
                    if _local(elem.tag) in self.record_tags:
                        open_records += 1
                    continue

                stack.pop()
                elem.tag = _local(elem.tag)
                if elem.tag not in self.record_tags:
                    # Outside a record nothing is read again: envelopes,
                    # headers and per-record wrappers like FinInstrm.
                    if not open_records and stack:
                        stack[-1].remove(elem)
                        elem.clear()
                    continue
                open_records -= 1

                result: ReferenceData | MappingError
                try:
                    result = decode_reference_data(elem)
                except MappingError as e:
                    result = e
                    logger.debug(
                        f"Rejected record {position}: {e}",
                        extra={
                            "extra_data": {
                                "action": "record_rejected",
                                "position": position,
                                "kind": e.kind.value,
                            }
                        },
                    )

                yield MappedRecord(position=position, action=elem.tag, result=result)
                position += 1

                if stack:
                    stack[-1].remove(elem)
                elem.clear()
        except ET.ParseError as e:
            raise MalformedDocument(f"Invalid XML after {position} records: {e}") from e
