"""Shared FIRDS XML builders for unit tests."""
import io
import zipfile

import pytest

ISIN = "DE000A1EWWW0"
LEI = "529900T8BM49AURSDO55"

DEBT_ATTRIBUTES = """
<DebtInstrmAttrbts>
  <TtlIssdNmnlAmt Ccy="EUR">1000000</TtlIssdNmnlAmt>
  <MtrtyDt>2030-01-01</MtrtyDt>
  <NmnlValPerUnit Ccy="EUR">1000</NmnlValPerUnit>
  <IntrstRate><Fxd>0.05</Fxd></IntrstRate>
  <DebtSnrty>SNDB</DebtSnrty>
</DebtInstrmAttrbts>
"""

COMMODITY_DERIVATIVE_ATTRIBUTES = """
<DerivInstrmAttrbts>
  <XpryDt>2026-12-31</XpryDt>
  <PricMltplr>1</PricMltplr>
  <DlvryTp>PHYS</DlvryTp>
  <AsstClssSpcfcAttrbts>
    <Cmmdty>
      <Pdct>
        <Nrgy>
          <Elctrcty>
            <BasePdct>NRGY</BasePdct>
            <SubPdct>ELEC</SubPdct>
          </Elctrcty>
        </Nrgy>
      </Pdct>
      <TxTp>FUTR</TxTp>
      <FnlPricTp>EXOF</FnlPricTp>
    </Cmmdty>
  </AsstClssSpcfcAttrbts>
</DerivInstrmAttrbts>
"""


def build_record(
    tag: str = "RefData",
    isin: str = ISIN,
    cfi: str = "DBFTFB",
    attributes: str = DEBT_ATTRIBUTES,
    issuer: str | None = LEI,
    commodity: str = "false",
    venue: str | None = None,
) -> str:
    """Render one record element; pass ``issuer=None`` to leave it out."""
    issuer_xml = f"<Issr>{issuer}</Issr>" if issuer is not None else ""
    if venue is None:
        venue = """
<TradgVnRltdAttrbts>
  <Id>XFRA</Id>
  <IssrReq>false</IssrReq>
  <FrstTradDt>2024-01-02T00:00:00Z</FrstTradDt>
  <TermntnDt>2030-01-01T23:59:59Z</TermntnDt>
</TradgVnRltdAttrbts>
"""
    return f"""
<{tag}>
  <FinInstrmGnlAttrbts>
    <Id>{isin}</Id>
    <FullNm>Example Instrument {isin}</FullNm>
    <ShrtNm>EXAMPLE/INSTR</ShrtNm>
    <ClssfctnTp>{cfi}</ClssfctnTp>
    <NtnlCcy>EUR</NtnlCcy>
    <CmmdtyDerivInd>{commodity}</CmmdtyDerivInd>
  </FinInstrmGnlAttrbts>
  {issuer_xml}
  {venue}
  <TechAttrbts>
    <RlvntCmptntAuthrty>DE</RlvntCmptntAuthrty>
    <PblctnPrd><FrDt>2024-01-02</FrDt></PblctnPrd>
    <RlvntTradgVn>XFRA</RlvntTradgVn>
  </TechAttrbts>
  {attributes}
</{tag}>
"""


def build_document(*records: str, wrap_each: bool = False) -> bytes:
    """Wrap records in a namespaced FIRDS envelope.

    With ``wrap_each`` every record gets its own ``FinInstrm``, as in
    published delta files.
    """
    if wrap_each:
        body = "".join(f"<FinInstrm>{record}</FinInstrm>" for record in records)
    else:
        body = f"<FinInstrm>{''.join(records)}</FinInstrm>"
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<BizData xmlns="urn:iso:std:iso:20022:tech:xsd:head.003.001.01">
  <Pyld>
    <Document xmlns="urn:iso:std:iso:20022:tech:xsd:auth.036.001.02">
      <FinInstrmRptgRefDataDltaRpt>
        {body}
      </FinInstrmRptgRefDataDltaRpt>
    </Document>
  </Pyld>
</BizData>
""".encode("utf-8")


def build_zip(members: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


@pytest.fixture
def make_record():
    return build_record


@pytest.fixture
def make_document():
    return build_document


@pytest.fixture
def make_zip():
    return build_zip


@pytest.fixture
def debt_attributes():
    return DEBT_ATTRIBUTES


@pytest.fixture
def commodity_attributes():
    return COMMODITY_DERIVATIVE_ATTRIBUTES
