"""Domain model for FIRDS instrument reference data."""

from firds.models.debt import (
    DebtAttributes,
    FixedRate,
    FloatingInterestRate,
    FloatingRate,
    IndexCode,
    IndexName,
    IndexText,
    InterestRate,
    Term,
)
from firds.models.derivative import (
    AssetClass,
    AssetClassSpecificAttributes,
    BasisPoints,
    CommodityDerivativeAttributes,
    DerivativeAttributes,
    DerivativeUnderlying,
    FxDerivativeAttributes,
    Index,
    InterestRateDerivativeAttributes,
    MonetaryValue,
    NoPrice,
    Percentage,
    StrikePrice,
    StrikePriceValue,
    UnderlyingBasket,
    UnderlyingIndex,
    UnderlyingIsin,
    UnderlyingLei,
    Yield,
)
from firds.models.files import ArchiveKind, FileDescriptor, FileType, FirdsSource, RawArchive
from firds.models.records import ChangeRecord, ChangeTag, FileLedger, FileStatus, SourceMetadata
from firds.models.reference_data import (
    InstrumentCategory,
    PublicationPeriod,
    ReferenceData,
    TechnicalAttributes,
    TradingVenueAttributes,
)

__all__ = [
    "ArchiveKind",
    "AssetClass",
    "AssetClassSpecificAttributes",
    "BasisPoints",
    "ChangeRecord",
    "ChangeTag",
    "CommodityDerivativeAttributes",
    "DebtAttributes",
    "DerivativeAttributes",
    "DerivativeUnderlying",
    "FileDescriptor",
    "FileLedger",
    "FileStatus",
    "FileType",
    "FirdsSource",
    "FixedRate",
    "FloatingInterestRate",
    "FloatingRate",
    "FxDerivativeAttributes",
    "Index",
    "IndexCode",
    "IndexName",
    "IndexText",
    "InstrumentCategory",
    "InterestRate",
    "InterestRateDerivativeAttributes",
    "MonetaryValue",
    "NoPrice",
    "Percentage",
    "PublicationPeriod",
    "RawArchive",
    "ReferenceData",
    "SourceMetadata",
    "StrikePrice",
    "StrikePriceValue",
    "TechnicalAttributes",
    "Term",
    "TradingVenueAttributes",
    "UnderlyingBasket",
    "UnderlyingIndex",
    "UnderlyingIsin",
    "UnderlyingLei",
    "Yield",
]
