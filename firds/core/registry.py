"""Read-only code tables for the enumerated values found in FIRDS files."""
import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from firds.core.errors import InvariantViolation, UnknownCode

logger = logging.getLogger(__name__)


class CodeTable(str, Enum):
    """Names of the registry's code tables."""

    BASE_PRODUCT = "BaseProduct"
    SUB_PRODUCT = "SubProduct"
    FURTHER_SUB_PRODUCT = "FurtherSubProduct"
    TERM_UNIT = "TermUnit"
    INDEX_CODE = "IndexCode"
    DEBT_SENIORITY = "DebtSeniority"
    OPTION_TYPE = "OptionType"
    OPTION_EXERCISE_STYLE = "OptionExerciseStyle"
    DELIVERY_TYPE = "DeliveryType"
    TRANSACTION_TYPE = "TransactionType"
    FINAL_PRICE_TYPE = "FinalPriceType"
    FX_TYPE = "FxType"
    STRIKE_PRICE_TYPE = "StrikePriceType"


_TABLES: dict[CodeTable, dict[str, str]] = {
    CodeTable.BASE_PRODUCT: {
        "AGRI": "Agricultural",
        "NRGY": "Energy",
        "ENVR": "Environmental",
        "FRGT": "Freight",
        "FRTL": "Fertilizer",
        "INDP": "Industrial products",
        "METL": "Metals",
        "MCEX": "Multi Commodity Exotic",
        "PAPR": "Paper",
        "POLY": "Polypropylene",
        "INFL": "Inflation",
        "OEST": "Official economic statistics",
        "OTHC": "Other C10",
        "OTHR": "Other",
    },
    CodeTable.SUB_PRODUCT: {
        "GROS": "Grains and Oil Seeds",
        "SOFT": "Softs",
        "POTA": "Potato",
        "OOLI": "Olive oil",
        "DIRY": "Dairy",
        "FRST": "Forestry",
        "SEAF": "Seafood",
        "LSTK": "Livestock",
        "GRIN": "Grain",
        "ELEC": "Electricity",
        "NGAS": "Natural Gas",
        "OILP": "Oil",
        "COAL": "Coal",
        "INRG": "Inter Energy",
        "RNNG": "Renewable energy",
        "LGHT": "Light ends",
        "DIST": "Distillates",
        "EMIS": "Emissions",
        "WTHR": "Weather",
        "CRBR": "Carbon related",
        "WETF": "Wet",
        "DRYF": "Dry",
        "CSHP": "Containerships",
        "AMMO": "Ammonia",
        "DAPH": "Diammonium Phosphate",
        "PTSH": "Potash",
        "SLPH": "Sulphur",
        "UREA": "Urea",
        "UAAN": "Urea and Ammonium Nitrate",
        "CSTR": "Construction",
        "MFTG": "Manufacturing",
        "NPRM": "Non Precious",
        "PRME": "Precious",
        "CBRD": "Containerboard",
        "NSPT": "Newsprint",
        "PULP": "Pulp",
        "RCVP": "Recovered paper",
        "PLST": "Plastic",
        "DLVR": "Deliverable",
        "NDLV": "Non-deliverable",
    },
    CodeTable.FURTHER_SUB_PRODUCT: {
        "FWHT": "Feed Wheat",
        "SOYB": "Soybeans",
        "CORN": "Maize",
        "RPSD": "Rapeseed",
        "RICE": "Rice",
        "CCOA": "Cocoa",
        "ROBU": "Robusta Coffee",
        "WHSG": "White Sugar",
        "BRWN": "Raw Sugar",
        "LAMP": "Lampante",
        "MWHT": "Milling Wheat",
        "BSLD": "Base load",
        "FITR": "Financial Transmission Rights",
        "PKLD": "Peak load",
        "OFFP": "Off-peak",
        "GASP": "GASPOOL",
        "LNGG": "LNG",
        "NBPG": "NBP",
        "NCGG": "NCG",
        "TTFG": "TTF",
        "BAKK": "Bakken",
        "BDSL": "Biodiesel",
        "BRNT": "Brent",
        "BRNX": "Brent NX",
        "CNDA": "Canadian",
        "COND": "Condensate",
        "DSEL": "Diesel",
        "DUBA": "Dubai",
        "ESPO": "ESPO",
        "ETHA": "Ethanol",
        "FUEL": "Fuel",
        "FOIL": "Fuel Oil",
        "GOIL": "Gasoil",
        "GSLN": "Gasoline",
        "HEAT": "Heating Oil",
        "JTFL": "Jet Fuel",
        "KERO": "Kerosene",
        "LLSO": "Light Louisiana Sweet",
        "MARS": "Mars",
        "NAPH": "Naphtha",
        "NGLO": "NGL",
        "TAPI": "Tapis",
        "URAL": "Urals",
        "WTIO": "WTI",
        "CERE": "CER",
        "ERUE": "ERU",
        "EUAE": "EUA",
        "EUAA": "EUAA",
        "TNKR": "Tankers",
        "DBCR": "Dry bulk carriers",
        "ALUM": "Aluminium",
        "ALUA": "Aluminium Alloy",
        "CBLT": "Cobalt",
        "COPR": "Copper",
        "IRON": "Iron ore",
        "LEAD": "Lead",
        "MOLY": "Molybdenum",
        "NASC": "NASAAC",
        "NICK": "Nickel",
        "STEL": "Steel",
        "TINN": "Tin",
        "ZINC": "Zinc",
        "GOLD": "Gold",
        "SLVR": "Silver",
        "PTNM": "Platinum",
        "PLDM": "Palladium",
        "OTHR": "Other",
    },
    CodeTable.TERM_UNIT: {
        "DAYS": "Days",
        "WEEK": "Weeks",
        "MNTH": "Months",
        "YEAR": "Years",
    },
    CodeTable.INDEX_CODE: {
        "EONA": "EONIA",
        "EONS": "EONIA SWAP",
        "EURO": "EURIBOR",
        "EUCH": "EuroSwiss",
        "GCFR": "GCF REPO",
        "ISDA": "ISDAFIX",
        "LIBI": "LIBID",
        "LIBO": "LIBOR",
        "MAAA": "Muni AAA",
        "PFAN": "Pfandbriefe",
        "TIBO": "TIBOR",
        "STBO": "STIBOR",
        "BBSW": "BBSW",
        "JIBA": "JIBAR",
        "BUBO": "BUBOR",
        "CDOR": "CDOR",
        "CIBO": "CIBOR",
        "MOSP": "MOSPRIM",
        "NIBO": "NIBOR",
        "PRBO": "PRIBOR",
        "TLBO": "TELBOR",
        "WIBO": "WIBOR",
        "TREA": "Treasury",
        "SWAP": "SWAP",
        "FUSW": "Future SWAP",
    },
    CodeTable.DEBT_SENIORITY: {
        "SNDB": "Senior Debt",
        "MZZD": "Mezzanine Debt",
        "SBOD": "Subordinated Debt",
        "JUND": "Junior Debt",
    },
    CodeTable.OPTION_TYPE: {
        "PUTO": "Put",
        "CALL": "Call",
        "OTHR": "Other",
    },
    CodeTable.OPTION_EXERCISE_STYLE: {
        "EURO": "European",
        "AMER": "American",
        "ASIA": "Asian",
        "BERM": "Bermudan",
        "OTHR": "Other",
    },
    CodeTable.DELIVERY_TYPE: {
        "PHYS": "Physical",
        "CASH": "Cash",
        "OPTL": "Optional",
    },
    CodeTable.TRANSACTION_TYPE: {
        "FUTR": "Futures",
        "OPTN": "Options",
        "TAPO": "TAPOS",
        "SWAP": "Swaps",
        "MINI": "Minis",
        "OTCT": "OTC",
        "ORIT": "Outright",
        "CRCK": "Crack",
        "DIFF": "Differential",
        "OTHR": "Other",
    },
    CodeTable.FINAL_PRICE_TYPE: {
        "ARGM": "Argus/McCloskey",
        "BLTC": "Baltic",
        "EXOF": "Exchange",
        "GBCL": "GlobalCOAL",
        "IHSM": "IHS McCloskey",
        "PLAT": "Platts",
        "OTHR": "Other",
    },
    CodeTable.FX_TYPE: {
        "FXCR": "FX Cross Rates",
        "FXEM": "FX Emerging Markets",
        "FXMJ": "FX Majors",
    },
    CodeTable.STRIKE_PRICE_TYPE: {
        "MONETARY_VALUE": "Monetary value",
        "PERCENTAGE": "Percentage",
        "YIELD": "Yield",
        "BASIS_POINTS": "Basis points",
        "NO_PRICE": "No price",
    },
}

# Base product -> sub product -> permitted further sub products.
# An empty mapping or set means the level below does not exist.
_TAXONOMY: dict[str, dict[str, frozenset[str]]] = {
    "AGRI": {
        "GROS": frozenset({"FWHT", "SOYB", "CORN", "RPSD", "RICE", "OTHR"}),
        "SOFT": frozenset({"CCOA", "ROBU", "WHSG", "BRWN", "OTHR"}),
        "POTA": frozenset(),
        "OOLI": frozenset({"LAMP"}),
        "DIRY": frozenset(),
        "FRST": frozenset(),
        "SEAF": frozenset(),
        "LSTK": frozenset(),
        "GRIN": frozenset({"MWHT"}),
    },
    "NRGY": {
        "ELEC": frozenset({"BSLD", "FITR", "PKLD", "OFFP", "OTHR"}),
        "NGAS": frozenset({"GASP", "LNGG", "NBPG", "NCGG", "TTFG"}),
        "OILP": frozenset({
            "BAKK", "BDSL", "BRNT", "BRNX", "CNDA", "COND", "DSEL", "DUBA",
            "ESPO", "ETHA", "FUEL", "FOIL", "GOIL", "GSLN", "HEAT", "JTFL",
            "KERO", "LLSO", "MARS", "NAPH", "NGLO", "TAPI", "URAL", "WTIO",
        }),
        "COAL": frozenset(),
        "INRG": frozenset(),
        "RNNG": frozenset(),
        "LGHT": frozenset(),
        "DIST": frozenset(),
    },
    "ENVR": {
        "EMIS": frozenset({"CERE", "ERUE", "EUAE", "EUAA", "OTHR"}),
        "WTHR": frozenset(),
        "CRBR": frozenset(),
    },
    "FRGT": {
        "WETF": frozenset({"TNKR"}),
        "DRYF": frozenset({"DBCR"}),
        "CSHP": frozenset(),
    },
    "FRTL": {
        "AMMO": frozenset(),
        "DAPH": frozenset(),
        "PTSH": frozenset(),
        "SLPH": frozenset(),
        "UREA": frozenset(),
        "UAAN": frozenset(),
    },
    "INDP": {
        "CSTR": frozenset(),
        "MFTG": frozenset(),
    },
    "METL": {
        "NPRM": frozenset({
            "ALUM", "ALUA", "CBLT", "COPR", "IRON", "LEAD", "MOLY",
            "NASC", "NICK", "STEL", "TINN", "ZINC", "OTHR",
        }),
        "PRME": frozenset({"GOLD", "SLVR", "PTNM", "PLDM", "OTHR"}),
    },
    "MCEX": {},
    "PAPR": {
        "CBRD": frozenset(),
        "NSPT": frozenset(),
        "PULP": frozenset(),
        "RCVP": frozenset(),
    },
    "POLY": {
        "PLST": frozenset(),
    },
    "INFL": {},
    "OEST": {},
    "OTHC": {
        "DLVR": frozenset(),
        "NDLV": frozenset(),
    },
    "OTHR": {},
}


class EnumerationRegistry:
    """Immutable lookup of code tables and the commodity product taxonomy.

    Built once and shared; every accessor returns read-only views.
    """

    def __init__(
        self,
        tables: Mapping[CodeTable, Mapping[str, str]],
        taxonomy: Mapping[str, Mapping[str, frozenset[str]]],
    ):
        self._tables = MappingProxyType(
            {table: MappingProxyType(dict(codes)) for table, codes in tables.items()}
        )
        self._taxonomy = MappingProxyType(
            {base: MappingProxyType(dict(subs)) for base, subs in taxonomy.items()}
        )

    @classmethod
    def default(cls) -> "EnumerationRegistry":
        return cls(_TABLES, _TAXONOMY)

    def lookup(self, table: CodeTable, code: str) -> str:
        """Return the label for ``code`` in ``table``.

        Raises:
            UnknownCode: If the code is not in the table.
        """
        try:
            return self._tables[table][code]
        except KeyError:
            raise UnknownCode(table.value, code) from None

    def contains(self, table: CodeTable, code: str) -> bool:
        return code in self._tables[table]

    def codes(self, table: CodeTable) -> frozenset[str]:
        return frozenset(self._tables[table])

    def validate_product(
        self,
        base_product: str,
        subproduct: str | None = None,
        further_subproduct: str | None = None,
    ) -> None:
        """Check a commodity classification against the product taxonomy.

        Every code must exist in its table, the sub product must belong to
        the base product and the further sub product to the sub product.

        Raises:
            UnknownCode: If a code is not in its table.
            InvariantViolation: If the codes are not nested as the taxonomy requires.
        """
        self.lookup(CodeTable.BASE_PRODUCT, base_product)
        if subproduct is not None:
            self.lookup(CodeTable.SUB_PRODUCT, subproduct)
        if further_subproduct is not None:
            self.lookup(CodeTable.FURTHER_SUB_PRODUCT, further_subproduct)

        subs = self._taxonomy[base_product]
        if subproduct is None:
            if further_subproduct is not None:
                raise InvariantViolation(
                    f"Further sub product {further_subproduct} given without a sub product"
                )
            return

        if subproduct not in subs:
            raise InvariantViolation(
                f"Sub product {subproduct} does not belong to base product {base_product}"
            )

        if further_subproduct is not None and further_subproduct not in subs[subproduct]:
            raise InvariantViolation(
                f"Further sub product {further_subproduct} does not belong to "
                f"{base_product}/{subproduct}"
            )


_REGISTRY = EnumerationRegistry.default()

logger.debug(
    "INIT: Enumeration registry built",
    extra={
        "extra_data": {
            "action": "registry_init",
            "tables": {table.value: len(codes) for table, codes in _TABLES.items()},
        }
    },
)


def get_registry() -> EnumerationRegistry:
    """Return the process-wide registry."""
    return _REGISTRY
