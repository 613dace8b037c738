"""Shape checks shared by the domain model constructors."""
import re
from datetime import date

from firds.core.errors import InvalidValue, InvariantViolation
from firds.core.registry import CodeTable, get_registry

_ISIN = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}[0-9]$")
_LEI = re.compile(r"^[A-Z0-9]{18}[0-9]{2}$")
_CURRENCY = re.compile(r"^[A-Z]{3}$")
_CFI = re.compile(r"^[A-Z]{6}$")


def check_isin(name: str, value: str) -> None:
    if not _ISIN.match(value):
        raise InvalidValue(name, value)


def check_lei(name: str, value: str) -> None:
    if not _LEI.match(value):
        raise InvalidValue(name, value)


def check_currency(name: str, value: str | None) -> None:
    if value is not None and not _CURRENCY.match(value):
        raise InvalidValue(name, value)


def check_cfi(value: str) -> None:
    if not _CFI.match(value):
        raise InvalidValue("cfi", value)


def check_code(table: CodeTable, code: str | None) -> None:
    """Fail closed on codes that are not in the registry."""
    if code is not None:
        get_registry().lookup(table, code)


def check_not_before(earlier: date | None, later: date | None, message: str) -> None:
    if earlier is not None and later is not None and later < earlier:
        raise InvariantViolation(message)
