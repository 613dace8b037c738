"""Error taxonomy for FIRDS ingestion.

Every error carries an ``ErrorKind`` so per-file ledgers can count
rejections without string matching, and a ``retryable`` flag the fetcher
consults before backing off.
"""
from enum import Enum


class ErrorKind(str, Enum):
    """Categories of ingestion failures."""

    NETWORK = "network"
    FETCH = "fetch"
    SOURCE_INDEX = "source_index"
    INTEGRITY_MISMATCH = "integrity_mismatch"
    CORRUPT_ARCHIVE = "corrupt_archive"
    MALFORMED_DOCUMENT = "malformed_document"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"
    UNKNOWN_CODE = "unknown_code"
    INVARIANT_VIOLATION = "invariant_violation"
    UNEXPECTED_ATTRIBUTES = "unexpected_attributes"
    UNCLASSIFIABLE_SOURCE = "unclassifiable_source"


class FirdsError(Exception):
    """Base exception for all ingestion errors."""

    kind: ErrorKind = ErrorKind.FETCH
    retryable: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "error": type(self).__name__,
            "message": str(self),
            "retryable": self.retryable,
        }


# =============================================================================
# Acquisition
# =============================================================================


class FetchError(FirdsError):
    """Non-transient failure talking to a source (e.g. HTTP 404)."""

    kind = ErrorKind.FETCH


class NetworkTransient(FetchError):
    """Timeout, connection reset or a 5xx/429 response."""

    kind = ErrorKind.NETWORK
    retryable = True


class SourceIndexError(FetchError):
    """The source's file index returned a payload we cannot read."""

    kind = ErrorKind.SOURCE_INDEX


class IntegrityMismatch(FirdsError):
    """Downloaded bytes do not hash to the advertised checksum."""

    kind = ErrorKind.INTEGRITY_MISMATCH

    def __init__(self, url: str, expected: str, actual: str):
        super().__init__(f"Checksum mismatch for {url}: expected {expected}, got {actual}")
        self.url = url
        self.expected = expected
        self.actual = actual


class CorruptArchive(FirdsError):
    """Archive cannot be opened or a member cannot be decompressed."""

    kind = ErrorKind.CORRUPT_ARCHIVE


# =============================================================================
# Mapping
# =============================================================================


class MappingError(FirdsError):
    """A single record could not be turned into a domain entity."""

    kind = ErrorKind.INVALID_VALUE


class MissingField(MappingError):
    """A mandatory element is absent or empty."""

    kind = ErrorKind.MISSING_FIELD

    def __init__(self, name: str):
        super().__init__(f"Missing required field: {name}")
        self.name = name


class InvalidValue(MappingError):
    """A scalar does not parse as its declared type."""

    kind = ErrorKind.INVALID_VALUE

    def __init__(self, name: str, value: str | None = None):
        detail = f" ({value!r})" if value is not None else ""
        super().__init__(f"Invalid value for {name}{detail}")
        self.name = name
        self.value = value


class UnknownCode(MappingError):
    """An enumerated code is absent from its registry table."""

    kind = ErrorKind.UNKNOWN_CODE

    def __init__(self, table: str, code: str):
        super().__init__(f"Unknown {table} code: {code!r}")
        self.table = table
        self.code = code


class InvariantViolation(MappingError):
    """An exclusivity or ordering rule of the model is broken."""

    kind = ErrorKind.INVARIANT_VIOLATION


class UnexpectedAttributes(MappingError):
    """An attribute subtree appears where the instrument class forbids it."""

    kind = ErrorKind.UNEXPECTED_ATTRIBUTES

    def __init__(self, path: str, reason: str = ""):
        message = f"Unexpected attributes at {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path


class MalformedDocument(MappingError):
    """The XML stream itself is not well formed; nothing after it is readable."""

    kind = ErrorKind.MALFORMED_DOCUMENT


# =============================================================================
# Classification
# =============================================================================


class UnclassifiableSource(FirdsError):
    """Source metadata does not determine New/Modified/Terminated."""

    kind = ErrorKind.UNCLASSIFIABLE_SOURCE
