"""Source file descriptors and cached archives."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from firds.models.serialization import to_plain


class FirdsSource(str, Enum):
    ESMA = "esma"
    FCA = "fca"


class FileType(str, Enum):
    """FIRDS publication types."""

    FULINS = "FULINS"  # full snapshot of instruments
    DLTINS = "DLTINS"  # delta: new, modified and terminated records
    FULCAN = "FULCAN"  # full cancellations

    @classmethod
    def from_file_name(cls, file_name: str) -> "FileType":
        """Infer the type from names like ``DLTINS_20250201_01of01.zip``."""
        prefix = file_name.split("_", 1)[0].upper()
        return cls(prefix)


class ArchiveKind(str, Enum):
    ZIP = "zip"
    XML = "xml"

    @classmethod
    def from_file_name(cls, file_name: str) -> "ArchiveKind":
        return cls.XML if file_name.lower().endswith(".xml") else cls.ZIP


@dataclass(frozen=True)
class FileDescriptor:
    """A published file as advertised by a source's index."""

    url: str
    published_at: datetime
    file_name: str
    file_type: FileType
    source: FirdsSource
    archive_kind: ArchiveKind = ArchiveKind.ZIP
    expected_hash: str | None = None
    file_id: str | None = None

    @property
    def cache_key(self) -> str:
        """Key used to coalesce concurrent fetches of the same content."""
        if self.expected_hash:
            return self.expected_hash.lower()
        return f"{self.source.value}/{self.file_name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_plain(self)


@dataclass(frozen=True)
class RawArchive:
    """An archive stored in the local content-addressed cache."""

    descriptor: FileDescriptor
    path: Path
    content_hash: str
