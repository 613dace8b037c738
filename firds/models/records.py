"""Classified change records and per-file ingestion ledgers."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from firds.core.errors import ErrorKind, FirdsError
from firds.models.files import FileDescriptor, FileType
from firds.models.reference_data import ReferenceData
from firds.models.serialization import to_plain


class ChangeTag(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class SourceMetadata:
    """Where a record came from: the file and the element that wrapped it."""

    file_type: FileType
    action: str
    file_name: str = ""
    member_name: str = ""
    published_at: datetime | None = None
    position: int = 0


@dataclass(frozen=True)
class ChangeRecord:
    tag: ChangeTag
    record: ReferenceData
    source: SourceMetadata

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return to_plain(self)


class FileStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    QUARANTINED = "quarantined"
    FAILED = "failed"


@dataclass
class FileLedger:
    """Counts of what happened to the records of one source file."""

    descriptor: FileDescriptor
    ingested: int = 0
    rejected: Counter = field(default_factory=Counter)
    members: list[str] = field(default_factory=list)
    status: FileStatus = FileStatus.PENDING
    terminal_error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def total_rejected(self) -> int:
        return sum(self.rejected.values())

    @property
    def error_rate(self) -> float:
        total = self.ingested + self.total_rejected
        if total == 0:
            return 0.0
        return self.total_rejected / total

    def record_error(self, error: FirdsError) -> None:
        self.rejected[error.kind] += 1

    def fail(self, error: FirdsError, status: FileStatus = FileStatus.QUARANTINED) -> None:
        """Mark the file as terminally failed."""
        self.status = status
        self.terminal_error = f"{error.kind.value}: {error}"

    def rejected_by_kind(self) -> dict[str, int]:
        return {
            (kind.value if isinstance(kind, ErrorKind) else str(kind)): count
            for kind, count in sorted(self.rejected.items(), key=lambda item: str(item[0]))
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "file": self.descriptor.to_dict(),
            "ingested": self.ingested,
            "rejected": self.rejected_by_kind(),
            "error_rate": self.error_rate,
            "members": list(self.members),
            "status": self.status.value,
            "terminal_error": self.terminal_error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }
