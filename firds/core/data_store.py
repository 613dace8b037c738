"""Record sink protocol and implementations."""
import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import pyarrow as pa
import pyarrow.parquet as pq

from firds.models import ChangeRecord, ChangeTag, FileLedger, FileStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class RecordSink(Protocol):
    """Protocol for consumers of classified records."""

    def write_records(self, file_name: str, records: list[ChangeRecord]) -> None:
        """Write a batch of classified records produced from one source file."""
        ...

    def write_report(self, ledger: FileLedger) -> None:
        """Write the final ledger of one source file."""
        ...


RECORD_SCHEMA = pa.schema([
    ("change_tag", pa.string()),
    ("isin", pa.string()),
    ("full_name", pa.string()),
    ("short_name", pa.string()),
    ("cfi", pa.string()),
    ("category", pa.string()),
    ("is_commodities_derivative", pa.bool_()),
    ("issuer_lei", pa.string()),
    ("notional_currency", pa.string()),
    ("trading_venue", pa.string()),
    ("first_trade_date", pa.timestamp("us", tz="UTC")),
    ("termination_date", pa.timestamp("us", tz="UTC")),
    ("attributes", pa.string()),
    ("source_file", pa.string()),
    ("member_name", pa.string()),
    ("position", pa.int64()),
    ("published_at", pa.timestamp("us", tz="UTC")),
])


def _record_row(change: ChangeRecord) -> dict[str, Any]:
    record = change.record
    venue = record.trading_venue_attributes
    return {
        "change_tag": change.tag.value,
        "isin": record.isin,
        "full_name": record.full_name,
        "short_name": record.short_name,
        "cfi": record.cfi,
        "category": record.category.value,
        "is_commodities_derivative": record.is_commodities_derivative,
        "issuer_lei": record.issuer_lei,
        "notional_currency": record.notional_currency,
        "trading_venue": venue.trading_venue,
        "first_trade_date": venue.admission_or_first_trade_date,
        "termination_date": venue.termination_date,
        "attributes": json.dumps(record.to_dict(), sort_keys=True),
        "source_file": change.source.file_name,
        "member_name": change.source.member_name,
        "position": change.source.position,
        "published_at": change.source.published_at,
    }


class FileRecordSink:
    """File-based implementation of RecordSink using Parquet and JSON."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)
        self._batches: dict[str, int] = {}
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create directory structure if it doesn't exist."""
        dirs = [f"records/{tag.value}" for tag in ChangeTag] + ["reports", "quarantine"]
        for d in dirs:
            (self.base_path / d).mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Records (Parquet)
    # =========================================================================

    def write_records(self, file_name: str, records: list[ChangeRecord]) -> None:
        """Write one Parquet file per change tag for this batch."""
        if not records:
            return

        stem = Path(file_name).stem
        batch = self._batches.get(stem, 0)
        self._batches[stem] = batch + 1

        by_tag: dict[ChangeTag, list[dict[str, Any]]] = {}
        for change in records:
            by_tag.setdefault(change.tag, []).append(_record_row(change))

        for tag, rows in by_tag.items():
            path = self.base_path / "records" / tag.value / f"{stem}-{batch:05d}.parquet"
            table = pa.Table.from_pylist(rows, schema=RECORD_SCHEMA)
            pq.write_table(table, path)
            logger.debug(f"Wrote {len(rows)} {tag.value} records to {path}")

    def read_records(self, tag: ChangeTag) -> list[dict[str, Any]]:
        """Read back every stored record with the given tag."""
        rows: list[dict[str, Any]] = []
        for path in sorted((self.base_path / "records" / tag.value).glob("*.parquet")):
            rows.extend(pq.read_table(path).to_pylist())
        return rows

    # =========================================================================
    # Reports (JSON)
    # =========================================================================

    def write_report(self, ledger: FileLedger) -> None:
        """Write the ledger; quarantined and failed files are also listed under quarantine/."""
        name = f"{Path(ledger.descriptor.file_name).stem}.json"
        data = ledger.to_dict()

        with open(self.base_path / "reports" / name, "w") as f:
            json.dump(data, f, indent=2)

        if ledger.status in (FileStatus.QUARANTINED, FileStatus.FAILED):
            with open(self.base_path / "quarantine" / name, "w") as f:
                json.dump(data, f, indent=2)
            logger.warning(f"Quarantined {ledger.descriptor.file_name}: {ledger.terminal_error}")

    def read_report(self, file_name: str) -> dict | None:
        path = self.base_path / "reports" / f"{Path(file_name).stem}.json"
        if not path.exists():
            return None
        with open(path) as f:
            return json.load(f)
