"""Listing of published FIRDS files from the ESMA and FCA search indexes."""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Protocol

from firds.core.errors import SourceIndexError
from firds.models import ArchiveKind, FileDescriptor, FileType, FirdsSource

logger = logging.getLogger(__name__)

ESMA_INDEX_URL = "https://registers.esma.europa.eu/solr/esma_registers_firds_files/select"
FCA_INDEX_URL = "https://api.data.fca.org.uk/fca_data_firds_files"
PAGE_SIZE = 100


class JsonClient(Protocol):
    """What the index needs from a connection."""

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        ...


@dataclass(frozen=True)
class SearchCriteria:
    """Publication date window (inclusive) and optional file type filter."""

    source: FirdsSource
    start: date
    end: date
    file_types: tuple[FileType, ...] = field(default_factory=tuple)


def _parse_timestamp(value: str) -> datetime:
    if len(value) == 10:
        return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class FirdsIndex:
    """Lists the files a source published in a date window.

    Results are deduplicated by URL and sorted by publication time,
    oldest first, so deltas can be applied in order.
    """

    def __init__(
        self,
        connection: JsonClient,
        esma_url: str = ESMA_INDEX_URL,
        fca_url: str = FCA_INDEX_URL,
        page_size: int = PAGE_SIZE,
    ):
        self.connection = connection
        self.esma_url = esma_url
        self.fca_url = fca_url
        self.page_size = page_size

    async def list_available(self, criteria: SearchCriteria) -> list[FileDescriptor]:
        logger.debug(
            "STEP: Listing published files",
            extra={
                "extra_data": {
                    "action": "list_available",
                    "source": criteria.source.value,
                    "start": criteria.start.isoformat(),
                    "end": criteria.end.isoformat(),
                    "file_types": [t.value for t in criteria.file_types],
                }
            },
        )

        file_types: tuple[FileType | None, ...] = criteria.file_types or (None,)
        descriptors: dict[str, FileDescriptor] = {}
        for file_type in file_types:
            if criteria.source is FirdsSource.ESMA:
                found = await self._list_esma(criteria, file_type)
            else:
                found = await self._list_fca(criteria, file_type)
            for descriptor in found:
                descriptors.setdefault(descriptor.url, descriptor)

        result = sorted(descriptors.values(), key=lambda d: (d.published_at, d.file_name))
        logger.info(
            f"Found {len(result)} {criteria.source.value.upper()} files published "
            f"{criteria.start.isoformat()} to {criteria.end.isoformat()}"
        )
        return result

    # =========================================================================
    # ESMA (Solr)
    # =========================================================================

    async def _list_esma(self, criteria: SearchCriteria, file_type: FileType | None) -> list[FileDescriptor]:
        window = (
            f"publication_date:[{criteria.start.strftime('%Y-%m-%d')}T00:00:00Z "
            f"TO {criteria.end.strftime('%Y-%m-%d')}T23:59:59Z]"
        )
        descriptors: list[FileDescriptor] = []
        start = 0
        while True:
            params = {
                "q": file_type.value if file_type else "*",
                "fq": window,
                "wt": "json",
                "start": start,
                "rows": self.page_size,
            }
            payload = await self.connection.get_json(self.esma_url, params=params)
            try:
                response = payload["response"]
                total = int(response["numFound"])
                docs = response["docs"]
            except (KeyError, TypeError, ValueError) as e:
                raise SourceIndexError(f"Unexpected ESMA index payload: {e!r}") from e

            for doc in docs:
                descriptor = self._descriptor_from_esma(doc)
                if file_type is None or descriptor.file_type is file_type:
                    descriptors.append(descriptor)

            start += len(docs)
            if not docs or start >= total:
                return descriptors

    def _descriptor_from_esma(self, doc: dict[str, Any]) -> FileDescriptor:
        try:
            file_name = doc["file_name"]
            return FileDescriptor(
                url=doc["download_link"],
                published_at=_parse_timestamp(doc["timestamp"]),
                file_name=file_name,
                file_type=FileType(doc.get("file_type") or FileType.from_file_name(file_name)),
                source=FirdsSource.ESMA,
                archive_kind=ArchiveKind.from_file_name(file_name),
                expected_hash=doc.get("checksum"),
                file_id=doc.get("id"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SourceIndexError(f"Unreadable ESMA index entry {doc!r}: {e!r}") from e

    # =========================================================================
    # FCA (Elasticsearch)
    # =========================================================================

    async def _list_fca(self, criteria: SearchCriteria, file_type: FileType | None) -> list[FileDescriptor]:
        window = (
            f"publication_date:[{criteria.start.strftime('%Y-%m-%d')} "
            f"TO {criteria.end.strftime('%Y-%m-%d')}]"
        )
        query = f"(({window}))"
        if file_type is not None:
            query = f"((file_type:{file_type.value}) AND ({window}))"

        descriptors: list[FileDescriptor] = []
        offset = 0
        while True:
            params = {"q": query, "from": offset, "size": self.page_size}
            payload = await self.connection.get_json(self.fca_url, params=params)
            try:
                hits = payload["hits"]
                total = hits["total"]
                if isinstance(total, dict):
                    total = total["value"]
                total = int(total)
                entries = hits["hits"]
            except (KeyError, TypeError, ValueError) as e:
                raise SourceIndexError(f"Unexpected FCA index payload: {e!r}") from e

            for entry in entries:
                descriptors.append(self._descriptor_from_fca(entry))

            offset += len(entries)
            if not entries or offset >= total:
                return descriptors

    def _descriptor_from_fca(self, entry: dict[str, Any]) -> FileDescriptor:
        try:
            source = entry["_source"]
            file_name = source["file_name"]
            published = source.get("last_refreshed") or source["publication_date"]
            return FileDescriptor(
                url=source["download_link"],
                published_at=_parse_timestamp(published),
                file_name=file_name,
                file_type=FileType(source.get("file_type") or FileType.from_file_name(file_name)),
                source=FirdsSource.FCA,
                archive_kind=ArchiveKind.from_file_name(file_name),
                file_id=entry.get("_id"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise SourceIndexError(f"Unreadable FCA index entry {entry!r}: {e!r}") from e
