"""Orchestrator wiring listing, fetching, mapping, classification and output."""
import asyncio
import itertools
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterator

from firds.collectors.firds.connection import FirdsConnection
from firds.collectors.firds.fetcher import ContentFetcher
from firds.collectors.firds.index import FirdsIndex, SearchCriteria
from firds.collectors.firds.parsers import MappedRecord, SchemaMapper
from firds.core.classifier import classify
from firds.core.config import Config
from firds.core.data_store import FileRecordSink, RecordSink
from firds.core.errors import (
    CorruptArchive,
    FetchError,
    IntegrityMismatch,
    MalformedDocument,
    MappingError,
    UnclassifiableSource,
)
from firds.models import ChangeRecord, FileDescriptor, FileLedger, FileStatus, SourceMetadata

logger = logging.getLogger(__name__)


@dataclass
class _Batch:
    file_name: str
    records: list[ChangeRecord]


_DONE = object()


def _take(results: Iterator[MappedRecord], size: int) -> list[MappedRecord]:
    return list(itertools.islice(results, size))


class Orchestrator:
    """Runs the ingestion pipeline over every file a source published.

    Responsibilities:
    1. List the files in the requested window
    2. Fetch, extract and map up to ``max_concurrency`` files at a time
    3. Classify records and hand them to the single sink consumer
    4. Keep a ledger per file and quarantine the ones that fail
    """

    def __init__(
        self,
        config: Config,
        connection: FirdsConnection | None = None,
        index: FirdsIndex | None = None,
        fetcher: ContentFetcher | None = None,
        mapper: SchemaMapper | None = None,
        sink: RecordSink | None = None,
        on_file_complete: Callable[[FileLedger], None] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: System configuration
            connection: HTTP connection shared by the index and fetcher
            index: Source index; defaults to one over ``connection``
            fetcher: Content fetcher; defaults to one caching under ``config.fetcher.cache_dir``
            mapper: XML schema mapper
            sink: Output for records and ledgers
            on_file_complete: Called with each file's ledger once it is final
        """
        self.config = config
        self._owns_connection = connection is None
        self.connection = connection or FirdsConnection(timeout=config.fetcher.timeout_seconds)
        self.index = index or FirdsIndex(self.connection)
        self.fetcher = fetcher or ContentFetcher(
            self.connection,
            cache_dir=config.fetcher.cache_dir,
            max_retries=config.fetcher.max_retries,
            backoff_seconds=config.fetcher.backoff_seconds,
            max_backoff_seconds=config.fetcher.max_backoff_seconds,
        )
        self.mapper = mapper or SchemaMapper()
        self.sink = sink or FileRecordSink(config.data_store.path)
        self.on_file_complete = on_file_complete

        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: list[asyncio.Task] = []

        logger.info("Orchestrator initialized")

    @property
    def is_running(self) -> bool:
        """Check if orchestrator is currently running."""
        return self._running

    def criteria(self, start: date, end: date) -> SearchCriteria:
        """Search criteria for the configured source and file types."""
        return SearchCriteria(
            source=self.config.source.name,
            start=start,
            end=end,
            file_types=tuple(self.config.source.file_types),
        )

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def run(self, criteria: SearchCriteria) -> list[FileLedger]:
        """List and ingest every matching file; return one ledger per file."""
        self._running = True
        try:
            descriptors = await self.index.list_available(criteria)
            return await self.process_files(descriptors)
        finally:
            self._running = False
            if self._owns_connection:
                await self.connection.disconnect()

    async def process_files(self, descriptors: list[FileDescriptor]) -> list[FileLedger]:
        """Ingest the given files concurrently, in bounded parallelism."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.pipeline.max_concurrency * 2)
        semaphore = asyncio.Semaphore(self.config.pipeline.max_concurrency)

        producers = [
            asyncio.ensure_future(self._process_file(descriptor, semaphore, queue))
            for descriptor in descriptors
        ]
        consumer = asyncio.ensure_future(self._consume(queue))
        self._tasks = producers + [consumer]

        async def produce_all() -> list[FileLedger]:
            ledgers = await asyncio.gather(*producers)
            await queue.put(_DONE)
            return ledgers

        try:
            ledgers, _ = await asyncio.gather(produce_all(), consumer)
        except BaseException:
            for task in self._tasks:
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
            raise
        finally:
            self._tasks = []

        completed = sum(1 for ledger in ledgers if ledger.status is FileStatus.COMPLETED)
        logger.info(f"Processed {len(ledgers)} files: {completed} completed, {len(ledgers) - completed} not")
        return list(ledgers)

    async def _consume(self, queue: asyncio.Queue) -> None:
        """Single consumer: the only place the sink is called."""
        while True:
            item = await queue.get()
            if item is _DONE:
                return
            if isinstance(item, _Batch):
                await asyncio.to_thread(self.sink.write_records, item.file_name, item.records)
            else:
                await asyncio.to_thread(self.sink.write_report, item)
                if self.on_file_complete is not None:
                    self.on_file_complete(item)

    async def _process_file(
        self,
        descriptor: FileDescriptor,
        semaphore: asyncio.Semaphore,
        queue: asyncio.Queue,
    ) -> FileLedger:
        ledger = FileLedger(descriptor=descriptor)

        async with semaphore:
            ledger.started_at = datetime.now(timezone.utc)
            logger.info(f"Processing {descriptor.file_name}")
            try:
                await self._ingest(descriptor, ledger, queue)
            except (IntegrityMismatch, CorruptArchive, MalformedDocument) as e:
                ledger.fail(e, FileStatus.QUARANTINED)
                logger.error(f"{descriptor.file_name} quarantined: {e}")
            except FetchError as e:
                ledger.fail(e, FileStatus.FAILED)
                logger.error(f"{descriptor.file_name} failed: {e}")
            else:
                if ledger.error_rate > self.config.pipeline.error_threshold:
                    ledger.status = FileStatus.QUARANTINED
                    ledger.terminal_error = (
                        f"error rate {ledger.error_rate:.2%} exceeds "
                        f"{self.config.pipeline.error_threshold:.2%}"
                    )
                    logger.warning(f"{descriptor.file_name} quarantined: {ledger.terminal_error}")
                else:
                    ledger.status = FileStatus.COMPLETED
            ledger.finished_at = datetime.now(timezone.utc)

        logger.info(
            f"{descriptor.file_name}: {ledger.ingested} ingested, "
            f"{ledger.total_rejected} rejected ({ledger.status.value})"
        )
        await queue.put(ledger)
        return ledger

    async def _ingest(self, descriptor: FileDescriptor, ledger: FileLedger, queue: asyncio.Queue) -> None:
        archive = await self.fetcher.fetch(descriptor)
        members = self.fetcher.extract(archive)
        batch_size = self.config.pipeline.batch_size

        while True:
            member = await asyncio.to_thread(next, members, None)
            if member is None:
                return
            ledger.members.append(member.name)
            results = self.mapper.map(member.stream)

            while True:
                mapped = await asyncio.to_thread(_take, results, batch_size)
                if not mapped:
                    break

                changes: list[ChangeRecord] = []
                for item in mapped:
                    if isinstance(item.result, MappingError):
                        ledger.record_error(item.result)
                        continue
                    metadata = SourceMetadata(
                        file_type=descriptor.file_type,
                        action=item.action,
                        file_name=descriptor.file_name,
                        member_name=member.name,
                        published_at=descriptor.published_at,
                        position=item.position,
                    )
                    try:
                        changes.append(classify(item.result, metadata))
                    except UnclassifiableSource as e:
                        ledger.record_error(e)

                ledger.ingested += len(changes)
                if changes:
                    await queue.put(_Batch(file_name=descriptor.file_name, records=changes))

                logger.debug(
                    "PROGRESS: Batch mapped",
                    extra={
                        "extra_data": {
                            "action": "batch_mapped",
                            "file_name": descriptor.file_name,
                            "member": member.name,
                            "ingested": ledger.ingested,
                            "rejected": ledger.total_rejected,
                        }
                    },
                )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, criteria: SearchCriteria) -> list[FileLedger]:
        """Run the pipeline to completion on a fresh event loop.

        This method blocks until every file has been processed or stop() is called.
        """
        logger.info("Starting orchestrator...")
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        try:
            return self._loop.run_until_complete(self.run(criteria))
        finally:
            self._loop.close()
            self._loop = None
            logger.info("Orchestrator stopped")

    def stop(self) -> None:
        """Cancel in-flight work; partial downloads are discarded."""
        logger.info("Stopping orchestrator...")
        self._running = False
        loop = self._loop
        for task in list(self._tasks):
            if loop is not None and loop.is_running():
                loop.call_soon_threadsafe(task.cancel)
            else:
                task.cancel()
