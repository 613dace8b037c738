"""Download, verification and extraction of FIRDS archives.

Archives are stored in a content-addressed cache::

    <cache_dir>/objects/<md5>.<zip|xml>      verified archive bodies
    <cache_dir>/refs/<source>/<file_name>    md5 of files published without a checksum
    <cache_dir>/tmp/<uuid>.part              downloads in progress

A body only appears under ``objects`` after it has been fully written and
verified, via an atomic rename.
"""
import asyncio
import hashlib
import io
import logging
import os
import uuid
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import IO, AsyncIterator, Iterator, Protocol

from firds.core.errors import CorruptArchive, IntegrityMismatch, NetworkTransient
from firds.models import ArchiveKind, FileDescriptor, RawArchive

logger = logging.getLogger(__name__)

_DECOMPRESSION_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)


class ChunkSource(Protocol):
    """What the fetcher needs from a connection."""

    def iter_chunks(self, url: str) -> AsyncIterator[bytes]:
        ...


@dataclass
class ArchiveMember:
    """One XML document inside an archive."""

    name: str
    stream: IO[bytes]


class _GuardedStream(io.RawIOBase):
    """Member stream that reports decompression failures as ``CorruptArchive``."""

    def __init__(self, raw: IO[bytes], name: str):
        self._raw = raw
        self._name = name

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            data = self._raw.read(len(buffer))
        except _DECOMPRESSION_ERRORS as e:
            raise CorruptArchive(f"Cannot decompress {self._name}: {e}") from e
        size = len(data)
        buffer[:size] = data
        return size

    def close(self) -> None:
        if not self.closed:
            self._raw.close()
        super().close()


class ContentFetcher:
    """Fetches archives into the local cache and extracts their XML members.

    Attributes:
        cache_dir: Root of the content-addressed cache
        max_retries: Retries after the first attempt for transient network errors
        backoff_seconds: Delay before the first retry, doubled on each retry
        max_backoff_seconds: Upper bound for the retry delay
    """

    def __init__(
        self,
        connection: ChunkSource,
        cache_dir: str | Path,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
    ):
        self.connection = connection
        self.cache_dir = Path(cache_dir)
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds

        self._inflight: dict[str, asyncio.Future] = {}
        self._waiters: dict[str, int] = {}
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for d in ("objects", "refs", "tmp"):
            (self.cache_dir / d).mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Cache
    # =========================================================================

    def _object_path(self, content_hash: str, kind: ArchiveKind) -> Path:
        return self.cache_dir / "objects" / f"{content_hash}.{kind.value}"

    def _ref_path(self, descriptor: FileDescriptor) -> Path:
        return self.cache_dir / "refs" / descriptor.source.value / descriptor.file_name

    def lookup(self, descriptor: FileDescriptor) -> RawArchive | None:
        """Return the cached archive for a descriptor, if there is one."""
        if descriptor.expected_hash:
            content_hash = descriptor.expected_hash.lower()
        else:
            ref = self._ref_path(descriptor)
            if not ref.exists():
                return None
            content_hash = ref.read_text().strip()

        path = self._object_path(content_hash, descriptor.archive_kind)
        if not path.exists():
            return None
        return RawArchive(descriptor=descriptor, path=path, content_hash=content_hash)

    # =========================================================================
    # Fetch
    # =========================================================================

    async def fetch(self, descriptor: FileDescriptor) -> RawArchive:
        """Return the verified archive for ``descriptor``, downloading if needed.

        Concurrent calls for the same content share one download.

        Raises:
            NetworkTransient: If the download still fails after all retries.
            IntegrityMismatch: If the body does not match the advertised checksum.
            FetchError: On a non-retryable HTTP failure.
        """
        cached = self.lookup(descriptor)
        if cached is not None:
            logger.debug(
                "STEP: Cache hit",
                extra={
                    "extra_data": {
                        "action": "cache_hit",
                        "file_name": descriptor.file_name,
                        "content_hash": cached.content_hash,
                    }
                },
            )
            return cached

        key = descriptor.cache_key
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._download_with_retry(descriptor))
            self._inflight[key] = task

            def _forget(done: asyncio.Future, key: str = key) -> None:
                if self._inflight.get(key) is done:
                    del self._inflight[key]

            task.add_done_callback(_forget)
        else:
            logger.debug(f"Joining in-flight download of {descriptor.file_name}")

        # Several callers may share the download; it is only cancelled
        # when the last of them gives up.
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            archive = await asyncio.shield(task)
        except asyncio.CancelledError:
            if self._waiters[key] == 1 and not task.done():
                task.cancel()
            raise
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]

        if archive.descriptor is not descriptor:
            archive = RawArchive(descriptor=descriptor, path=archive.path, content_hash=archive.content_hash)
        return archive

    async def _download_with_retry(self, descriptor: FileDescriptor) -> RawArchive:
        delay = self.backoff_seconds
        attempt = 0
        while True:
            try:
                return await self._download(descriptor)
            except NetworkTransient as e:
                if attempt >= self.max_retries:
                    logger.error(
                        f"Giving up on {descriptor.file_name} after {attempt + 1} attempts: {e}"
                    )
                    raise
                attempt += 1
                logger.warning(
                    f"Transient failure fetching {descriptor.file_name} "
                    f"(attempt {attempt}/{self.max_retries}), retrying in {delay:.1f}s: {e}"
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_backoff_seconds)

    async def _download(self, descriptor: FileDescriptor) -> RawArchive:
        logger.info(f"Downloading {descriptor.file_name} from {descriptor.url}")
        part = self.cache_dir / "tmp" / f"{uuid.uuid4().hex}.part"
        digest = hashlib.md5()
        size = 0

        try:
            with open(part, "wb") as f:
                async for chunk in self.connection.iter_chunks(descriptor.url):
                    digest.update(chunk)
                    await asyncio.to_thread(f.write, chunk)
                    size += len(chunk)

            content_hash = digest.hexdigest()
            if descriptor.expected_hash and content_hash != descriptor.expected_hash.lower():
                raise IntegrityMismatch(descriptor.url, descriptor.expected_hash, content_hash)

            path = self._object_path(content_hash, descriptor.archive_kind)
            os.replace(part, path)
        except BaseException:
            part.unlink(missing_ok=True)
            raise

        if not descriptor.expected_hash:
            self._write_ref(descriptor, content_hash)

        logger.debug(
            "STEP: Archive stored",
            extra={
                "extra_data": {
                    "action": "archive_stored",
                    "file_name": descriptor.file_name,
                    "content_hash": content_hash,
                    "bytes": size,
                }
            },
        )
        return RawArchive(descriptor=descriptor, path=path, content_hash=content_hash)

    def _write_ref(self, descriptor: FileDescriptor, content_hash: str) -> None:
        ref = self._ref_path(descriptor)
        ref.parent.mkdir(parents=True, exist_ok=True)
        part = ref.with_name(f"{ref.name}.{uuid.uuid4().hex}.part")
        part.write_text(content_hash)
        os.replace(part, ref)

    # =========================================================================
    # Extraction
    # =========================================================================

    def extract(self, archive: RawArchive) -> Iterator[ArchiveMember]:
        """Yield every XML document in the archive, in archive order.

        Each member must be consumed before the next one is requested.

        Raises:
            CorruptArchive: If the archive cannot be opened or decompressed.
        """
        if archive.descriptor.archive_kind is ArchiveKind.XML:
            with open(archive.path, "rb") as f:
                yield ArchiveMember(name=archive.descriptor.file_name, stream=f)
            return

        try:
            zf = zipfile.ZipFile(archive.path)
        except _DECOMPRESSION_ERRORS as e:
            raise CorruptArchive(f"Cannot open {archive.descriptor.file_name}: {e}") from e

        with zf:
            names = [
                info.filename
                for info in zf.infolist()
                if not info.is_dir() and info.filename.lower().endswith(".xml")
            ]
            if not names:
                raise CorruptArchive(f"{archive.descriptor.file_name} contains no XML documents")

            for name in names:
                try:
                    raw = zf.open(name)
                except _DECOMPRESSION_ERRORS as e:
                    raise CorruptArchive(f"Cannot open member {name}: {e}") from e
                with _GuardedStream(raw, name) as stream:
                    yield ArchiveMember(name=name, stream=io.BufferedReader(stream))
