"""Tests for listing published files from the ESMA and FCA indexes."""
from datetime import date, datetime, timezone

import pytest


class FakeJsonClient:
    """Returns canned pages in order and records every request."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.requests = []

    async def get_json(self, url, params=None):
        self.requests.append((url, dict(params or {})))
        return self.pages.pop(0)


def esma_doc(file_name, timestamp, checksum="0" * 32):
    return {
        "id": f"id-{file_name}",
        "file_name": file_name,
        "file_type": file_name.split("_")[0],
        "download_link": f"https://firds.esma.europa.eu/firds/{file_name}",
        "timestamp": timestamp,
        "checksum": checksum,
    }


def esma_page(total, *docs):
    return {"response": {"numFound": total, "docs": list(docs)}}


def fca_entry(file_name, published):
    return {
        "_id": f"fca-{file_name}",
        "_source": {
            "file_name": file_name,
            "file_type": file_name.split("_")[0],
            "download_link": f"https://data.fca.org.uk/firds/{file_name}",
            "publication_date": published,
        },
    }


def make_criteria(source="esma", file_types=()):
    from firds.collectors.firds.index import SearchCriteria
    from firds.models import FileType, FirdsSource

    return SearchCriteria(
        source=FirdsSource(source),
        start=date(2025, 2, 1),
        end=date(2025, 2, 3),
        file_types=tuple(FileType(t) for t in file_types),
    )


@pytest.mark.asyncio
async def test_esma_listing_is_paginated_and_sorted():
    from firds.collectors.firds.index import FirdsIndex
    from firds.models import ArchiveKind, FileType, FirdsSource

    client = FakeJsonClient([
        esma_page(3,
                  esma_doc("DLTINS_20250203_01of01.zip", "2025-02-03T06:00:00Z"),
                  esma_doc("DLTINS_20250201_01of01.zip", "2025-02-01T06:00:00Z")),
        esma_page(3, esma_doc("DLTINS_20250202_01of01.zip", "2025-02-02T06:00:00Z")),
    ])
    index = FirdsIndex(client, page_size=2)

    files = await index.list_available(make_criteria(file_types=["DLTINS"]))

    assert [f.file_name for f in files] == [
        "DLTINS_20250201_01of01.zip",
        "DLTINS_20250202_01of01.zip",
        "DLTINS_20250203_01of01.zip",
    ]
    first = files[0]
    assert first.source is FirdsSource.ESMA
    assert first.file_type is FileType.DLTINS
    assert first.archive_kind is ArchiveKind.ZIP
    assert first.expected_hash == "0" * 32
    assert first.published_at == datetime(2025, 2, 1, 6, tzinfo=timezone.utc)

    assert [params["start"] for _, params in client.requests] == [0, 2]
    params = client.requests[0][1]
    assert params["q"] == "DLTINS"
    assert params["rows"] == 2
    assert params["fq"] == "publication_date:[2025-02-01T00:00:00Z TO 2025-02-03T23:59:59Z]"


@pytest.mark.asyncio
async def test_esma_listing_filters_other_types():
    from firds.collectors.firds.index import FirdsIndex

    client = FakeJsonClient([
        esma_page(2,
                  esma_doc("FULINS_D_20250201_01of02.zip", "2025-02-01T06:00:00Z"),
                  esma_doc("DLTINS_20250201_01of01.zip", "2025-02-01T06:00:00Z")),
    ])

    files = await FirdsIndex(client).list_available(make_criteria(file_types=["DLTINS"]))

    assert [f.file_name for f in files] == ["DLTINS_20250201_01of01.zip"]


@pytest.mark.asyncio
async def test_duplicate_urls_are_listed_once():
    from firds.collectors.firds.index import FirdsIndex

    doc = esma_doc("DLTINS_20250201_01of01.zip", "2025-02-01T06:00:00Z")
    client = FakeJsonClient([esma_page(2, doc, dict(doc))])

    files = await FirdsIndex(client).list_available(make_criteria())

    assert len(files) == 1
    assert client.requests[0][1]["q"] == "*"


@pytest.mark.asyncio
async def test_empty_window():
    from firds.collectors.firds.index import FirdsIndex

    client = FakeJsonClient([esma_page(0)])

    assert await FirdsIndex(client).list_available(make_criteria()) == []
    assert len(client.requests) == 1


@pytest.mark.asyncio
async def test_fca_listing():
    from firds.collectors.firds.index import FirdsIndex
    from firds.models import FirdsSource

    client = FakeJsonClient([
        {"hits": {"total": {"value": 2}, "hits": [
            fca_entry("FULCAN_20250202_01of01.zip", "2025-02-02"),
            fca_entry("DLTINS_20250201_01of01.zip", "2025-02-01"),
        ]}},
    ])

    files = await FirdsIndex(client).list_available(make_criteria(source="fca"))

    assert [f.file_name for f in files] == ["DLTINS_20250201_01of01.zip", "FULCAN_20250202_01of01.zip"]
    assert all(f.source is FirdsSource.FCA for f in files)
    assert all(f.expected_hash is None for f in files)
    assert files[0].file_id == "fca-DLTINS_20250201_01of01.zip"
    assert files[0].published_at == datetime(2025, 2, 1, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_fca_query_includes_file_type():
    from firds.collectors.firds.index import FirdsIndex

    client = FakeJsonClient([{"hits": {"total": 0, "hits": []}}])

    await FirdsIndex(client).list_available(make_criteria(source="fca", file_types=["FULINS"]))

    url, params = client.requests[0]
    assert url.startswith("https://api.data.fca.org.uk")
    assert params["q"] == "((file_type:FULINS) AND (publication_date:[2025-02-01 TO 2025-02-03]))"
    assert params["from"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"unexpected": True},
    {"response": {"numFound": "many", "docs": []}},
    ["not", "a", "dict"],
])
async def test_malformed_esma_payload(payload):
    from firds.collectors.firds.index import FirdsIndex
    from firds.core.errors import SourceIndexError

    with pytest.raises(SourceIndexError):
        await FirdsIndex(FakeJsonClient([payload])).list_available(make_criteria())


@pytest.mark.asyncio
async def test_unreadable_entry():
    from firds.collectors.firds.index import FirdsIndex
    from firds.core.errors import SourceIndexError

    doc = esma_doc("DLTINS_20250201_01of01.zip", "yesterday")
    client = FakeJsonClient([esma_page(1, doc)])

    with pytest.raises(SourceIndexError):
        await FirdsIndex(client).list_available(make_criteria())
