"""Tests for change classification."""
import pytest


def make_record():
    from datetime import datetime, timezone
    from firds.models import ReferenceData, TradingVenueAttributes

    return ReferenceData(
        isin="DE000A1EWWW0",
        full_name="Example Bond",
        cfi="DBFTFB",
        is_commodities_derivative=False,
        issuer_lei="529900T8BM49AURSDO55",
        short_name="EXAMPLE/BD",
        notional_currency="EUR",
        trading_venue_attributes=TradingVenueAttributes(
            trading_venue="XFRA",
            requested_admission=False,
            admission_or_first_trade_date=datetime(2024, 1, 2, tzinfo=timezone.utc),
        ),
    )


@pytest.mark.parametrize("file_type,action,expected", [
    ("DLTINS", "NewRcrd", "NEW"),
    ("DLTINS", "ModfdRcrd", "MODIFIED"),
    ("DLTINS", "TermntdRcrd", "TERMINATED"),
    ("FULINS", "RefData", "NEW"),
    ("FULCAN", "RefData", "TERMINATED"),
])
def test_classify(file_type, action, expected):
    from firds.core.classifier import classify
    from firds.models import ChangeTag, FileType, SourceMetadata

    record = make_record()
    metadata = SourceMetadata(file_type=FileType(file_type), action=action, file_name="f.zip")
    change = classify(record, metadata)

    assert change.tag is ChangeTag[expected]
    assert change.record is record
    assert change.source is metadata


@pytest.mark.parametrize("file_type,action", [
    ("DLTINS", "RefData"),
    ("FULINS", "NewRcrd"),
    ("FULCAN", "TermntdRcrd"),
    ("DLTINS", "Unknown"),
])
def test_unclassifiable_source(file_type, action):
    from firds.core.classifier import classify
    from firds.core.errors import UnclassifiableSource
    from firds.models import FileType, SourceMetadata

    with pytest.raises(UnclassifiableSource):
        classify(make_record(), SourceMetadata(file_type=FileType(file_type), action=action))


def test_classification_ignores_record_content():
    from dataclasses import replace
    from firds.core.classifier import classify
    from firds.models import FileType, SourceMetadata

    metadata = SourceMetadata(file_type=FileType.DLTINS, action="ModfdRcrd")
    first = make_record()
    second = replace(first, full_name="Renamed", isin="US0378331005")

    assert classify(first, metadata).tag is classify(second, metadata).tag
