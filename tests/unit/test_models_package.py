"""Tests for models package exports."""


def test_all_models_importable():
    from firds.models import (
        ChangeRecord,
        DebtAttributes,
        DerivativeAttributes,
        FileDescriptor,
        FileLedger,
        ReferenceData,
        SourceMetadata,
    )

    assert ReferenceData is not None
    assert DebtAttributes is not None
    assert DerivativeAttributes is not None
    assert FileDescriptor is not None
    assert ChangeRecord is not None
    assert SourceMetadata is not None
    assert FileLedger is not None


def test_all_list_matches_exports():
    import firds.models as models

    assert sorted(models.__all__) == models.__all__
    for name in models.__all__:
        assert hasattr(models, name), name
