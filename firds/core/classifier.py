"""Tag mapped records as New, Modified or Terminated from their source."""

from firds.core.errors import UnclassifiableSource
from firds.models import ChangeRecord, ChangeTag, FileType, ReferenceData, SourceMetadata


# The tag depends only on the publication type and the element that wrapped
# the record, never on record content.
CLASSIFICATION: dict[tuple[FileType, str], ChangeTag] = {
    (FileType.DLTINS, "NewRcrd"): ChangeTag.NEW,
    (FileType.DLTINS, "ModfdRcrd"): ChangeTag.MODIFIED,
    (FileType.DLTINS, "TermntdRcrd"): ChangeTag.TERMINATED,
    (FileType.FULINS, "RefData"): ChangeTag.NEW,
    (FileType.FULCAN, "RefData"): ChangeTag.TERMINATED,
}


def classify(record: ReferenceData, metadata: SourceMetadata) -> ChangeRecord:
    """Wrap a record with the change tag implied by its source.

    Raises:
        UnclassifiableSource: If the file type and record element combination is unknown.
    """
    tag = CLASSIFICATION.get((metadata.file_type, metadata.action))
    if tag is None:
        raise UnclassifiableSource(
            f"Cannot classify {metadata.action!r} records from a "
            f"{metadata.file_type.value} file ({metadata.file_name or 'unknown file'})"
        )
    return ChangeRecord(tag=tag, record=record, source=metadata)
