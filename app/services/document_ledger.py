"""Document ledger rules for the documents embedded in a worker record.

Entries are only ever changed in place to approve them. A resubmitted
document list keeps the stored entries it names (with their stored approval
status, whatever the client sent) and new uploads are appended as pending.
"""
from typing import Iterable, List, Optional

from app.models.worker import DocumentCategory, DocumentEntry, DocumentStatus
from app.services.blob_store import BlobMetadata, BlobStore, IncomingFile
from app.utils.errors import ValidationError


def _category(value: str) -> DocumentCategory:
    try:
        return DocumentCategory(value or DocumentCategory.OTHER.value)
    except ValueError:
        raise ValidationError(f"Unknown document category: {value}")


async def store_files(
    blob_store: BlobStore,
    files: Iterable[IncomingFile],
    company_id: str,
    worker_id: Optional[str] = None,
) -> List[DocumentEntry]:
    """Push uploads to the blob store and describe them as pending entries.

    Categories are checked before anything is written.
    """
    files = list(files)
    categories = [_category(f.category) for f in files]

    entries = []
    metadata = BlobMetadata(company_id=company_id, worker_id=worker_id)
    for incoming, category in zip(files, categories):
        locator = await blob_store.store(incoming.content, metadata, incoming.filename)
        entries.append(DocumentEntry(
            name=incoming.filename,
            category=category,
            locator=locator,
            size=incoming.size,
            content_type=incoming.content_type,
        ))
    return entries


def merge_documents(
    stored: List[DocumentEntry],
    keep_locators: Optional[Iterable[str]],
    new_entries: List[DocumentEntry],
) -> List[DocumentEntry]:
    """Stored entries named in keep_locators, in stored order, followed by new entries.

    keep_locators=None keeps every stored entry. Locators that are not stored
    are ignored; a client cannot introduce or re-status entries through the list.
    """
    if keep_locators is None:
        kept = list(stored)
    else:
        wanted = set(keep_locators)
        kept = [entry for entry in stored if entry.locator in wanted]
    return kept + list(new_entries)


def approve(documents: List[DocumentEntry], locator: str) -> Optional[bool]:
    """Mark one entry approved. None if absent, False if it already was."""
    for entry in documents:
        if entry.locator == locator:
            if entry.status == DocumentStatus.APPROVED.value:
                return False
            entry.status = DocumentStatus.APPROVED.value
            return True
    return None
