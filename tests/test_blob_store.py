import pytest

from app.services.blob_store import BlobMetadata, LocalBlobStore
from app.utils.errors import StorageError


async def test_writes_under_tenant_folder(tmp_path):
    store = LocalBlobStore(str(tmp_path))

    locator = await store.store(b"scan", BlobMetadata(company_id="c1"), "../My Passport.pdf")

    assert locator.startswith("c1/")
    assert locator.endswith("_My_Passport.pdf")
    assert (tmp_path / locator).read_bytes() == b"scan"


async def test_unwritable_root_raises_storage_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("occupied")
    store = LocalBlobStore(str(blocker))

    with pytest.raises(StorageError):
        await store.store(b"scan", BlobMetadata(company_id="c1"), "passport.pdf")
