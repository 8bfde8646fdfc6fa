"""Unit tests for signed upload URLs and the local blob store."""

import pytest
from fastapi import HTTPException

from studypartner.core.errors import Unauthenticated
from studypartner.core.security import SecurityService
from studypartner.core.settings import settings
from studypartner.services.shares.storage import StorageService


async def _chunks(*parts: bytes):
    for part in parts:
        yield part


@pytest.fixture
def storage(tmp_path):
    return StorageService(SecurityService(), base_dir=str(tmp_path))


def _token(target):
    return target["upload_url"].split("token=", 1)[1]


class TestUploadTarget:
    @pytest.mark.asyncio
    async def test_upload_url_carries_storage_id_and_expiry(self, student, storage):
        ctx = await student()

        target = await storage.generate_upload_url_async(ctx)

        assert f"/api/v1/files/{target['storage_id']}?token=" in target["upload_url"]
        assert target["expires_in"] == settings.UPLOAD_URL_EXPIRE_MINUTES * 60

    @pytest.mark.asyncio
    async def test_store_writes_under_owner(self, tmp_path, student, storage):
        ctx = await student()
        target = await storage.generate_upload_url_async(ctx)

        result = await storage.store_async(target["storage_id"], _token(target), _chunks(b"ab", b"cd"))

        assert result["size"] == 4
        assert (tmp_path / str(ctx.user_id) / target["storage_id"]).read_bytes() == b"abcd"
        assert await storage.exists_async(ctx.user_id, target["storage_id"]) is True

    @pytest.mark.asyncio
    async def test_token_bound_to_its_storage_id(self, student, storage):
        ctx = await student()
        first = await storage.generate_upload_url_async(ctx)
        second = await storage.generate_upload_url_async(ctx)

        with pytest.raises(Unauthenticated):
            await storage.store_async(second["storage_id"], _token(first), _chunks(b"x"))

    @pytest.mark.asyncio
    async def test_access_token_is_not_an_upload_token(self, student, storage):
        ctx = await student()
        target = await storage.generate_upload_url_async(ctx)
        access = await SecurityService().create_access_token(str(ctx.user_id))

        with pytest.raises(Unauthenticated):
            await storage.store_async(target["storage_id"], access, _chunks(b"x"))

    @pytest.mark.asyncio
    async def test_oversized_upload_is_removed(self, monkeypatch, student, storage):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 3)
        ctx = await student()
        target = await storage.generate_upload_url_async(ctx)

        with pytest.raises(HTTPException) as exc:
            await storage.store_async(target["storage_id"], _token(target), _chunks(b"ab", b"cd"))

        assert exc.value.status_code == 413
        assert await storage.exists_async(ctx.user_id, target["storage_id"]) is False

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_silent(self, student, storage):
        ctx = await student()
        await storage.delete_async(ctx.user_id, "0" * 32)
        await storage.delete_async(ctx.user_id, "../../etc/passwd")
