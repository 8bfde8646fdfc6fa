import os
import re
import uuid
from pathlib import Path
from typing import AsyncIterator

import aiofiles
import aiofiles.os
from fastapi import HTTPException
from loguru import logger

from studypartner.core.deps import AuthContext
from studypartner.core.errors import NotFound, Unauthenticated
from studypartner.core.security import SecurityService
from studypartner.core.settings import settings

_STORAGE_ID_RE = re.compile(r"^[0-9a-f]{32}$")


class StorageService:
    """
    Local blob store. Files live at ``<UPLOAD_DIR>/<user_id>/<storage_id>``,
    so a storage id is only resolvable for its owner.
    """

    def __init__(self, security: SecurityService, base_dir: str | None = None):
        self.security = security
        self.base_dir = Path(base_dir or settings.UPLOAD_DIR)

    async def generate_upload_url_async(self, ctx: AuthContext) -> dict:
        storage_id = uuid.uuid4().hex
        token = await self.security.create_upload_token(
            str(ctx.user_id), storage_id, settings.UPLOAD_URL_EXPIRE_MINUTES
        )
        return {
            "storage_id": storage_id,
            "upload_url": f"{settings.BACKEND_URL}/api/v1/files/{storage_id}?token={token}",
            "expires_in": settings.UPLOAD_URL_EXPIRE_MINUTES * 60,
        }

    async def store_async(
        self, storage_id: str, token: str, chunks: AsyncIterator[bytes]
    ) -> dict:
        try:
            claims = await self.security.decode_upload_token(token)
        except ValueError as e:
            raise Unauthenticated(str(e))
        if claims.get("sid") != storage_id:
            raise Unauthenticated("Upload token does not match storage id")

        path = self._path(claims["sub"], storage_id)
        path.parent.mkdir(parents=True, exist_ok=True)

        size = 0
        try:
            async with aiofiles.open(path, "wb") as f:
                async for chunk in chunks:
                    size += len(chunk)
                    if size > settings.MAX_UPLOAD_BYTES:
                        raise HTTPException(413, "File too large")
                    await f.write(chunk)
        except HTTPException:
            await self._remove(path)
            raise

        logger.info(f"[Storage] Stored {storage_id} ({size} bytes)")
        return {"storage_id": storage_id, "size": size}

    async def exists_async(self, user_id: uuid.UUID, storage_id: str) -> bool:
        if not _STORAGE_ID_RE.match(storage_id or ""):
            return False
        return await aiofiles.os.path.exists(self._path(str(user_id), storage_id))

    async def require_async(self, user_id: uuid.UUID, storage_id: str) -> None:
        if not await self.exists_async(user_id, storage_id):
            raise NotFound("Uploaded file not found")

    async def delete_async(self, user_id: uuid.UUID, storage_id: str) -> None:
        """Best effort: a missing or locked file is logged, never raised."""
        if not _STORAGE_ID_RE.match(storage_id or ""):
            return
        await self._remove(self._path(str(user_id), storage_id))

    def _path(self, user_id: str, storage_id: str) -> Path:
        if not _STORAGE_ID_RE.match(storage_id):
            raise NotFound("Unknown storage id")
        return self.base_dir / os.path.basename(user_id) / storage_id

    @staticmethod
    async def _remove(path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"[Storage] Could not remove {path}: {e}")


def get_storage_service() -> StorageService:
    return StorageService(SecurityService())
