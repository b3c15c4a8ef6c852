"""
Document object store
Raw uploaded files kept in a Supabase storage bucket.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List

from supabase import Client

from sales_coach.errors import NotFoundError, StorageError

logger = logging.getLogger(__name__)

PLACEHOLDER_FILE = ".emptyFolderPlaceholder"


class DocumentStore:
    """Async wrapper over one storage bucket."""

    def __init__(self, client: Client, bucket: str = "documents"):
        self.client = client
        self.bucket = bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    async def _run(self, action: str, fn: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn)
        except Exception as e:
            logger.error(f"[Storage] {action} failed in bucket '{self.bucket}': {e}")
            raise StorageError(f"Failed to {action} file", status_code=500) from e

    async def upload(self, key: str, data: bytes, content_type: str) -> Dict[str, str]:
        """
        Store a new object; existing keys are not overwritten.

        Returns:
            {"path": stored key}
        """
        response = await self._run(
            "upload",
            lambda: self._bucket().upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "cache-control": "3600", "upsert": "false"},
            ),
        )
        path = getattr(response, "path", None) or key
        logger.info(f"[Storage] uploaded {path} ({len(data)} bytes)")
        return {"path": path}

    async def download(self, key: str) -> bytes:
        """
        Raises:
            NotFoundError: if the object cannot be fetched
        """
        try:
            return await self._run("download", lambda: self._bucket().download(key))
        except StorageError as e:
            raise NotFoundError("File not found") from e

    async def list(self, prefix: str = "", search: str = "", limit: int = 100) -> List[Dict[str, Any]]:
        """
        List objects, newest first, without the folder placeholder.

        Returns:
            [{name, id, created_at, metadata: {size, mimetype}}]
        """
        options: Dict[str, Any] = {
            "limit": limit,
            "offset": 0,
            "sortBy": {"column": "created_at", "order": "desc"},
        }
        if search:
            options["search"] = search
        files = await self._run("list", lambda: self._bucket().list(prefix, options))
        return [f for f in (files or []) if f.get("name") != PLACEHOLDER_FILE]

    async def get(self, key: str) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: if no object has exactly this key
        """
        for file in await self.list(search=key):
            if file.get("name") == key:
                return file
        raise NotFoundError("File not found")

    async def remove(self, keys: List[str]) -> None:
        await self._run("delete", lambda: self._bucket().remove(keys))
        logger.info(f"[Storage] removed {keys}")

    def public_url(self, key: str) -> str:
        return self._bucket().get_public_url(key)
