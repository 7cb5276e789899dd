from collections.abc import Callable
from urllib.parse import quote, unquote

import redis.asyncio as redis
from loguru import logger

from connekt.core.config import settings

ProgressCallback = Callable[[float], None]


class BlobStore:
    """Redis-backed byte storage addressed by slash-separated paths.

    Uploads are written chunk by chunk into a staging key and renamed into
    place once complete, so a failed transfer never leaves a partial object
    behind. There is no cancellation: an upload runs to completion or fails.
    """

    def __init__(
        self,
        client: redis.Redis | None = None,
        prefix: str | None = None,
        chunk_size: int | None = None,
        base_url: str | None = None,
    ) -> None:
        self._client = client
        self.prefix = prefix if prefix is not None else settings.STORE_KEY_PREFIX
        self.chunk_size = chunk_size or settings.UPLOAD_CHUNK_SIZE
        self.base_url = (base_url or settings.MEDIA_BASE_URL).rstrip("/")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for BlobStore")
            # Raw bytes in and out: no response decoding on this client
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=False,
                socket_connect_timeout=5,
                socket_timeout=30,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                health_check_interval=30,
            )
        return self._client

    def _blob_key(self, path: str) -> str:
        return f"{self.prefix}blob:{path}"

    def _meta_key(self, path: str) -> str:
        return f"{self.prefix}blobmeta:{path}"

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Store ``data`` at ``path`` and return its download URL.

        Args:
            path: Storage path, e.g. ``profiles/users/{uid}/cover-image.png``
            data: The object bytes
            content_type: Optional MIME type kept alongside the object
            on_progress: Called with the cumulative percentage after every chunk

        Returns:
            The public download URL of the stored object
        """
        client = await self.get_client()
        key = self._blob_key(path)
        staging = f"{key}:partial"
        total = len(data)

        await client.set(staging, b"")
        if total == 0 and on_progress:
            on_progress(100.0)
        sent = 0
        try:
            while sent < total:
                chunk = data[sent : sent + self.chunk_size]
                await client.append(staging, chunk)
                sent += len(chunk)
                if on_progress:
                    on_progress(sent / total * 100)

            async with client.pipeline(transaction=True) as pipe:
                pipe.rename(staging, key)
                pipe.hset(self._meta_key(path), mapping={"contentType": content_type or "", "size": total})
                await pipe.execute()
        except (redis.RedisError, OSError):
            logger.warning(f"Upload of {path} failed, discarding {sent} staged bytes")
            await client.delete(staging)
            raise
        logger.debug(f"Stored blob {path} ({total} bytes)")
        return self.download_url(path)

    async def get(self, path: str) -> bytes | None:
        client = await self.get_client()
        return await client.get(self._blob_key(path))

    async def delete(self, path: str) -> bool:
        client = await self.get_client()
        deleted = await client.delete(self._blob_key(path), self._meta_key(path))
        return bool(deleted)

    def download_url(self, path: str) -> str:
        return f"{self.base_url}/{quote(path)}"

    def path_from_url(self, url: str) -> str | None:
        """Map a download URL issued by this store back to its storage path."""
        marker = f"{self.base_url}/"
        if not url.startswith(marker):
            return None
        return unquote(url[len(marker) :])

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("BlobStore client closed")
            except Exception as exc:
                logger.warning(f"Failed to close BlobStore client: {exc}")
            finally:
                self._client = None


blob_store = BlobStore()
