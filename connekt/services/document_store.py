import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from loguru import logger

from connekt.core.config import settings


class DocumentNotFound(LookupError):
    """Raised by ``update`` when the target document does not exist."""


# Errors a service function converts into its sentinel value. ValueError covers
# corrupt JSON as well as stored documents that no longer validate.
STORE_ERRORS: tuple[type[Exception], ...] = (redis.RedisError, OSError, LookupError, ValueError)

_OPERATORS = {"==", "!=", "<", "<=", ">", ">=", "in", "array-contains", "array-contains-any"}


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_datetime(value: Any) -> datetime | None:
    """Coerce a stored timestamp (ISO string or datetime) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def get_path(data: dict[str, Any], path: str) -> Any:
    """Read a dotted field path (``terms.paymentAmount``) from a document."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _has_path(data: dict[str, Any], path: str) -> bool:
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return False
        current = current[part]
    return True


def _set_path(data: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Merge ``updates`` into a copy of ``base``; nested maps merge, everything else replaces."""
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _comparable(value: Any) -> tuple[int, Any]:
    """Sort key that keeps values of different kinds from being compared directly."""
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    as_date = to_datetime(value) if isinstance(value, (str, datetime)) else None
    if as_date is not None:
        return (2, as_date)
    if isinstance(value, str):
        return (3, value)
    return (4, json.dumps(value, sort_keys=True, default=_json_default))


def _matches(doc: dict[str, Any], field_path: str, op: str, expected: Any) -> bool:
    actual = get_path(doc, field_path)
    if op == "==":
        return actual == expected
    if op == "!=":
        return actual is not None and actual != expected
    if op == "in":
        return actual in expected
    if op == "array-contains":
        return isinstance(actual, list) and expected in actual
    if op == "array-contains-any":
        return isinstance(actual, list) and any(item in actual for item in expected)
    if actual is None:
        return False
    left, right = _comparable(actual), _comparable(expected)
    if left[0] != right[0]:
        return False
    if op == "<":
        return left < right
    if op == "<=":
        return left <= right
    if op == ">":
        return left > right
    return left >= right


@dataclass(frozen=True)
class Query:
    """Immutable collection query: each builder call returns a new query."""

    collection: str
    filters: tuple[tuple[str, str, Any], ...] = ()
    order: tuple[str, bool] | None = None
    limit_count: int | None = None
    offset_count: int = 0

    def where(self, field_path: str, op: str, value: Any) -> "Query":
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported query operator: {op}")
        return replace(self, filters=self.filters + ((field_path, op, value),))

    def order_by(self, field_path: str, descending: bool = False) -> "Query":
        return replace(self, order=(field_path, descending))

    def limit(self, count: int) -> "Query":
        return replace(self, limit_count=count)

    def offset(self, count: int) -> "Query":
        return replace(self, offset_count=max(0, count))

    def apply(self, documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Evaluate filters, ordering, offset and limit over already-fetched documents."""
        results = [doc for doc in documents if all(_matches(doc, f, op, v) for f, op, v in self.filters)]
        if self.order is not None:
            order_field, descending = self.order
            # Documents without the ordering field are excluded, as the managed store does.
            results = [doc for doc in results if _has_path(doc, order_field)]
            results.sort(key=lambda doc: _comparable(get_path(doc, order_field)), reverse=descending)
        if self.offset_count:
            results = results[self.offset_count :]
        if self.limit_count is not None:
            results = results[: self.limit_count]
        return results


@dataclass
class _Stats:
    reads: int = 0
    writes: int = 0
    per_collection: dict[str, int] = field(default_factory=dict)


class DocumentStore:
    """Redis-backed collection/document store.

    Each document is a JSON string at ``{prefix}doc:{collection}:{id}``; a set at
    ``{prefix}idx:{collection}`` lists the ids of a collection. Collection paths
    may nest (``user_profiles/{uid}/ratings``).

    Backend errors propagate; service functions decide the sentinel to return.
    """

    def __init__(self, client: redis.Redis | None = None, prefix: str | None = None) -> None:
        self._client = client
        self.prefix = prefix if prefix is not None else settings.STORE_KEY_PREFIX
        self.stats = _Stats()
        if client is None and not settings.REDIS_URL:
            logger.warning("REDIS_URL is not set. Document store operations will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for DocumentStore")
            self._client = redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def _doc_key(self, collection: str, doc_id: str) -> str:
        return f"{self.prefix}doc:{collection}:{doc_id}"

    def _index_key(self, collection: str) -> str:
        return f"{self.prefix}idx:{collection}"

    def _count(self, collection: str, *, write: bool = False) -> None:
        if write:
            self.stats.writes += 1
        else:
            self.stats.reads += 1
        self.stats.per_collection[collection] = self.stats.per_collection.get(collection, 0) + 1

    @staticmethod
    def _decode(raw: str | None, doc_id: str) -> dict[str, Any] | None:
        if raw is None:
            return None
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Stored document '{doc_id}' is not an object")
        data.setdefault("id", doc_id)
        return data

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document with its ``id`` filled in, or None when absent."""
        client = await self.get_client()
        self._count(collection)
        raw = await client.get(self._doc_key(collection, doc_id))
        return self._decode(raw, doc_id)

    async def exists(self, collection: str, doc_id: str) -> bool:
        client = await self.get_client()
        self._count(collection)
        return bool(await client.exists(self._doc_key(collection, doc_id)))

    async def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        """Write a document. With ``merge`` the payload is deep-merged into the stored one."""
        client = await self.get_client()
        payload = data
        if merge:
            existing = await self.get(collection, doc_id)
            if existing is not None:
                payload = deep_merge(existing, data)
        self._count(collection, write=True)
        body = json.dumps(payload, default=_json_default)
        async with client.pipeline(transaction=True) as pipe:
            pipe.set(self._doc_key(collection, doc_id), body)
            pipe.sadd(self._index_key(collection), doc_id)
            await pipe.execute()

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Set individual (optionally dotted) field paths on an existing document.

        Raises:
            DocumentNotFound: when the document does not exist
        """
        existing = await self.get(collection, doc_id)
        if existing is None:
            raise DocumentNotFound(f"{collection}/{doc_id}")
        for path, value in fields.items():
            _set_path(existing, path, value)
        await self.set(collection, doc_id, existing)

    async def delete(self, collection: str, doc_id: str) -> bool:
        client = await self.get_client()
        self._count(collection, write=True)
        async with client.pipeline(transaction=True) as pipe:
            pipe.delete(self._doc_key(collection, doc_id))
            pipe.srem(self._index_key(collection), doc_id)
            deleted, _ = await pipe.execute()
        return bool(deleted)

    async def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """Fetch every document of a collection (ids listed in the collection index)."""
        client = await self.get_client()
        self._count(collection)
        ids = sorted(await client.smembers(self._index_key(collection)))
        if not ids:
            return []
        raws = await client.mget([self._doc_key(collection, doc_id) for doc_id in ids])
        documents = []
        for doc_id, raw in zip(ids, raws):
            if raw is None:
                logger.debug(f"Skipping stale index entry {collection}/{doc_id}")
                continue
            documents.append(self._decode(raw, doc_id))
        return documents

    async def query(self, query: Query) -> list[dict[str, Any]]:
        """Run a query: fetch the collection, then filter, order and limit."""
        documents = await self.list_documents(query.collection)
        return query.apply(documents)

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("DocumentStore client closed")
            except Exception as exc:
                logger.warning(f"Failed to close DocumentStore client: {exc}")
            finally:
                self._client = None


def collection(name: str) -> Query:
    """Start a query over ``name``."""
    return Query(collection=name)


document_store = DocumentStore()
