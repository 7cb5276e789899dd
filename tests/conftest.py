from datetime import datetime, timezone
from typing import Any

import fakeredis
import httpx
import pytest
import redis

from connekt.core.constants import USER_PROFILES, USERNAMES, USERS
from connekt.models.profile import UserProfile, dump_document
from connekt.services.analytics.pro import ConnectProService
from connekt.services.analytics.pro_plus import ConnectProPlusService
from connekt.services.analytics.reputation import ReputationScorer
from connekt.services.blob_store import BlobStore, blob_store
from connekt.services.document_store import DocumentStore, document_store
from connekt.services.profile.media import ProfileMediaService
from connekt.services.profile.ratings import RatingService
from connekt.services.profile.store import ProfileStore

TEST_PREFIX = "test:"
MEDIA_BASE_URL = "https://media.test"


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def doc_client(redis_server):
    return fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)


@pytest.fixture
def blob_client(redis_server):
    return fakeredis.FakeAsyncRedis(server=redis_server)


@pytest.fixture
def store(doc_client) -> DocumentStore:
    return DocumentStore(client=doc_client, prefix=TEST_PREFIX)


@pytest.fixture
def blobs(blob_client) -> BlobStore:
    # Tiny chunks so uploads report progress several times
    return BlobStore(client=blob_client, prefix=TEST_PREFIX, chunk_size=4, base_url=MEDIA_BASE_URL)


@pytest.fixture
def profiles(store) -> ProfileStore:
    return ProfileStore(store)


@pytest.fixture
def ratings(store) -> RatingService:
    return RatingService(store)


@pytest.fixture
def media(blobs, profiles) -> ProfileMediaService:
    return ProfileMediaService(blobs, profiles)


@pytest.fixture
def pro(store, profiles) -> ConnectProService:
    return ConnectProService(store, profiles)


@pytest.fixture
def pro_plus(store, profiles) -> ConnectProPlusService:
    return ConnectProPlusService(store, profiles)


@pytest.fixture
def scorer(profiles) -> ReputationScorer:
    return ReputationScorer(profiles)


@pytest.fixture
def make_profile(store):
    """Write a full extended profile document and return the model that was stored."""

    async def _make(uid: str, **fields: Any) -> UserProfile:
        fields.setdefault("username", uid)
        fields.setdefault("displayName", uid.title())
        fields.setdefault("createdAt", datetime(2024, 1, 1, tzinfo=timezone.utc))
        profile = UserProfile(uid=uid, **fields)
        await store.set(USER_PROFILES, uid, dump_document(profile))
        return profile

    return _make


@pytest.fixture
def make_user(store):
    """Write a basic account record plus its handle mapping."""

    async def _make(uid: str, **fields: Any) -> dict[str, Any]:
        record = {"uid": uid, "username": uid, "displayName": uid.title(), **fields}
        await store.set(USERS, uid, record)
        await store.set(USERNAMES, record["username"].lower(), {"uid": uid})
        return record

    return _make


@pytest.fixture
def failing_store(store, monkeypatch):
    """A store whose every backend call raises a connection error."""

    async def _boom(*args, **kwargs):
        raise redis.ConnectionError("backend unavailable")

    for name in ("get", "set", "update", "delete", "exists", "list_documents", "query"):
        monkeypatch.setattr(store, name, _boom)
    return store


@pytest.fixture
async def api_client(doc_client, blob_client, monkeypatch):
    """ASGI client against the app, with the module-level stores pointed at fakeredis."""
    from connekt.core.app import app

    monkeypatch.setattr(document_store, "_client", doc_client)
    monkeypatch.setattr(document_store, "prefix", TEST_PREFIX)
    monkeypatch.setattr(blob_store, "_client", blob_client)
    monkeypatch.setattr(blob_store, "prefix", TEST_PREFIX)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
