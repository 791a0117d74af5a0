"""Shared pytest fixtures and in-memory store doubles."""

import copy
from collections.abc import AsyncGenerator, AsyncIterator
from types import SimpleNamespace
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from authgate.config import Config
from authgate.core.core import Core


class FakeRedis:
    """Just enough of redis.asyncio.Redis for sessions and challenges.

    Time is virtual: `advance()` moves the clock used for key expiry.
    """

    def __init__(self) -> None:
        self._data: dict[str, tuple[str, float | None]] = {}
        self.clock = 0.0
        self.fail = False
        self.commands: list[str] = []
        self.closed = False

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if self.fail:
            raise RedisConnectionError("Connection refused")

    def _live(self, key: str) -> str | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.clock:
            del self._data[key]
            return None
        return value

    def advance(self, seconds: float) -> None:
        self.clock += seconds

    def ttl(self, key: str) -> float | None:
        entry = self._data.get(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self.clock

    async def ping(self) -> bool:
        self._check("PING")
        return True

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._check("SET")
        self._data[key] = (value, self.clock + ex if ex is not None else None)
        return True

    async def get(self, key: str) -> str | None:
        self._check("GET")
        return self._live(key)

    async def getdel(self, key: str) -> str | None:
        self._check("GETDEL")
        value = self._live(key)
        self._data.pop(key, None)
        return value

    async def delete(self, *keys: str) -> int:
        self._check("DEL")
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                deleted += 1
            self._data.pop(key, None)
        return deleted

    async def aclose(self) -> None:
        self.closed = True


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(document, sub) for sub in condition):
                return False
            continue
        value = document.get(key)
        if isinstance(condition, dict) and condition and all(op.startswith("$") for op in condition):
            for op, operand in condition.items():
                if op == "$lt":
                    ok = value is not None and value < operand
                elif op == "$gt":
                    ok = value is not None and value > operand
                else:
                    raise NotImplementedError(op)
                if not ok:
                    return False
        elif value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        for document in self._documents:
            yield document


class FakeCollection:
    """In-memory collection supporting equality, $lt, $gt, $or and $set."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.documents: list[dict[str, Any]] = []
        self.indexes: list[Any] = []

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return "_".join(f"{k}_{d}" for k, d in keys)

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document.get("_id"))

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query: dict[str, Any] | None = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.documents if _matches(d, query or {})])

    async def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], return_document: Any = None
    ) -> dict[str, Any] | None:
        for document in self.documents:
            if _matches(document, query):
                before = copy.deepcopy(document)
                document.update(update.get("$set", {}))
                return copy.deepcopy(document) if return_document else before
        return None

    async def find_one_and_delete(self, query: dict[str, Any]) -> dict[str, Any] | None:
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                return self.documents.pop(index)
        return None

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        for document in self.documents:
            if _matches(document, query):
                document.update(update.get("$set", {}))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        kept = [d for d in self.documents if not _matches(d, query)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)


class FakeDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self._collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


class FakeMongoClient:
    def __init__(self) -> None:
        self._databases: dict[str, FakeDatabase] = {}
        self.closed = False

    def get_database(self, name: str) -> FakeDatabase:
        if name not in self._databases:
            self._databases[name] = FakeDatabase(name)
        return self._databases[name]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def config() -> Config:
    return Config(
        database_url="mongodb://localhost:27017/authgate_test",
        redis_url="redis://localhost:6379/0",
        host="127.0.0.1",
        port=8000,
        app_name="Fitness",
        email_host="smtp.example.com",
        sender_email="hello@example.com",
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_mongo() -> FakeMongoClient:
    return FakeMongoClient()


@pytest.fixture
async def core(config: Config, fake_redis: FakeRedis, fake_mongo: FakeMongoClient) -> AsyncGenerator[Core]:
    core = Core(config, mongo_client=fake_mongo, redis=fake_redis)  # type: ignore[arg-type]
    await core.on_start()
    yield core
    await core.on_stop()


@pytest.fixture
def sent_emails(core: Core, monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str, str]]:
    """Capture outgoing email instead of talking to SMTP."""
    outbox: list[tuple[str, str, str]] = []

    async def send_email(to: str, subject: str, html_body: str) -> None:
        outbox.append((to, subject, html_body))

    monkeypatch.setattr(core.services.email, "send_email", send_email)
    return outbox
