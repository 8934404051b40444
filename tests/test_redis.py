from __future__ import annotations

import asyncio
import typing

import pytest
from redis import exceptions as redis_errors

from dashi import errors
from dashi import marshalling
from dashi import redis


class Simple:
    id: int
    name: str


class SimpleImpl(Simple):
    def __init__(self, id: int, name: str) -> None:
        self.id = id
        self.name = name


class FakePool:
    urls: typing.List[typing.Tuple[str, typing.Dict[str, typing.Any]]] = []

    @classmethod
    def from_url(cls, url: str, **kwargs: typing.Any) -> FakePool:
        cls.urls.append((url, kwargs))
        return cls()


class FakeRedis:
    def __init__(self, pool: FakePool) -> None:
        self.pool = pool
        self.closed = False
        self.data: typing.Dict[str, bytes] = {}
        self.expires: typing.Dict[str, typing.Optional[int]] = {}
        self.error: typing.Optional[Exception] = None

    @classmethod
    def from_pool(cls, pool: FakePool) -> FakeRedis:
        return cls(pool)

    def _check(self) -> None:
        if self.error:
            raise self.error

    async def get(self, key: str) -> typing.Optional[bytes]:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: bytes, px: typing.Optional[int] = None) -> None:
        self._check()
        self.data[key] = value
        self.expires[key] = px

    async def delete(self, key: str) -> None:
        self._check()
        self.data.pop(key, None)

    async def flushdb(self) -> None:
        self._check()
        self.data.clear()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> None:
    FakePool.urls = []
    monkeypatch.setattr(redis.aioredis, "BlockingConnectionPool", FakePool)
    monkeypatch.setattr(redis.aioredis, "Redis", FakeRedis)


@pytest.fixture()
def marshaller() -> marshalling.Marshaller:
    marshaller = marshalling.Marshaller()
    marshaller.register(Simple, SimpleImpl)
    marshaller.freeze()
    return marshaller


def _open(marshaller: marshalling.Marshaller) -> typing.Tuple[redis.RedisStore, FakeRedis]:
    store = redis.RedisStore("redis://localhost", marshaller, db=2, password="pass", max_connections=3)
    asyncio.run(store.open())
    connection = store.get_connection()
    assert isinstance(connection, FakeRedis)
    return store, connection


@pytest.mark.usefixtures("fake_redis")
def test_open(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)

    assert store.is_alive is True
    assert FakePool.urls == [("redis://localhost", {"db": 2, "password": "pass", "max_connections": 3})]


@pytest.mark.usefixtures("fake_redis")
def test_open_twice(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)

    asyncio.run(store.open())

    assert store.get_connection() is connection
    assert len(FakePool.urls) == 1


@pytest.mark.usefixtures("fake_redis")
def test_close(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)

    asyncio.run(store.close())
    asyncio.run(store.close())

    assert connection.closed is True
    assert store.is_alive is False


def test_use_closed_store(marshaller: marshalling.Marshaller):
    store = redis.RedisStore("redis://localhost", marshaller)

    with pytest.raises(errors.ClosedClient):
        asyncio.run(store.get("simple:1", Simple))


@pytest.mark.usefixtures("fake_redis")
def test_context_manager(marshaller: marshalling.Marshaller):
    store = redis.RedisStore("redis://localhost", marshaller)

    async def run() -> FakeRedis:
        async with store:
            connection = store.get_connection()
            assert isinstance(connection, FakeRedis)
            return connection

    connection = asyncio.run(run())

    assert connection.closed is True


@pytest.mark.usefixtures("fake_redis")
def test_set(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)

    asyncio.run(store.set("simple:1", SimpleImpl(1, "a"), Simple, expire=5000))

    assert connection.data == {"simple:1": b'{"id":1,"name":"a"}'}
    assert connection.expires == {"simple:1": 5000}


@pytest.mark.usefixtures("fake_redis")
def test_get(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)
    connection.data["simple:1"] = b'{"id": 1, "name": "a"}'

    result = asyncio.run(store.get("simple:1", Simple))

    assert isinstance(result, SimpleImpl)
    assert result.name == "a"


@pytest.mark.usefixtures("fake_redis")
def test_get_list(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)
    asyncio.run(store.set("simple:list", [SimpleImpl(1, "a")], typing.List[Simple]))

    result = asyncio.run(store.get("simple:list", typing.List[Simple]))

    assert [entry.name for entry in result] == ["a"]


@pytest.mark.usefixtures("fake_redis")
def test_get_missing(marshaller: marshalling.Marshaller):
    store, _ = _open(marshaller)

    with pytest.raises(errors.EntryNotFound):
        asyncio.run(store.get("simple:1", Simple))


@pytest.mark.usefixtures("fake_redis")
def test_get_invalid_data(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)
    connection.data["simple:1"] = b'{"id": 1}'

    with pytest.raises(errors.InvalidDataFound) as exc_info:
        asyncio.run(store.get("simple:1", Simple))

    assert isinstance(exc_info.value.base_exception, errors.MissingFieldError)


@pytest.mark.usefixtures("fake_redis")
def test_delete_and_clear(marshaller: marshalling.Marshaller):
    store, connection = _open(marshaller)
    connection.data.update({"simple:1": b"", "simple:2": b""})

    asyncio.run(store.delete("simple:1"))
    assert connection.data == {"simple:2": b""}

    asyncio.run(store.clear())
    assert connection.data == {}


@pytest.mark.usefixtures("fake_redis")
@pytest.mark.parametrize("method", ["get", "set", "delete", "clear"])
def test_backend_error(marshaller: marshalling.Marshaller, method: str):
    store, connection = _open(marshaller)
    connection.error = redis_errors.ConnectionError("boom")
    arguments = {
        "get": ("simple:1", Simple),
        "set": ("simple:1", SimpleImpl(1, "a"), Simple),
        "delete": ("simple:1",),
        "clear": (),
    }[method]

    with pytest.raises(errors.BackendError) as exc_info:
        asyncio.run(getattr(store, method)(*arguments))

    assert isinstance(exc_info.value.base_exception, redis_errors.ConnectionError)
