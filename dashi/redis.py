# -*- coding: utf-8 -*-
# cython: language_level=3
# BSD 3-Clause License
#
# Copyright (c) 2020-2022, Faster Speeding
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# * Redistributions of source code must retain the above copyright notice, this
#   list of conditions and the following disclaimer.
#
# * Redistributions in binary form must reproduce the above copyright notice,
#   this list of conditions and the following disclaimer in the documentation
#   and/or other materials provided with the distribution.
#
# * Neither the name of the copyright holder nor the names of its
#   contributors may be used to endorse or promote products derived from
#   this software without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.
"""Redis based implementation of the cache store."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["RedisStore"]

import logging
import types
import typing

import redis.asyncio as aioredis
from redis import exceptions as redis_errors

from . import abc
from . import errors

if typing.TYPE_CHECKING:
    from . import marshalling

_RedisStoreT = typing.TypeVar("_RedisStoreT", bound="RedisStore")

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.dashi.redis")


class RedisStore(abc.Resource, abc.CacheStore):
    """A cache store backed by a Redis database.

    Values are serialized with the passed marshaller so any type which it
    supports (including registered views and lists of them) may be stored.

    Parameters
    ----------
    address : str
        The address of the Redis instance to connect to.
    marshaller : dashi.marshalling.Marshaller
        The frozen marshaller used to serialize and deserialize entries.

    Other Parameters
    ----------------
    db : int
        The Redis database to use, this defaults to `0`.
    password : typing.Optional[str]
        The password to connect with.
    max_connections : int
        The maximum amount of connections this store will open at once,
        this defaults to `5`.
    """

    __slots__: typing.Sequence[str] = (
        "_address",
        "_client",
        "_db",
        "_marshaller",
        "_max_connections",
        "_password",
    )

    def __init__(
        self,
        address: str,
        marshaller: marshalling.Marshaller,
        *,
        db: int = 0,
        password: typing.Optional[str] = None,
        max_connections: int = 5,
    ) -> None:
        self._address = address
        self._client: typing.Optional[aioredis.Redis] = None
        self._db = db
        self._marshaller = marshaller
        self._max_connections = max_connections
        self._password = password

    async def __aenter__(self: _RedisStoreT) -> _RedisStoreT:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: typing.Optional[typing.Type[Exception]],
        exc_val: typing.Optional[Exception],
        exc_tb: typing.Optional[types.TracebackType],
    ) -> None:
        await self.close()

    @property
    def is_alive(self) -> bool:
        # <<Inherited docstring from dashi.abc.Resource>>
        return self._client is not None

    def get_connection(self) -> aioredis.Redis:
        """Get this store's Redis connection.

        Raises
        ------
        dashi.errors.ClosedClient
            When this method is called on a closed store.
        """
        if self._client is None:
            raise errors.ClosedClient("Cannot use an inactive store")

        return self._client

    async def open(self) -> None:
        # <<Inherited docstring from dashi.abc.Resource>>
        if self._client is not None:
            return

        # A blocking pool is used so bursts of cache misses wait for a free
        # connection rather than opening an unbounded amount of them.
        pool = aioredis.BlockingConnectionPool.from_url(
            self._address, db=self._db, password=self._password, max_connections=self._max_connections
        )
        self._client = aioredis.Redis.from_pool(pool)
        _LOGGER.debug("Opened Redis store for db %s", self._db)

    async def close(self) -> None:
        # <<Inherited docstring from dashi.abc.Resource>>
        # The store is marked as closed before the connection is severed.
        client = self._client
        self._client = None
        if client is not None:
            await client.aclose()
            _LOGGER.debug("Closed Redis store for db %s", self._db)

    async def get(self, key: str, type_: typing.Any, /) -> typing.Any:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        try:
            data = await self.get_connection().get(key)

        except redis_errors.RedisError as exc:
            raise errors.BackendError(f"Failed to get entry `{key}`", exception=exc) from exc

        if data is None:
            raise errors.EntryNotFound(f"Entry `{key}` not found")

        try:
            return self._marshaller.loads(data, type_)

        except errors.DataError as exc:
            raise errors.InvalidDataFound(f"Invalid data found for entry `{key}`", exception=exc) from exc

    async def set(
        self, key: str, value: typing.Any, type_: typing.Any, /, *, expire: typing.Optional[int] = None
    ) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        data = self._marshaller.dumps(value, type_)
        try:
            await self.get_connection().set(key, data, px=expire)

        except redis_errors.RedisError as exc:
            raise errors.BackendError(f"Failed to set entry `{key}`", exception=exc) from exc

    async def delete(self, key: str, /) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        try:
            await self.get_connection().delete(key)

        except redis_errors.RedisError as exc:
            raise errors.BackendError(f"Failed to delete entry `{key}`", exception=exc) from exc

    async def clear(self) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        try:
            await self.get_connection().flushdb()

        except redis_errors.RedisError as exc:
            raise errors.BackendError("Failed to clear the store", exception=exc) from exc
