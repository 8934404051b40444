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
"""Decorators which put a time-to-live cache in front of remote resource operations.

Each decorator wraps an async method of a `CachingClient` subclass which
performs the remote call. The decorated method keeps its signature and
result; the decorator only consults or updates `CachingClient.cache`.

Examples
--------
```py
class CachingGuildAPI(dashi.CachingClient):
    __slots__ = ("_rest",)

    def __init__(self, rest: hikari.api.RESTClient, store: dashi.abc.CacheStore) -> None:
        super().__init__(store)
        self._rest = rest

    @dashi.as_fetch(hikari.Role, "guild_id", "role_id")
    async def fetch_role(self, guild_id: int, role_id: int) -> hikari.Role:
        ...

    @dashi.as_fetch_list(hikari.Role, scope=("guild_id",))
    async def fetch_roles(self, guild_id: int) -> typing.Sequence[hikari.Role]:
        return await self._rest.fetch_roles(guild_id)

    @dashi.as_delete(hikari.Role, "guild_id", "role_id")
    async def delete_role(self, guild_id: int, role_id: int) -> None:
        await self._rest.delete_role(guild_id, role_id)
```

Per-element keys are built from the scope values followed by the entity's
identity so `fetch_roles(1)` above also populates the entries which
`fetch_role(1, role_id)` reads.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "DEFAULT_EXPIRE",
    "CacheSettings",
    "CachingClient",
    "as_create",
    "as_delete",
    "as_fetch",
    "as_fetch_list",
    "as_modify",
]

import datetime
import functools
import inspect
import logging
import typing

from hikari import undefined

from . import errors
from . import utility

if typing.TYPE_CHECKING:
    from . import abc

_CallbackT = typing.TypeVar("_CallbackT", bound=typing.Callable[..., typing.Awaitable[typing.Any]])
_CacheSettingsT = typing.TypeVar("_CacheSettingsT", bound="CacheSettings")
_IdentityT = typing.Callable[[typing.Any], typing.Optional[typing.Sequence[typing.Any]]]

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.dashi.caching")

DEFAULT_EXPIRE: typing.Final[int] = 3_600_000
"""The default expire time (in milliseconds) used for cached entities of 60 minutes."""


def _default_identity(entity: typing.Any, /) -> typing.Sequence[typing.Any]:
    return (entity.id,)


def _format_part(part: typing.Any, /) -> str:
    return str(int(part)) if isinstance(part, int) and not isinstance(part, bool) else str(part)


class CacheSettings:
    """Per-entity-type policy used to key and expire cached entries.

    Other Parameters
    ----------------
    default_expire : dashi.utility.ExpireT
        The expire time used for entity types which don't have one set.

        This defaults to 60 minutes.
    """

    __slots__: typing.Sequence[str] = ("_default_expire", "_expires", "_identities", "_namespaces")

    def __init__(self, *, default_expire: utility.ExpireT = datetime.timedelta(milliseconds=DEFAULT_EXPIRE)) -> None:
        self._default_expire = utility.convert_expire_time(default_expire)
        self._expires: typing.Dict[typing.Any, typing.Optional[int]] = {}
        self._identities: typing.Dict[typing.Any, _IdentityT] = {}
        self._namespaces: typing.Dict[typing.Any, str] = {}

    def set_expire(self: _CacheSettingsT, type_: typing.Any, expire: utility.ExpireT, /) -> _CacheSettingsT:
        """Set how long entries of an entity type should live for.

        Parameters
        ----------
        type_ : typing.Any
            The entity type.
        expire : dashi.utility.ExpireT
            The expire time. `builtins.None` means entries won't expire.

        Returns
        -------
        Self
            The settings object to enable chained calls.
        """
        self._expires[type_] = utility.convert_expire_time(expire)
        return self

    def get_expire(self, type_: typing.Any, /) -> typing.Optional[int]:
        """Get the expire time of an entity type in milliseconds."""
        return self._expires.get(type_, self._default_expire)

    def set_identity(self: _CacheSettingsT, type_: typing.Any, identity: _IdentityT, /) -> _CacheSettingsT:
        """Set the callable used to extract the key parts which identify an entity.

        By default this is `(entity.id,)`. The callable may return `builtins.None`
        or `hikari.undefined.UNDEFINED` for an entity which has no identity, in
        which case the entity isn't cached under its own key.
        """
        self._identities[type_] = identity
        return self

    def get_identity(self, type_: typing.Any, entity: typing.Any, /) -> typing.Optional[typing.Sequence[typing.Any]]:
        """Get the key parts which identify an entity.

        Returns
        -------
        typing.Optional[typing.Sequence[typing.Any]]
            The key parts, or `builtins.None` if the entity has no identity.
        """
        identity = self._identities.get(type_, _default_identity)(entity)
        if identity is None or identity is undefined.UNDEFINED or undefined.UNDEFINED in identity:
            return None

        return identity

    def set_namespace(self: _CacheSettingsT, type_: typing.Any, namespace: str, /) -> _CacheSettingsT:
        """Set the prefix used for the keys of an entity type.

        By default this is the lowercased type name.
        """
        self._namespaces[type_] = namespace
        return self

    def get_namespace(self, type_: typing.Any, /) -> str:
        """Get the prefix used for the keys of an entity type."""
        try:
            return self._namespaces[type_]

        except KeyError:
            return getattr(type_, "__name__", str(type_)).lower()

    def make_key(self, type_: typing.Any, /, *parts: typing.Any) -> str:
        """Build the key of a single entity from its scope and identity parts."""
        return ":".join((self.get_namespace(type_), *map(_format_part, parts)))

    def make_collection_key(self, type_: typing.Any, name: str, parameters: typing.Mapping[str, typing.Any], /) -> str:
        """Build the key of a collection from the name of the operation and its filter parameters.

        Undefined parameters are left out of the key.
        """
        filters = (
            f"{key}={_format_part(value)}" for key, value in parameters.items() if value is not undefined.UNDEFINED
        )
        return ":".join((self.get_namespace(type_), "list", name, *filters))


class CachingClient:
    """Base class for clients with methods decorated by the caching decorators.

    Parameters
    ----------
    store : dashi.abc.CacheStore
        The store cached entities are kept in.

    Other Parameters
    ----------------
    settings : typing.Optional[CacheSettings]
        The keying and expiry policy. A default `CacheSettings` is used if
        this isn't passed.
    """

    __slots__: typing.Sequence[str] = ("_cache", "_settings")

    def __init__(self, store: abc.CacheStore, /, *, settings: typing.Optional[CacheSettings] = None) -> None:
        self._cache = store
        self._settings = settings or CacheSettings()

    @property
    def cache(self) -> abc.CacheStore:
        """The store cached entities are kept in."""
        return self._cache

    @property
    def settings(self) -> CacheSettings:
        """The keying and expiry policy for cached entities."""
        return self._settings

    async def evict(self, type_: typing.Any, /, *parts: typing.Any) -> None:
        """Remove a single entity from the cache.

        Parameters
        ----------
        type_ : typing.Any
            The entity type.
        *parts : typing.Any
            The entity's scope and identity key parts.
        """
        key = self._settings.make_key(type_, *parts)
        await self._cache.delete(key)
        _LOGGER.debug("Evicted %s", key)

    async def _try_get(self, key: str, type_: typing.Any, /) -> typing.Any:
        try:
            result = await self._cache.get(key, type_)

        except errors.EntryNotFound:
            _LOGGER.debug("Cache miss for %s", key)

        except errors.InvalidDataFound as exc:
            _LOGGER.warning("Ignoring invalid cache entry %s: %s", key, exc.message)

        else:
            _LOGGER.debug("Cache hit for %s", key)
            return result

        return undefined.UNDEFINED

    def _entity_key(
        self, type_: typing.Any, scope: typing.Sequence[typing.Any], entity: typing.Any, /
    ) -> typing.Optional[str]:
        if (identity := self._settings.get_identity(type_, entity)) is None:
            _LOGGER.debug("Not caching %r as it has no identity", entity)
            return None

        return self._settings.make_key(type_, *scope, *identity)

    async def _store_entity(self, type_: typing.Any, key: typing.Optional[str], entity: typing.Any, /) -> None:
        if key is not None:
            await self._cache.set(key, entity, type_, expire=self._settings.get_expire(type_))


def _check_parameters(callback: typing.Callable[..., typing.Any], names: typing.Iterable[str], /) -> inspect.Signature:
    signature = inspect.signature(callback)
    for name in names:
        if name not in signature.parameters:
            raise errors.ConfigurationError(f"{callback.__qualname__} has no parameter named {name!r}")

    return signature


def _bind(
    signature: inspect.Signature, args: typing.Sequence[typing.Any], kwargs: typing.Mapping[str, typing.Any], /
) -> typing.Mapping[str, typing.Any]:
    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()
    return bound.arguments


def as_fetch(entity_type: typing.Any, /, *key_params: str) -> typing.Callable[[_CallbackT], _CallbackT]:
    """Cache the result of a method which fetches a single entity.

    The cache is checked first and the method is only called on a miss, after
    which a non-`builtins.None` result is stored.

    Parameters
    ----------
    entity_type : typing.Any
        The type of the fetched entity.
    *key_params : str
        Names of the parameters whose values make up the entity's key, in the
        same order as its scope followed by its identity.

    Raises
    ------
    dashi.errors.ConfigurationError
        If the method doesn't have one of the named parameters.
    """

    def decorator(callback: _CallbackT, /) -> _CallbackT:
        signature = _check_parameters(callback, key_params)

        @functools.wraps(callback)
        async def wrapper(self: CachingClient, /, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            arguments = _bind(signature, (self, *args), kwargs)
            key = self.settings.make_key(entity_type, *(arguments[name] for name in key_params))
            if (result := await self._try_get(key, entity_type)) is not undefined.UNDEFINED:
                return result

            result = await callback(self, *args, **kwargs)
            if result is not None:
                await self.cache.set(key, result, entity_type, expire=self.settings.get_expire(entity_type))

            return result

        return typing.cast("_CallbackT", wrapper)

    return decorator


def as_fetch_list(
    entity_type: typing.Any, /, *, scope: typing.Sequence[str] = ()
) -> typing.Callable[[_CallbackT], _CallbackT]:
    """Cache the result of a method which fetches a collection of entities.

    The collection is keyed by the method's name and all of its arguments
    (filter parameters) and is stored as a `typing.List` of the entity type.
    On a miss each returned entity is also stored under its own key so later
    single-entity fetches hit; entities without an identity (see
    `CacheSettings.set_identity`) are only stored as part of the collection.

    Parameters
    ----------
    entity_type : typing.Any
        The type of the collection's elements.

    Other Parameters
    ----------------
    scope : typing.Sequence[str]
        Names of the parameters whose values prefix each element's key
        (e.g. `("guild_id",)` for roles).

    Raises
    ------
    dashi.errors.ConfigurationError
        If the method doesn't have one of the named parameters.
    """
    collection_type = typing.List[entity_type]  # type: ignore[valid-type]
    scope = tuple(scope)

    def decorator(callback: _CallbackT, /) -> _CallbackT:
        signature = _check_parameters(callback, scope)
        self_name = next(iter(signature.parameters), None)

        @functools.wraps(callback)
        async def wrapper(self: CachingClient, /, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            arguments = _bind(signature, (self, *args), kwargs)
            filters = {name: value for name, value in arguments.items() if name != self_name}
            key = self.settings.make_collection_key(entity_type, callback.__name__, filters)
            if (result := await self._try_get(key, collection_type)) is not undefined.UNDEFINED:
                return result

            result = await callback(self, *args, **kwargs)
            entities = list(result)
            # Keys are built before anything is written so a failing identity leaves the cache untouched.
            scope_values = [arguments[name] for name in scope]
            element_keys = [self._entity_key(entity_type, scope_values, entity) for entity in entities]
            await self.cache.set(key, entities, collection_type, expire=self.settings.get_expire(entity_type))
            for entity_key, entity in zip(element_keys, entities):
                await self._store_entity(entity_type, entity_key, entity)

            return result

        return typing.cast("_CallbackT", wrapper)

    return decorator


def _as_write_through(
    entity_type: typing.Any, scope: typing.Sequence[str], /
) -> typing.Callable[[_CallbackT], _CallbackT]:
    def decorator(callback: _CallbackT, /) -> _CallbackT:
        signature = _check_parameters(callback, scope)

        @functools.wraps(callback)
        async def wrapper(self: CachingClient, /, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            result = await callback(self, *args, **kwargs)
            # Some endpoints return nothing when no change was made.
            if result is not None:
                arguments = _bind(signature, (self, *args), kwargs)
                key = self._entity_key(entity_type, [arguments[name] for name in scope], result)
                await self._store_entity(entity_type, key, result)

            return result

        return typing.cast("_CallbackT", wrapper)

    return decorator


def as_create(entity_type: typing.Any, /, *scope: str) -> typing.Callable[[_CallbackT], _CallbackT]:
    """Write the entity returned by a method which creates one through to the cache.

    Parameters
    ----------
    entity_type : typing.Any
        The type of the created entity.
    *scope : str
        Names of the parameters whose values prefix the entity's key.

    Raises
    ------
    dashi.errors.ConfigurationError
        If the method doesn't have one of the named parameters.
    """
    return _as_write_through(entity_type, scope)


def as_modify(entity_type: typing.Any, /, *scope: str) -> typing.Callable[[_CallbackT], _CallbackT]:
    """Write the entity returned by a method which modifies one through to the cache.

    This takes the same arguments as `as_create`.
    """
    return _as_write_through(entity_type, scope)


def as_delete(entity_type: typing.Any, /, *key_params: str) -> typing.Callable[[_CallbackT], _CallbackT]:
    """Evict an entity from the cache once the method which deletes it succeeds.

    Parameters
    ----------
    entity_type : typing.Any
        The type of the deleted entity.
    *key_params : str
        Names of the parameters whose values make up the entity's key.

    Raises
    ------
    dashi.errors.ConfigurationError
        If the method doesn't have one of the named parameters.
    """

    def decorator(callback: _CallbackT, /) -> _CallbackT:
        signature = _check_parameters(callback, key_params)

        @functools.wraps(callback)
        async def wrapper(self: CachingClient, /, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
            result = await callback(self, *args, **kwargs)
            arguments = _bind(signature, (self, *args), kwargs)
            await self.evict(entity_type, *(arguments[name] for name in key_params))
            return result

        return typing.cast("_CallbackT", wrapper)

    return decorator
