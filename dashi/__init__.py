from __future__ import annotations

__all__: typing.Final[typing.Sequence[str]] = [
    "CacheSettings",
    "CachingClient",
    "ConfigurationError",
    "DashiException",
    "DataError",
    "EntryNotFound",
    "InvalidDataFound",
    "Marshaller",
    "MemoryStore",
    "MissingFieldError",
    "NullabilityError",
    "RedisStore",
    "UnknownFieldError",
    "UnknownFieldPolicy",
    "abc",
    "as_constructor",
    "as_create",
    "as_delete",
    "as_fetch",
    "as_fetch_list",
    "as_modify",
    "caching",
    "errors",
    "marshalling",
    "transformers",
]

import typing

from dashi import abc
from dashi import caching
from dashi import errors
from dashi import marshalling
from dashi import transformers
from dashi.binding import UnknownFieldPolicy
from dashi.caching import CacheSettings
from dashi.caching import CachingClient
from dashi.caching import as_create
from dashi.caching import as_delete
from dashi.caching import as_fetch
from dashi.caching import as_fetch_list
from dashi.caching import as_modify
from dashi.errors import *
from dashi.marshalling import Marshaller
from dashi.memory import MemoryStore
from dashi.redis import RedisStore
from dashi.utility import as_constructor
