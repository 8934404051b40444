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
"""An in-process implementation of the cache store."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["MemoryStore"]

import threading
import time
import typing

from . import abc
from . import errors


class _Entry(typing.NamedTuple):
    value: typing.Any
    expires_at: typing.Optional[float]


class MemoryStore(abc.CacheStore):
    """A cache store which keeps entries in a dict within this process.

    Expired entries are treated as absent and dropped when they're next read.
    Entries aren't evicted in any particular order.

    Other Parameters
    ----------------
    clock : typing.Callable[[], float]
        Callable which returns the current time in seconds, this defaults to
        `time.monotonic`.
    """

    __slots__: typing.Sequence[str] = ("_clock", "_entries", "_lock")

    def __init__(self, *, clock: typing.Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: typing.Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(entry.expires_at is None or entry.expires_at > now for entry in self._entries.values())

    async def get(self, key: str, type_: typing.Any, /) -> typing.Any:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at is not None and entry.expires_at <= now:
                del self._entries[key]
                entry = None

        if entry is None:
            raise errors.EntryNotFound(f"Entry `{key}` not found")

        return entry.value

    async def set(
        self, key: str, value: typing.Any, type_: typing.Any, /, *, expire: typing.Optional[int] = None
    ) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        expires_at = self._clock() + expire / 1000 if expire is not None else None
        with self._lock:
            self._entries[key] = _Entry(value, expires_at)

    async def delete(self, key: str, /) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        # <<Inherited docstring from dashi.abc.CacheStore>>
        with self._lock:
            self._entries.clear()
