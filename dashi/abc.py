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
"""Abstract classes for the cache stores used by the caching decorators."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["CacheStore", "Resource"]

import abc
import typing


class Resource(abc.ABC):
    """The basic interface which all resources with a backend connection implement."""

    __slots__: typing.Sequence[str] = ()

    @property
    @abc.abstractmethod
    def is_alive(self) -> bool:
        """Whether this resource is alive."""

    @abc.abstractmethod
    async def open(self) -> None:
        """Startup the resource and allow it to connect to its backend.

        .. note::
            This should pass without raising if called on an already opened
            resource.
        """

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the resource and its connection to its backend.

        .. note::
            This should pass without raising if called on an already closed
            resource.
        """


class CacheStore(abc.ABC):
    """A key-value store of cached entities with per-entry expiry.

    Implementations must make each key's read, write and delete atomic so a
    read never observes a partially written entry; no guarantee is made
    across keys.
    """

    __slots__: typing.Sequence[str] = ()

    @abc.abstractmethod
    async def get(self, key: str, type_: typing.Any, /) -> typing.Any:
        """Get an entry from the store.

        Parameters
        ----------
        key : str
            The entry's key.
        type_ : typing.Any
            Type hint of the stored value, this is used by stores which
            serialize their values.

        Returns
        -------
        typing.Any
            The stored value.

        Raises
        ------
        dashi.errors.EntryNotFound
            If the entry isn't found or has expired.
        """

    @abc.abstractmethod
    async def set(
        self, key: str, value: typing.Any, type_: typing.Any, /, *, expire: typing.Optional[int] = None
    ) -> None:
        """Add or replace an entry in the store.

        Parameters
        ----------
        key : str
            The entry's key.
        value : typing.Any
            The value to store.
        type_ : typing.Any
            Type hint of the value.

        Other Parameters
        ----------------
        expire : typing.Optional[int]
            How long the entry should live for in milliseconds.

            If this is `builtins.None` then the entry won't expire.
        """

    @abc.abstractmethod
    async def delete(self, key: str, /) -> None:
        """Remove an entry from the store.

        This does nothing if the entry isn't found.
        """

    @abc.abstractmethod
    async def clear(self) -> None:
        """Remove every entry from the store."""
