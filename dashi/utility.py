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
from __future__ import annotations

__all__: typing.Sequence[str] = [
    "ExpireT",
    "as_constructor",
    "convert_expire_time",
    "find_constructors",
]

import datetime
import inspect
import math
import typing

ExpireT = typing.Union["datetime.timedelta", int, float, None]
"""A type hint used to represent expire times.

These may either be the number of seconds as an int or float (where millisecond
precision is supported) or a timedelta. `builtins.None`, float("nan") and
float("inf") all represent no expire.
"""

_CallableT = typing.TypeVar("_CallableT", bound=typing.Callable[..., typing.Any])


def convert_expire_time(expire: ExpireT, /) -> typing.Optional[int]:
    """Convert a timedelta, int or float expire time representation to an integer of milliseconds."""
    if expire is None:
        return None

    if isinstance(expire, datetime.timedelta):
        return round(expire.total_seconds() * 1000)

    if isinstance(expire, int):
        return expire * 1000

    if isinstance(expire, float):
        if math.isnan(expire) or math.isinf(expire):
            return None

        return round(expire * 1000)

    raise ValueError(f"Invalid expire time passed; expected a float, int or timedelta but got a {type(expire)!r}")


def as_constructor(method: _CallableT, /) -> _CallableT:
    """Mark a classmethod as an alternative constructor for binding resolution.

    This should be applied beneath `classmethod`.

    Examples
    --------
    ```py
    class GuildImpl(Guild):
        @classmethod
        @dashi.utility.as_constructor
        def from_parts(cls, id: hikari.Snowflake, name: str) -> GuildImpl:
            ...
    ```
    """
    method.__dashi_constructor__ = True  # type: ignore[attr-defined]
    return method


def find_constructors(cls: type, /) -> typing.List[typing.Callable[..., typing.Any]]:
    """Find the constructors a type exposes.

    Parameters
    ----------
    cls : type
        The implementation type to search.

    Returns
    -------
    typing.List[typing.Callable[..., typing.Any]]
        The type itself (standing for its `__init__`) followed by each bound
        alternative constructor marked with `as_constructor`.
    """
    constructors: typing.List[typing.Callable[..., typing.Any]] = [cls]

    for _, member in inspect.getmembers(cls):
        if inspect.ismethod(member) and getattr(member, "__dashi_constructor__", False) is True:
            constructors.append(member)

    return constructors
