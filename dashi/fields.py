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
"""Discovery of the fields a view type exposes."""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "FieldDescriptor",
    "get_fields",
    "is_nullable",
    "is_undefinable",
    "unwrap",
]

import inspect
import types
import typing

from hikari import undefined

from . import errors

_NONE_TYPE: typing.Final[type] = type(None)
_UNION_TYPES: typing.Final[typing.Tuple[typing.Any, ...]] = (typing.Union, types.UnionType)


def _union_args(type_: typing.Any, /) -> typing.Tuple[typing.Any, ...]:
    if typing.get_origin(type_) in _UNION_TYPES:
        return typing.get_args(type_)

    return (type_,)


def is_undefinable(type_: typing.Any, /) -> bool:
    """Whether a type hint accepts `hikari.undefined.UNDEFINED`."""
    return undefined.UndefinedType in _union_args(type_)


def is_nullable(type_: typing.Any, /) -> bool:
    """Whether a type hint accepts `builtins.None`."""
    if type_ is None:
        return True

    return any(arg is _NONE_TYPE or arg is typing.Any or arg is object for arg in _union_args(type_))


def unwrap(type_: typing.Any, /) -> typing.Any:
    """Strip `UNDEFINED` and `None` from a type hint.

    `hikari.UndefinedNoneOr[int]` becomes `int` and `typing.Union[int, str, None]`
    becomes `typing.Union[int, str]`.
    """
    args = _union_args(type_)
    remaining = tuple(arg for arg in args if arg is not undefined.UndefinedType and arg is not _NONE_TYPE)
    if len(remaining) == len(args):
        return type_

    if not remaining:
        return type(None)

    if len(remaining) == 1:
        return remaining[0]

    return typing.Union[remaining]


class FieldDescriptor:
    """A field declared on a view type.

    Two descriptors are equal when their name and type are equal.
    """

    __slots__: typing.Sequence[str] = ("_is_nullable", "_is_optional", "_name", "_type")

    def __init__(self, name: str, type_: typing.Any, /) -> None:
        self._name = name
        self._type = type_
        self._is_optional = is_undefinable(type_)
        self._is_nullable = is_nullable(type_)

    def __repr__(self) -> str:
        return f"FieldDescriptor({self._name!r}, {self._type!r})"

    def __eq__(self, other: typing.Any) -> bool:
        if not isinstance(other, FieldDescriptor):
            return NotImplemented

        return self._name == other._name and self._type == other._type

    def __hash__(self) -> int:
        return hash((self._name, self._type))

    @property
    def name(self) -> str:
        """The field's attribute name on the view type."""
        return self._name

    @property
    def type(self) -> typing.Any:
        """The field's full type hint."""
        return self._type

    @property
    def inner_type(self) -> typing.Any:
        """The field's type hint with `UNDEFINED` and `None` stripped."""
        return unwrap(self._type)

    @property
    def is_optional(self) -> bool:
        """Whether the field may be absent (`hikari.undefined.UNDEFINED`)."""
        return self._is_optional

    @property
    def is_nullable(self) -> bool:
        """Whether the field may hold `builtins.None`."""
        return self._is_nullable


def _resolve_hints(obj: typing.Any, /) -> typing.Dict[str, typing.Any]:
    try:
        return typing.get_type_hints(obj)

    except (NameError, TypeError) as exc:
        raise errors.ConfigurationError(f"Failed to resolve the type hints of {obj!r}", exception=exc) from exc


def get_fields(view: type, /) -> typing.Tuple[FieldDescriptor, ...]:
    """Get the public fields declared by a view type in declaration order.

    Fields are the public properties (with a return annotation) and the
    public class-level annotations of the view and its bases; base class
    fields come first and a field redeclared by a subclass keeps its first
    position but takes the subclass's type.

    Parameters
    ----------
    view : type
        The view type.

    Returns
    -------
    typing.Tuple[FieldDescriptor, ...]
        The view's fields.

    Raises
    ------
    dashi.errors.ConfigurationError
        If a property lacks a return annotation or a type hint can't be resolved.
    """
    found: typing.Dict[str, typing.Any] = {}
    class_hints = _resolve_hints(view)

    for cls in reversed(view.__mro__):
        if cls is object or cls is typing.Generic or getattr(cls, "__module__", None) == "typing":
            continue

        for name in inspect.get_annotations(cls):
            if name.startswith("_") or typing.get_origin(class_hints.get(name)) is typing.ClassVar:
                continue

            found[name] = class_hints[name]

        for name, member in vars(cls).items():
            if name.startswith("_") or not isinstance(member, property):
                continue

            hints = _resolve_hints(member.fget)
            if "return" not in hints:
                raise errors.ConfigurationError(f"Property {cls.__name__}.{name} has no return type annotation")

            found[name] = hints["return"]

    return tuple(FieldDescriptor(name, type_) for name, type_ in found.items())
