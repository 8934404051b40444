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
"""Value transformers which convert between token spans and Python values."""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "AnyTransformer",
    "CastTransformer",
    "DatetimeTransformer",
    "EnumTransformer",
    "MappingTransformer",
    "NullableTransformer",
    "ScalarTransformer",
    "SequenceTransformer",
    "SnowflakeTransformer",
    "TimedeltaTransformer",
    "TransformerFactory",
    "ValueTransformer",
]

import abc
import datetime
import typing

from hikari import snowflakes
from hikari.internal import time

from . import errors
from . import tokens

if typing.TYPE_CHECKING:
    from . import marshalling

_ValueT = typing.TypeVar("_ValueT")
_KeyT = typing.TypeVar("_KeyT")

_SCALAR_VALUE_TOKENS: typing.Final[typing.Tuple[tokens.TokenType, ...]] = (
    tokens.TokenType.STRING,
    tokens.TokenType.NUMBER,
    tokens.TokenType.BOOLEAN,
)


class ValueTransformer(abc.ABC, typing.Generic[_ValueT]):
    """Interface of an object which reads and writes the token span of a single value.

    Implementations must be stateless between calls as a single transformer
    is shared between every concurrent decode and encode call.
    """

    __slots__: typing.Sequence[str] = ()

    @abc.abstractmethod
    def deserialize(self, reader: tokens.TokenReader, /) -> _ValueT:
        """Consume one value from a token reader.

        Parameters
        ----------
        reader : dashi.tokens.TokenReader
            The reader, positioned at the start of the value.

        Returns
        -------
        _ValueT
            The decoded value.

        Raises
        ------
        dashi.errors.DataError
            If the value's tokens can't be decoded.
        """

    @abc.abstractmethod
    def serialize(self, writer: tokens.TokenWriter, value: _ValueT, /) -> None:
        """Write one value to a token writer.

        Parameters
        ----------
        writer : dashi.tokens.TokenWriter
            The writer to write the value's tokens to.
        value : _ValueT
            The value to write.
        """


class TransformerFactory(abc.ABC):
    """Interface of an object which creates transformers for parameterised types.

    This is used for fields whose type is itself a generic container (e.g.
    `typing.Sequence[hikari.Snowflake]`) where the transformer depends on the
    type arguments.
    """

    __slots__: typing.Sequence[str] = ()

    @abc.abstractmethod
    def create(self, type_: typing.Any, marshaller: marshalling.Marshaller, /) -> ValueTransformer[typing.Any]:
        """Create a transformer for a type.

        Parameters
        ----------
        type_ : typing.Any
            The field's type hint with `UNDEFINED` and `None` stripped.
        marshaller : dashi.marshalling.Marshaller
            The marshaller the transformer is being created for, this may
            be used to look up transformers for type arguments.

        Returns
        -------
        ValueTransformer[typing.Any]
            The created transformer.

        Raises
        ------
        dashi.errors.ConfigurationError
            If this factory can't create a transformer for the passed type.
        """


class ScalarTransformer(ValueTransformer[_ValueT]):
    """Transformer for a plain `str`, `int`, `float` or `bool` value."""

    __slots__: typing.Sequence[str] = ("_token_type", "_type")

    def __init__(self, type_: typing.Type[_ValueT], token_type: tokens.TokenType, /) -> None:
        self._token_type = token_type
        self._type = type_

    def __repr__(self) -> str:
        return f"ScalarTransformer({self._type.__name__})"

    def deserialize(self, reader: tokens.TokenReader, /) -> _ValueT:
        value = reader.expect(self._token_type).value
        if self._type is int and isinstance(value, float):
            if not value.is_integer():
                raise errors.MalformedStreamError(f"Expected an integer but found {value!r}")

            return typing.cast("_ValueT", int(value))

        if self._type is float:
            return typing.cast("_ValueT", float(value))

        return typing.cast("_ValueT", value)

    def serialize(self, writer: tokens.TokenWriter, value: _ValueT, /) -> None:
        writer.write_value(typing.cast("typing.Union[str, int, float, bool]", value))


class SnowflakeTransformer(ValueTransformer[snowflakes.Snowflake]):
    """Transformer for snowflake IDs.

    These are accepted as either a string or a number and written as a string.
    """

    __slots__: typing.Sequence[str] = ()

    def deserialize(self, reader: tokens.TokenReader, /) -> snowflakes.Snowflake:
        value = reader.expect(tokens.TokenType.STRING, tokens.TokenType.NUMBER).value
        try:
            return snowflakes.Snowflake(value)

        except (TypeError, ValueError) as exc:
            raise errors.MalformedStreamError(f"Invalid snowflake {value!r}", exception=exc) from exc

    def serialize(self, writer: tokens.TokenWriter, value: snowflakes.Snowflake, /) -> None:
        writer.write_value(str(int(value)))


class DatetimeTransformer(ValueTransformer[datetime.datetime]):
    """Transformer for an ISO 8601 datetime string."""

    __slots__: typing.Sequence[str] = ()

    def deserialize(self, reader: tokens.TokenReader, /) -> datetime.datetime:
        value = reader.expect(tokens.TokenType.STRING).value
        try:
            return time.iso8601_datetime_string_to_datetime(value)

        except ValueError as exc:
            raise errors.MalformedStreamError(f"Invalid ISO 8601 datetime {value!r}", exception=exc) from exc

    def serialize(self, writer: tokens.TokenWriter, value: datetime.datetime, /) -> None:
        writer.write_value(value.isoformat())


class TimedeltaTransformer(ValueTransformer[datetime.timedelta]):
    """Transformer for a timedelta represented as a number of seconds."""

    __slots__: typing.Sequence[str] = ()

    def deserialize(self, reader: tokens.TokenReader, /) -> datetime.timedelta:
        return datetime.timedelta(seconds=reader.expect(tokens.TokenType.NUMBER).value)

    def serialize(self, writer: tokens.TokenWriter, value: datetime.timedelta, /) -> None:
        writer.write_value(value.total_seconds())


class EnumTransformer(ValueTransformer[_ValueT]):
    """Transformer for standard library and Hikari enums and flags."""

    __slots__: typing.Sequence[str] = ("_type",)

    def __init__(self, type_: typing.Type[_ValueT], /) -> None:
        self._type = type_

    def __repr__(self) -> str:
        return f"EnumTransformer({self._type.__name__})"

    def deserialize(self, reader: tokens.TokenReader, /) -> _ValueT:
        value = reader.expect(*_SCALAR_VALUE_TOKENS).value
        try:
            return self._type(value)  # type: ignore[call-arg]

        except (TypeError, ValueError) as exc:
            raise errors.MalformedStreamError(
                f"{value!r} is not a valid {self._type.__name__}", exception=exc
            ) from exc

    def serialize(self, writer: tokens.TokenWriter, value: _ValueT, /) -> None:
        writer.write_value(getattr(value, "value", value))


class SequenceTransformer(ValueTransformer[typing.Collection[_ValueT]]):
    """Transformer for an array of values.

    Parameters
    ----------
    inner : ValueTransformer[_ValueT]
        Transformer used for each element.
    collection_type : typing.Callable[[typing.List[_ValueT]], typing.Collection[_ValueT]]
        Callable used to build the decoded collection from a list.
    """

    __slots__: typing.Sequence[str] = ("_collection_type", "_inner")

    def __init__(
        self,
        inner: ValueTransformer[_ValueT],
        /,
        collection_type: typing.Callable[[typing.List[_ValueT]], typing.Collection[_ValueT]] = list,
    ) -> None:
        self._collection_type = collection_type
        self._inner = inner

    def deserialize(self, reader: tokens.TokenReader, /) -> typing.Collection[_ValueT]:
        reader.expect(tokens.TokenType.START_ARRAY)
        values: typing.List[_ValueT] = []
        while reader.peek().type is not tokens.TokenType.END_ARRAY:
            values.append(self._inner.deserialize(reader))

        reader.next()
        return self._collection_type(values)

    def serialize(self, writer: tokens.TokenWriter, value: typing.Collection[_ValueT], /) -> None:
        writer.write_open_array()
        for entry in value:
            self._inner.serialize(writer, entry)

        writer.write_close_array()


class MappingTransformer(ValueTransformer[typing.Mapping[_KeyT, _ValueT]]):
    """Transformer for a record of arbitrary keys to values of one type.

    Duplicate keys are resolved last-wins.

    Parameters
    ----------
    key_cast : typing.Callable[[str], _KeyT]
        Callable used to convert each wire key to the mapping's key type.
    inner : ValueTransformer[_ValueT]
        Transformer used for each value.
    """

    __slots__: typing.Sequence[str] = ("_inner", "_key_cast")

    def __init__(self, key_cast: typing.Callable[[str], _KeyT], inner: ValueTransformer[_ValueT], /) -> None:
        self._inner = inner
        self._key_cast = key_cast

    def deserialize(self, reader: tokens.TokenReader, /) -> typing.Mapping[_KeyT, _ValueT]:
        reader.expect(tokens.TokenType.START_OBJECT)
        result: typing.Dict[_KeyT, _ValueT] = {}
        while (token := reader.expect(tokens.TokenType.KEY, tokens.TokenType.END_OBJECT)).type is tokens.TokenType.KEY:
            try:
                key = self._key_cast(token.value)

            except (TypeError, ValueError) as exc:
                raise errors.MalformedStreamError(f"Invalid mapping key {token.value!r}", exception=exc) from exc

            result[key] = self._inner.deserialize(reader)

        return result

    def serialize(self, writer: tokens.TokenWriter, value: typing.Mapping[_KeyT, _ValueT], /) -> None:
        writer.write_open()
        for key, entry in value.items():
            writer.write_key(str(int(key)) if isinstance(key, int) else str(key))
            self._inner.serialize(writer, entry)

        writer.write_close()


class NullableTransformer(ValueTransformer[typing.Optional[_ValueT]]):
    """Transformer which accepts null in place of the value of another transformer."""

    __slots__: typing.Sequence[str] = ("_inner",)

    def __init__(self, inner: ValueTransformer[_ValueT], /) -> None:
        self._inner = inner

    def deserialize(self, reader: tokens.TokenReader, /) -> typing.Optional[_ValueT]:
        if reader.peek().type is tokens.TokenType.NULL:
            reader.next()
            return None

        return self._inner.deserialize(reader)

    def serialize(self, writer: tokens.TokenWriter, value: typing.Optional[_ValueT], /) -> None:
        if value is None:
            writer.write_value(None)

        else:
            self._inner.serialize(writer, value)


class AnyTransformer(ValueTransformer[typing.Any]):
    """Transformer which passes plain dicts, lists and scalars through as-is."""

    __slots__: typing.Sequence[str] = ()

    def deserialize(self, reader: tokens.TokenReader, /) -> typing.Any:
        return reader.read_value()

    def serialize(self, writer: tokens.TokenWriter, value: typing.Any, /) -> None:
        writer.write_any(value)


class CastTransformer(ValueTransformer[_ValueT]):
    """Transformer built from a pair of plain cast functions.

    The deserialize cast receives the value as plain dicts, lists and scalars
    and the serialize cast should return the same.

    Parameters
    ----------
    deserialize : typing.Callable[[typing.Any], _ValueT]
        Callable used to convert the raw value into the field's value.
    serialize : typing.Callable[[_ValueT], typing.Any]
        Callable used to convert the field's value into a raw value.

    Examples
    --------
    ```py
    marshaller.register(Guild, GuildImpl).with_transformer(
        "afk_timeout", CastTransformer(lambda minutes: timedelta(minutes=minutes), lambda delta: delta.seconds // 60)
    )
    ```
    """

    __slots__: typing.Sequence[str] = ("_deserialize", "_serialize")

    def __init__(
        self, deserialize: typing.Callable[[typing.Any], _ValueT], serialize: typing.Callable[[_ValueT], typing.Any], /
    ) -> None:
        self._deserialize = deserialize
        self._serialize = serialize

    def deserialize(self, reader: tokens.TokenReader, /) -> _ValueT:
        value = reader.read_value()
        try:
            return self._deserialize(value)

        except errors.DataError:
            raise

        except (TypeError, ValueError) as exc:
            raise errors.MalformedStreamError(f"Failed to convert {value!r}", exception=exc) from exc

    def serialize(self, writer: tokens.TokenWriter, value: _ValueT, /) -> None:
        writer.write_any(self._serialize(value))
