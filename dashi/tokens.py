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
"""The structured-record token model the codec reads from and writes to.

A record is represented as `START_OBJECT (KEY value)* END_OBJECT` where a
value is a scalar token (`STRING`, `NUMBER`, `BOOLEAN`, `NULL`), an array
(`START_ARRAY value* END_ARRAY`) or a nested record. The textual encoding
(JSON, msgpack, ...) is left to whatever produces or consumes these tokens.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "RecordPairs",
    "Token",
    "TokenListWriter",
    "TokenReader",
    "TokenType",
    "TokenWriter",
    "ValueWriter",
    "tokenize",
]

import abc
import enum
import typing

from . import errors


class TokenType(enum.Enum):
    """The types of token found in a token stream."""

    START_OBJECT = "START_OBJECT"
    END_OBJECT = "END_OBJECT"
    START_ARRAY = "START_ARRAY"
    END_ARRAY = "END_ARRAY"
    KEY = "KEY"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    NULL = "NULL"


SCALAR_TOKENS: typing.Final[typing.FrozenSet[TokenType]] = frozenset(
    (TokenType.STRING, TokenType.NUMBER, TokenType.BOOLEAN, TokenType.NULL)
)
"""Token types which represent a complete value by themselves."""


class Token(typing.NamedTuple):
    """A single token in a token stream."""

    type: TokenType
    """The token's type."""

    value: typing.Any = None
    """The token's scalar value or key, this is `builtins.None` for structural tokens."""


class RecordPairs(typing.List[typing.Tuple[str, typing.Any]]):
    """Ordered key-value pairs of a decoded record which may hold duplicate keys.

    This is used as the `object_pairs_hook` of `json.loads` so that duplicate
    keys reach the codec rather than being collapsed by the JSON parser.
    """

    __slots__: typing.Sequence[str] = ()


def tokenize(value: typing.Any, /) -> typing.Iterator[Token]:
    """Produce the token stream for a decoded JSON-like value.

    Parameters
    ----------
    value : typing.Any
        A value made of mappings, `RecordPairs`, lists, tuples and scalars.

    Returns
    -------
    typing.Iterator[Token]
        Iterator of the value's tokens.

    Raises
    ------
    dashi.errors.MalformedStreamError
        If a value which can't be represented as a token is found.
    """
    if value is None:
        yield Token(TokenType.NULL)

    # bool has to be checked before int as it's a subclass of int.
    elif isinstance(value, bool):
        yield Token(TokenType.BOOLEAN, value)

    elif isinstance(value, (int, float)):
        yield Token(TokenType.NUMBER, value)

    elif isinstance(value, str):
        yield Token(TokenType.STRING, value)

    elif isinstance(value, RecordPairs):
        yield Token(TokenType.START_OBJECT)
        for key, entry in value:
            yield Token(TokenType.KEY, key)
            yield from tokenize(entry)

        yield Token(TokenType.END_OBJECT)

    elif isinstance(value, typing.Mapping):
        yield Token(TokenType.START_OBJECT)
        for key, entry in value.items():
            yield Token(TokenType.KEY, str(key))
            yield from tokenize(entry)

        yield Token(TokenType.END_OBJECT)

    elif isinstance(value, (list, tuple)):
        yield Token(TokenType.START_ARRAY)
        for entry in value:
            yield from tokenize(entry)

        yield Token(TokenType.END_ARRAY)

    else:
        raise errors.MalformedStreamError(f"Cannot tokenize value of type {type(value)!r}")


class TokenReader:
    """A forward-only reader over a token stream with a single token of lookahead.

    Parameters
    ----------
    tokens : typing.Iterable[Token]
        The tokens to read.
    """

    __slots__: typing.Sequence[str] = ("_iterator", "_peeked")

    def __init__(self, tokens: typing.Iterable[Token], /) -> None:
        self._iterator = iter(tokens)
        self._peeked: typing.Optional[Token] = None

    @classmethod
    def from_value(cls, value: typing.Any, /) -> TokenReader:
        """Create a reader over the tokens of a decoded JSON-like value."""
        return cls(tokenize(value))

    def _pull(self) -> Token:
        try:
            return next(self._iterator)

        except StopIteration:
            raise errors.MalformedStreamError("Unexpected end of token stream") from None

    def peek(self) -> Token:
        """Get the next token without consuming it.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If the stream has been exhausted.
        """
        if self._peeked is None:
            self._peeked = self._pull()

        return self._peeked

    def next(self) -> Token:
        """Consume and return the next token.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If the stream has been exhausted.
        """
        if self._peeked is not None:
            token = self._peeked
            self._peeked = None
            return token

        return self._pull()

    def expect(self, *types: TokenType) -> Token:
        """Consume the next token, checking that it's one of the passed types.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If the next token isn't of one of the passed types.
        """
        token = self.next()
        if token.type not in types:
            expected = ", ".join(type_.name for type_ in types)
            raise errors.MalformedStreamError(f"Expected {expected} token but found {token.type.name}")

        return token

    def skip(self) -> None:
        """Consume one whole value, including the contents of an array or record."""
        token = self.next()
        if token.type in SCALAR_TOKENS:
            return

        if token.type not in (TokenType.START_OBJECT, TokenType.START_ARRAY):
            raise errors.MalformedStreamError(f"Expected a value but found {token.type.name}")

        depth = 1
        while depth:
            token = self.next()
            if token.type in (TokenType.START_OBJECT, TokenType.START_ARRAY):
                depth += 1

            elif token.type in (TokenType.END_OBJECT, TokenType.END_ARRAY):
                depth -= 1

    def read_value(self) -> typing.Any:
        """Consume one whole value and build it as plain dicts, lists and scalars.

        Duplicate keys within a record are resolved last-wins.
        """
        token = self.next()
        if token.type in SCALAR_TOKENS:
            return token.value

        if token.type is TokenType.START_ARRAY:
            array: typing.List[typing.Any] = []
            while self.peek().type is not TokenType.END_ARRAY:
                array.append(self.read_value())

            self.next()
            return array

        if token.type is TokenType.START_OBJECT:
            record: typing.Dict[str, typing.Any] = {}
            while (token := self.expect(TokenType.KEY, TokenType.END_OBJECT)).type is TokenType.KEY:
                record[token.value] = self.read_value()

            return record

        raise errors.MalformedStreamError(f"Expected a value but found {token.type.name}")


class TokenWriter(abc.ABC):
    """Base class for the receivers of a token stream."""

    __slots__: typing.Sequence[str] = ()

    @abc.abstractmethod
    def write_token(self, token: Token, /) -> None:
        """Write a single token.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If the token isn't valid at the writer's current position.
        """

    def write_open(self) -> None:
        """Start a record."""
        self.write_token(Token(TokenType.START_OBJECT))

    def write_close(self) -> None:
        """End the current record."""
        self.write_token(Token(TokenType.END_OBJECT))

    def write_open_array(self) -> None:
        """Start an array."""
        self.write_token(Token(TokenType.START_ARRAY))

    def write_close_array(self) -> None:
        """End the current array."""
        self.write_token(Token(TokenType.END_ARRAY))

    def write_key(self, key: str, /) -> None:
        """Write the key of the next record entry."""
        self.write_token(Token(TokenType.KEY, key))

    def write_value(self, value: typing.Union[str, int, float, bool, None], /) -> None:
        """Write a scalar value."""
        for token in tokenize(value):
            self.write_token(token)

    def write_any(self, value: typing.Any, /) -> None:
        """Write a JSON-like value of any depth."""
        for token in tokenize(value):
            self.write_token(token)


class TokenListWriter(TokenWriter):
    """Token writer which records the raw tokens written to it."""

    __slots__: typing.Sequence[str] = ("tokens",)

    def __init__(self) -> None:
        self.tokens: typing.List[Token] = []
        """The tokens which have been written."""

    def write_token(self, token: Token, /) -> None:
        self.tokens.append(token)


_NO_VALUE: typing.Final[typing.Any] = object()


class ValueWriter(TokenWriter):
    """Token writer which builds the written value as plain dicts, lists and scalars."""

    __slots__: typing.Sequence[str] = ("_keys", "_stack", "_value")

    def __init__(self) -> None:
        self._keys: typing.List[typing.Optional[str]] = []
        self._stack: typing.List[typing.Union[typing.Dict[str, typing.Any], typing.List[typing.Any]]] = []
        self._value: typing.Any = _NO_VALUE

    @property
    def value(self) -> typing.Any:
        """The complete written value.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If no value has been written or the written value is incomplete.
        """
        if self._stack or self._value is _NO_VALUE:
            raise errors.MalformedStreamError("No complete value has been written")

        return self._value

    def _add(self, value: typing.Any, /) -> None:
        if not self._stack:
            if self._value is not _NO_VALUE:
                raise errors.MalformedStreamError("A top-level value has already been written")

            self._value = value
            return

        container = self._stack[-1]
        if isinstance(container, list):
            container.append(value)
            return

        key = self._keys[-1]
        if key is None:
            raise errors.MalformedStreamError("Record values must be preceded by a key")

        container[key] = value
        self._keys[-1] = None

    def write_token(self, token: Token, /) -> None:
        if token.type in SCALAR_TOKENS:
            self._add(token.value)

        elif token.type is TokenType.START_OBJECT or token.type is TokenType.START_ARRAY:
            container: typing.Union[typing.Dict[str, typing.Any], typing.List[typing.Any]]
            container = {} if token.type is TokenType.START_OBJECT else []
            self._add(container)
            self._stack.append(container)
            self._keys.append(None)

        elif token.type is TokenType.KEY:
            if not self._stack or not isinstance(self._stack[-1], dict) or self._keys[-1] is not None:
                raise errors.MalformedStreamError(f"Unexpected key {token.value!r}")

            self._keys[-1] = token.value

        else:
            expected_type = dict if token.type is TokenType.END_OBJECT else list
            if not self._stack or not isinstance(self._stack[-1], expected_type) or self._keys[-1] is not None:
                raise errors.MalformedStreamError(f"Unexpected {token.type.name} token")

            self._stack.pop()
            self._keys.pop()
