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

__all__: typing.Sequence[str] = ["Marshaller"]

import collections.abc
import datetime
import enum
import functools
import json
import logging
import threading
import typing

from hikari import snowflakes

from . import binding as binding_
from . import codec
from . import errors
from . import fields as fields_
from . import tokens
from . import transformers

_ViewT = typing.TypeVar("_ViewT")
_MarshallerT = typing.TypeVar("_MarshallerT", bound="Marshaller")

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.dashi.marshalling")

_SEQUENCE_ORIGINS: typing.Final[typing.FrozenSet[typing.Any]] = frozenset(
    (
        list,
        collections.abc.Sequence,
        collections.abc.MutableSequence,
        collections.abc.Collection,
        collections.abc.Iterable,
    )
)
_SET_ORIGINS: typing.Final[typing.FrozenSet[typing.Any]] = frozenset((set, collections.abc.MutableSet))
_FROZENSET_ORIGINS: typing.Final[typing.FrozenSet[typing.Any]] = frozenset((frozenset, collections.abc.Set))
_MAPPING_ORIGINS: typing.Final[typing.FrozenSet[typing.Any]] = frozenset(
    (dict, collections.abc.Mapping, collections.abc.MutableMapping)
)


def _default_dumps(obj: typing.Any, /) -> bytes:
    return json.dumps(obj, separators=(",", ":")).encode()


_default_loads: typing.Final[typing.Callable[[typing.Union[str, bytes]], typing.Any]] = functools.partial(
    json.loads, object_pairs_hook=tokens.RecordPairs
)


def _default_transformers() -> typing.Dict[typing.Any, transformers.ValueTransformer[typing.Any]]:
    return {
        str: transformers.ScalarTransformer(str, tokens.TokenType.STRING),
        int: transformers.ScalarTransformer(int, tokens.TokenType.NUMBER),
        float: transformers.ScalarTransformer(float, tokens.TokenType.NUMBER),
        bool: transformers.ScalarTransformer(bool, tokens.TokenType.BOOLEAN),
        snowflakes.Snowflake: transformers.SnowflakeTransformer(),
        datetime.datetime: transformers.DatetimeTransformer(),
        datetime.timedelta: transformers.TimedeltaTransformer(),
        typing.Any: transformers.AnyTransformer(),
        object: transformers.AnyTransformer(),
    }


def _is_enum(type_: typing.Any, /) -> bool:
    # Hikari's enums don't subclass enum.Enum but do expose __members__ the same way.
    return isinstance(type_, type) and (issubclass(type_, enum.Enum) or hasattr(type_, "__members__"))


class _RecordReference(transformers.ValueTransformer[typing.Any]):
    __slots__: typing.Sequence[str] = ("_codecs", "_view")

    def __init__(self, codecs: typing.Mapping[type, codec.DataObjectCodec[typing.Any]], view: type, /) -> None:
        self._codecs = codecs
        self._view = view

    def deserialize(self, reader: tokens.TokenReader, /) -> typing.Any:
        return self._codecs[self._view].deserialize(reader)

    def serialize(self, writer: tokens.TokenWriter, value: typing.Any, /) -> None:
        self._codecs[self._view].serialize(writer, value)


class Marshaller:
    """Registry of view bindings and the entry point for decoding and encoding them.

    A marshaller has two phases. While building, view/implementation pairs
    are registered with `Marshaller.register` (which resolves their
    constructor immediately) and default type transformers with
    `Marshaller.add_transformer`. `Marshaller.freeze` then builds every
    binding and codec after which the marshaller is read-only and may be
    used from any number of threads.

    Other Parameters
    ----------------
    dumps : typing.Callable[[typing.Any], bytes]
        Callable used to serialize plain dicts, lists and scalars to bytes.

        This defaults to compact JSON.
    loads : typing.Callable[[bytes], typing.Any]
        Callable used to deserialize bytes to plain dicts, lists and scalars.

        This defaults to JSON with duplicate keys preserved so that the codec
        resolves them (last-wins).
    key_policy : typing.Optional[typing.Callable[[str], str]]
        Callable used to derive the wire key of fields which haven't been
        renamed. Fields use their declared name if this isn't passed.

    Examples
    --------
    ```py
    marshaller = Marshaller()
    marshaller.register(Guild, GuildImpl).with_key("owner_id", "owner").allow_extra_fields(False)
    marshaller.freeze()

    guild = marshaller.loads(b'{"id": "123", "name": "Lobby", "owner": "456"}', Guild)
    ```
    """

    __slots__: typing.Sequence[str] = (
        "_builders",
        "_codecs",
        "_dumps",
        "_freezing",
        "_frozen",
        "_key_policy",
        "_loads",
        "_lock",
        "_transformers",
    )

    def __init__(
        self,
        *,
        dumps: typing.Callable[[typing.Any], bytes] = _default_dumps,
        loads: typing.Callable[[bytes], typing.Any] = _default_loads,
        key_policy: typing.Optional[typing.Callable[[str], str]] = None,
    ) -> None:
        self._builders: typing.Dict[type, binding_.BindingBuilder[typing.Any]] = {}
        self._codecs: typing.Dict[type, codec.DataObjectCodec[typing.Any]] = {}
        self._dumps = dumps
        self._freezing = False
        self._frozen = False
        self._key_policy = key_policy
        self._loads = loads
        self._lock = threading.Lock()
        self._transformers: typing.Dict[typing.Any, transformers.ValueTransformer[typing.Any]] = (
            _default_transformers()
        )

    @property
    def is_frozen(self) -> bool:
        """Whether this marshaller has been frozen."""
        return self._frozen

    def _assert_building(self) -> None:
        if self._frozen or self._freezing:
            raise errors.ConfigurationError("Cannot modify a marshaller after it's been frozen")

    def _assert_frozen(self) -> None:
        if not self._frozen and not self._freezing:
            raise errors.ConfigurationError("The marshaller must be frozen before it's used")

    def register(self, view: typing.Type[_ViewT], implementation: type, /) -> binding_.BindingBuilder[_ViewT]:
        """Register a view type and the implementation type it should be decoded to.

        Parameters
        ----------
        view : typing.Type[_ViewT]
            The view type.
        implementation : type
            The implementation type.

        Returns
        -------
        dashi.binding.BindingBuilder[_ViewT]
            The builder which may be used to register field overrides until
            the marshaller is frozen.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the marshaller is frozen, the view is already registered or the
            implementation has no unique matching constructor.
        """
        self._assert_building()
        if view in self._builders:
            raise errors.ConfigurationError(f"{view.__qualname__} has already been registered")

        builder = binding_.BindingBuilder(view, implementation)
        self._builders[view] = builder
        return builder

    def add_transformer(
        self: _MarshallerT, type_: typing.Any, transformer: transformers.ValueTransformer[typing.Any], /
    ) -> _MarshallerT:
        """Set the default transformer used for a type.

        This replaces any built-in rule for the type.

        Returns
        -------
        Self
            The marshaller to allow chained calls.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the marshaller is frozen.
        """
        self._assert_building()
        self._transformers[type_] = transformer
        return self

    def freeze(self) -> None:
        """Build every registered binding and make this marshaller read-only.

        This should be called once at startup before any decode or encode
        calls are made; calling it again is a no-op.

        Raises
        ------
        dashi.errors.ConfigurationError
            If a binding can't be built or a field's type has no transformer.
        """
        if self._frozen:
            return

        self._freezing = True
        try:
            bindings = [builder.build(key_policy=self._key_policy) for builder in self._builders.values()]
            for binding in bindings:
                field_transformers = {field: self._compile_field(binding, field) for field in binding.fields}
                self._codecs[binding.view] = codec.DataObjectCodec(binding, field_transformers)
                _LOGGER.debug("built %r", binding)

        finally:
            self._freezing = False

        self._frozen = True

    def _compile_field(
        self, binding: binding_.Binding[typing.Any], field: fields_.FieldDescriptor, /
    ) -> transformers.ValueTransformer[typing.Any]:
        override = binding.overrides.get(field)
        if override.transformer is not None:
            return override.transformer

        if override.transformer_factory is not None:
            return override.transformer_factory.create(field.inner_type, self)

        try:
            return self._build_transformer(field.inner_type)

        except errors.ConfigurationError as exc:
            raise errors.ConfigurationError(
                f"Cannot build a transformer for {binding.view.__qualname__}.{field.name}: {exc.message}",
                exception=exc,
            ) from exc

    def _build_transformer(self, type_: typing.Any, /) -> transformers.ValueTransformer[typing.Any]:
        try:
            return self._transformers[type_]

        except (KeyError, TypeError):
            pass

        if type_ in self._codecs:
            return self._codecs[type_]

        # Nested and recursive records are resolved to their codec per call as
        # codecs are only created once every binding has been built.
        if type_ in self._builders:
            return _RecordReference(self._codecs, type_)

        if fields_.is_nullable(type_):
            inner = fields_.unwrap(type_)
            if inner is type_ or inner is type(None):
                raise errors.ConfigurationError(f"No transformer found for type {type_!r}")

            return transformers.NullableTransformer(self._build_transformer(inner))

        if _is_enum(type_):
            transformer: transformers.ValueTransformer[typing.Any] = transformers.EnumTransformer(type_)

        else:
            transformer = self._build_generic_transformer(type_)

        # Composite transformers are cached the same way the builtin ones are.
        with self._lock:
            return self._transformers.setdefault(type_, transformer)

    def _build_generic_transformer(self, type_: typing.Any, /) -> transformers.ValueTransformer[typing.Any]:
        origin = typing.get_origin(type_)
        args = typing.get_args(type_)

        if origin in _SEQUENCE_ORIGINS and len(args) == 1:
            return transformers.SequenceTransformer(self._build_transformer(args[0]))

        if origin is tuple and len(args) == 2 and args[1] is Ellipsis:
            return transformers.SequenceTransformer(self._build_transformer(args[0]), tuple)

        if origin in _SET_ORIGINS and len(args) == 1:
            return transformers.SequenceTransformer(self._build_transformer(args[0]), set)

        if origin in _FROZENSET_ORIGINS and len(args) == 1:
            return transformers.SequenceTransformer(self._build_transformer(args[0]), frozenset)

        if origin in _MAPPING_ORIGINS and len(args) == 2:
            key_type = args[0]
            if key_type is not str and not (isinstance(key_type, type) and issubclass(key_type, int)):
                raise errors.ConfigurationError(f"Unsupported mapping key type {key_type!r}")

            return transformers.MappingTransformer(key_type, self._build_transformer(args[1]))

        raise errors.ConfigurationError(f"No transformer found for type {type_!r}")

    def get_codec(self, view: typing.Type[_ViewT], /) -> codec.DataObjectCodec[_ViewT]:
        """Get the codec for a registered view type.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the marshaller hasn't been frozen or the view isn't registered.
        """
        self._assert_frozen()
        try:
            return self._codecs[view]

        except KeyError:
            raise errors.ConfigurationError(f"{view!r} is not a registered view type") from None

    def get_transformer(self, type_: typing.Any, /) -> transformers.ValueTransformer[typing.Any]:
        """Get the transformer for a type hint.

        This covers registered view types as well as containers of them such
        as `typing.List[Guild]`.
        This may also be called by transformer factories while the marshaller
        is being frozen.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the marshaller hasn't been frozen or the type isn't supported.
        """
        self._assert_frozen()
        return self._build_transformer(type_)

    def decode(self, reader: tokens.TokenReader, type_: typing.Type[_ViewT], /) -> _ViewT:
        """Decode a value of a type from a token reader.

        Raises
        ------
        dashi.errors.DataError
            If the tokens can't be decoded.
        """
        return typing.cast("_ViewT", self.get_transformer(type_).deserialize(reader))

    def encode(self, writer: tokens.TokenWriter, value: typing.Any, type_: typing.Any, /) -> None:
        """Encode a value of a type to a token writer."""
        self.get_transformer(type_).serialize(writer, value)

    def loads(self, data: bytes, type_: typing.Type[_ViewT], /) -> _ViewT:
        """Deserialize a value of a type from bytes.

        Raises
        ------
        dashi.errors.DataError
            If the data can't be parsed or decoded.
        """
        try:
            raw = self._loads(data)

        except ValueError as exc:
            raise errors.MalformedStreamError("Failed to parse data", exception=exc) from exc

        return self.decode(tokens.TokenReader.from_value(raw), type_)

    def dumps(self, value: typing.Any, type_: typing.Any, /) -> bytes:
        """Serialize a value of a type to bytes."""
        writer = tokens.ValueWriter()
        self.encode(writer, value, type_)
        return self._dumps(writer.value)
