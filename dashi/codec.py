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
"""The codec engine which applies a binding to token streams."""

from __future__ import annotations

__all__: typing.Sequence[str] = ["DataObjectCodec"]

import logging
import typing

from hikari import undefined

from . import binding as binding_
from . import errors
from . import tokens
from . import transformers

if typing.TYPE_CHECKING:
    from . import fields as fields_

_ViewT = typing.TypeVar("_ViewT")

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.dashi.codec")
_MISSING: typing.Final[typing.Any] = object()


class _FieldSlot:
    __slots__: typing.Sequence[str] = ("field", "index", "transformer")

    def __init__(
        self, index: int, field: fields_.FieldDescriptor, transformer: transformers.ValueTransformer[typing.Any], /
    ) -> None:
        self.field = field
        self.index = index
        self.transformer = transformer


def _generate_encoder(
    binding: binding_.Binding[typing.Any],
    field_transformers: typing.Mapping[fields_.FieldDescriptor, transformers.ValueTransformer[typing.Any]],
    /,
) -> typing.Callable[[tokens.TokenWriter, typing.Any], None]:
    globals_: typing.Dict[str, typing.Any] = {"UNDEFINED": undefined.UNDEFINED}
    lines = ["def serialize(w, m, /):", "  w.write_open()"]

    for index, field in enumerate(binding.declared_fields):
        transformer_name = f"t{index}"
        globals_[transformer_name] = field_transformers[field].serialize
        indent = "  "
        lines.append(f"  v = m.{field.name}")
        # Absent optional fields are left out entirely rather than written as null.
        if field.is_optional:
            lines.append("  if v is not UNDEFINED:")
            indent = "    "

        lines.append(f"{indent}w.write_key({binding.get_key(field)!r})")
        lines.append(f"{indent}if v is None: w.write_value(None)")
        lines.append(f"{indent}else: {transformer_name}(w, v)")

    lines.append("  w.write_close()")
    code = "\n".join(lines)
    _LOGGER.debug("generating record serialize method for %r\n  %r", binding.view, code)
    exec(code, globals_)
    return typing.cast("typing.Callable[[tokens.TokenWriter, typing.Any], None]", globals_["serialize"])


class DataObjectCodec(transformers.ValueTransformer[_ViewT]):
    """Reads and writes records of a view type using a resolved binding.

    A codec holds no per-call state so a single instance may be used by any
    number of concurrent decode and encode calls. These are created by
    `dashi.marshalling.Marshaller.freeze`.

    Parameters
    ----------
    binding : dashi.binding.Binding[_ViewT]
        The binding to apply.
    field_transformers : typing.Mapping[dashi.fields.FieldDescriptor, dashi.transformers.ValueTransformer[typing.Any]]
        The transformer to use for the non-null values of each field.
    """

    __slots__: typing.Sequence[str] = ("_binding", "_encoder", "_fields", "_reject_unknown", "_slots")

    def __init__(
        self,
        binding: binding_.Binding[_ViewT],
        field_transformers: typing.Mapping[fields_.FieldDescriptor, transformers.ValueTransformer[typing.Any]],
        /,
    ) -> None:
        self._binding = binding
        self._encoder = _generate_encoder(binding, field_transformers)
        self._fields = binding.fields
        self._reject_unknown = binding.unknown_field_policy is binding_.UnknownFieldPolicy.REJECT
        self._slots = {
            binding.get_key(field): _FieldSlot(index, field, field_transformers[field])
            for index, field in enumerate(binding.fields)
        }

    def __repr__(self) -> str:
        return f"DataObjectCodec({self._binding.view.__qualname__})"

    @property
    def binding(self) -> binding_.Binding[_ViewT]:
        """The binding this codec applies."""
        return self._binding

    def deserialize(self, reader: tokens.TokenReader, /) -> _ViewT:
        """Decode one record from a token reader.

        If a key appears more than once in the record then the last value wins.

        Parameters
        ----------
        reader : dashi.tokens.TokenReader
            The reader, positioned at the record's start token.

        Returns
        -------
        _ViewT
            The constructed implementation instance.

        Raises
        ------
        dashi.errors.MalformedStreamError
            If an unexpected token is found.
        dashi.errors.UnknownFieldError
            If the binding rejects extra fields and the record has a key
            which matches no field.
        dashi.errors.NullabilityError
            If a field which doesn't accept null is null.
        dashi.errors.MissingFieldError
            If a required field is missing from the record.
        """
        token = reader.next()
        if token.type is not tokens.TokenType.START_OBJECT:
            raise errors.MalformedStreamError(
                f"Expected the start of a {self._binding.view.__qualname__} record but found {token.type.name}"
            )

        arguments = [_MISSING] * len(self._fields)
        while (token := reader.next()).type is not tokens.TokenType.END_OBJECT:
            if token.type is not tokens.TokenType.KEY:
                raise errors.MalformedStreamError(f"Expected a record key but found {token.type.name}")

            slot = self._slots.get(token.value)
            if slot is None:
                if self._reject_unknown:
                    raise errors.UnknownFieldError(token.value)

                reader.skip()
                continue

            if reader.peek().type is tokens.TokenType.NULL:
                reader.next()
                value = None

            else:
                value = slot.transformer.deserialize(reader)

            if value is None and not slot.field.is_nullable:
                raise errors.NullabilityError(slot.field.name)

            arguments[slot.index] = value

        for index, value in enumerate(arguments):
            if value is _MISSING:
                field = self._fields[index]
                if not field.is_optional:
                    raise errors.MissingFieldError(field.name)

                arguments[index] = undefined.UNDEFINED

        return self._binding.construct(arguments)

    def serialize(self, writer: tokens.TokenWriter, value: _ViewT, /) -> None:
        """Encode one record to a token writer.

        Fields are written in their declared order and optional fields which
        are `hikari.undefined.UNDEFINED` are left out entirely.

        Parameters
        ----------
        writer : dashi.tokens.TokenWriter
            The writer to write the record's tokens to.
        value : _ViewT
            The instance to encode, this isn't modified.
        """
        self._encoder(writer, value)
