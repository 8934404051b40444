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
"""The standard error bases which Dashi will be raising.

.. note::
    These supplement python's builtin exceptions but do not replace them.

Errors fall into two groups. `ConfigurationError` is only ever raised while
bindings are being registered or frozen and signals a programming error.
`DataError` and its subclasses are raised per decode/encode call and only
affect that call.
"""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "BackendError",
    "ClosedClient",
    "ConfigurationError",
    "DashiException",
    "DataError",
    "EntryNotFound",
    "InvalidDataFound",
    "MalformedStreamError",
    "MissingFieldError",
    "NullabilityError",
    "UnknownFieldError",
]

import typing


class DashiException(Exception):
    """Base exception for the expected exceptions raised by Dashi.

    Parameters
    ----------
    message : str
        The exception's message.
    exception : typing.Optional[Exception]
        The exception which caused this exception if applicable else `builtins.None`.
    """

    __slots__: typing.Sequence[str] = ("base_exception", "message")

    message: str
    """The exception's message, this may be an empty string if there is no message."""

    base_exception: typing.Optional[Exception]
    """The exception which caused this exception if applicable else `builtins.None`."""

    def __init__(self, message: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.base_exception: typing.Optional[Exception] = exception

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class ConfigurationError(DashiException, TypeError):
    """Error that's raised when a view/implementation pair can't be bound.

    This covers ambiguous or absent matching constructors, constructor
    parameters with no matching field, conflicting field overrides and any
    attempt to mutate a marshaller after it's been frozen.
    """

    __slots__: typing.Sequence[str] = ()


class DataError(DashiException, ValueError):
    """Base error for per-call failures while decoding or encoding a record."""

    __slots__: typing.Sequence[str] = ()


class MalformedStreamError(DataError):
    """Error that's raised when an unexpected token is found in a token stream."""

    __slots__: typing.Sequence[str] = ()


class UnknownFieldError(DataError):
    """Error that's raised when a record has a key which the view doesn't declare.

    This is only raised by bindings which reject extra fields.
    """

    __slots__: typing.Sequence[str] = ("key",)

    def __init__(self, key: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(f"Unknown field {key!r} found in record", exception=exception)
        self.key = key
        """The offending wire key."""


class MissingFieldError(DataError):
    """Error that's raised when a required field wasn't present in a record."""

    __slots__: typing.Sequence[str] = ("field",)

    def __init__(self, field: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(f"Required field {field!r} is missing from record", exception=exception)
        self.field = field
        """Name of the missing field."""


class NullabilityError(DataError):
    """Error that's raised when a non-nullable field is given a null value."""

    __slots__: typing.Sequence[str] = ("field",)

    def __init__(self, field: str, *, exception: typing.Optional[Exception] = None) -> None:
        super().__init__(f"Field {field!r} doesn't accept null", exception=exception)
        self.field = field
        """Name of the field which received null."""


class BackendError(DashiException, ValueError):
    """Error that's raised when communicating with a cache backend fails.

    This may be a sign of underlying network or database issues.
    """

    __slots__: typing.Sequence[str] = ()


class ClosedClient(DashiException):
    """Error that's raised when an attempt to use an inactive client is made."""

    __slots__: typing.Sequence[str] = ()


class InvalidDataFound(DashiException, LookupError):
    """Error that's raised when the retrieved data is in an unexpected format.

    This may indicate that different versions of a binding are sharing the
    same cache backend.
    """

    __slots__: typing.Sequence[str] = ()


class EntryNotFound(DashiException, LookupError):
    """Error that's raised in response to an attempt to get an entry which doesn't exist.

    .. note::
        This shouldn't ever be raised by a delete method.
    """

    __slots__: typing.Sequence[str] = ()
