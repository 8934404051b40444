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
"""One-time binding of a view type's fields to an implementation constructor."""

from __future__ import annotations

__all__: typing.Sequence[str] = [
    "Binding",
    "BindingBuilder",
    "ConstructorInfo",
    "FieldOverride",
    "OverrideTable",
    "UnknownFieldPolicy",
    "order_fields",
    "resolve_constructor",
]

import collections
import enum
import inspect
import logging
import typing

from . import errors
from . import fields as fields_
from . import utility

if typing.TYPE_CHECKING:
    from . import transformers

_ViewT = typing.TypeVar("_ViewT")
_BuilderT = typing.TypeVar("_BuilderT", bound="BindingBuilder[typing.Any]")

_LOGGER: typing.Final[logging.Logger] = logging.getLogger("hikari.dashi.binding")

_VARIADIC_KINDS: typing.Final[typing.FrozenSet[typing.Any]] = frozenset(
    (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
)


class UnknownFieldPolicy(enum.Enum):
    """How a binding treats record keys which don't match any of its fields."""

    SKIP = "SKIP"
    """Consume and discard the unknown key's value."""

    REJECT = "REJECT"
    """Fail the decode with `dashi.errors.UnknownFieldError`."""


def _type_name(type_: typing.Any, /) -> str:
    if isinstance(type_, type):
        return type_.__qualname__

    return repr(type_).replace("typing.", "")


class ConstructorInfo:
    """The parameters of a single implementation constructor.

    Parameters
    ----------
    constructor : typing.Callable[..., typing.Any]
        Either the implementation type (standing for its `__init__`) or a bound
        alternative constructor.
    """

    __slots__: typing.Sequence[str] = ("_callable", "_name", "_parameters", "_types")

    def __init__(self, constructor: typing.Callable[..., typing.Any], /) -> None:
        if isinstance(constructor, type):
            self._name = f"{constructor.__qualname__}.__init__"
            if constructor.__init__ is object.__init__:
                function: typing.Any = None
                parameters: typing.List[inspect.Parameter] = []

            else:
                function = constructor.__init__
                # Drop "self".
                parameters = list(inspect.signature(function).parameters.values())[1:]

        else:
            self._name = getattr(constructor, "__qualname__", repr(constructor))
            function = constructor
            parameters = list(inspect.signature(constructor).parameters.values())

        hints: typing.Dict[str, typing.Any] = {}
        if function is not None:
            try:
                # Unlike typing.get_type_hints this never wraps hints with a None default in Optional.
                hints = inspect.get_annotations(function, eval_str=True)

            except (NameError, TypeError) as exc:
                raise errors.ConfigurationError(
                    f"Failed to resolve the type hints of {self._name}", exception=exc
                ) from exc

        self._callable = constructor
        self._parameters = tuple(parameters)
        self._types = tuple(hints.get(parameter.name, inspect.Parameter.empty) for parameter in parameters)

    def __repr__(self) -> str:
        return f"ConstructorInfo({self._name})"

    @property
    def callable(self) -> typing.Callable[..., typing.Any]:
        """The constructor's callable."""
        return self._callable

    @property
    def name(self) -> str:
        """A readable name for the constructor."""
        return self._name

    @property
    def parameters(self) -> typing.Sequence[inspect.Parameter]:
        """The constructor's parameters in declaration order."""
        return self._parameters

    @property
    def types(self) -> typing.Sequence[typing.Any]:
        """The constructor's parameter type hints in declaration order."""
        return self._types

    @property
    def is_variadic(self) -> bool:
        """Whether the constructor takes `*args` or `**kwargs`."""
        return any(parameter.kind in _VARIADIC_KINDS for parameter in self._parameters)

    def matches(self, field_types: typing.Sequence[typing.Any], /) -> bool:
        """Check whether the parameter types are a multiset match for a set of field types.

        Order is irrelevant but the count of each distinct type must be equal.
        """
        if self.is_variadic or len(self._types) != len(field_types):
            return False

        try:
            parameter_counts = collections.Counter(self._types)
            field_counts = collections.Counter(field_types)

        except TypeError as exc:
            raise errors.ConfigurationError(f"Unhashable type hint found on {self._name}", exception=exc) from exc

        if len(parameter_counts) != len(field_counts):
            return False

        return all(parameter_counts.get(type_) == count for type_, count in field_counts.items())

    def signature(self) -> str:
        """Human readable representation of the constructor's parameter types."""
        return f"{self._name}({', '.join(map(_type_name, self._types))})"


def resolve_constructor(
    view: type, fields: typing.Sequence[fields_.FieldDescriptor], implementation: type, /
) -> ConstructorInfo:
    """Find the unique constructor on an implementation which matches a view's fields.

    Parameters
    ----------
    view : type
        The view type the fields belong to.
    fields : typing.Sequence[dashi.fields.FieldDescriptor]
        The view's fields.
    implementation : type
        The implementation type to search.

    Returns
    -------
    ConstructorInfo
        The matching constructor.

    Raises
    ------
    dashi.errors.ConfigurationError
        If no constructor or more than one constructor matches, or if the
        implementation's only constructor doesn't match.
    """
    field_types = [field.type for field in fields]
    expected = f"({', '.join(map(_type_name, field_types))})"
    constructors = [ConstructorInfo(constructor) for constructor in utility.find_constructors(implementation)]

    if len(constructors) == 1:
        if constructors[0].matches(field_types):
            return constructors[0]

        raise errors.ConfigurationError(
            f"The only constructor of {implementation.__qualname__}, {constructors[0].signature()}, "
            f"doesn't match the fields of {view.__qualname__} {expected}"
        )

    matching = [constructor for constructor in constructors if constructor.matches(field_types)]
    if len(matching) == 1:
        return matching[0]

    if not matching:
        raise errors.ConfigurationError(
            f"No constructor of {implementation.__qualname__} matches the fields of {view.__qualname__} {expected}"
        )

    names = ", ".join(constructor.name for constructor in matching)
    raise errors.ConfigurationError(
        f"Multiple constructors of {implementation.__qualname__} match the fields of {view.__qualname__} "
        f"{expected}: {names}"
    )


def order_fields(
    view: type, fields: typing.Sequence[fields_.FieldDescriptor], constructor: ConstructorInfo, /
) -> typing.Tuple[fields_.FieldDescriptor, ...]:
    """Reorder a view's fields into a constructor's parameter order.

    Each parameter is matched to the field with the same case-insensitive
    name and the same type.

    Raises
    ------
    dashi.errors.ConfigurationError
        If a parameter has no matching field.
    """
    ordered: typing.List[fields_.FieldDescriptor] = []
    for parameter, type_ in zip(constructor.parameters, constructor.types):
        name = parameter.name.casefold()
        field = next((field for field in fields if field.name.casefold() == name and field.type == type_), None)
        if field is None:
            raise errors.ConfigurationError(
                f"Parameter {parameter.name!r} of {constructor.name} has no matching field on {view.__qualname__}"
            )

        ordered.append(field)

    return tuple(ordered)


def _generate_invoker(constructor: ConstructorInfo, /) -> typing.Callable[[typing.Sequence[typing.Any]], typing.Any]:
    arguments = []
    for index, parameter in enumerate(constructor.parameters):
        if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
            arguments.append(f"{parameter.name}=a[{index}]")

        else:
            arguments.append(f"a[{index}]")

    globals_: typing.Dict[str, typing.Any] = {"ctor": constructor.callable}
    code = f"def construct(a, /): return ctor({','.join(arguments)})"
    _LOGGER.debug("generating constructor invoker for %s\n  %r", constructor.name, code)
    exec(code, globals_)
    return typing.cast("typing.Callable[[typing.Sequence[typing.Any]], typing.Any]", globals_["construct"])


class FieldOverride:
    """The customisations registered for a single field."""

    __slots__: typing.Sequence[str] = ("_key", "_transformer", "_transformer_factory")

    def __init__(
        self,
        *,
        key: typing.Optional[str] = None,
        transformer: typing.Optional[transformers.ValueTransformer[typing.Any]] = None,
        transformer_factory: typing.Optional[transformers.TransformerFactory] = None,
    ) -> None:
        self._key = key
        self._transformer = transformer
        self._transformer_factory = transformer_factory

    @property
    def key(self) -> typing.Optional[str]:
        """The renamed wire key, if set."""
        return self._key

    @property
    def transformer(self) -> typing.Optional[transformers.ValueTransformer[typing.Any]]:
        """The replacement value transformer, if set."""
        return self._transformer

    @property
    def transformer_factory(self) -> typing.Optional[transformers.TransformerFactory]:
        """The transformer factory, if set."""
        return self._transformer_factory


_EMPTY_OVERRIDE: typing.Final[FieldOverride] = FieldOverride()


class OverrideTable:
    """Per-field customisations for a binding.

    This may only be written to until it's sealed, after which it's a
    read-only table which is safe to share between threads.

    Parameters
    ----------
    fields : typing.Iterable[dashi.fields.FieldDescriptor]
        The fields overrides may be registered for.
    """

    __slots__: typing.Sequence[str] = ("_fields", "_overrides", "_sealed")

    def __init__(self, fields: typing.Iterable[fields_.FieldDescriptor], /) -> None:
        self._fields = {field.name: field for field in fields}
        self._overrides: typing.Dict[fields_.FieldDescriptor, FieldOverride] = {}
        self._sealed = False

    @property
    def is_sealed(self) -> bool:
        """Whether this table has been sealed."""
        return self._sealed

    def seal(self) -> None:
        """Seal this table, making it read-only."""
        self._sealed = True

    def _get_field(self, name: str, /) -> fields_.FieldDescriptor:
        if self._sealed:
            raise errors.ConfigurationError(f"Cannot override field {name!r} after the binding has been sealed")

        try:
            return self._fields[name]

        except KeyError:
            raise errors.ConfigurationError(f"Cannot override unknown field {name!r}") from None

    def set_key(self, name: str, key: str, /) -> None:
        """Rename the wire key of a field.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, has already been renamed or this
            table is sealed.
        """
        field = self._get_field(name)
        current = self._overrides.get(field, _EMPTY_OVERRIDE)
        if current.key is not None:
            raise errors.ConfigurationError(f"Field {name!r} has already been renamed to {current.key!r}")

        self._overrides[field] = FieldOverride(
            key=key, transformer=current.transformer, transformer_factory=current.transformer_factory
        )

    def set_transformer(self, name: str, transformer: transformers.ValueTransformer[typing.Any], /) -> None:
        """Replace the value transformer of a field.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, already has a transformer or
            transformer factory or this table is sealed.
        """
        field = self._get_field(name)
        current = self._overrides.get(field, _EMPTY_OVERRIDE)
        if current.transformer is not None or current.transformer_factory is not None:
            raise errors.ConfigurationError(f"Field {name!r} already has a transformer override")

        self._overrides[field] = FieldOverride(key=current.key, transformer=transformer)

    def set_transformer_factory(self, name: str, factory: transformers.TransformerFactory, /) -> None:
        """Set the transformer factory of a field.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, already has a transformer or
            transformer factory or this table is sealed.
        """
        field = self._get_field(name)
        current = self._overrides.get(field, _EMPTY_OVERRIDE)
        if current.transformer is not None or current.transformer_factory is not None:
            raise errors.ConfigurationError(f"Field {name!r} already has a transformer override")

        self._overrides[field] = FieldOverride(key=current.key, transformer_factory=factory)

    def get(self, field: fields_.FieldDescriptor, /) -> FieldOverride:
        """Get the overrides for a field, this is empty if none were registered."""
        return self._overrides.get(field, _EMPTY_OVERRIDE)


class Binding(typing.Generic[_ViewT]):
    """The resolved and immutable mapping of a view's fields to an implementation constructor.

    These are created by `BindingBuilder.build`.
    """

    __slots__: typing.Sequence[str] = (
        "_construct",
        "_constructor",
        "_declared_fields",
        "_fields",
        "_implementation",
        "_keys",
        "_overrides",
        "_policy",
        "_view",
    )

    def __init__(
        self,
        view: typing.Type[_ViewT],
        implementation: type,
        constructor: ConstructorInfo,
        declared_fields: typing.Sequence[fields_.FieldDescriptor],
        fields: typing.Sequence[fields_.FieldDescriptor],
        overrides: OverrideTable,
        policy: UnknownFieldPolicy,
        keys: typing.Mapping[fields_.FieldDescriptor, str],
    ) -> None:
        self._construct = _generate_invoker(constructor)
        self._constructor = constructor
        self._declared_fields = tuple(declared_fields)
        self._fields = tuple(fields)
        self._implementation = implementation
        self._keys = dict(keys)
        self._overrides = overrides
        self._policy = policy
        self._view = view

    def __repr__(self) -> str:
        return f"Binding({self._view.__qualname__} -> {self._constructor.name})"

    @property
    def view(self) -> typing.Type[_ViewT]:
        """The view type."""
        return self._view

    @property
    def implementation(self) -> type:
        """The implementation type."""
        return self._implementation

    @property
    def constructor(self) -> ConstructorInfo:
        """The resolved implementation constructor."""
        return self._constructor

    @property
    def fields(self) -> typing.Sequence[fields_.FieldDescriptor]:
        """The view's fields in constructor parameter order."""
        return self._fields

    @property
    def declared_fields(self) -> typing.Sequence[fields_.FieldDescriptor]:
        """The view's fields in declaration order."""
        return self._declared_fields

    @property
    def overrides(self) -> OverrideTable:
        """The sealed override table."""
        return self._overrides

    @property
    def unknown_field_policy(self) -> UnknownFieldPolicy:
        """How record keys which match no field are treated."""
        return self._policy

    def get_key(self, field: fields_.FieldDescriptor, /) -> str:
        """Get the resolved wire key of a field."""
        return self._keys[field]

    def construct(self, arguments: typing.Sequence[typing.Any], /) -> _ViewT:
        """Call the constructor with arguments in `Binding.fields` order."""
        return typing.cast("_ViewT", self._construct(arguments))


class BindingBuilder(typing.Generic[_ViewT]):
    """Build-phase handle for registering a binding's overrides and policy.

    Constructor resolution happens when this is created so an unbindable
    view/implementation pair fails at registration.

    Parameters
    ----------
    view : typing.Type[_ViewT]
        The view type.
    implementation : type
        The implementation type.

    Raises
    ------
    dashi.errors.ConfigurationError
        If the pair can't be bound.
    """

    __slots__: typing.Sequence[str] = (
        "_constructor",
        "_declared_fields",
        "_fields",
        "_implementation",
        "_overrides",
        "_policy",
        "_view",
    )

    def __init__(self, view: typing.Type[_ViewT], implementation: type, /) -> None:
        self._declared_fields = fields_.get_fields(view)
        self._constructor = resolve_constructor(view, self._declared_fields, implementation)
        self._fields = order_fields(view, self._declared_fields, self._constructor)
        self._implementation = implementation
        self._overrides = OverrideTable(self._declared_fields)
        self._policy = UnknownFieldPolicy.SKIP
        self._view = view
        _LOGGER.debug("resolved %s for %r", self._constructor.signature(), view)

    @property
    def view(self) -> typing.Type[_ViewT]:
        """The view type."""
        return self._view

    @property
    def is_sealed(self) -> bool:
        """Whether this builder has been built and can no longer be modified."""
        return self._overrides.is_sealed

    def with_key(self: _BuilderT, name: str, key: str, /) -> _BuilderT:
        """Rename the wire key used for a field.

        The renamed key is then used exclusively; the field's declared name
        is no longer accepted.

        Parameters
        ----------
        name : str
            Name of the field on the view.
        key : str
            The wire key to use.

        Returns
        -------
        Self
            The builder to allow chained calls.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, has already been renamed or the
            builder has been sealed.
        """
        self._overrides.set_key(name, key)
        return self

    def with_transformer(
        self: _BuilderT, name: str, transformer: transformers.ValueTransformer[typing.Any], /
    ) -> _BuilderT:
        """Replace the value transformer used for a field.

        Returns
        -------
        Self
            The builder to allow chained calls.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, already has a transformer override or
            the builder has been sealed.
        """
        self._overrides.set_transformer(name, transformer)
        return self

    def with_transformer_factory(
        self: _BuilderT, name: str, factory: transformers.TransformerFactory, /
    ) -> _BuilderT:
        """Set a factory which creates the value transformer used for a field.

        The factory is passed the field's type with `UNDEFINED` and `None`
        stripped.

        Returns
        -------
        Self
            The builder to allow chained calls.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the field doesn't exist, already has a transformer override or
            the builder has been sealed.
        """
        self._overrides.set_transformer_factory(name, factory)
        return self

    def allow_extra_fields(self: _BuilderT, allow: bool = True, /) -> _BuilderT:
        """Set whether record keys which match no field are skipped or rejected.

        Extra fields are allowed by default.

        Returns
        -------
        Self
            The builder to allow chained calls.

        Raises
        ------
        dashi.errors.ConfigurationError
            If the builder has been sealed.
        """
        if self.is_sealed:
            raise errors.ConfigurationError("Cannot change the unknown field policy after the binding has been sealed")

        self._policy = UnknownFieldPolicy.SKIP if allow else UnknownFieldPolicy.REJECT
        return self

    def build(self, *, key_policy: typing.Optional[typing.Callable[[str], str]] = None) -> Binding[_ViewT]:
        """Seal this builder and create the binding.

        Parameters
        ----------
        key_policy : typing.Optional[typing.Callable[[str], str]]
            Callable used to derive the wire key of fields which weren't
            renamed. Fields use their declared name if this isn't passed.

        Returns
        -------
        Binding[_ViewT]
            The immutable binding.

        Raises
        ------
        dashi.errors.ConfigurationError
            If two fields resolve to the same wire key.
        """
        self._overrides.seal()
        keys: typing.Dict[fields_.FieldDescriptor, str] = {}
        owners: typing.Dict[str, str] = {}
        for field in self._declared_fields:
            key = self._overrides.get(field).key
            if key is None:
                key = key_policy(field.name) if key_policy else field.name

            if key in owners:
                raise errors.ConfigurationError(
                    f"Fields {owners[key]!r} and {field.name!r} of {self._view.__qualname__} share the key {key!r}"
                )

            owners[key] = field.name
            keys[field] = key

        return Binding(
            self._view,
            self._implementation,
            self._constructor,
            self._declared_fields,
            self._fields,
            self._overrides,
            self._policy,
            keys,
        )
