from __future__ import annotations

import abc
import typing

import pytest
from hikari import snowflakes
from hikari import undefined

from dashi import errors
from dashi import fields


class Entity(abc.ABC):
    __slots__: typing.Sequence[str] = ()

    @property
    @abc.abstractmethod
    def id(self) -> snowflakes.Snowflake:
        ...


class Channel(Entity):
    __slots__: typing.Sequence[str] = ()

    @property
    @abc.abstractmethod
    def name(self) -> undefined.UndefinedOr[str]:
        ...

    @property
    @abc.abstractmethod
    def topic(self) -> undefined.UndefinedNoneOr[str]:
        ...

    @property
    def _private(self) -> int:
        return 0


class Member(typing.Protocol):
    guild_id: snowflakes.Snowflake
    nickname: typing.Optional[str]
    kind: typing.ClassVar[str]
    _internal: int


class Renamed(Entity):
    id: int  # type: ignore[assignment]


class Unannotated:
    @property
    def value(self):  # type: ignore[no-untyped-def]
        return 1


class Unresolvable:
    value: DoesNotExist  # type: ignore[name-defined]  # noqa: F821


def test_is_undefinable():
    assert fields.is_undefinable(undefined.UndefinedOr[int]) is True
    assert fields.is_undefinable(undefined.UndefinedNoneOr[int]) is True
    assert fields.is_undefinable(typing.Optional[int]) is False
    assert fields.is_undefinable(int) is False


def test_is_nullable():
    assert fields.is_nullable(typing.Optional[int]) is True
    assert fields.is_nullable(undefined.UndefinedNoneOr[int]) is True
    assert fields.is_nullable(int | None) is True
    assert fields.is_nullable(typing.Any) is True
    assert fields.is_nullable(undefined.UndefinedOr[typing.Any]) is True
    assert fields.is_nullable(undefined.UndefinedOr[object]) is True
    assert fields.is_nullable(undefined.UndefinedOr[int]) is False
    assert fields.is_nullable(int) is False


def test_unwrap():
    assert fields.unwrap(undefined.UndefinedNoneOr[int]) is int
    assert fields.unwrap(typing.Optional[str]) is str
    assert fields.unwrap(typing.Union[int, str, None]) == typing.Union[int, str]
    assert fields.unwrap(typing.List[int]) == typing.List[int]


def test_get_fields_from_properties():
    result = fields.get_fields(Channel)

    assert [field.name for field in result] == ["id", "name", "topic"]
    assert result[0].type is snowflakes.Snowflake
    assert result[1].is_optional is True
    assert result[1].is_nullable is False
    assert result[1].inner_type is str
    assert result[2].is_optional is True
    assert result[2].is_nullable is True


def test_get_fields_from_annotations():
    result = fields.get_fields(Member)

    assert [field.name for field in result] == ["guild_id", "nickname"]
    assert result[1].is_optional is False
    assert result[1].is_nullable is True


def test_get_fields_redeclared_field_keeps_position_with_new_type():
    result = fields.get_fields(Renamed)

    assert result == (fields.FieldDescriptor("id", int),)


def test_get_fields_property_without_return_annotation():
    with pytest.raises(errors.ConfigurationError, match="has no return type annotation"):
        fields.get_fields(Unannotated)


def test_get_fields_unresolvable_annotation():
    with pytest.raises(errors.ConfigurationError):
        fields.get_fields(Unresolvable)


def test_field_descriptor_identity():
    assert fields.FieldDescriptor("a", int) == fields.FieldDescriptor("a", int)
    assert fields.FieldDescriptor("a", int) != fields.FieldDescriptor("a", str)
    assert fields.FieldDescriptor("a", int) != fields.FieldDescriptor("b", int)
    assert hash(fields.FieldDescriptor("a", int)) == hash(fields.FieldDescriptor("a", int))
