import datetime
import enum

import pytest
from hikari import channels
from hikari import snowflakes

from dashi import errors
from dashi import tokens
from dashi import transformers
from dashi.tokens import Token
from dashi.tokens import TokenType


class Colour(enum.Enum):
    RED = "red"
    BLUE = "blue"


def _read(transformer, value):
    return transformer.deserialize(tokens.TokenReader.from_value(value))


def _write(transformer, value):
    writer = tokens.ValueWriter()
    transformer.serialize(writer, value)
    return writer.value


class TestScalarTransformer:
    def test_str(self):
        transformer = transformers.ScalarTransformer(str, TokenType.STRING)

        assert _read(transformer, "hello") == "hello"
        assert _write(transformer, "hello") == "hello"

    def test_str_rejects_number(self):
        transformer = transformers.ScalarTransformer(str, TokenType.STRING)

        with pytest.raises(errors.MalformedStreamError):
            _read(transformer, 5)

    def test_int_accepts_integral_float(self):
        transformer = transformers.ScalarTransformer(int, TokenType.NUMBER)

        result = _read(transformer, 3.0)

        assert result == 3
        assert isinstance(result, int)

    def test_int_rejects_fractional_float(self):
        transformer = transformers.ScalarTransformer(int, TokenType.NUMBER)

        with pytest.raises(errors.MalformedStreamError):
            _read(transformer, 3.5)

    def test_float_coerces_int(self):
        result = _read(transformers.ScalarTransformer(float, TokenType.NUMBER), 2)

        assert result == 2.0
        assert isinstance(result, float)

    def test_bool(self):
        transformer = transformers.ScalarTransformer(bool, TokenType.BOOLEAN)

        assert _read(transformer, True) is True
        with pytest.raises(errors.MalformedStreamError):
            _read(transformer, 1)


class TestSnowflakeTransformer:
    def test_from_string(self):
        assert _read(transformers.SnowflakeTransformer(), "123") == snowflakes.Snowflake(123)

    def test_from_number(self):
        assert _read(transformers.SnowflakeTransformer(), 123) == snowflakes.Snowflake(123)

    def test_invalid(self):
        with pytest.raises(errors.MalformedStreamError, match="Invalid snowflake"):
            _read(transformers.SnowflakeTransformer(), "abc")

    def test_serialize(self):
        assert _write(transformers.SnowflakeTransformer(), snowflakes.Snowflake(123)) == "123"


class TestDatetimeTransformer:
    def test_deserialize(self):
        result = _read(transformers.DatetimeTransformer(), "2021-03-04T05:06:07.000000+00:00")

        assert result == datetime.datetime(2021, 3, 4, 5, 6, 7, tzinfo=datetime.timezone.utc)

    def test_serialize(self):
        value = datetime.datetime(2021, 3, 4, 5, 6, 7, tzinfo=datetime.timezone.utc)

        assert _write(transformers.DatetimeTransformer(), value) == "2021-03-04T05:06:07+00:00"


class TestTimedeltaTransformer:
    def test_deserialize(self):
        assert _read(transformers.TimedeltaTransformer(), 90) == datetime.timedelta(seconds=90)

    def test_serialize(self):
        assert _write(transformers.TimedeltaTransformer(), datetime.timedelta(minutes=1)) == 60.0


class TestEnumTransformer:
    def test_standard_enum(self):
        transformer = transformers.EnumTransformer(Colour)

        assert _read(transformer, "red") is Colour.RED
        assert _write(transformer, Colour.BLUE) == "blue"

    def test_hikari_enum(self):
        transformer = transformers.EnumTransformer(channels.ChannelType)

        assert _read(transformer, 0) == channels.ChannelType.GUILD_TEXT
        assert _write(transformer, channels.ChannelType.GUILD_TEXT) == 0

    def test_invalid_member(self):
        with pytest.raises(errors.MalformedStreamError, match="is not a valid Colour"):
            _read(transformers.EnumTransformer(Colour), "green")


class TestSequenceTransformer:
    def test_deserialize(self):
        transformer = transformers.SequenceTransformer(transformers.ScalarTransformer(int, TokenType.NUMBER))

        assert _read(transformer, [1, 2, 3]) == [1, 2, 3]

    def test_deserialize_with_collection_type(self):
        transformer = transformers.SequenceTransformer(
            transformers.ScalarTransformer(int, TokenType.NUMBER), frozenset
        )

        assert _read(transformer, [1, 2, 2]) == frozenset((1, 2))

    def test_serialize(self):
        transformer = transformers.SequenceTransformer(transformers.SnowflakeTransformer())

        assert _write(transformer, (snowflakes.Snowflake(1), snowflakes.Snowflake(2))) == ["1", "2"]


class TestMappingTransformer:
    def test_deserialize(self):
        transformer = transformers.MappingTransformer(
            snowflakes.Snowflake, transformers.ScalarTransformer(str, TokenType.STRING)
        )

        assert _read(transformer, {"1": "a", "2": "b"}) == {snowflakes.Snowflake(1): "a", snowflakes.Snowflake(2): "b"}

    def test_deserialize_last_key_wins(self):
        transformer = transformers.MappingTransformer(str, transformers.ScalarTransformer(int, TokenType.NUMBER))

        assert _read(transformer, tokens.RecordPairs([("a", 1), ("a", 2)])) == {"a": 2}

    def test_invalid_key(self):
        transformer = transformers.MappingTransformer(int, transformers.ScalarTransformer(str, TokenType.STRING))

        with pytest.raises(errors.MalformedStreamError, match="Invalid mapping key"):
            _read(transformer, {"x": "a"})

    def test_serialize(self):
        transformer = transformers.MappingTransformer(int, transformers.ScalarTransformer(str, TokenType.STRING))

        assert _write(transformer, {1: "a"}) == {"1": "a"}


class TestNullableTransformer:
    def test_null(self):
        transformer = transformers.NullableTransformer(transformers.ScalarTransformer(str, TokenType.STRING))

        assert _read(transformer, None) is None
        assert _write(transformer, None) is None

    def test_value(self):
        transformer = transformers.NullableTransformer(transformers.ScalarTransformer(str, TokenType.STRING))

        assert _read(transformer, "a") == "a"
        assert _write(transformer, "a") == "a"


def test_any_transformer():
    value = {"a": [1, None, {"b": True}]}

    assert _read(transformers.AnyTransformer(), value) == value
    assert _write(transformers.AnyTransformer(), value) == value


class TestCastTransformer:
    def test_round_trip(self):
        transformer = transformers.CastTransformer(
            lambda minutes: datetime.timedelta(minutes=minutes), lambda delta: delta.seconds // 60
        )

        assert _read(transformer, 5) == datetime.timedelta(minutes=5)
        assert _write(transformer, datetime.timedelta(minutes=5)) == 5

    def test_wraps_value_error(self):
        transformer = transformers.CastTransformer(int, str)

        with pytest.raises(errors.MalformedStreamError, match="Failed to convert 'x'") as exc_info:
            _read(transformer, "x")

        assert isinstance(exc_info.value.base_exception, ValueError)

    def test_data_error_passes_through(self):
        def cast(value):
            raise errors.MissingFieldError("inner")

        with pytest.raises(errors.MissingFieldError):
            _read(transformers.CastTransformer(cast, str), {})

    def test_tokens_written(self):
        writer = tokens.TokenListWriter()

        transformers.CastTransformer(str, lambda value: [value]).serialize(writer, "a")

        assert writer.tokens == [Token(TokenType.START_ARRAY), Token(TokenType.STRING, "a"), Token(TokenType.END_ARRAY)]
