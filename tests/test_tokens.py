import json

import pytest

from dashi import errors
from dashi import tokens
from dashi.tokens import Token
from dashi.tokens import TokenType


def test_tokenize_record():
    result = list(tokens.tokenize({"id": 1, "name": "a", "ok": True, "gone": None, "tags": ["x"]}))

    assert result == [
        Token(TokenType.START_OBJECT),
        Token(TokenType.KEY, "id"),
        Token(TokenType.NUMBER, 1),
        Token(TokenType.KEY, "name"),
        Token(TokenType.STRING, "a"),
        Token(TokenType.KEY, "ok"),
        Token(TokenType.BOOLEAN, True),
        Token(TokenType.KEY, "gone"),
        Token(TokenType.NULL),
        Token(TokenType.KEY, "tags"),
        Token(TokenType.START_ARRAY),
        Token(TokenType.STRING, "x"),
        Token(TokenType.END_ARRAY),
        Token(TokenType.END_OBJECT),
    ]


def test_tokenize_keeps_duplicate_record_pairs():
    pairs = json.loads('{"a": 1, "a": 2}', object_pairs_hook=tokens.RecordPairs)

    assert list(tokens.tokenize(pairs)) == [
        Token(TokenType.START_OBJECT),
        Token(TokenType.KEY, "a"),
        Token(TokenType.NUMBER, 1),
        Token(TokenType.KEY, "a"),
        Token(TokenType.NUMBER, 2),
        Token(TokenType.END_OBJECT),
    ]


def test_tokenize_rejects_unknown_types():
    with pytest.raises(errors.MalformedStreamError):
        list(tokens.tokenize(object()))


def test_reader_peek_does_not_consume():
    reader = tokens.TokenReader.from_value("hi")

    assert reader.peek() == Token(TokenType.STRING, "hi")
    assert reader.next() == Token(TokenType.STRING, "hi")


def test_reader_next_at_end_of_stream():
    reader = tokens.TokenReader([])

    with pytest.raises(errors.MalformedStreamError, match="Unexpected end of token stream"):
        reader.next()


def test_reader_expect_wrong_type():
    reader = tokens.TokenReader.from_value(5)

    with pytest.raises(errors.MalformedStreamError, match="Expected STRING token but found NUMBER"):
        reader.expect(TokenType.STRING)


def test_reader_skip_nested_value():
    reader = tokens.TokenReader.from_value([{"a": [1, {"b": 2}]}, "after"])
    reader.expect(TokenType.START_ARRAY)

    reader.skip()

    assert reader.next() == Token(TokenType.STRING, "after")
    assert reader.next() == Token(TokenType.END_ARRAY)


def test_reader_skip_on_closing_token():
    reader = tokens.TokenReader([Token(TokenType.END_OBJECT)])

    with pytest.raises(errors.MalformedStreamError):
        reader.skip()


def test_reader_read_value_last_key_wins():
    reader = tokens.TokenReader.from_value(tokens.RecordPairs([("a", 1), ("b", [True, None]), ("a", 3)]))

    assert reader.read_value() == {"a": 3, "b": [True, None]}


def test_value_writer_builds_value():
    writer = tokens.ValueWriter()
    writer.write_open()
    writer.write_key("id")
    writer.write_value("5")
    writer.write_key("values")
    writer.write_open_array()
    writer.write_value(1)
    writer.write_any({"nested": [None]})
    writer.write_close_array()
    writer.write_close()

    assert writer.value == {"id": "5", "values": [1, {"nested": [None]}]}


def test_value_writer_incomplete_value():
    writer = tokens.ValueWriter()
    writer.write_open()

    with pytest.raises(errors.MalformedStreamError):
        writer.value


def test_value_writer_value_without_key():
    writer = tokens.ValueWriter()
    writer.write_open()

    with pytest.raises(errors.MalformedStreamError):
        writer.write_value(1)


def test_value_writer_mismatched_close():
    writer = tokens.ValueWriter()
    writer.write_open_array()

    with pytest.raises(errors.MalformedStreamError):
        writer.write_close()


def test_value_writer_second_top_level_value():
    writer = tokens.ValueWriter()
    writer.write_value(1)

    with pytest.raises(errors.MalformedStreamError):
        writer.write_value(2)


def test_token_list_writer_records_tokens():
    writer = tokens.TokenListWriter()
    writer.write_open()
    writer.write_key("a")
    writer.write_value(None)
    writer.write_close()

    assert writer.tokens == [
        Token(TokenType.START_OBJECT),
        Token(TokenType.KEY, "a"),
        Token(TokenType.NULL),
        Token(TokenType.END_OBJECT),
    ]
