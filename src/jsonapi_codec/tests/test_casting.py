import datetime
import decimal

import pytest

from ..exceptions import BadRequestError
from ..settings import Options


@pytest.mark.parametrize(
    "input,expected",
    [
        ("true", True),
        ("Yes", True),
        ("1", True),
        ("t", True),
        ("false", False),
        ("nope", False),
        (1, True),
        (0, False),
        (True, True),
        (None, False),
    ],
)
def test_to_bool(input, expected):
    from ..casting import to_bool

    assert to_bool(input) is expected


@pytest.mark.parametrize(
    "value,type_,expected",
    [
        ("abc", str, "abc"),
        (1, str, "1"),
        ("12", int, 12),
        (3.0, int, 3),
        ("1.5", float, 1.5),
        ("1.10", decimal.Decimal, decimal.Decimal("1.10")),
        ("yes", bool, True),
        (
            "2015-01-04T00:00:00.000Z",
            datetime.datetime,
            datetime.datetime(2015, 1, 4, tzinfo=datetime.timezone.utc),
        ),
        (
            "2020-01-01T00:00:00.1Z",
            datetime.datetime,
            datetime.datetime(2020, 1, 1, 0, 0, 0, 100000, tzinfo=datetime.timezone.utc),
        ),
        (
            "2020-01-01T00:00:00.1234567+00:00",
            datetime.datetime,
            datetime.datetime(2020, 1, 1, 0, 0, 0, 123456, tzinfo=datetime.timezone.utc),
        ),
        (0, datetime.datetime, datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)),
        ("2015-01-07", datetime.date, datetime.date(2015, 1, 7)),
        ("2015-01-07T10:00:00Z", datetime.date, datetime.date(2015, 1, 7)),
        ("VGhpcyBpcyBhIHN0cmluZy4=", bytes, b"This is a string."),
        ({"a": 1}, dict, {"a": 1}),
        (None, int, None),
        ("anything", None, "anything"),
    ],
)
def test_cast_value(value, type_, expected):
    from ..casting import cast_value

    assert cast_value(value, type_, Options()) == expected


@pytest.mark.parametrize(
    "value,type_",
    [
        ("abc", int),
        (1.5, int),
        (True, int),
        ("abc", float),
        ("abc", decimal.Decimal),
        ("not a date", datetime.datetime),
        ("2015-13-01", datetime.date),
        ("!!!", bytes),
        (1, bytes),
        ({"a": 1}, str),
    ],
)
def test_cast_value_failure(value, type_):
    from ..casting import cast_value

    with pytest.raises(BadRequestError) as e:
        cast_value(value, type_, Options())
    assert type_.__name__ in str(e.value)


@pytest.mark.parametrize(
    "encoding,encoded",
    [
        ("base64", "aGk/Pz4+"),
        ("base64url", "aGk_Pz4-"),
        ("hex", "68693f3f3e3e"),
        ("utf-8", "hi??>>"),
    ],
)
def test_buffers(encoding, encoded):
    from ..casting import cast_value, decode_buffer, encode_buffer

    assert encode_buffer(b"hi??>>", encoding) == encoded
    assert decode_buffer(encoded, encoding) == b"hi??>>"
    assert cast_value(encoded, bytes, Options(buffer_encoding=encoding)) == b"hi??>>"
