"""
:py:mod:`jsonapi_codec.casting` turns wire values into the value types declared for
attributes, and ``bytes`` values back into text.
"""

import base64
import binascii
import datetime
import decimal
import re
import typing

from .exceptions import BadRequestError
from .settings import Options

TRUTHY_PATTERN = re.compile(r"^(?:true|t|yes|y|1)$", re.IGNORECASE)
FRACTION_PATTERN = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


def to_bool(value: typing.Any) -> bool:
    if isinstance(value, bool):
        return value
    elif isinstance(value, str):
        return TRUTHY_PATTERN.match(value.strip()) is not None
    elif isinstance(value, (int, float)):
        return value == 1
    return False


def encode_buffer(value: bytes, encoding: str) -> str:
    if encoding == "base64":
        return base64.b64encode(value).decode("ascii")
    elif encoding == "base64url":
        return base64.urlsafe_b64encode(value).decode("ascii")
    elif encoding == "hex":
        return value.hex()
    else:
        return value.decode(encoding)


def decode_buffer(value: str, encoding: str) -> bytes:
    if encoding == "base64":
        return base64.b64decode(value, validate=True)
    elif encoding == "base64url":
        return base64.urlsafe_b64decode(value)
    elif encoding == "hex":
        return bytes.fromhex(value)
    else:
        return value.encode(encoding)


def _parse_datetime(value: typing.Any) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    elif isinstance(value, bool):
        raise TypeError(value)
    elif isinstance(value, (int, float)):
        # milliseconds since the epoch
        return datetime.datetime.fromtimestamp(value / 1000, tz=datetime.timezone.utc)
    v = str(value).strip()
    if v.endswith("Z") or v.endswith("z"):
        v = v[:-1] + "+00:00"
    # fromisoformat only takes 3 or 6 fractional digits before Python 3.11
    v = FRACTION_PATTERN.sub(
        lambda m: f"{m.group(1)}.{(m.group(2) + '000000')[:6]}", v, count=1
    )
    return datetime.datetime.fromisoformat(v)


def _parse_date(value: typing.Any) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    elif isinstance(value, datetime.date):
        return value
    v = str(value).strip()
    if len(v) > 10:
        return _parse_datetime(v).date()
    return datetime.date.fromisoformat(v)


def _parse_int(value: typing.Any) -> int:
    if isinstance(value, bool):
        raise TypeError(value)
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(value)


def _parse_decimal(value: typing.Any) -> decimal.Decimal:
    if isinstance(value, bool):
        raise TypeError(value)
    return decimal.Decimal(str(value))


def cast_value(
    value: typing.Any,
    type_: typing.Optional[typing.Callable[..., typing.Any]],
    options: Options,
) -> typing.Any:
    """
    Casts a single wire value to ``type_``. ``None`` stays ``None``, and a value without
    a declared type is returned as is.

    :raises BadRequestError: if the value cannot be cast.
    """
    if value is None or type_ is None:
        return value
    try:
        if type_ is bool:
            return to_bool(value)
        elif type_ is int:
            return _parse_int(value)
        elif type_ is float:
            if isinstance(value, bool):
                raise TypeError(value)
            return float(value)
        elif type_ is decimal.Decimal:
            return _parse_decimal(value)
        elif type_ is datetime.datetime:
            return _parse_datetime(value)
        elif type_ is datetime.date:
            return _parse_date(value)
        elif type_ is bytes:
            if isinstance(value, (bytes, bytearray)):
                return bytes(value)
            elif not isinstance(value, str):
                raise TypeError(value)
            return decode_buffer(value, options.buffer_encoding)
        elif type_ is str:
            if isinstance(value, (dict, list)):
                raise TypeError(value)
            return value if isinstance(value, str) else str(value)
        elif type_ in (dict, list, object):
            return value
        return type_(value)
    except (
        TypeError,
        ValueError,
        OverflowError,
        decimal.InvalidOperation,
        binascii.Error,
        UnicodeError,
    ) as e:
        type_name = getattr(type_, "__name__", repr(type_))
        raise BadRequestError(f'The value "{value}" is not a valid {type_name}.') from e
