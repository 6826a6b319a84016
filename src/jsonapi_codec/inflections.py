"""
Name transforms between the record world (singular, camel cased type and field names)
and the wire (plural, dasherized names), plus identifier coercion.
"""

import re
import typing

import inflection

from .settings import RESERVED_KEYS, Options

Id = typing.Union[str, int, float]

NUMERIC_ID_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def _underscore(s: str) -> str:
    return s.replace("-", "_")


def check_lower_case(type_: str, registry: typing.Container[str]) -> str:
    """
    Returns ``type_`` with its first letter lower cased if the registry knows that name,
    otherwise ``type_`` unchanged.
    """
    lower_cased = type_[:1].lower() + type_[1:]
    return lower_cased if lower_cased in registry else type_


def outbound_type(type_: str, options: Options) -> str:
    """
    ``"animal"`` -> ``"animals"``, ``"userGroup"`` -> ``"user-groups"``
    """
    if not options.inflect_type:
        return type_
    return inflection.dasherize(inflection.underscore(inflection.pluralize(type_)))


def inbound_type(type_: str, options: Options, registry: typing.Container[str]) -> str:
    """
    ``"animals"`` -> ``"animal"``, ``"user-groups"`` -> ``"userGroup"``
    """
    if not options.inflect_type:
        return type_
    return check_lower_case(
        inflection.camelize(inflection.singularize(_underscore(type_)), True), registry
    )


def outbound_key(field: str, options: Options) -> str:
    """
    ``"ownedPets"`` -> ``"owned-pets"``
    """
    if not options.inflect_keys:
        return field
    return inflection.dasherize(inflection.underscore(field))


def inbound_key(field: str, options: Options) -> str:
    """
    ``"owned-pets"`` -> ``"ownedPets"``
    """
    if not options.inflect_keys:
        return field
    return inflection.camelize(_underscore(field), False)


def _canonical_number(s: str) -> typing.Optional[typing.Union[int, float]]:
    if NUMERIC_ID_PATTERN.match(s) is None:
        return None
    try:
        i = int(s)
    except ValueError:
        f = float(s)
        return f if repr(f) == s else None
    return i if str(i) == s else None


def cast_id(id: typing.Any, options: typing.Optional[Options] = None) -> typing.Any:
    """
    Turns a string holding a plain decimal number into that number, as long as the
    number spells back to the exact same string. ``"1"`` becomes ``1`` while ``"01"``,
    ``"1e3"`` and ``"abc"`` stay strings. Non-string values are returned untouched.
    """
    if options is not None and not options.cast_numeric_ids:
        return id
    if not isinstance(id, str):
        return id
    number = _canonical_number(id)
    return id if number is None else number


def match_id(obj: typing.Mapping[str, typing.Any], id: typing.Any, options: Options) -> bool:
    """
    Tells whether the identifier of a resource object equals ``id`` after coercion.
    """
    return id == cast_id(obj.get(RESERVED_KEYS.id), options)
