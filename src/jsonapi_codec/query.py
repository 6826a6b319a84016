import dataclasses
import re
import typing
from collections import OrderedDict

from .casting import cast_value, to_bool
from .exceptions import BadRequestError
from .inflections import cast_id, inbound_key, outbound_type
from .models import ResourceDescriptor, ResourceRelationshipDescriptor
from .serde.utils import english_enumerate
from .settings import RESERVED_KEYS, Options

IN_BRACKETS_PATTERN = re.compile(r"\[([^\]]+)\](?:\[([^\]]+)\])?")
LEADING_INTEGER_PATTERN = re.compile(r"^\s*[+-]?(\d+)")

FILTER_MODIFIERS = ("exists", "min", "max")

IncludePath = typing.Tuple[str, ...]
QueryValue = typing.Union[str, typing.Sequence[str]]


@dataclasses.dataclass
class QueryOptions:
    """
    Options passed down to :py:meth:`jsonapi_codec.interfaces.Store.find`. ``None`` means
    the option was not requested.
    """

    fields: typing.Optional[typing.Dict[str, bool]] = None
    """
    Sparse fieldset; the names of the fields to return.
    """
    match: typing.Optional[typing.Dict[str, typing.List[typing.Any]]] = None
    """
    Field name to the values any of which the field must equal.
    """
    exists: typing.Optional[typing.Dict[str, bool]] = None
    """
    Field name to whether the field must be set or unset.
    """
    range: typing.Optional[typing.Dict[str, typing.List[typing.Any]]] = None
    """
    Field name to an inclusive ``[min, max]`` pair; either end may be ``None``.
    """
    sort: typing.Optional["OrderedDict[str, bool]"] = None
    """
    Field name to ascending (``True``) or descending (``False``), in priority order.
    """
    offset: typing.Optional[int] = None
    limit: typing.Optional[int] = None
    include: typing.Optional[typing.List[IncludePath]] = None
    """
    Link field paths to follow, every intermediate path included.
    """


def _as_list(value: QueryValue) -> typing.List[str]:
    if isinstance(value, str):
        return value.split(",")
    return [x for v in value for x in v.split(",")]


def _as_scalar(value: QueryValue) -> str:
    if isinstance(value, str):
        return value
    return value[-1] if value else ""


def _parse_non_negative(value: QueryValue) -> typing.Optional[int]:
    m = LEADING_INTEGER_PATTERN.match(_as_scalar(value))
    if m is None:
        return None
    return int(m.group(1))


def _cast_filter_value(
    descr: ResourceDescriptor, field: str, value: typing.Any, options: Options
) -> typing.Any:
    field_descr = descr.get_field(field)
    if isinstance(field_descr, ResourceRelationshipDescriptor):
        return cast_id(value, options)
    assert field_descr is not None
    return cast_value(value, field_descr.type, options)


def parse_include(value: QueryValue, options: Options) -> typing.List[IncludePath]:
    """
    Parses the ``include`` parameter into field paths, each truncated to
    ``options.include_limit`` fields. Every intermediate path is added as well, so
    ``owner.friends`` yields both ``("owner", "friends")`` and ``("owner",)``.
    """
    paths: typing.List[IncludePath] = []
    seen: typing.Set[str] = set()

    def add(path: IncludePath):
        key = ".".join(path)
        if key not in seen:
            seen.add(key)
            paths.append(path)

    for item in _as_list(value):
        if not item:
            continue
        add(tuple(inbound_key(x, options) for x in item.split("."))[: options.include_limit])

    for path in list(paths):
        for i in range(len(path) - 1, 0, -1):
            add(path[:i])

    return paths


def parse_query(
    query: typing.Mapping[str, QueryValue], descr: ResourceDescriptor, options: Options
) -> QueryOptions:
    """
    Turns a decoded query string into :py:class:`QueryOptions` for the resource type
    described by ``descr``.

    :raises BadRequestError: if a filter names an undeclared field or an unknown modifier.
    """
    result = QueryOptions()

    for parameter, value in query.items():
        if parameter.startswith(RESERVED_KEYS.fields):
            m = IN_BRACKETS_PATTERN.search(parameter)
            sparse_type = m.group(1) if m is not None else None
            if sparse_type == descr.name or sparse_type == outbound_type(descr.name, options):
                result.fields = OrderedDict(
                    (inbound_key(f, options), True) for f in _as_list(value) if f
                )
        elif parameter.startswith(RESERVED_KEYS.filter):
            m = IN_BRACKETS_PATTERN.search(parameter)
            if m is None:
                raise BadRequestError(
                    f'The filter "{parameter}" does not name a field.',
                    source={"parameter": parameter},
                )
            field = inbound_key(m.group(1), options)
            modifier = m.group(2)
            if field not in descr:
                raise BadRequestError(
                    f'The field "{field}" is non-existent.', source={"parameter": parameter}
                )
            if modifier is None:
                if result.match is None:
                    result.match = {}
                result.match[field] = [
                    _cast_filter_value(descr, field, v, options) for v in _as_list(value)
                ]
            elif modifier == "exists":
                if result.exists is None:
                    result.exists = {}
                result.exists[field] = to_bool(_as_scalar(value))
            elif modifier in ("min", "max"):
                if result.range is None:
                    result.range = {}
                bounds = result.range.setdefault(field, [None, None])
                bounds[0 if modifier == "min" else 1] = _cast_filter_value(
                    descr, field, _as_scalar(value), options
                )
            else:
                raise BadRequestError(
                    f'The filter "{modifier}" is not valid, '
                    f"it must be {english_enumerate(FILTER_MODIFIERS)}.",
                    source={"parameter": parameter},
                )

    include = query.get(RESERVED_KEYS.include)
    if include is not None:
        result.include = parse_include(include, options)

    sort = query.get(RESERVED_KEYS.sort)
    if sort is not None:
        result.sort = OrderedDict()
        for field in _as_list(sort):
            if not field:
                continue
            if field.startswith("-"):
                result.sort[inbound_key(field[1:], options)] = False
            else:
                result.sort[inbound_key(field, options)] = True

    offset = query.get(RESERVED_KEYS.page_offset)
    if offset is not None:
        result.offset = _parse_non_negative(offset)

    limit = query.get(RESERVED_KEYS.page_limit)
    if limit is not None:
        result.limit = _parse_non_negative(limit)

    if not result.limit or result.limit > options.max_limit:
        result.limit = options.max_limit

    return result
