"""
A small RFC 6570 engine covering what the router needs: the simple (``{var}``), path
segment (``{/var}``), form-style query (``{?var}``) and query continuation (``{&var}``)
operators, with the explode modifier (``*``).

.. code-block:: python

   >>> template = URITemplate("{/type,ids,relatedField,relationship}{?query*}")
   >>> template.parse("/users/1,2?include=owner")
   {'type': 'users', 'ids': ['1', '2'], 'query': {'include': 'owner'}}
   >>> template.fill({"type": "users", "ids": [1, 2]})
   '/users/1,2'
"""

import collections.abc
import dataclasses
import logging
import re
import typing
import urllib.parse

from .exceptions import InvalidDeclarationError

logger = logging.getLogger(__name__)

UNRESERVED = "-._~"
OPERATORS = ("", "/", "?", "&")

EXPRESSION_PATTERN = re.compile(r"\{([^{}]*)\}")
VARNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.%]+$")

Value = typing.Union[
    str,
    int,
    float,
    typing.Sequence[typing.Any],
    typing.Mapping[str, typing.Any],
    None,
]


@dataclasses.dataclass(frozen=True)
class VarSpec:
    name: str
    explode: bool = False


@dataclasses.dataclass(frozen=True)
class Expression:
    operator: str
    varspecs: typing.Tuple[VarSpec, ...]


Part = typing.Union[str, Expression]


def _quote(value: typing.Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return urllib.parse.quote(str(value), safe=UNRESERVED)


def _is_undefined(value: typing.Any) -> bool:
    if value is None:
        return True
    elif isinstance(value, (str, collections.abc.Sequence, collections.abc.Mapping)):
        return len(value) == 0
    return False


def _parse_expression(body: str) -> Expression:
    operator = ""
    if body[:1] in ("/", "?", "&"):
        operator, body = body[0], body[1:]
    elif body[:1] in ("+", "#", ".", ";", "=", ",", "!", "@", "|"):
        raise InvalidDeclarationError(f"unsupported URI template operator: {body[0]!r}")
    varspecs = []
    for spec in body.split(","):
        explode = spec.endswith("*")
        name = spec[:-1] if explode else spec
        if ":" in name or VARNAME_PATTERN.match(name) is None:
            raise InvalidDeclarationError(f"invalid variable in URI template: {spec!r}")
        varspecs.append(VarSpec(name, explode))
    return Expression(operator, tuple(varspecs))


class URITemplate:
    template: str
    parts: typing.Tuple[Part, ...]
    _pattern: typing.Pattern[str]
    # the variables captured by each group of the pattern, in order
    _groups: typing.Tuple[typing.Tuple[Expression, typing.Optional[VarSpec]], ...]

    @property
    def variables(self) -> typing.Sequence[str]:
        """
        The names of the variables, in order of appearance.
        """
        return [
            varspec.name
            for part in self.parts
            if isinstance(part, Expression)
            for varspec in part.varspecs
        ]

    def _build_pattern(self) -> None:
        buf = ["^"]
        groups: typing.List[typing.Tuple[Expression, typing.Optional[VarSpec]]] = []
        for part in self.parts:
            if isinstance(part, str):
                buf.append(re.escape(part))
            elif part.operator == "/":
                for varspec in part.varspecs:
                    buf.append(r"(?:/([^/?#]*))?")
                    groups.append((part, varspec))
            elif part.operator == "":
                buf.append(r"([^/?#&]*)")
                groups.append((part, None))
            else:
                buf.append(r"(?:" + re.escape(part.operator) + r"([^#]*))?")
                groups.append((part, None))
        buf.append(r"(?:#.*)?$")
        self._pattern = re.compile("".join(buf))
        self._groups = tuple(groups)

    def _decode_segment(self, segment: str) -> typing.Union[str, typing.List[str]]:
        if "," in segment:
            return [urllib.parse.unquote(s) for s in segment.split(",")]
        return urllib.parse.unquote(segment)

    def _decode_query(
        self, expr: Expression, query: str, result: typing.Dict[str, typing.Any]
    ) -> None:
        pairs: typing.Dict[str, typing.Union[str, typing.List[str]]] = {}
        # RFC 3986 decoding: "+" is a literal plus, not a space
        for part in query.split("&"):
            if not part:
                continue
            k, _, v = part.partition("=")
            k, v = urllib.parse.unquote(k), urllib.parse.unquote(v)
            prev = pairs.get(k)
            if prev is None:
                pairs[k] = v
            elif isinstance(prev, list):
                prev.append(v)
            else:
                pairs[k] = [prev, v]
        exploded = [varspec for varspec in expr.varspecs if varspec.explode]
        for varspec in expr.varspecs:
            if not varspec.explode and varspec.name in pairs:
                value = pairs.pop(varspec.name)
                if isinstance(value, str) and "," in value:
                    result[varspec.name] = value.split(",")
                else:
                    result[varspec.name] = value
        if exploded and pairs:
            result[exploded[0].name] = pairs

    def parse(self, uri: str) -> typing.Dict[str, typing.Any]:
        """
        Extracts the variables from ``uri``. Absent or empty variables are left out,
        so a URI that matches none of them yields an empty dictionary.
        """
        m = self._pattern.match(uri)
        if m is None:
            logger.debug("%s does not match %s", uri, self.template)
            return {}
        result: typing.Dict[str, typing.Any] = {}
        for (expr, varspec), value in zip(self._groups, m.groups()):
            if not value:
                continue
            if expr.operator == "/":
                assert varspec is not None
                result[varspec.name] = self._decode_segment(value)
            elif expr.operator == "":
                values = value.split(",")
                for varspec_, v in zip(expr.varspecs, values):
                    if v:
                        result[varspec_.name] = urllib.parse.unquote(v)
            else:
                self._decode_query(expr, value, result)
        return result

    def _expand_query(self, expr: Expression, values: typing.Mapping[str, Value]) -> str:
        pairs: typing.List[str] = []
        for varspec in expr.varspecs:
            value = values.get(varspec.name)
            if _is_undefined(value):
                continue
            if isinstance(value, collections.abc.Mapping):
                if varspec.explode:
                    for k, v in value.items():
                        if isinstance(v, (list, tuple)):
                            pairs.extend(f"{_quote(k)}={_quote(x)}" for x in v)
                        else:
                            pairs.append(f"{_quote(k)}={_quote(v)}")
                else:
                    pairs.append(
                        f"{varspec.name}="
                        + ",".join(f"{_quote(k)},{_quote(v)}" for k, v in value.items())
                    )
            elif isinstance(value, (list, tuple)):
                if varspec.explode:
                    pairs.extend(f"{varspec.name}={_quote(x)}" for x in value)
                else:
                    pairs.append(f"{varspec.name}=" + ",".join(_quote(x) for x in value))
            else:
                pairs.append(f"{varspec.name}={_quote(value)}")
        if not pairs:
            return ""
        return expr.operator + "&".join(pairs)

    def _expand(self, expr: Expression, values: typing.Mapping[str, Value]) -> str:
        if expr.operator in ("?", "&"):
            return self._expand_query(expr, values)
        buf: typing.List[str] = []
        for varspec in expr.varspecs:
            value = values.get(varspec.name)
            if _is_undefined(value):
                continue
            if isinstance(value, collections.abc.Mapping):
                items = [x for kv in value.items() for x in kv]
                joined = ",".join(_quote(x) for x in items)
            elif isinstance(value, (list, tuple)):
                sep = "/" if varspec.explode and expr.operator == "/" else ","
                joined = sep.join(_quote(x) for x in value)
            else:
                joined = _quote(value)
            buf.append(joined)
        if not buf:
            return ""
        if expr.operator == "/":
            return "".join("/" + s for s in buf)
        return ",".join(buf)

    def fill(self, values: typing.Mapping[str, Value]) -> str:
        """
        Expands the template with ``values``. Undefined and empty variables are skipped.
        """
        buf = []
        for part in self.parts:
            if isinstance(part, str):
                buf.append(part)
            else:
                buf.append(self._expand(part, values))
        return "".join(buf)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.template!r})"

    def __init__(self, template: str):
        self.template = template
        parts: typing.List[Part] = []
        pos = 0
        for m in EXPRESSION_PATTERN.finditer(template):
            if m.start() > pos:
                parts.append(template[pos : m.start()])
            parts.append(_parse_expression(m.group(1)))
            pos = m.end()
        if pos < len(template):
            parts.append(template[pos:])
        self.parts = tuple(parts)
        self._build_pattern()
