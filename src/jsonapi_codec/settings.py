"""
:py:mod:`jsonapi_codec.settings` holds the reserved keys of the JSON:API format and
the configuration object of the codec.

Both are immutable: an :py:class:`Options` instance is built once when the serializer
is constructed and shared by every request afterwards.
"""

import dataclasses
import types
import typing

from .exceptions import InvalidDeclarationError

MEDIA_TYPE = "application/vnd.api+json"
"""
The registered media type, used for both ``Accept`` negotiation and ``Content-Type`` validation.
"""


@dataclasses.dataclass(frozen=True)
class ReservedKeys:
    """
    Reserved keys from the JSON:API specification.
    """

    # top-level description
    jsonapi: str = "jsonapi"

    # document structure
    primary: str = "data"
    attributes: str = "attributes"
    relationships: str = "relationships"
    type: str = "type"
    id: str = "id"
    meta: str = "meta"
    errors: str = "errors"
    included: str = "included"

    # hypertext
    links: str = "links"
    href: str = "href"
    related: str = "related"
    self_: str = "self"

    # reserved query strings
    include: str = "include"
    fields: str = "fields"
    filter: str = "filter"
    sort: str = "sort"
    page: str = "page"

    # pagination
    first: str = "first"
    last: str = "last"
    prev: str = "prev"
    next: str = "next"

    @property
    def page_offset(self) -> str:
        return f"{self.page}[offset]"

    @property
    def page_limit(self) -> str:
        return f"{self.page}[limit]"


RESERVED_KEYS = ReservedKeys()

DEFAULT_URI_TEMPLATE = "{/type,ids,relatedField,relationship}{?query*}"

DEFAULT_ALLOW_LEVEL: typing.Tuple[typing.Tuple[str, ...], ...] = (
    ("GET",),  # index
    ("GET", "POST"),  # collection
    ("GET", "PATCH", "DELETE"),  # records
    ("GET",),  # related
    ("GET", "POST", "PATCH", "DELETE"),  # relationship
)

BUFFER_ENCODINGS = ("base64", "base64url", "hex", "utf-8", "latin-1", "ascii")


@dataclasses.dataclass(frozen=True)
class Options:
    """
    Configuration of a :py:class:`jsonapi_codec.serializer.JSONAPISerializer`.
    """

    prefix: str = ""
    """
    Hyperlink prefix prepended to every generated link. Incoming URLs starting with it
    are stripped of it before routing.
    """

    inflect_type: bool = True
    """
    Inflect the record type name in the URI. Type names are expected to be singular,
    so this pluralizes (and dasherizes) them on the wire.
    """

    inflect_keys: bool = True
    """
    Inflect field names. Field names are expected to be lower camel cased; the wire
    format is dasherized.
    """

    max_limit: int = 1000
    """
    Maximum number of records per page.
    """

    include_limit: int = 3
    """
    Maximum number of fields per include path.
    """

    buffer_encoding: str = "base64"
    """
    Text encoding used for ``bytes`` attributes.
    """

    json_spaces: typing.Optional[int] = 2
    """
    Indentation width for pretty printing; ``None`` renders compact JSON.
    """

    jsonapi: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({"version": "1.0"})
    )
    """
    Value of the top-level ``jsonapi`` member. An empty mapping suppresses it.
    """

    cast_numeric_ids: bool = True
    """
    Turn numeric string identifiers into numbers.
    """

    uri_template: str = DEFAULT_URI_TEMPLATE
    """
    RFC 6570 URI template describing the routes.
    """

    allow_level: typing.Tuple[typing.Tuple[str, ...], ...] = DEFAULT_ALLOW_LEVEL
    """
    HTTP methods allowed per URI degree, ordered by appearance in the URI template.
    """

    def __post_init__(self):
        if self.max_limit < 1:
            raise InvalidDeclarationError(f"max_limit must be positive, got {self.max_limit}")
        if self.include_limit < 1:
            raise InvalidDeclarationError(
                f"include_limit must be positive, got {self.include_limit}"
            )
        if self.buffer_encoding not in BUFFER_ENCODINGS:
            raise InvalidDeclarationError(f"unsupported buffer encoding: {self.buffer_encoding}")
        if len(self.allow_level) != 5:
            raise InvalidDeclarationError("allow_level must list methods for five URI degrees")
        object.__setattr__(self, "jsonapi", types.MappingProxyType(dict(self.jsonapi)))
        object.__setattr__(
            self,
            "allow_level",
            tuple(tuple(m.upper() for m in methods) for methods in self.allow_level),
        )

    _aliases: typing.ClassVar[typing.Mapping[str, str]] = {
        "inflectType": "inflect_type",
        "inflectKeys": "inflect_keys",
        "maxLimit": "max_limit",
        "includeLimit": "include_limit",
        "bufferEncoding": "buffer_encoding",
        "jsonSpaces": "json_spaces",
        "castNumericIds": "cast_numeric_ids",
        "uriTemplate": "uri_template",
        "allowLevel": "allow_level",
    }

    @classmethod
    def from_mapping(cls, mapping: typing.Mapping[str, typing.Any]) -> "Options":
        """
        Builds an :py:class:`Options` from a plain mapping. Keys may be given either in
        their Python spelling (``max_limit``) or in their camel cased spelling (``maxLimit``).

        :param Mapping[str, Any] mapping: the option values.
        :return: a new :py:class:`Options` instance.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: typing.Dict[str, typing.Any] = {}
        for k, v in mapping.items():
            name = cls._aliases.get(k, k)
            if name not in known:
                raise InvalidDeclarationError(f"unknown option: {k}")
            kwargs[name] = v
        return cls(**kwargs)
