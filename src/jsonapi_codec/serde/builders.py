"""
Mutable builders that collect the members of a document piece by piece and freeze
them into the representations of :py:mod:`jsonapi_codec.serde.models`.
"""

import typing
from collections import OrderedDict

from .models import (
    DocumentRepr,
    ErrorRepr,
    LinkageRepr,
    LinksRepr,
    Meta,
    Missing,
    MissingType,
    ResourceIdRepr,
    ResourceRepr,
)


class LinkageBuilder:
    """
    Collects the linkage of one relationship. Nothing added means the linkage is
    unknown and gets left out; :py:meth:`set_empty` makes it ``[]`` or ``null``.
    """

    to_many: bool
    links: typing.Optional[LinksRepr]
    meta: Meta
    _data: typing.Union[typing.List[ResourceIdRepr], ResourceIdRepr, None, MissingType]

    def set_empty(self) -> None:
        if self._data is Missing:
            self._data = [] if self.to_many else None

    def add(self, type: str, id: str) -> None:
        identifier = ResourceIdRepr(type=type, id=id)
        if self.to_many:
            self.set_empty()
            typing.cast(typing.List[ResourceIdRepr], self._data).append(identifier)
        else:
            self._data = identifier

    def __call__(self) -> LinkageRepr:
        data = self._data
        if isinstance(data, list):
            data = tuple(data)
        return LinkageRepr(data=data, links=self.links, meta=self.meta)

    def __init__(self, to_many: bool):
        self.to_many = to_many
        self.links = None
        self.meta = {}
        self._data = Missing


class ResourceReprBuilder:
    type: str
    id: str
    links: typing.Optional[LinksRepr]
    meta: Meta
    attributes: "OrderedDict[str, typing.Any]"
    relationships: "OrderedDict[str, LinkageBuilder]"

    def add_attribute(self, name: str, value: typing.Any) -> None:
        self.attributes[name] = value

    def add_meta(self, name: str, value: typing.Any) -> None:
        self.meta[name] = value

    def relationship(self, name: str, to_many: bool) -> LinkageBuilder:
        builder = self.relationships.get(name)
        if builder is None:
            self.relationships[name] = builder = LinkageBuilder(to_many)
        elif builder.to_many != to_many:
            raise TypeError(f'relationship "{name}" was started with a different arity')
        return builder

    def __call__(self) -> ResourceRepr:
        return ResourceRepr(
            type=self.type,
            id=self.id,
            attributes=OrderedDict(self.attributes),
            relationships=OrderedDict((k, b()) for k, b in self.relationships.items()),
            links=self.links,
            meta=self.meta,
        )

    def __init__(self, type: str, id: str):
        self.type = type
        self.id = id
        self.links = None
        self.meta = {}
        self.attributes = OrderedDict()
        self.relationships = OrderedDict()


class DocumentBuilder:
    """
    Collects the primary data of a document, either resources or resource identifiers.

    :param jsonapi: the top-level ``jsonapi`` member.
    :param bool singular: whether the primary data is a single item (or ``null``)
        rather than an array.
    """

    singular: bool
    jsonapi: Meta
    links: typing.Optional[LinksRepr]
    meta: Meta
    data: typing.List[typing.Union[ResourceReprBuilder, ResourceIdRepr]]
    included: typing.List[ResourceReprBuilder]

    def add_resource(self, type: str, id: str) -> ResourceReprBuilder:
        builder = ResourceReprBuilder(type, id)
        self.data.append(builder)
        return builder

    def add_identifier(self, type: str, id: str) -> None:
        self.data.append(ResourceIdRepr(type=type, id=id))

    def add_included(self, type: str, id: str) -> ResourceReprBuilder:
        builder = ResourceReprBuilder(type, id)
        self.included.append(builder)
        return builder

    def __call__(self) -> DocumentRepr:
        items = [b() if isinstance(b, ResourceReprBuilder) else b for b in self.data]
        data: typing.Any
        if self.singular:
            data = items[0] if items else None
        else:
            data = tuple(items)
        return DocumentRepr(
            data=data,
            included=tuple(b() for b in self.included),
            links=self.links,
            meta=self.meta,
            jsonapi=self.jsonapi,
        )

    def __init__(
        self, jsonapi: typing.Optional[typing.Mapping[str, typing.Any]] = None, singular: bool = False
    ):
        self.singular = singular
        self.jsonapi = dict(jsonapi) if jsonapi is not None else {}
        self.links = None
        self.meta = {}
        self.data = []
        self.included = []


def build_index_document(
    type_links: typing.Iterable[typing.Tuple[str, str]],
    jsonapi: typing.Optional[typing.Mapping[str, typing.Any]] = None,
) -> DocumentRepr:
    return DocumentRepr(
        links=OrderedDict(type_links), jsonapi=dict(jsonapi) if jsonapi is not None else {}
    )


def build_error_document(
    error: ErrorRepr, jsonapi: typing.Optional[typing.Mapping[str, typing.Any]] = None
) -> DocumentRepr:
    return DocumentRepr(errors=(error,), jsonapi=dict(jsonapi) if jsonapi is not None else {})
