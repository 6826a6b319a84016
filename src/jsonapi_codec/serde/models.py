"""
Plain representations of the members of an outgoing JSON:API document.

A member that may be ``null`` or left out distinguishes the two with :py:data:`Missing`:
:py:const:`None` is rendered as ``null`` while :py:data:`Missing` drops the member.
"""

import dataclasses
import typing
from collections import OrderedDict


class MissingType:
    def __bool__(self):
        return False

    def __repr__(self):
        return "Missing"


Missing = MissingType()

Meta = typing.Dict[str, typing.Any]


@dataclasses.dataclass
class LinksRepr:
    """
    A ``links`` member. ``self_`` is rendered as ``self``.
    """

    self_: typing.Optional[str] = None
    related: typing.Optional[str] = None
    first: typing.Optional[str] = None
    last: typing.Optional[str] = None
    next: typing.Optional[str] = None
    prev: typing.Optional[str] = None


@dataclasses.dataclass
class ResourceIdRepr:
    type: str
    id: str
    meta: Meta = dataclasses.field(default_factory=dict)


LinkageData = typing.Union[None, ResourceIdRepr, typing.Sequence[ResourceIdRepr]]


@dataclasses.dataclass
class LinkageRepr:
    """
    A relationship object. Its ``data`` stays :py:data:`Missing` unless the linkage is known.
    """

    data: typing.Union[LinkageData, MissingType] = Missing
    links: typing.Optional[LinksRepr] = None
    meta: Meta = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class ResourceRepr:
    type: str
    id: str
    attributes: "OrderedDict[str, typing.Any]" = dataclasses.field(default_factory=OrderedDict)
    relationships: "OrderedDict[str, LinkageRepr]" = dataclasses.field(
        default_factory=OrderedDict
    )
    links: typing.Optional[LinksRepr] = None
    meta: Meta = dataclasses.field(default_factory=dict)

    def __getitem__(self, name: str) -> typing.Any:
        return self.attributes[name]


@dataclasses.dataclass
class SourceRepr:
    pointer: typing.Optional[str] = None
    parameter: typing.Optional[str] = None


@dataclasses.dataclass
class ErrorRepr:
    id: typing.Optional[str] = None
    status: typing.Optional[str] = None
    code: typing.Optional[str] = None
    title: typing.Optional[str] = None
    detail: typing.Optional[str] = None
    source: typing.Optional[SourceRepr] = None
    links: typing.Optional[LinksRepr] = None
    meta: Meta = dataclasses.field(default_factory=dict)


PrimaryData = typing.Union[
    None,
    ResourceRepr,
    ResourceIdRepr,
    typing.Sequence[ResourceRepr],
    typing.Sequence[ResourceIdRepr],
]


@dataclasses.dataclass
class DocumentRepr:
    """
    A top-level document. ``links`` is a :py:class:`LinksRepr` except for the entry
    point, whose links map each type to its collection and are kept as a plain mapping.
    """

    data: typing.Union[PrimaryData, MissingType] = Missing
    errors: typing.Sequence[ErrorRepr] = ()
    included: typing.Sequence[ResourceRepr] = ()
    links: typing.Union[LinksRepr, typing.Mapping[str, str], None] = None
    meta: Meta = dataclasses.field(default_factory=dict)
    jsonapi: Meta = dataclasses.field(default_factory=dict)
