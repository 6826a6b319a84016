"""
:py:mod:`jsonapi_codec.serde.renderer` turns document representations into plain values
that :py:func:`json.dumps` accepts.

Synopsis
--------

.. code-block:: python

   import json

   from jsonapi_codec.serde.models import DocumentRepr, LinksRepr, ResourceRepr
   from jsonapi_codec.serde.renderer import ReprRenderer

   renderer = ReprRenderer()
   document = DocumentRepr(
       links=LinksRepr(self_="/users/1"),
       data=ResourceRepr(type="users", id="1", attributes={"name": "John Doe"}),
   )
   print(json.dumps(renderer(document)))

"""

import collections.abc
import dataclasses
import datetime
import decimal
import typing
from collections import OrderedDict

from ..casting import encode_buffer
from .models import (
    DocumentRepr,
    ErrorRepr,
    LinkageRepr,
    LinksRepr,
    Missing,
    ResourceIdRepr,
    ResourceRepr,
    SourceRepr,
)
from .utils import JSONPointer

JSONObject = typing.MutableMapping[str, typing.Any]

_MEMBER_NAMES = {"self_": "self"}


class ReprRenderer:
    """
    :param str buffer_encoding: the text encoding for ``bytes`` values.
    :param bool render_decimal_as_str: render :py:class:`decimal.Decimal` as a string rather than a number.
    :param Optional[datetime.tzinfo] assume_naive_timezone_as: the timezone naive datetimes are in.
        :py:const:`None` rejects naive datetimes.
    """

    buffer_encoding: str
    render_decimal_as_str: bool
    assume_naive_timezone_as: typing.Optional[datetime.tzinfo]

    def _render_datetime(self, path: JSONPointer, value: datetime.datetime) -> str:
        if value.tzinfo is None:
            if self.assume_naive_timezone_as is None:
                raise ValueError(f"{path}: naive datetime {value}")
            value = value.replace(tzinfo=self.assume_naive_timezone_as)
        return value.astimezone(datetime.timezone.utc).isoformat()

    def _render_date(self, path: JSONPointer, value: datetime.date) -> str:
        return value.isoformat()

    def _render_decimal(self, path: JSONPointer, value: decimal.Decimal) -> typing.Any:
        return str(value) if self.render_decimal_as_str else float(value)

    def _render_bytes(self, path: JSONPointer, value: typing.Any) -> str:
        return encode_buffer(bytes(value), self.buffer_encoding)

    _scalar_renderers: typing.ClassVar[typing.Dict[type, str]] = {
        datetime.datetime: "_render_datetime",
        datetime.date: "_render_date",
        decimal.Decimal: "_render_decimal",
        bytes: "_render_bytes",
        bytearray: "_render_bytes",
    }

    def render_value(self, path: JSONPointer, value: typing.Any) -> typing.Any:
        """
        Renders an attribute or meta value. ``path`` only serves error messages.
        """
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        # datetime is a subclass of date, so the exact type goes first
        name = self._scalar_renderers.get(type(value))
        if name is None:
            name = next(
                (n for t, n in self._scalar_renderers.items() if isinstance(value, t)), None
            )
        if name is not None:
            return getattr(self, name)(path, value)
        if isinstance(value, collections.abc.Mapping):
            return OrderedDict(
                (str(k), self.render_value(path / str(k), v)) for k, v in value.items()
            )
        elif isinstance(value, (collections.abc.Sequence, collections.abc.Set)):
            return [self.render_value(path[i], v) for i, v in enumerate(value)]
        raise TypeError(f"{path}: unsupported type {value!r}")

    def _render_members(self, path: JSONPointer, repr_: typing.Any) -> JSONObject:
        """
        Renders the set members of a flat representation, in declaration order.
        """
        result: JSONObject = OrderedDict()
        for field in dataclasses.fields(repr_):
            value = getattr(repr_, field.name)
            if value is None or (field.name == "meta" and not value):
                continue
            name = _MEMBER_NAMES.get(field.name, field.name)
            if isinstance(value, (LinksRepr, SourceRepr)):
                value = self._render_members(path / name, value)
            elif field.name == "meta":
                value = self.render_value(path / name, value)
            result[name] = value
        return result

    def _render_identifier(self, path: JSONPointer, repr_: ResourceIdRepr) -> JSONObject:
        result: JSONObject = OrderedDict((("type", repr_.type), ("id", repr_.id)))
        if repr_.meta:
            result["meta"] = self.render_value(path / "meta", repr_.meta)
        return result

    def _render_linkage(self, path: JSONPointer, repr_: LinkageRepr) -> JSONObject:
        result: JSONObject = OrderedDict()
        if repr_.links is not None:
            result["links"] = self._render_members(path / "links", repr_.links)
        if repr_.data is not Missing:
            result["data"] = self._render_data(path / "data", repr_.data)
        if repr_.meta:
            result["meta"] = self.render_value(path / "meta", repr_.meta)
        return result

    def _render_resource(self, path: JSONPointer, repr_: ResourceRepr) -> JSONObject:
        result: JSONObject = OrderedDict((("type", repr_.type), ("id", repr_.id)))
        if repr_.attributes:
            result["attributes"] = self.render_value(path / "attributes", repr_.attributes)
        if repr_.relationships:
            result["relationships"] = OrderedDict(
                (k, self._render_linkage(path / "relationships" / k, v))
                for k, v in repr_.relationships.items()
            )
        if repr_.links is not None:
            result["links"] = self._render_members(path / "links", repr_.links)
        if repr_.meta:
            result["meta"] = self.render_value(path / "meta", repr_.meta)
        return result

    def _render_data(self, path: JSONPointer, data: typing.Any) -> typing.Any:
        if data is None:
            return None
        elif isinstance(data, ResourceRepr):
            return self._render_resource(path, data)
        elif isinstance(data, ResourceIdRepr):
            return self._render_identifier(path, data)
        return [self._render_data(path[i], item) for i, item in enumerate(data)]

    def _render_error(self, path: JSONPointer, repr_: ErrorRepr) -> JSONObject:
        return self._render_members(path, repr_)

    def __call__(self, document: DocumentRepr) -> JSONObject:
        path = JSONPointer()
        result: JSONObject = OrderedDict()
        if document.jsonapi:
            result["jsonapi"] = self.render_value(path / "jsonapi", document.jsonapi)
        if document.meta:
            result["meta"] = self.render_value(path / "meta", document.meta)
        if isinstance(document.links, LinksRepr):
            result["links"] = self._render_members(path / "links", document.links)
        elif document.links is not None:
            result["links"] = OrderedDict(document.links)
        if document.errors:
            result["errors"] = [
                self._render_error(path / "errors" / str(i), e)
                for i, e in enumerate(document.errors)
            ]
        if document.data is not Missing:
            result["data"] = self._render_data(path / "data", document.data)
        if document.included:
            result["included"] = [
                self._render_resource(path / "included" / str(i), r)
                for i, r in enumerate(document.included)
            ]
        return result

    def __init__(
        self,
        buffer_encoding: str = "base64",
        render_decimal_as_str: bool = True,
        assume_naive_timezone_as: typing.Optional[datetime.tzinfo] = datetime.timezone.utc,
    ):
        self.buffer_encoding = buffer_encoding
        self.render_decimal_as_str = render_decimal_as_str
        self.assume_naive_timezone_as = assume_naive_timezone_as
