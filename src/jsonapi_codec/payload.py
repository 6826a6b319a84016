import collections.abc
import json
import typing

from .casting import cast_value
from .context import Context, Method
from .exceptions import (
    BadRequestError,
    ConflictError,
    MethodError,
    NotFoundError,
)
from .inflections import cast_id, inbound_key, inbound_type, match_id
from .interfaces import Update
from .models import (
    ResourceDescriptor,
    ResourceRelationshipDescriptor,
    ResourceTypeRegistry,
)
from .serde.utils import JSONPointer
from .settings import RESERVED_KEYS, Options

JSONObject = typing.Mapping[str, typing.Any]


class PayloadParser:
    """
    Turns request payloads into records to create or :py:class:`Update` objects.
    """

    registry: ResourceTypeRegistry
    options: Options

    def decode(self, payload: typing.Any) -> JSONObject:
        """
        Decodes a raw payload, which may already be a mapping, and makes sure it has
        a ``data`` member.

        :raises BadRequestError: if the payload is not valid JSON or lacks ``data``.
        """
        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise BadRequestError(f"Invalid JSON: {e}") from e
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise BadRequestError(f"Invalid JSON: {e}") from e
        if not isinstance(payload, collections.abc.Mapping):
            raise BadRequestError("Payload must be a JSON object.", source=str(JSONPointer()))
        if RESERVED_KEYS.primary not in payload:
            raise BadRequestError(
                f'The "{RESERVED_KEYS.primary}" field is missing.', source=str(JSONPointer())
            )
        return payload

    def _singular_data(self, payload: JSONObject, pointer: JSONPointer) -> JSONObject:
        data = payload[RESERVED_KEYS.primary]
        if isinstance(data, list):
            raise BadRequestError("Data must be singular.", source=str(pointer))
        if not isinstance(data, collections.abc.Mapping):
            raise BadRequestError("Data must be a resource object.", source=str(pointer))
        return data

    def _check_type(self, obj: JSONObject, type_: str, pointer: JSONPointer) -> None:
        if RESERVED_KEYS.type not in obj:
            raise BadRequestError(
                f'The required field "{RESERVED_KEYS.type}" is missing.', source=str(pointer)
            )
        wire_type = obj[RESERVED_KEYS.type]
        if not isinstance(wire_type, str):
            raise BadRequestError(
                f'The field "{RESERVED_KEYS.type}" must be a string.',
                source=str(pointer / RESERVED_KEYS.type),
            )
        if inbound_type(wire_type, self.options, self.registry) != type_:
            raise ConflictError(
                f'Data object field "{RESERVED_KEYS.type}" is invalid, '
                f'"{wire_type}" does not match "{type_}".',
                source=str(pointer / RESERVED_KEYS.type),
            )

    def _map_identifier(
        self, rel: ResourceRelationshipDescriptor, obj: typing.Any, pointer: JSONPointer
    ) -> typing.Any:
        if not isinstance(obj, collections.abc.Mapping):
            raise BadRequestError("A resource identifier must be an object.", source=str(pointer))
        self._check_type(obj, rel.destination, pointer)
        if RESERVED_KEYS.id not in obj:
            raise BadRequestError("ID is unspecified.", source=str(pointer))
        return cast_id(obj[RESERVED_KEYS.id], self.options)

    def _cast_attributes(
        self,
        descr: ResourceDescriptor,
        obj: JSONObject,
        pointer: JSONPointer,
        target: typing.Dict[str, typing.Any],
    ) -> None:
        attributes = obj.get(RESERVED_KEYS.attributes)
        if attributes is None:
            return
        pointer = pointer / RESERVED_KEYS.attributes
        if not isinstance(attributes, collections.abc.Mapping):
            raise BadRequestError("Attributes must be an object.", source=str(pointer))
        for wire_field, value in attributes.items():
            field = inbound_key(wire_field, self.options)
            if field in descr.relationships:
                raise BadRequestError(
                    f'The field "{field}" is a link.', source=str(pointer / wire_field)
                )
            attr = descr.attributes.get(field)
            type_ = attr.type if attr is not None else None
            try:
                if isinstance(value, list):
                    target[field] = [cast_value(v, type_, self.options) for v in value]
                else:
                    target[field] = cast_value(value, type_, self.options)
            except BadRequestError as e:
                raise BadRequestError(e.message, source=str(pointer / wire_field)) from e

    def _map_relationships(
        self,
        descr: ResourceDescriptor,
        obj: JSONObject,
        pointer: JSONPointer,
        target: typing.Dict[str, typing.Any],
    ) -> None:
        relationships = obj.get(RESERVED_KEYS.relationships)
        if relationships is None:
            return
        pointer = pointer / RESERVED_KEYS.relationships
        if not isinstance(relationships, collections.abc.Mapping):
            raise BadRequestError("Relationships must be an object.", source=str(pointer))
        for wire_field, value in relationships.items():
            field = inbound_key(wire_field, self.options)
            field_pointer = pointer / wire_field
            rel = descr.relationships.get(field)
            if rel is None:
                raise BadRequestError(
                    f'The field "{field}" is not a link on the type "{descr.name}".',
                    source=str(field_pointer),
                )
            if not isinstance(value, collections.abc.Mapping) or RESERVED_KEYS.primary not in value:
                raise BadRequestError(
                    f'The "{RESERVED_KEYS.primary}" field is missing.', source=str(field_pointer)
                )
            data = value[RESERVED_KEYS.primary]
            data_pointer = field_pointer / RESERVED_KEYS.primary
            if data is None:
                target[field] = [] if rel.is_array else None
                continue
            if isinstance(data, list):
                ids = [
                    self._map_identifier(rel, item, data_pointer[i]) for i, item in enumerate(data)
                ]
            else:
                ids = [self._map_identifier(rel, data, data_pointer)]
            if rel.is_array:
                target[field] = ids
            elif len(ids) > 1:
                raise BadRequestError(
                    f'The field "{field}" is a to-one link, only one identifier may be given.',
                    source=str(data_pointer),
                )
            else:
                target[field] = ids[0] if ids else None

    def parse_create(self, ctx: Context) -> typing.List[typing.Dict[str, typing.Any]]:
        """
        Builds the records to create.
        """
        if ctx.ids:
            raise MethodError("Can not create with ID in the route.")
        if ctx.related_field is not None:
            raise MethodError("Can not create related record.")
        assert ctx.type is not None

        payload = self.decode(ctx.payload)
        pointer = JSONPointer() / RESERVED_KEYS.primary
        data = self._singular_data(payload, pointer)
        descr = self.registry[ctx.type]

        self._check_type(data, ctx.type, pointer)
        record: typing.Dict[str, typing.Any] = {}
        if RESERVED_KEYS.id in data:
            record[self.registry.primary_key] = cast_id(data[RESERVED_KEYS.id], self.options)
        self._cast_attributes(descr, data, pointer, record)
        self._map_relationships(descr, data, pointer, record)
        return [record]

    def parse_update(self, ctx: Context) -> typing.List[Update]:
        """
        Builds the updates for the records in the route.
        """
        if ctx.relationship:
            return self.update_relationship(ctx)
        if ctx.related_field is not None:
            raise MethodError("Can not update related record indirectly.")
        if not ctx.ids:
            raise BadRequestError("IDs unspecified.")
        assert ctx.type is not None

        payload = self.decode(ctx.payload)
        pointer = JSONPointer() / RESERVED_KEYS.primary
        data = self._singular_data(payload, pointer)
        descr = self.registry[ctx.type]

        if not any(match_id(data, id, self.options) for id in ctx.ids):
            raise ConflictError("Invalid ID.", source=str(pointer / RESERVED_KEYS.id))
        self._check_type(data, ctx.type, pointer)
        replace: typing.Dict[str, typing.Any] = {}
        self._cast_attributes(descr, data, pointer, replace)
        self._map_relationships(descr, data, pointer, replace)
        # no bulk extension, so there is only ever one update
        updates = [Update(id=cast_id(data[RESERVED_KEYS.id], self.options), replace=replace)]

        if len(updates) < len(ctx.ids):
            raise BadRequestError("An update is missing.")
        return updates

    def update_relationship(self, ctx: Context) -> typing.List[Update]:
        """
        Builds the update for a relationship route and rewrites ``ctx`` to address the
        record owning the link.
        """
        assert ctx.original_type is not None and ctx.related_field is not None
        if not ctx.original_ids or len(ctx.original_ids) > 1:
            raise NotFoundError("Can only update relationships for one record at a time.")
        rel = self.registry[ctx.original_type].relationships[ctx.related_field]
        if not rel.is_array and ctx.original_method is not None:
            verb = "push to" if ctx.original_method is Method.CREATE else "pull from"
            raise MethodError(f"Can not {verb} a to-one relationship.")

        payload = self.decode(ctx.payload)
        data = payload[RESERVED_KEYS.primary]
        pointer = JSONPointer() / RESERVED_KEYS.primary

        value: typing.Any
        if rel.is_array:
            if not isinstance(data, list):
                raise BadRequestError("Data must be an array.", source=str(pointer))
            value = [self._map_identifier(rel, item, pointer[i]) for i, item in enumerate(data)]
        else:
            if isinstance(data, list):
                raise BadRequestError("Data must be singular.", source=str(pointer))
            value = None if data is None else self._map_identifier(rel, data, pointer)

        update = Update(id=ctx.original_ids[0])
        if ctx.original_method is Method.CREATE:
            update.push[ctx.related_field] = value
        elif ctx.original_method is Method.DELETE:
            update.pull[ctx.related_field] = value
        else:
            update.replace[ctx.related_field] = value

        ctx.type = ctx.original_type
        ctx.ids = None
        return [update]

    def parse(self, ctx: Context) -> typing.List[typing.Any]:
        if ctx.method is Method.CREATE:
            return self.parse_create(ctx)
        elif ctx.method is Method.UPDATE:
            return self.parse_update(ctx)
        raise MethodError("Method is invalid.")

    def __init__(self, registry: ResourceTypeRegistry, options: Options):
        self.registry = registry
        self.options = options
