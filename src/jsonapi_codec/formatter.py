"""
:py:mod:`jsonapi_codec.formatter` turns store results into JSON:API documents.

The documents are assembled with the builders of :py:mod:`jsonapi_codec.serde.builders`
and turned into JSON by :py:class:`jsonapi_codec.serde.renderer.ReprRenderer`.
"""

import json
import typing
import urllib.parse

from .context import Context, Method
from .exceptions import BadRequestError, JSONAPIError, MethodError, NotFoundError
from .inflections import outbound_key, outbound_type
from .interfaces import Record
from .models import (
    ResourceAttributeDescriptor,
    ResourceRelationshipDescriptor,
    ResourceTypeRegistry,
)
from .serde.builders import (
    DocumentBuilder,
    ResourceReprBuilder,
    build_error_document,
    build_index_document,
)
from .serde.models import DocumentRepr, ErrorRepr, LinksRepr, ResourceRepr, SourceRepr
from .serde.renderer import ReprRenderer
from .settings import RESERVED_KEYS, Options
from .status import allow_header, status_for
from .uri_template import URITemplate

ENCODED_PAGE_OFFSET = urllib.parse.quote(RESERVED_KEYS.page_offset, safe="")
ENCODED_PAGE_LIMIT = urllib.parse.quote(RESERVED_KEYS.page_limit, safe="")

Headers = typing.Dict[str, str]
Include = typing.Mapping[str, typing.Sequence[Record]]


class ResponseFormatter:
    """
    Builds response documents.

    :param ResourceTypeRegistry registry: the resource types.
    :param Options options: the codec configuration.
    :param URITemplate uri_template: the template links are generated from.
    """

    registry: ResourceTypeRegistry
    options: Options
    uri_template: URITemplate
    renderer: ReprRenderer

    def link(
        self,
        type: str,
        ids: typing.Optional[typing.Sequence[typing.Any]] = None,
        related_field: typing.Optional[str] = None,
        relationship: typing.Optional[str] = None,
        query: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> str:
        """
        Generates a link. ``type`` and the field names are internal names; they are
        inflected here.
        """
        values: typing.Dict[str, typing.Any] = {"type": outbound_type(type, self.options)}
        if ids is not None:
            values["ids"] = list(ids)
        if relationship is not None:
            values["relatedField"] = RESERVED_KEYS.relationships
            values["relationship"] = outbound_key(relationship, self.options)
        elif related_field is not None:
            values["relatedField"] = outbound_key(related_field, self.options)
        if query:
            values["query"] = query
        return self.options.prefix + self.uri_template.fill(values)

    def _add_resource(
        self, add: typing.Callable[[str, str], ResourceReprBuilder], type: str, record: Record
    ) -> None:
        descr = self.registry[type]
        primary_key = self.registry.primary_key
        id = record[primary_key]
        builder = add(outbound_type(type, self.options), str(id))
        builder.links = LinksRepr(self_=self.link(type, [id]))

        fields = list(descr.field_names)
        fields.extend(k for k in record.keys() if k not in descr)

        for field in fields:
            if field == primary_key:
                continue
            field_descr = descr.get_field(field)
            has_field = field in record
            wire_field = outbound_key(field, self.options)

            if field_descr is None:
                builder.add_meta(wire_field, record[field])
            elif isinstance(field_descr, ResourceAttributeDescriptor):
                if has_field:
                    builder.add_attribute(wire_field, record[field])
            else:
                assert isinstance(field_descr, ResourceRelationshipDescriptor)
                self._populate_relationship(builder, type, id, field_descr, record)

    def _populate_relationship(
        self,
        builder: ResourceReprBuilder,
        type: str,
        id: typing.Any,
        rel: ResourceRelationshipDescriptor,
        record: Record,
    ) -> None:
        wire_field = outbound_key(rel.name, self.options)
        destination = outbound_type(rel.destination, self.options)
        links = LinksRepr(
            self_=self.link(type, [id], relationship=rel.name),
            related=self.link(type, [id], related_field=rel.name),
        )
        linkage = builder.relationship(wire_field, rel.is_array)
        linkage.links = links
        if rel.name in record:
            linkage.set_empty()
            value = record[rel.name]
            if not rel.is_array:
                value = () if value is None else (value,)
            for related_id in value or ():
                linkage.add(destination, str(related_id))

    def map_record(self, type: str, record: Record) -> ResourceRepr:
        """
        Maps a record to a resource object. The identifier is stringified; declared
        attributes become ``attributes``, undeclared fields end up in ``meta``, and link
        fields become ``relationships`` carrying linkage only when the record has the field.
        """
        builder = DocumentBuilder(singular=True)
        self._add_resource(builder.add_resource, type, record)
        return typing.cast(ResourceRepr, builder().data)

    def _populate_included(
        self,
        builder: DocumentBuilder,
        primary_type: str,
        records: typing.Sequence[Record],
        include: typing.Optional[Include],
    ) -> None:
        if not include:
            return
        primary_key = self.registry.primary_key
        seen = {(primary_type, str(record[primary_key])) for record in records}
        for type, included in include.items():
            for record in included:
                key = (type, str(record[primary_key]))
                if key in seen:
                    continue
                seen.add(key)
                self._add_resource(builder.add_included, type, record)

    def _pagination_links(self, ctx: Context, count: int) -> LinksRepr:
        assert ctx.type is not None
        query = dict(ctx.uri_object.get("query") or {})
        links = LinksRepr(self_=self.link(ctx.type, query=query))
        limit = typing.cast(int, ctx.options.limit)
        if count > limit:
            offset = ctx.options.offset or 0
            query.pop(RESERVED_KEYS.page_offset, None)
            query.pop(RESERVED_KEYS.page_limit, None)
            paged = self.link(ctx.type, query=query) + ("&" if query else "?")

            def page(offset: int) -> str:
                return f"{paged}{ENCODED_PAGE_OFFSET}={offset}&{ENCODED_PAGE_LIMIT}={limit}"

            links.first = page(0)
            links.last = page((count - 1) // limit * limit)
            if offset + limit < count:
                links.next = page((offset // limit + 1) * limit)
            if offset >= limit:
                links.prev = page((offset // limit - 1) * limit)
        return links

    def show_relationship(
        self, ctx: Context, records: typing.Sequence[Record]
    ) -> typing.Optional[DocumentRepr]:
        assert ctx.original_type is not None and ctx.related_field is not None
        assert ctx.type is not None
        if ctx.original_ids is not None and len(ctx.original_ids) > 1:
            raise BadRequestError("Can only show relationships for one record at a time.")
        if ctx.method is not Method.FIND:
            return None

        links = LinksRepr(
            self_=self.link(ctx.original_type, ctx.original_ids, relationship=ctx.related_field),
            related=self.link(ctx.original_type, ctx.original_ids, related_field=ctx.related_field),
        )
        rel = self.registry[ctx.original_type].relationships[ctx.related_field]
        destination = outbound_type(ctx.type, self.options)
        primary_key = self.registry.primary_key

        builder = DocumentBuilder(self.options.jsonapi, singular=not rel.is_array)
        for record in records:
            builder.add_identifier(destination, str(record[primary_key]))
        builder.links = links
        return builder()

    def show_response(
        self,
        ctx: Context,
        records: typing.Sequence[Record],
        count: typing.Optional[int] = None,
        include: typing.Optional[Include] = None,
        update_modified: bool = False,
    ) -> typing.Tuple[typing.Optional[DocumentRepr], Headers]:
        """
        Builds the document responding to ``ctx``, together with the headers to add.
        The document is ``None`` when the response has no body.

        :raises NotFoundError: if records were requested by identifier and none was found.
        """
        headers: Headers = {}
        if ctx.relationship:
            return self.show_relationship(ctx, records), headers

        if ctx.ids and ctx.method is Method.FIND and ctx.related_field is None and not records:
            raise NotFoundError("No records match the request.")

        if ctx.method is Method.DELETE or (ctx.method is Method.UPDATE and not update_modified):
            return None, headers

        assert ctx.type is not None
        to_many_traversal = False
        if ctx.original_type is not None and ctx.related_field is not None:
            to_many_traversal = self.registry[ctx.original_type].relationships[
                ctx.related_field
            ].is_array

        singular = not to_many_traversal and bool(records) and (
            (ctx.ids is not None and len(ctx.ids) == 1)
            or (ctx.method is Method.CREATE and len(records) == 1)
        )

        if ctx.related_field is not None and not to_many_traversal and not records:
            singular = True
        builder = DocumentBuilder(self.options.jsonapi, singular=singular)
        for record in records:
            self._add_resource(builder.add_resource, ctx.type, record)

        if ctx.ids is None and ctx.method is Method.FIND:
            count = len(records) if count is None else count
            builder.meta["count"] = count
            builder.links = self._pagination_links(ctx, count)
        elif ctx.ids is not None and records:
            builder.links = LinksRepr(self_=self.link(ctx.type, ctx.ids))

        if ctx.related_field is not None:
            assert ctx.original_type is not None
            builder.links = LinksRepr(
                self_=self.link(ctx.original_type, ctx.original_ids, related_field=ctx.related_field)
            )

        if ctx.method is Method.CREATE and records:
            primary_key = self.registry.primary_key
            headers["Location"] = self.link(ctx.type, [r[primary_key] for r in records])

        self._populate_included(builder, ctx.type, records, include)
        return builder(), headers

    def show_index(self) -> DocumentRepr:
        return build_index_document(
            ((outbound_type(type, self.options), self.link(type)) for type in self.registry),
            self.options.jsonapi,
        )

    def show_error(self, error: BaseException) -> DocumentRepr:
        status = status_for(error)
        if isinstance(error, JSONAPIError):
            source = error.source
            repr_ = ErrorRepr(
                title=error.title,
                detail=error.message or None,
                status=str(status),
                code=error.code,
                meta=dict(error.meta),
                source=SourceRepr(
                    pointer=source.get("pointer"), parameter=source.get("parameter")
                )
                if source
                else None,
            )
        else:
            repr_ = ErrorRepr(title="Error", detail=str(error) or None, status=str(status))
        return build_error_document(repr_, self.options.jsonapi)

    def error_headers(self, error: BaseException) -> Headers:
        if isinstance(error, MethodError) and error.allow:
            return {"Allow": allow_header(error.allow)}
        return {}

    def render(self, document: DocumentRepr) -> str:
        return json.dumps(
            self.renderer(document), indent=self.options.json_spaces, ensure_ascii=False
        )

    def __init__(
        self,
        registry: ResourceTypeRegistry,
        options: Options,
        uri_template: typing.Optional[URITemplate] = None,
    ):
        self.registry = registry
        self.options = options
        self.uri_template = (
            uri_template if uri_template is not None else URITemplate(options.uri_template)
        )
        self.renderer = ReprRenderer(buffer_encoding=options.buffer_encoding)
