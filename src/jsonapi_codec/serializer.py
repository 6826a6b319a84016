"""
:py:mod:`jsonapi_codec.serializer` ties the router, the payload parser, the store and
the formatter together.

Synopsis
--------

.. code-block:: python

   from jsonapi_codec import JSONAPISerializer, Request

   serializer = JSONAPISerializer(registry, store, {"prefix": "/api"})
   response = await serializer.handle(
       Request("GET", "/api/users/1", {"Accept": "application/vnd.api+json"})
   )
   print(response.status, response.headers, response.payload)
"""

import logging
import typing

from .context import Context, Method, Request, Response
from .exceptions import JSONAPIError, MethodError
from .formatter import Include, ResponseFormatter
from .interfaces import Record, Store
from .models import ResourceTypeRegistry
from .payload import PayloadParser
from .router import RequestRouter
from .settings import MEDIA_TYPE, Options
from .status import CREATED, EMPTY, OK, STATUS_MAP, allow_header, status_for
from .uri_template import URITemplate

logger = logging.getLogger(__name__)


class JSONAPISerializer:
    """
    Serves JSON:API requests against a :py:class:`jsonapi_codec.interfaces.Store`.

    :param ResourceTypeRegistry registry: the resource types.
    :param Store store: the storage backend.
    :param options: an :py:class:`Options` instance, or a mapping it is built from.
    """

    media_type: typing.ClassVar[str] = MEDIA_TYPE

    registry: ResourceTypeRegistry
    store: Store
    options: Options
    uri_template: URITemplate
    router: RequestRouter
    payload_parser: PayloadParser
    formatter: ResponseFormatter

    async def process_request(self, request: Request) -> Context:
        return await self.router(request)

    def parse_payload(self, ctx: Context) -> typing.List[typing.Any]:
        """
        Parses the payload of a create or update request. The result is also stored
        as ``ctx.payload``.
        """
        ctx.payload = self.payload_parser.parse(ctx)
        return ctx.payload

    def _response(
        self, status: int, headers: typing.Dict[str, str], payload: typing.Optional[str]
    ) -> Response:
        if payload is not None:
            headers["Content-Type"] = MEDIA_TYPE
        return Response(status=status, headers=headers, payload=payload)

    def process_response(
        self,
        ctx: Context,
        records: typing.Sequence[Record],
        count: typing.Optional[int] = None,
        include: typing.Optional[Include] = None,
        update_modified: bool = False,
    ) -> Response:
        document, headers = self.formatter.show_response(
            ctx, records, count=count, include=include, update_modified=update_modified
        )
        if document is None:
            return self._response(STATUS_MAP[EMPTY], headers, None)
        status = STATUS_MAP[CREATED] if ctx.method is Method.CREATE else STATUS_MAP[OK]
        return self._response(status, headers, self.formatter.render(document))

    def show_index(self) -> Response:
        return self._response(
            STATUS_MAP[OK], {}, self.formatter.render(self.formatter.show_index())
        )

    def process_error(self, error: BaseException) -> Response:
        return self._response(
            status_for(error),
            self.formatter.error_headers(error),
            self.formatter.render(self.formatter.show_error(error)),
        )

    async def _dispatch(self, ctx: Context) -> Response:
        assert ctx.type is not None
        if ctx.method is Method.FIND:
            result = await self.store.find(ctx.type, ctx.ids, ctx.options, ctx.meta)
            logger.debug("found %d of %d %s record(s)", len(result.records), result.count, ctx.type)
            return self.process_response(ctx, result.records, result.count, result.include)
        elif ctx.method is Method.CREATE:
            records = await self.store.create(ctx.type, self.parse_payload(ctx), ctx.meta)
            logger.debug("created %d %s record(s)", len(records), ctx.type)
            return self.process_response(ctx, records)
        elif ctx.method is Method.UPDATE:
            updates = self.parse_payload(ctx)
            assert ctx.type is not None
            modified = await self.store.update(ctx.type, updates, ctx.meta)
            logger.debug("modified %d %s record(s)", modified, ctx.type)
            if ctx.relationship or not modified:
                return self.process_response(ctx, ())
            result = await self.store.find(ctx.type, ctx.ids, ctx.options, ctx.meta)
            return self.process_response(ctx, result.records, update_modified=True)
        elif ctx.method is Method.DELETE:
            records = await self.store.delete(ctx.type, ctx.ids, ctx.meta)
            logger.debug("deleted %d %s record(s)", len(records), ctx.type)
            return self.process_response(ctx, records)
        raise MethodError("Method is invalid.")

    async def handle(self, request: Request) -> Response:
        """
        Runs the whole pipeline for ``request``. Errors never escape; they are turned
        into error documents.
        """
        ctx: typing.Optional[Context] = None
        try:
            ctx = await self.process_request(request)
            if ctx.method is None:
                assert ctx.allow is not None
                return self._response(STATUS_MAP[EMPTY], {"Allow": allow_header(ctx.allow)}, None)
            if ctx.is_index:
                return self.show_index()
            return await self._dispatch(ctx)
        except JSONAPIError as e:
            logger.debug("%s %s failed: %s: %s", request.method, request.url, e.title, e)
            if isinstance(e, MethodError) and e.allow is None and ctx is not None:
                e.allow = self.router.allowed_methods(ctx.uri_object)
            return self.process_error(e)
        except Exception as e:
            logger.exception("unexpected error while handling %s %s", request.method, request.url)
            return self.process_error(e)

    def __init__(
        self,
        registry: ResourceTypeRegistry,
        store: Store,
        options: typing.Union[Options, typing.Mapping[str, typing.Any], None] = None,
    ):
        if options is None:
            options = Options()
        elif not isinstance(options, Options):
            options = Options.from_mapping(options)
        self.registry = registry
        self.store = store
        self.options = options
        self.uri_template = URITemplate(options.uri_template)
        self.router = RequestRouter(registry, store, options, self.uri_template)
        self.payload_parser = PayloadParser(registry, options)
        self.formatter = ResponseFormatter(registry, options, self.uri_template)
