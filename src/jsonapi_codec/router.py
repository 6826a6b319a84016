import logging
import re
import typing

from .context import METHOD_MAP, Context, Method, Request
from .exceptions import MethodError, NotAcceptableError, NotFoundError, UnsupportedError
from .inflections import cast_id, inbound_key, inbound_type
from .interfaces import Store
from .models import ResourceTypeRegistry
from .query import QueryOptions, parse_query
from .settings import MEDIA_TYPE, RESERVED_KEYS, Options
from .uri_template import URITemplate

logger = logging.getLogger(__name__)

ACCEPT_PATTERN = re.compile(re.escape(MEDIA_TYPE) + r"(?!;)")

PATH_VARIABLES = ("type", "ids", "relatedField", "relationship")


def _has_body(body: typing.Any) -> bool:
    if body is None:
        return False
    elif isinstance(body, (bytes, str)):
        return len(body.strip()) > 0
    return True


def _single(value: typing.Any, what: str) -> typing.Optional[str]:
    if isinstance(value, list):
        raise NotFoundError(f"Only one {what} may be given in the URI.")
    return value


class RequestRouter:
    """
    Works out the operation a :py:class:`jsonapi_codec.context.Request` asks for.

    :param ResourceTypeRegistry registry: the resource types.
    :param Store store: the store consulted for the identifiers on the other side of a link.
    :param Options options: the codec configuration.
    :param URITemplate uri_template: the route template.
    """

    registry: ResourceTypeRegistry
    store: Store
    options: Options
    uri_template: URITemplate

    def _negotiate(self, request: Request) -> None:
        accept = request.headers.get("Accept")
        if accept and MEDIA_TYPE in accept and ACCEPT_PATTERN.search(accept) is None:
            raise NotAcceptableError(
                'The "Accept" header should contain at least one instance of the JSON '
                "media type without any media type parameters."
            )
        if request.method in ("POST", "PATCH", "DELETE") and _has_body(request.body):
            content_type = request.headers.get("Content-Type")
            if content_type is None or content_type.strip() != MEDIA_TYPE:
                raise UnsupportedError(
                    f'The "Content-Type" header must be "{MEDIA_TYPE}" without any media '
                    "type parameters."
                )

    def strip_prefix(self, url: str) -> str:
        prefix = self.options.prefix
        if prefix and url.startswith(prefix):
            return url[len(prefix) :]
        return url

    def allowed_methods(self, uri_object: typing.Mapping[str, typing.Any]) -> typing.Sequence[str]:
        """
        Returns the methods allowed on a parsed URI, going by how many of its path
        variables are set.
        """
        degree = sum(1 for k, v in uri_object.items() if k != "query" and v)
        if degree >= len(self.options.allow_level):
            raise NotFoundError("Invalid URI.")
        return self.options.allow_level[degree]

    def parse_uri(self, url: str) -> typing.Tuple[typing.Dict[str, typing.Any], typing.Optional[str]]:
        """
        Parses ``url`` into its variables and the internal name of the routed type.

        :raises NotFoundError: if the URI does not match the template or names an unknown type.
        """
        url = self.strip_prefix(url)
        uri_object = self.uri_template.parse(url)
        if not uri_object and len(url) > 1:
            raise NotFoundError("Invalid URI.")
        wire_type = _single(uri_object.get("type"), "type")
        if not wire_type:
            return uri_object, None
        type_ = inbound_type(wire_type, self.options, self.registry)
        if type_ not in self.registry:
            raise NotFoundError(f'The type "{wire_type}" does not exist.')
        return uri_object, type_

    async def _resolve_related(self, ctx: Context, related_field: str) -> None:
        assert ctx.type is not None
        descr = self.registry[ctx.type]
        rel = descr.relationships.get(related_field)
        if rel is None or rel.denormalized_inverse:
            raise NotFoundError(
                f'The field "{related_field}" is not a link on the type "{ctx.type}".'
            )

        result = await self.store.find(
            ctx.type, ctx.ids, QueryOptions(fields={related_field: True}), ctx.meta
        )
        related_ids: typing.List[typing.Any] = []
        seen: typing.Set[typing.Any] = set()
        for record in result.records:
            value = record.get(related_field)
            for id in value if isinstance(value, (list, tuple)) else [value]:
                if id is not None and id not in seen:
                    seen.add(id)
                    related_ids.append(id)
        logger.debug(
            "%s %r of %s resolved to %s %r",
            related_field,
            ctx.ids,
            ctx.type,
            rel.destination,
            related_ids,
        )

        ctx.related_field = related_field
        ctx.original_type = ctx.type
        ctx.original_ids = ctx.ids
        ctx.type = rel.destination
        ctx.ids = related_ids

    async def __call__(self, request: Request) -> Context:
        """
        Builds the :py:class:`Context` for ``request``. Consults the store when the
        URI traverses a link.

        :raises JSONAPIError: if the request cannot be routed.
        """
        self._negotiate(request)

        uri_object, type_ = self.parse_uri(request.url)
        allowed = self.allowed_methods(uri_object)

        if request.method == "OPTIONS":
            uri_object.pop("query", None)
            return Context(method=None, type=type_, uri_object=uri_object, allow=allowed)

        method = METHOD_MAP.get(request.method)
        if method is None or request.method not in allowed:
            raise MethodError(
                f'The method "{request.method}" is not allowed on this route.', allow=allowed
            )

        ctx = Context(method=method, type=type_, uri_object=uri_object, payload=request.body)
        if type_ is None:
            return ctx

        ids = uri_object.get("ids")
        if ids is not None:
            ctx.ids = [cast_id(id, self.options) for id in (ids if isinstance(ids, list) else [ids])]

        related_field = _single(uri_object.get("relatedField"), "field")
        relationship = _single(uri_object.get("relationship"), "relationship")
        if relationship:
            if related_field != RESERVED_KEYS.relationships:
                raise NotFoundError("Invalid relationship URI.")
            if method in (Method.CREATE, Method.DELETE):
                ctx.original_method = method
                ctx.method = Method.UPDATE
            ctx.relationship = True
            related_field = relationship

        if related_field:
            await self._resolve_related(ctx, inbound_key(related_field, self.options))

        assert ctx.type is not None
        ctx.options = parse_query(uri_object.get("query") or {}, self.registry[ctx.type], self.options)
        logger.debug(
            "%s %s routed to %s %s %r", request.method, request.url, ctx.method, ctx.type, ctx.ids
        )
        return ctx

    def __init__(
        self,
        registry: ResourceTypeRegistry,
        store: Store,
        options: Options,
        uri_template: typing.Optional[URITemplate] = None,
    ):
        self.registry = registry
        self.store = store
        self.options = options
        self.uri_template = (
            uri_template if uri_template is not None else URITemplate(options.uri_template)
        )
