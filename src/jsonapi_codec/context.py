import dataclasses
import enum
import typing

from .query import QueryOptions


class Method(enum.Enum):
    FIND = "find"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


METHOD_MAP: typing.Mapping[str, Method] = {
    "GET": Method.FIND,
    "POST": Method.CREATE,
    "PATCH": Method.UPDATE,
    "DELETE": Method.DELETE,
}


class Headers(typing.Dict[str, str]):
    """
    A dictionary of HTTP headers looked up without regard to case.
    """

    def _find(self, name: str) -> typing.Optional[str]:
        lname = name.lower()
        for k in super().keys():
            if k.lower() == lname:
                return k
        return None

    def __getitem__(self, name: str) -> str:
        k = self._find(name)
        if k is None:
            raise KeyError(name)
        return super().__getitem__(k)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._find(name) is not None

    def get(self, name: str, default: typing.Optional[str] = None) -> typing.Optional[str]:  # type: ignore
        k = self._find(name)
        return default if k is None else super().__getitem__(k)


@dataclasses.dataclass
class Request:
    """
    A transport-neutral HTTP request.
    """

    method: str
    url: str
    headers: typing.Mapping[str, str] = dataclasses.field(default_factory=Headers)
    body: typing.Union[bytes, str, typing.Mapping[str, typing.Any], None] = None

    def __post_init__(self):
        self.method = self.method.upper()
        if not isinstance(self.headers, Headers):
            self.headers = Headers(self.headers)


@dataclasses.dataclass
class Response:
    status: int
    headers: typing.Dict[str, str] = dataclasses.field(default_factory=dict)
    payload: typing.Optional[str] = None
    """
    The serialized document; ``None`` for a response without a body.
    """


@dataclasses.dataclass
class Context:
    """
    Describes the operation a request asks for, as worked out by the router.
    """

    method: typing.Optional[Method]
    """
    ``None`` for an ``OPTIONS`` request.
    """
    type: typing.Optional[str] = None
    """
    The type operated on. On a related or relationship route this is the type on the
    other side of the link.
    """
    ids: typing.Optional[typing.List[typing.Any]] = None
    related_field: typing.Optional[str] = None
    relationship: bool = False
    original_type: typing.Optional[str] = None
    original_ids: typing.Optional[typing.List[typing.Any]] = None
    original_method: typing.Optional[Method] = None
    options: QueryOptions = dataclasses.field(default_factory=QueryOptions)
    uri_object: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    payload: typing.Any = None
    allow: typing.Optional[typing.Sequence[str]] = None
    """
    Set on an ``OPTIONS`` request to the methods allowed on the URI.
    """
    meta: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    """
    Request metadata handed over to the store.
    """

    @property
    def is_index(self) -> bool:
        return self.type is None
