import typing

from .exceptions import JSONAPIError

STATUS_MAP: typing.Mapping[str, int] = {
    "Error": 500,
    "UnprocessableError": 422,
    "UnsupportedError": 415,
    "ConflictError": 409,
    "NotAcceptableError": 406,
    "MethodError": 405,
    "NotFoundError": 404,
    "ForbiddenError": 403,
    "UnauthorizedError": 401,
    "BadRequestError": 400,
    "Empty": 204,
    "Created": 201,
    "OK": 200,
}

EMPTY = "Empty"
CREATED = "Created"
OK = "OK"


def status_for(kind: typing.Union[str, BaseException]) -> int:
    """
    Returns the HTTP status code for an error kind or an exception.

    An exception is resolved through its class hierarchy, so that a subclass of
    :py:class:`jsonapi_codec.exceptions.NotFoundError` still maps to 404.
    Anything unknown is a generic error.
    """
    if isinstance(kind, str):
        return STATUS_MAP.get(kind, STATUS_MAP["Error"])
    if isinstance(kind, JSONAPIError):
        for class_ in type(kind).__mro__:
            status = STATUS_MAP.get(class_.__name__)
            if status is not None:
                return status
    return STATUS_MAP["Error"]


def allow_header(allowed: typing.Iterable[str]) -> str:
    return ", ".join(allowed)
