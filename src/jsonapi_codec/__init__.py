from .context import Context, Method, Request, Response  # noqa
from .exceptions import (  # noqa
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidDeclarationError,
    JSONAPICodecException,
    JSONAPIError,
    MethodError,
    NotAcceptableError,
    NotFoundError,
    UnauthorizedError,
    UnprocessableError,
    UnsupportedError,
)
from .interfaces import FindResult, Store, Update  # noqa
from .models import ResourceTypeRegistry  # noqa
from .query import QueryOptions  # noqa
from .serializer import JSONAPISerializer  # noqa
from .settings import MEDIA_TYPE, Options  # noqa
