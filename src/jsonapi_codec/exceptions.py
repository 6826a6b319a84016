import abc
import typing

Source = typing.Union[str, typing.Mapping[str, str]]


class JSONAPICodecException(Exception, metaclass=abc.ABCMeta):
    pass


class InvalidDeclarationError(JSONAPICodecException):
    message: str

    def __str__(self):
        return self.message

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class JSONAPIError(JSONAPICodecException):
    """
    The base class of the protocol-level errors. The class name is the error kind;
    it ends up as the ``title`` of the rendered error object, while :py:attr:`message`
    becomes its ``detail``.
    """

    message: typing.Optional[str]
    meta: typing.Dict[str, typing.Any]
    code: typing.Optional[str]
    _source: typing.Optional[Source]

    @property
    def title(self) -> str:
        return type(self).__name__

    @property
    def source(self) -> typing.Optional[typing.Mapping[str, str]]:
        """
        The ``source`` member of the error object. A bare string is taken as a JSON pointer.
        """
        if self._source is None:
            return None
        elif isinstance(self._source, str):
            return {"pointer": self._source}
        else:
            return self._source

    def __str__(self):
        return self.message or ""

    def __init__(
        self,
        message: typing.Optional[str] = None,
        *,
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
        source: typing.Optional[Source] = None,
        code: typing.Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.meta = meta if meta is not None else {}
        self._source = source
        self.code = code


class BadRequestError(JSONAPIError):
    pass


class UnauthorizedError(JSONAPIError):
    pass


class ForbiddenError(JSONAPIError):
    pass


class NotFoundError(JSONAPIError):
    pass


class MethodError(JSONAPIError):
    allow: typing.Optional[typing.Sequence[str]]

    def __init__(
        self,
        message: typing.Optional[str] = None,
        *,
        allow: typing.Optional[typing.Sequence[str]] = None,
        meta: typing.Optional[typing.Dict[str, typing.Any]] = None,
        source: typing.Optional[Source] = None,
        code: typing.Optional[str] = None,
    ):
        super().__init__(message, meta=meta, source=source, code=code)
        self.allow = allow


class NotAcceptableError(JSONAPIError):
    pass


class ConflictError(JSONAPIError):
    pass


class UnsupportedError(JSONAPIError):
    pass


class UnprocessableError(JSONAPIError):
    pass
