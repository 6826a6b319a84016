import typing


def _escape(component: str) -> str:
    return component.replace("~", "~0").replace("/", "~1")


def _unescape(component: str) -> str:
    return component.replace("~1", "/").replace("~0", "~")


class JSONPointer:
    """
    An immutable JSON pointer (RFC 6901) used to locate a node of a document.

    .. code-block:: python

       >>> str(JSONPointer() / "data" / "attributes" / "first-name")
       '/data/attributes/first-name'
       >>> str((JSONPointer() / "data")[0])
       '/data/0'
    """

    components: typing.Tuple[str, ...]

    def __truediv__(self, component: str) -> "JSONPointer":
        return JSONPointer(components=self.components + (component,))

    def __getitem__(self, index: int) -> "JSONPointer":
        return JSONPointer(components=self.components + (str(index),))

    def __str__(self) -> str:
        if not self.components:
            return "/"
        return "".join("/" + _escape(c) for c in self.components)

    def __repr__(self) -> str:
        return f"JSONPointer({str(self)!r})"

    def __eq__(self, that: object) -> bool:
        if isinstance(that, JSONPointer):
            return self.components == that.components
        elif isinstance(that, str):
            return str(self) == that
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.components)

    def __init__(
        self,
        path: typing.Optional[str] = None,
        *,
        components: typing.Optional[typing.Sequence[str]] = None,
    ):
        if components is not None:
            self.components = tuple(components)
        elif path is None or path in ("", "/"):
            self.components = ()
        else:
            if not path.startswith("/"):
                raise ValueError(f"invalid JSON pointer: {path!r}")
            self.components = tuple(_unescape(c) for c in path[1:].split("/"))
