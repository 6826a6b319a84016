"""
This module contains the interface definitions that need to be implemented by
the storage backend the codec talks to.

"""
import abc
import dataclasses
import typing

from .query import QueryOptions

Record = typing.Mapping[str, typing.Any]
"""
A plain mapping of field names to values. The primary key is one of the fields.
"""


@dataclasses.dataclass
class FindResult:
    records: typing.Sequence[Record]
    """
    The records found, after offset and limit were applied.
    """
    count: int
    """
    The number of records matching the query regardless of offset and limit.
    """
    include: typing.Optional[typing.Mapping[str, typing.Sequence[Record]]] = None
    """
    Records reached by following the requested include paths, keyed by type name.
    """


@dataclasses.dataclass
class Update:
    """
    A change to a single record. Plain updates only use :py:attr:`replace`, while
    relationship updates use exactly one of the three operations on a single link field.
    """

    id: typing.Any
    replace: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    """
    Field name to the new value.
    """
    push: typing.Dict[str, typing.List[typing.Any]] = dataclasses.field(default_factory=dict)
    """
    Field name to the values to append to an array field.
    """
    pull: typing.Dict[str, typing.List[typing.Any]] = dataclasses.field(default_factory=dict)
    """
    Field name to the values to remove from an array field.
    """


class Store(metaclass=abc.ABCMeta):
    """
    The storage backend. Every operation is a coroutine; errors derived from
    :py:class:`jsonapi_codec.exceptions.JSONAPIError` end up as error responses.
    """

    @abc.abstractmethod
    async def find(
        self,
        type: str,
        ids: typing.Optional[typing.Sequence[typing.Any]] = None,
        options: typing.Optional[QueryOptions] = None,
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> FindResult:
        """
        Finds records of ``type``.

        :param str type: the resource type name.
        :param Optional[Sequence[Any]] ids: the identifiers to look up. ``None`` means the whole collection, while an empty sequence matches nothing.
        :param Optional[QueryOptions] options: filtering, sorting, paging, sparse fields and includes.
        :param Optional[Mapping[str, Any]] meta: request metadata.
        :return: a :py:class:`FindResult`.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    async def create(
        self,
        type: str,
        records: typing.Sequence[Record],
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> typing.Sequence[Record]:
        """
        Creates records of ``type`` and returns them as stored.

        :raises ConflictError: if a record with the same identifier exists.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    async def update(
        self,
        type: str,
        updates: typing.Sequence[Update],
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> int:
        """
        Applies ``updates`` and returns the number of records modified.
        """
        ...  # pragma: nocover

    @abc.abstractmethod
    async def delete(
        self,
        type: str,
        ids: typing.Optional[typing.Sequence[typing.Any]] = None,
        meta: typing.Optional[typing.Mapping[str, typing.Any]] = None,
    ) -> typing.Sequence[Record]:
        """
        Deletes the records of ``type`` with the given ``ids`` and returns them.

        :raises NotFoundError: if no record matched.
        """
        ...  # pragma: nocover
