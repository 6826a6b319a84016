"""
Turns :py:class:`jsonapi_codec.query.QueryOptions` into SQL. Conditions on scalar
columns become ``WHERE`` and ``ORDER BY`` clauses; conditions on array fields cannot be
expressed portably and are evaluated on the loaded records instead, as are sorts on
the primary key.
"""

import decimal
import functools
import typing

import sqlalchemy as sa  # type: ignore

from ...query import QueryOptions
from .core import SQLADescriptor

Record = typing.Mapping[str, typing.Any]
Predicate = typing.Callable[[Record], bool]


def _length(value: typing.Any) -> int:
    return len(value) if value else 0


def _sort_key(value: typing.Any) -> typing.Tuple[int, typing.Any]:
    # numbers, then strings, then the rest
    if isinstance(value, (int, float, decimal.Decimal)) and not isinstance(value, bool):
        return (0, value)
    elif isinstance(value, str):
        return (1, value)
    return (2, value)


def _in_range(bounds: typing.Sequence[typing.Any], value: typing.Any) -> bool:
    lower, upper = bounds
    if value is None:
        return False
    if lower is not None and value < lower:
        return False
    if upper is not None and value > upper:
        return False
    return True


class QueryPlan:
    """
    The translation of a query for one table. :py:attr:`predicates` is empty when the
    whole query runs in SQL.
    """

    descr: SQLADescriptor
    clauses: typing.List[sa.sql.ColumnElement]
    predicates: typing.List[Predicate]
    order_by: typing.Optional[typing.List[sa.sql.ColumnElement]]
    sort: typing.Optional[typing.Mapping[str, bool]]

    @property
    def runs_in_sql(self) -> bool:
        return not self.predicates and self.order_by is not None

    def _build_match(self, field: str, values: typing.Sequence[typing.Any]) -> None:
        if self.descr.is_array(field):
            wanted = {self.descr.to_db_scalar(field, v) for v in values}
            self.predicates.append(
                lambda record: any(
                    self.descr.to_db_scalar(field, v) in wanted for v in record[field] or ()
                )
            )
        else:
            self.clauses.append(
                self.descr.column(field).in_([self.descr.to_db_scalar(field, v) for v in values])
            )

    def _build_exists(self, field: str, exists: bool) -> None:
        # empty arrays are stored as NULL, so this works for array fields as well
        column = self.descr.column(field)
        self.clauses.append(column.isnot(None) if exists else column.is_(None))

    def _build_range(self, field: str, bounds: typing.Sequence[typing.Any]) -> None:
        if self.descr.is_array(field):
            self.predicates.append(lambda record: _in_range(bounds, _length(record[field])))
            return
        lower, upper = bounds
        column = self.descr.column(field)
        if lower is not None:
            self.clauses.append(column >= self.descr.to_db_scalar(field, lower))
        if upper is not None:
            self.clauses.append(column <= self.descr.to_db_scalar(field, upper))

    def _build_order_by(
        self, sort: typing.Mapping[str, bool]
    ) -> typing.Optional[typing.List[sa.sql.ColumnElement]]:
        order_by = []
        for field, ascending in sort.items():
            if field == self.descr.primary_key or self.descr.is_array(field):
                # ids are stored as text and arrays by content
                return None
            elif field not in self.descr.descr:
                continue
            else:
                column = self.descr.column(field)
            order_by.append(column.asc() if ascending else column.desc())
        return order_by

    def where(self, ids: typing.Optional[typing.Sequence[typing.Any]]) -> typing.List[sa.sql.ColumnElement]:
        clauses = list(self.clauses)
        if ids is not None:
            clauses.append(self.descr.id_column.in_([self.descr.to_db_id(id) for id in ids]))
        return clauses

    def filter(self, records: typing.Iterable[Record]) -> typing.List[Record]:
        return [r for r in records if all(p(r) for p in self.predicates)]

    def sort_records(self, records: typing.List[Record]) -> typing.List[Record]:
        """
        Sorts loaded records. Arrays sort by their length, numbers before strings;
        ``None`` sorts first.
        """
        if not self.sort:
            return records

        def key_of(record: Record, field: str) -> typing.Any:
            value = record.get(field)
            if self.descr.is_array(field):
                return _length(value)
            return value

        def compare(a: Record, b: Record) -> int:
            for field, ascending in (self.sort or {}).items():
                x, y = key_of(a, field), key_of(b, field)
                if x == y:
                    continue
                if x is None:
                    result = -1
                elif y is None:
                    result = 1
                else:
                    result = -1 if _sort_key(x) < _sort_key(y) else 1
                return result if ascending else -result
            return 0

        return sorted(records, key=functools.cmp_to_key(compare))

    def __init__(self, descr: SQLADescriptor, options: typing.Optional[QueryOptions]):
        self.descr = descr
        self.clauses = []
        self.predicates = []
        self.sort = None
        self.order_by = []
        if options is None:
            return
        for field, values in (options.match or {}).items():
            self._build_match(field, values)
        for field, exists in (options.exists or {}).items():
            self._build_exists(field, exists)
        for field, bounds in (options.range or {}).items():
            self._build_range(field, bounds)
        if options.sort:
            self.sort = options.sort
            self.order_by = self._build_order_by(options.sort)
