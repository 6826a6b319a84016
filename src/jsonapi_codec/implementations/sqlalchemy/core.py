"""
Table generation for the SQLAlchemy store. Every resource type gets one table: the
primary key and the to-one links are string columns, attributes get a column of the
matching SQL type, and array fields (array attributes and to-many links) are JSON
columns holding ``NULL`` for an empty array.
"""

import base64
import datetime
import decimal
import typing

import sqlalchemy as sa  # type: ignore

from ...casting import cast_value
from ...inflections import cast_id
from ...models import (
    ResourceAttributeDescriptor,
    ResourceDescriptor,
    ResourceRelationshipDescriptor,
    ResourceTypeRegistry,
)
from ...settings import Options

SQL_TYPES: typing.Mapping[typing.Any, typing.Callable[[], sa.types.TypeEngine]] = {
    str: sa.Text,
    int: sa.BigInteger,
    float: sa.Float,
    bool: sa.Boolean,
    datetime.datetime: sa.DateTime,
    datetime.date: sa.Date,
    bytes: sa.LargeBinary,
    decimal.Decimal: sa.Numeric,
}

ID_LENGTH = 255

_options = Options()


def _to_json_scalar(value: typing.Any) -> typing.Any:
    if isinstance(value, datetime.datetime):
        return _to_utc(value).isoformat()
    elif isinstance(value, datetime.date):
        return value.isoformat()
    elif isinstance(value, decimal.Decimal):
        return str(value)
    elif isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    return value


def _to_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def column_type_for(field: typing.Union[ResourceAttributeDescriptor, ResourceRelationshipDescriptor]):
    if field.is_array:
        return sa.JSON(none_as_null=True)
    elif isinstance(field, ResourceRelationshipDescriptor):
        return sa.String(ID_LENGTH)
    factory = SQL_TYPES.get(field.type)
    return factory() if factory is not None else sa.JSON(none_as_null=True)


class SQLADescriptor:
    """
    Binds a :py:class:`ResourceDescriptor` to its table and converts values between
    records and rows.
    """

    descr: ResourceDescriptor
    table: sa.Table
    primary_key: str

    @property
    def name(self) -> str:
        return self.descr.name

    @property
    def id_column(self) -> sa.Column:
        return self.table.c[self.primary_key]

    def column(self, field: str) -> sa.Column:
        return self.table.c[field]

    def is_array(self, field: str) -> bool:
        field_descr = self.descr.get_field(field)
        return field_descr is not None and field_descr.is_array

    def to_db_id(self, id: typing.Any) -> str:
        return str(id)

    def from_db_id(self, value: typing.Optional[str]) -> typing.Any:
        return None if value is None else cast_id(value)

    def to_db_scalar(self, field: str, value: typing.Any) -> typing.Any:
        """
        Converts a single value, or an element of an array field, to its stored form.
        """
        if value is None:
            return None
        field_descr = self.descr.get_field(field)
        if isinstance(field_descr, ResourceRelationshipDescriptor):
            return self.to_db_id(value)
        assert field_descr is not None
        if field_descr.is_array:
            return _to_json_scalar(value)
        elif isinstance(value, datetime.datetime):
            return _to_utc(value)
        return value

    def to_db(self, field: str, value: typing.Any) -> typing.Any:
        if self.is_array(field):
            if not value:
                return None
            if not isinstance(value, (list, tuple)):
                value = [value]
            return [self.to_db_scalar(field, v) for v in value]
        return self.to_db_scalar(field, value)

    def from_db(self, field: str, value: typing.Any) -> typing.Any:
        field_descr = self.descr.get_field(field)
        if isinstance(field_descr, ResourceRelationshipDescriptor):
            if field_descr.is_array:
                return [self.from_db_id(v) for v in value or ()]
            return self.from_db_id(value)
        assert isinstance(field_descr, ResourceAttributeDescriptor)
        if field_descr.is_array:
            return [cast_value(v, field_descr.type, _options) for v in value or ()]
        elif isinstance(value, datetime.datetime) and value.tzinfo is None:
            return value.replace(tzinfo=datetime.timezone.utc)
        return value

    def to_row(self, record: typing.Mapping[str, typing.Any]) -> typing.Dict[str, typing.Any]:
        row = {self.primary_key: self.to_db_id(record[self.primary_key])}
        for field in self.descr.field_names:
            row[field] = self.to_db(field, record.get(field))
        return row

    def from_row(self, row: typing.Mapping[str, typing.Any]) -> typing.Dict[str, typing.Any]:
        record = {self.primary_key: self.from_db_id(row[self.primary_key])}
        for field in self.descr.field_names:
            record[field] = self.from_db(field, row[field])
        return record

    def __init__(self, descr: ResourceDescriptor, table: sa.Table, primary_key: str):
        self.descr = descr
        self.table = table
        self.primary_key = primary_key


def build_descriptors(
    registry: ResourceTypeRegistry, metadata: sa.MetaData, table_prefix: str = ""
) -> typing.Dict[str, SQLADescriptor]:
    """
    Declares a table per resource type on ``metadata``.
    """
    descrs: typing.Dict[str, SQLADescriptor] = {}
    for name, descr in registry.items():
        columns = [sa.Column(registry.primary_key, sa.String(ID_LENGTH), primary_key=True)]
        for field_name in descr.field_names:
            field = descr.get_field(field_name)
            assert field is not None
            columns.append(sa.Column(field_name, column_type_for(field), nullable=True))
        table = sa.Table(f"{table_prefix}{name}", metadata, *columns)
        descrs[name] = SQLADescriptor(descr, table, registry.primary_key)
    return descrs
