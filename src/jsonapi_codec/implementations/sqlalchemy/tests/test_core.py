import datetime
import decimal

import pytest
import sqlalchemy as sa  # type: ignore

from ....models import ResourceTypeRegistry
from ....tests.testing import make_registry


@pytest.fixture
def descrs():
    from ..core import build_descriptors

    return build_descriptors(make_registry(), sa.MetaData(), table_prefix="t_")


def test_tables(descrs):
    table = descrs["user"].table
    assert table.name == "t_user"
    assert [c.name for c in table.primary_key.columns] == ["id"]
    assert isinstance(table.c.id.type, sa.String)
    assert isinstance(table.c.name.type, sa.Text)
    assert isinstance(table.c.birthday.type, sa.Date)
    assert isinstance(table.c.createdAt.type, sa.DateTime)
    assert isinstance(table.c.picture.type, sa.LargeBinary)
    assert isinstance(table.c.nicknames.type, sa.JSON)
    assert isinstance(table.c.spouse.type, sa.String)
    assert isinstance(table.c.ownedPets.type, sa.JSON)
    assert descrs["animal"].table.c.isNeutered.type.python_type is bool


def test_column_types():
    from ..core import column_type_for

    registry = ResourceTypeRegistry.from_definitions(
        {
            "thing": {
                "count": {"type": int},
                "ratio": {"type": float},
                "price": {"type": decimal.Decimal},
                "doc": {"type": dict},
                "anything": {},
            }
        }
    )
    fields = registry["thing"].attributes
    assert isinstance(column_type_for(fields["count"]), sa.BigInteger)
    assert isinstance(column_type_for(fields["ratio"]), sa.Float)
    assert isinstance(column_type_for(fields["price"]), sa.Numeric)
    assert isinstance(column_type_for(fields["doc"]), sa.JSON)
    assert isinstance(column_type_for(fields["anything"]), sa.JSON)


def test_row_conversion(descrs):
    target = descrs["user"]
    created_at = datetime.datetime(
        2016, 1, 1, 9, tzinfo=datetime.timezone(datetime.timedelta(hours=9))
    )
    row = target.to_row(
        {
            "id": 1,
            "name": "John Doe",
            "createdAt": created_at,
            "spouse": 2,
            "ownedPets": [1, "/wtf"],
            "friends": [],
        }
    )
    assert row["id"] == "1"
    assert row["createdAt"] == datetime.datetime(2016, 1, 1)
    assert row["spouse"] == "2"
    assert row["ownedPets"] == ["1", "/wtf"]
    assert row["friends"] is None
    assert row["nicknames"] is None
    assert row["birthday"] is None

    record = target.from_row(row)
    assert record["id"] == 1
    assert record["createdAt"] == created_at
    assert record["createdAt"].tzinfo is not None
    assert record["spouse"] == 2
    assert record["ownedPets"] == [1, "/wtf"]
    assert record["friends"] == []
    assert record["nicknames"] == []


def test_array_attribute_scalars():
    from ..core import build_descriptors

    registry = ResourceTypeRegistry.from_definitions(
        {"event": {"dates": {"type": datetime.date, "array": True}}}
    )
    target = build_descriptors(registry, sa.MetaData())["event"]
    row = target.to_row({"id": "a", "dates": [datetime.date(2015, 1, 7)]})
    assert row["dates"] == ["2015-01-07"]
    assert target.from_row(row)["dates"] == [datetime.date(2015, 1, 7)]
    assert target.to_db_scalar("dates", datetime.date(2015, 1, 7)) == "2015-01-07"
