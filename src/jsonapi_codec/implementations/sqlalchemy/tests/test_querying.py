import datetime
from collections import OrderedDict

import pytest
import sqlalchemy as sa  # type: ignore

from ....query import QueryOptions
from ....tests.testing import make_records, make_registry


@pytest.fixture
def descr():
    from ..core import build_descriptors

    return build_descriptors(make_registry(), sa.MetaData())["user"]


@pytest.fixture
def target_class():
    from ..querying import QueryPlan

    return QueryPlan


def compile(clause) -> str:
    return str(clause.compile(compile_kwargs={"literal_binds": True}))


def test_no_options(target_class, descr):
    target = target_class(descr, None)
    assert target.runs_in_sql
    assert target.where(None) == []
    assert [compile(c) for c in target.where([1, 2])] == ["\"user\".id IN ('1', '2')"]


def test_scalar_conditions(target_class, descr):
    target = target_class(
        descr,
        QueryOptions(
            match={"name": ["John Doe", "Jane Doe"], "spouse": [2]},
            exists={"picture": True, "camelCaseField": False},
            range={"name": ["Max", "Min"]},
            sort=OrderedDict([("birthday", True), ("name", False)]),
        ),
    )
    assert target.runs_in_sql
    assert [compile(c) for c in target.clauses] == [
        "\"user\".name IN ('John Doe', 'Jane Doe')",
        "\"user\".spouse IN ('2')",
        "\"user\".picture IS NOT NULL",
        "\"user\".\"camelCaseField\" IS NULL",
        "\"user\".name >= 'Max'",
        "\"user\".name <= 'Min'",
    ]
    assert [compile(c) for c in target.order_by] == [
        "\"user\".birthday ASC",
        "\"user\".name DESC",
    ]


def test_array_conditions(target_class, descr):
    records = make_records()["user"]
    target = target_class(
        descr,
        QueryOptions(match={"friends": [1, 2]}, range={"nicknames": [None, 1]}),
    )
    assert not target.runs_in_sql
    assert [r["id"] for r in target.filter(records)] == [3]

    target = target_class(descr, QueryOptions(match={"nicknames": ["Bob", "Joe"]}))
    assert [r["id"] for r in target.filter(records)] == [1, 3]


def test_exists_on_array(target_class, descr):
    target = target_class(descr, QueryOptions(exists={"ownedPets": False}))
    assert target.runs_in_sql
    assert [compile(c) for c in target.clauses] == ["\"user\".\"ownedPets\" IS NULL"]


def test_sort_in_python(target_class, descr):
    records = make_records()["user"]
    target = target_class(
        descr, QueryOptions(sort=OrderedDict([("friends", False), ("name", True)]))
    )
    assert target.order_by is None
    assert not target.runs_in_sql
    assert [r["id"] for r in target.sort_records(records)] == [3, 2, 1]


def test_sort_nulls_first(target_class, descr):
    records = make_records()["user"]
    target = target_class(descr, QueryOptions(sort=OrderedDict([("camelCaseField", True)])))
    assert [r["id"] for r in target.sort_records(records)] == [2, 3, 1]
    target = target_class(descr, QueryOptions(sort=OrderedDict([("birthday", False)])))
    assert [r["birthday"] for r in target.sort_records(records)] == [
        datetime.date(1997, 6, 15),
        datetime.date(1995, 1, 1),
        datetime.date(1992, 12, 7),
    ]


def test_sort_skips_unknown_fields(target_class, descr):
    target = target_class(descr, QueryOptions(sort=OrderedDict([("nope", True), ("name", False)])))
    assert [compile(c) for c in target.order_by] == ["\"user\".name DESC"]


def test_sort_by_id_in_python(target_class, descr):
    records = [{"id": 10}, {"id": "abc"}, {"id": 2}, {"id": "1a"}]
    target = target_class(descr, QueryOptions(sort=OrderedDict([("id", True)])))
    assert target.order_by is None
    assert [r["id"] for r in target.sort_records(records)] == [2, 10, "1a", "abc"]
    target = target_class(descr, QueryOptions(sort=OrderedDict([("name", True), ("id", False)])))
    assert target.order_by is None
    assert [r["id"] for r in target.sort_records(records)] == ["abc", "1a", 10, 2]
