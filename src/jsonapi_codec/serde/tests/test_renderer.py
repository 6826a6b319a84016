import datetime
import decimal
from collections import OrderedDict

import pytest


@pytest.fixture
def target_class():
    from ..renderer import ReprRenderer

    return ReprRenderer


def test_resource_document(target_class):
    from ..models import DocumentRepr, LinkageRepr, LinksRepr, ResourceIdRepr, ResourceRepr

    def links_of(name):
        return LinksRepr(self_=f"/users/1/relationships/{name}", related=f"/users/1/{name}")

    result = target_class()(
        DocumentRepr(
            jsonapi={"version": "1.0"},
            links=LinksRepr(self_="/users/1"),
            data=ResourceRepr(
                type="users",
                id="1",
                attributes=OrderedDict(
                    [
                        ("name", "John Doe"),
                        ("birthday", datetime.date(1992, 12, 7)),
                        ("nicknames", ["Johnny", "Joe"]),
                    ]
                ),
                relationships=OrderedDict(
                    [
                        (
                            "spouse",
                            LinkageRepr(
                                links=links_of("spouse"),
                                data=ResourceIdRepr(type="users", id="2"),
                            ),
                        ),
                        (
                            "owned-pets",
                            LinkageRepr(
                                links=links_of("owned-pets"),
                                data=(ResourceIdRepr(type="animals", id="1"),),
                            ),
                        ),
                        ("friends", LinkageRepr(links=links_of("friends"))),
                    ]
                ),
                links=LinksRepr(self_="/users/1"),
                meta={"extra": 1},
            ),
        )
    )
    assert result == {
        "jsonapi": {"version": "1.0"},
        "links": {"self": "/users/1"},
        "data": {
            "type": "users",
            "id": "1",
            "meta": {"extra": 1},
            "attributes": {
                "name": "John Doe",
                "birthday": "1992-12-07",
                "nicknames": ["Johnny", "Joe"],
            },
            "relationships": {
                "spouse": {
                    "links": {
                        "self": "/users/1/relationships/spouse",
                        "related": "/users/1/spouse",
                    },
                    "data": {"type": "users", "id": "2"},
                },
                "owned-pets": {
                    "links": {
                        "self": "/users/1/relationships/owned-pets",
                        "related": "/users/1/owned-pets",
                    },
                    "data": [{"type": "animals", "id": "1"}],
                },
                "friends": {
                    "links": {
                        "self": "/users/1/relationships/friends",
                        "related": "/users/1/friends",
                    },
                },
            },
            "links": {"self": "/users/1"},
        },
    }
    assert list(result) == ["jsonapi", "links", "data"]


def test_null_and_missing_data(target_class):
    from ..models import DocumentRepr

    assert target_class()(DocumentRepr(data=None)) == {"data": None}
    assert target_class()(DocumentRepr(meta={"count": 0})) == {"meta": {"count": 0}}


def test_collection(target_class):
    from ..models import DocumentRepr, LinksRepr, ResourceRepr

    result = target_class()(
        DocumentRepr(
            links=LinksRepr(self_="/users", first="/users?page%5Boffset%5D=0"),
            meta={"count": 2},
            data=(ResourceRepr(type="users", id="1"), ResourceRepr(type="users", id="2")),
            included=(ResourceRepr(type="animals", id="1"),),
        )
    )
    assert result == {
        "meta": {"count": 2},
        "links": {"self": "/users", "first": "/users?page%5Boffset%5D=0"},
        "data": [{"type": "users", "id": "1"}, {"type": "users", "id": "2"}],
        "included": [{"type": "animals", "id": "1"}],
    }


def test_identifiers(target_class):
    from ..models import DocumentRepr, ResourceIdRepr

    target = target_class()
    assert target(DocumentRepr(data=(ResourceIdRepr(type="animals", id="2"),))) == {
        "data": [{"type": "animals", "id": "2"}]
    }
    assert target(DocumentRepr(data=ResourceIdRepr(type="users", id="1", meta={"a": 1}))) == {
        "data": {"type": "users", "id": "1", "meta": {"a": 1}}
    }
    assert target(DocumentRepr(data=())) == {"data": []}


def test_plain_links(target_class):
    from ..models import DocumentRepr

    result = target_class()(
        DocumentRepr(links=OrderedDict([("users", "/users"), ("animals", "/animals")]))
    )
    assert result == {"links": {"users": "/users", "animals": "/animals"}}
    assert list(result["links"]) == ["users", "animals"]


def test_error(target_class):
    from ..models import DocumentRepr, ErrorRepr, SourceRepr

    result = target_class()(
        DocumentRepr(
            errors=[
                ErrorRepr(
                    status="400",
                    title="BadRequestError",
                    detail="Nope.",
                    source=SourceRepr(pointer="/data/type"),
                    meta={"field": "type"},
                )
            ]
        )
    )
    assert result == {
        "errors": [
            {
                "status": "400",
                "title": "BadRequestError",
                "detail": "Nope.",
                "source": {"pointer": "/data/type"},
                "meta": {"field": "type"},
            }
        ]
    }


@pytest.mark.parametrize(
    "kwargs,value,expected",
    [
        ({}, b"This is a string.", "VGhpcyBpcyBhIHN0cmluZy4="),
        ({"buffer_encoding": "hex"}, b"\x01\xff", "01ff"),
        ({}, decimal.Decimal("1.10"), "1.10"),
        ({"render_decimal_as_str": False}, decimal.Decimal("1.5"), 1.5),
        (
            {},
            datetime.datetime(2015, 1, 4, 9, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=9))),
            "2015-01-04T00:00:00+00:00",
        ),
        ({}, datetime.datetime(2015, 1, 4), "2015-01-04T00:00:00+00:00"),
        ({}, {"a": [1, None, True]}, {"a": [1, None, True]}),
        ({}, [datetime.date(2015, 1, 4)], ["2015-01-04"]),
    ],
)
def test_values(target_class, kwargs, value, expected):
    from ..utils import JSONPointer

    assert target_class(**kwargs).render_value(JSONPointer(), value) == expected


def test_naive_datetime_rejected(target_class):
    from ..models import DocumentRepr, ResourceRepr

    target = target_class(assume_naive_timezone_as=None)
    with pytest.raises(ValueError) as e:
        target(
            DocumentRepr(
                data=ResourceRepr(
                    type="x", id="1", attributes=OrderedDict(v=datetime.datetime(2015, 1, 4))
                )
            )
        )
    assert "/data/attributes/v" in str(e.value)


def test_unsupported_value(target_class):
    from ..models import DocumentRepr, ResourceRepr

    with pytest.raises(TypeError):
        target_class()(
            DocumentRepr(data=ResourceRepr(type="x", id="1", attributes=OrderedDict(v=object())))
        )
