import json
import logging

import pytest

from ..context import Request
from ..exceptions import MethodError
from ..settings import MEDIA_TYPE
from .testing import DictStore, make_registry


@pytest.fixture
def store():
    return DictStore(make_registry())


@pytest.fixture
def target_class():
    from ..serializer import JSONAPISerializer

    return JSONAPISerializer


@pytest.fixture
def target(target_class, store):
    return target_class(store.registry, store)


def body_of(response):
    return json.loads(response.payload)


def request(method, url, body=None):
    headers = {"Accept": MEDIA_TYPE}
    if body is not None:
        headers["Content-Type"] = MEDIA_TYPE
        body = json.dumps(body)
    return Request(method, url, headers, body)


def test_options_from_mapping(target_class, store):
    target = target_class(store.registry, store, {"prefix": "/api", "maxLimit": 5})
    assert target.options.prefix == "/api"
    assert target.options.max_limit == 5
    assert target.media_type == MEDIA_TYPE


@pytest.mark.asyncio
async def test_index(target):
    response = await target.handle(request("GET", "/"))
    assert response.status == 200
    assert response.headers["Content-Type"] == MEDIA_TYPE
    assert body_of(response)["links"]["users"] == "/users"


@pytest.mark.asyncio
async def test_find(target):
    response = await target.handle(request("GET", "/users?sort=-name&fields[user]=name"))
    assert response.status == 200
    result = body_of(response)
    assert [r["attributes"]["name"] for r in result["data"]] == [
        "Microsoft Bob",
        "John Doe",
        "Jane Doe",
    ]
    assert result["meta"] == {"count": 3}
    assert "spouse" in result["data"][0]["relationships"]
    assert "data" not in result["data"][0]["relationships"]["spouse"]


@pytest.mark.asyncio
async def test_find_empty_collection(target):
    response = await target.handle(request("GET", "/%E2%98%AFs"))
    assert response.status == 200
    result = body_of(response)
    assert result["data"] == []
    assert result["links"]["self"] == "/%E2%98%AFs"


@pytest.mark.asyncio
async def test_find_missing(target):
    response = await target.handle(request("GET", "/animals/404"))
    assert response.status == 404
    error = body_of(response)["errors"][0]
    assert error["title"] == "NotFoundError"
    assert error["detail"]


@pytest.mark.asyncio
async def test_create(target, store):
    response = await target.handle(
        request(
            "POST",
            "/animals",
            {
                "data": {
                    "id": 4,
                    "type": "animal",
                    "attributes": {"name": "Rover", "is-neutered": True},
                    "relationships": {"owner": {"data": {"type": "users", "id": 1}}},
                }
            },
        )
    )
    assert response.status == 201
    assert response.headers["Location"] == "/animals/4"
    result = body_of(response)
    assert result["data"]["type"] == "animals"
    assert result["data"]["attributes"]["is-neutered"] is True
    assert store.records["animal"][-1]["owner"] == 1


@pytest.mark.asyncio
async def test_create_conflict(target):
    response = await target.handle(request("POST", "/users", {"data": {"id": 1, "type": "user"}}))
    assert response.status == 409
    assert len(body_of(response)["errors"]) == 1


@pytest.mark.asyncio
async def test_create_wrong_route(target):
    response = await target.handle(request("POST", "/users/4", {}))
    assert response.status == 405
    assert response.headers["Allow"] == "GET, PATCH, DELETE"


@pytest.mark.asyncio
async def test_create_missing_payload(target):
    response = await target.handle(request("POST", "/users", {}))
    assert response.status == 400
    assert response.headers["Content-Type"] == MEDIA_TYPE


@pytest.mark.asyncio
async def test_update(target, store):
    response = await target.handle(
        request(
            "PATCH",
            "/users/2",
            {"data": {"id": 2, "type": "users", "attributes": {"name": "Jenny Death"}}},
        )
    )
    assert response.status == 200
    assert body_of(response)["data"]["attributes"]["name"] == "Jenny Death"
    assert store.calls[-1] == ("find", "user", [2])


@pytest.mark.asyncio
async def test_update_without_changes(target):
    response = await target.handle(
        request(
            "PATCH",
            "/users/2",
            {"data": {"id": 2, "type": "users", "attributes": {"name": "Jane Doe"}}},
        )
    )
    assert response.status == 204
    assert response.payload is None
    assert "Content-Type" not in response.headers


@pytest.mark.asyncio
async def test_update_relationship(target, store):
    response = await target.handle(
        request("POST", "/users/1/relationships/owned-pets", {"data": [{"type": "animals", "id": 2}]})
    )
    assert response.status == 204
    assert store.records["user"][0]["ownedPets"] == [1, 2]

    response = await target.handle(
        request("DELETE", "/users/1/relationships/friends", {"data": [{"type": "users", "id": 3}]})
    )
    assert response.status == 204
    assert store.records["user"][0]["friends"] == []


@pytest.mark.asyncio
async def test_delete(target, store):
    response = await target.handle(request("DELETE", "/animals/2"))
    assert response.status == 204
    assert [r["id"] for r in store.records["animal"]] == [1, 3, "/wtf"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url,expected",
    [
        ("/", "GET"),
        ("/animals", "GET, POST"),
        ("/animals/1", "GET, PATCH, DELETE"),
        ("/animals/1/owner", "GET"),
        ("/animals/1/relationships/owner", "GET, POST, PATCH, DELETE"),
    ],
)
async def test_options(target, url, expected):
    response = await target.handle(request("OPTIONS", url))
    assert response.status == 204
    assert response.headers["Allow"] == expected
    assert response.payload is None


@pytest.mark.asyncio
async def test_options_fail(target):
    response = await target.handle(request("OPTIONS", "/foo"))
    assert response.status == 404


@pytest.mark.asyncio
async def test_method_error_from_store_gets_allow(target_class, store):
    class ReadOnlyStore(DictStore):
        async def delete(self, type, ids=None, meta=None):
            raise MethodError("Read only.")

    target = target_class(store.registry, ReadOnlyStore(store.registry))
    response = await target.handle(request("DELETE", "/animals/1"))
    assert response.status == 405
    assert response.headers["Allow"] == "GET, PATCH, DELETE"


@pytest.mark.asyncio
async def test_unexpected_error(target_class, store, caplog):
    class BrokenStore(DictStore):
        async def find(self, type, ids=None, options=None, meta=None):
            raise RuntimeError("boom")

    target = target_class(store.registry, BrokenStore(store.registry))
    with caplog.at_level(logging.ERROR, logger="jsonapi_codec.serializer"):
        response = await target.handle(request("GET", "/users"))
    assert response.status == 500
    assert body_of(response)["errors"] == [{"status": "500", "title": "Error", "detail": "boom"}]
    assert any(r.exc_info for r in caplog.records)
