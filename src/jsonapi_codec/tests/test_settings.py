import pytest

from ..exceptions import InvalidDeclarationError


@pytest.fixture
def target_class():
    from ..settings import Options

    return Options


def test_defaults(target_class):
    target = target_class()
    assert target.prefix == ""
    assert target.inflect_type
    assert target.inflect_keys
    assert target.max_limit == 1000
    assert target.include_limit == 3
    assert target.buffer_encoding == "base64"
    assert target.json_spaces == 2
    assert dict(target.jsonapi) == {"version": "1.0"}
    assert target.uri_template == "{/type,ids,relatedField,relationship}{?query*}"
    assert target.allow_level[4] == ("GET", "POST", "PATCH", "DELETE")


def test_immutable(target_class):
    import dataclasses

    target = target_class()
    with pytest.raises(dataclasses.FrozenInstanceError):
        target.prefix = "/api"  # type: ignore
    with pytest.raises(TypeError):
        target.jsonapi["version"] = "1.1"  # type: ignore


def test_from_mapping_accepts_both_spellings(target_class):
    target = target_class.from_mapping(
        {"prefix": "/api", "maxLimit": 10, "include_limit": 2, "jsonSpaces": None}
    )
    assert target.prefix == "/api"
    assert target.max_limit == 10
    assert target.include_limit == 2
    assert target.json_spaces is None


def test_from_mapping_rejects_unknown(target_class):
    with pytest.raises(InvalidDeclarationError):
        target_class.from_mapping({"foo": 1})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_limit": 0},
        {"include_limit": 0},
        {"buffer_encoding": "rot13"},
        {"allow_level": (("GET",),)},
    ],
)
def test_validation(target_class, kwargs):
    with pytest.raises(InvalidDeclarationError):
        target_class(**kwargs)


def test_allow_level_upper_cased(target_class):
    target = target_class(
        allow_level=(("get",), ("get", "post"), ("get",), ("get",), ("get", "patch"))
    )
    assert target.allow_level[1] == ("GET", "POST")


def test_reserved_keys():
    from ..settings import RESERVED_KEYS

    assert RESERVED_KEYS.primary == "data"
    assert RESERVED_KEYS.self_ == "self"
    assert RESERVED_KEYS.page_offset == "page[offset]"
    assert RESERVED_KEYS.page_limit == "page[limit]"
