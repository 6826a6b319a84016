import pytest

from ..settings import Options


@pytest.mark.parametrize(
    "input,expected",
    [
        ("animal", "animals"),
        ("user", "users"),
        ("userGroup", "user-groups"),
        ("☯", "☯s"),
    ],
)
def test_outbound_type(input, expected):
    from ..inflections import outbound_type

    assert outbound_type(input, Options()) == expected
    assert outbound_type(input, Options(inflect_type=False)) == input


@pytest.mark.parametrize(
    "input,expected",
    [
        ("animals", "animal"),
        ("users", "user"),
        ("user-groups", "userGroup"),
        ("user", "user"),
    ],
)
def test_inbound_type(input, expected):
    from ..inflections import inbound_type

    assert inbound_type(input, Options(), {"animal", "user", "userGroup"}) == expected


def test_inbound_type_keeps_case_of_unknown():
    from ..inflections import inbound_type

    assert inbound_type("widgets", Options(), {"user"}) == "Widget"
    assert inbound_type("widgets", Options(inflect_type=False), {"user"}) == "widgets"


@pytest.mark.parametrize(
    "internal,wire",
    [
        ("ownedPets", "owned-pets"),
        ("camelCaseField", "camel-case-field"),
        ("name", "name"),
    ],
)
def test_keys(internal, wire):
    from ..inflections import inbound_key, outbound_key

    assert outbound_key(internal, Options()) == wire
    assert inbound_key(wire, Options()) == internal
    assert outbound_key(internal, Options(inflect_keys=False)) == internal


@pytest.mark.parametrize(
    "input,expected",
    [
        ("1", 1),
        ("-3", -3),
        ("1.5", 1.5),
        ("01", "01"),
        ("1e3", "1e3"),
        ("abc", "abc"),
        ("/wtf", "/wtf"),
        ("", ""),
        (7, 7),
        (None, None),
    ],
)
def test_cast_id(input, expected):
    from ..inflections import cast_id

    result = cast_id(input)
    assert result == expected
    assert type(result) is type(expected)


def test_cast_id_disabled():
    from ..inflections import cast_id

    assert cast_id("1", Options(cast_numeric_ids=False)) == "1"


def test_match_id():
    from ..inflections import match_id

    assert match_id({"id": "1"}, 1, Options())
    assert not match_id({"id": "2"}, 1, Options())
    assert not match_id({}, 1, Options())
