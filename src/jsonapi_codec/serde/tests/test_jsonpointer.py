import pytest


@pytest.fixture
def target_class():
    from ..utils import JSONPointer

    return JSONPointer


def test_build(target_class):
    target = target_class() / "data" / "attributes"
    assert str(target) == "/data/attributes"
    assert str(target[0]) == "/data/attributes/0"
    assert str(target_class()) == "/"


@pytest.mark.parametrize(
    "path,components",
    [
        ("", ()),
        ("/", ()),
        ("/data/0", ("data", "0")),
        ("/a~1b/c~0d", ("a/b", "c~d")),
    ],
)
def test_parse(target_class, path, components):
    assert target_class(path).components == components


def test_escape(target_class):
    assert str(target_class() / "a/b" / "c~d") == "/a~1b/c~0d"


def test_equality(target_class):
    assert target_class("/data/type") == target_class() / "data" / "type"
    assert target_class("/data/type") == "/data/type"
    assert target_class("/data") != target_class("/data/type")
    assert len({target_class("/data"), target_class() / "data"}) == 1


def test_english_enumerate():
    from ..utils import english_enumerate

    assert english_enumerate([]) == ""
    assert english_enumerate(["a"]) == '"a"'
    assert english_enumerate(["a", "b"]) == '"a" or "b"'
    assert english_enumerate(["a", "b", "c"], conj="and", quote=None) == "a, b, and c"
