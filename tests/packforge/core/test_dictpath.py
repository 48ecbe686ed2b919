# tests/packforge/core/test_dictpath.py
import pytest

from packforge.core.dictpath import splitPath, getByPath, setByPath, deleteByPath


def test_splitPath_handles_indices_and_escapes():
    assert splitPath("Description.Id") == ["Description", "Id"]
    assert splitPath("Locations[2].Name") == ["Locations", 2, "Name"]
    assert splitPath("a\\.b.c") == ["a.b", "c"]


@pytest.mark.parametrize("path", ["", "a..b", "a.", "a[x]", "a[1", "a\\"])
def test_splitPath_rejects_malformed(path):
    with pytest.raises(ValueError):
        splitPath(path)


def test_getByPath_walks_lists_and_defaults():
    data = {"Description": {"Id": "x"}, "Slots": [{"Name": "left"}, {"Name": "right"}]}
    assert getByPath(data, "Description.Id") == "x"
    assert getByPath(data, "Slots[1].Name") == "right"
    assert getByPath(data, "Slots[5].Name", "none") == "none"
    assert getByPath(data, "a..b", "bad") == "bad"


def test_setByPath_creates_parents_only_when_asked():
    data = {}
    with pytest.raises(KeyError):
        setByPath(data, "a.b", 1)
    setByPath(data, "a.b", 1, createIfMissing=True)
    assert data == {"a": {"b": 1}}


def test_setByPath_index_equal_to_length_appends():
    data = {"items": [1, 2]}
    setByPath(data, "items[2]", 3)
    assert data["items"] == [1, 2, 3]
    with pytest.raises(IndexError):
        setByPath(data, "items[9]", 4)


def test_deleteByPath_reports_whether_removed():
    data = {"a": {"b": 1}, "l": [1, 2]}
    assert deleteByPath(data, "a.b") is True
    assert deleteByPath(data, "a.b") is False
    assert deleteByPath(data, "l[0]") is True
    assert data == {"a": {}, "l": [2]}
