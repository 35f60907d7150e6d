import pytest

from mediarpc.ptree import (
    ParserError,
    PropertyTree,
    merge_property_trees,
    read_info,
    read_ini,
    read_json,
    read_xml,
)


def test_put_and_get_nested_path():
    tree = PropertyTree()
    tree.put("mediaServer.net.port", 8888)
    assert tree.get("mediaServer.net.port") == "8888"
    assert tree.get("mediaServer.net.port", 0) == 8888


def test_get_missing_without_default_raises():
    with pytest.raises(KeyError):
        PropertyTree().get("a.b")


def test_get_missing_with_default_returns_default():
    assert PropertyTree().get("a.b", 1.5) == 1.5


def test_get_bool_conversion_and_failed_conversion():
    tree = PropertyTree()
    tree.put("flag", True)
    tree.put("word", "abc")
    assert tree.get("flag", False) is True
    assert tree.get("word", 7) == 7


def test_put_replaces_existing_value():
    tree = PropertyTree()
    tree.put("a", "x")
    tree.put("a", "y")
    assert tree.count("a") == 1
    assert tree.get("a") == "y"


def test_add_child_keeps_duplicates_and_erase_removes_all():
    tree = PropertyTree()
    tree.add_child("k", PropertyTree("1"))
    tree.add_child("k", PropertyTree("2"))
    assert tree.count("k") == 2
    assert [child.data for _, child in tree.items()] == ["1", "2"]
    assert tree.erase("k") == 2
    assert tree.empty


def test_put_child_stores_copy():
    child = PropertyTree("v")
    tree = PropertyTree()
    tree.put_child("a.b", child)
    child.data = "changed"
    assert tree.get("a.b") == "v"
    assert tree.get_child("a").count("b") == 1


def test_get_child_default():
    marker = PropertyTree("d")
    assert PropertyTree().get_child("missing", marker) is marker


def test_python_round_trip():
    value = {"a": "1", "b": {"c": ["x", "y"]}, "d": "text"}
    assert PropertyTree.from_python(value).to_python() == value


def test_read_json_keeps_scalars_as_text(tmp_path):
    path = tmp_path / "x.json"
    path.write_text('{"n": 42, "f": 1.25, "b": true, "arr": [1, 2], "o": {"s": "v"}}')
    tree = read_json(path)
    assert tree.get("n") == "42"
    assert tree.get("f") == "1.25"
    assert tree.get("b") == "true"
    assert tree.get_child("arr").to_python() == ["1", "2"]
    assert tree.get("o.s") == "v"


def test_read_json_error(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{ not json")
    with pytest.raises(ParserError):
        read_json(path)


def test_read_json_missing_file(tmp_path):
    with pytest.raises(ParserError):
        read_json(tmp_path / "nope.json")


def test_read_ini_sections(tmp_path):
    path = tmp_path / "x.ini"
    path.write_text("top = 1\n; comment\n[server]\nport = 8888\nname = kms \n")
    tree = read_ini(path)
    assert tree.get("top") == "1"
    assert tree.get("server.port") == "8888"
    assert tree.get("server.name") == "kms"


@pytest.mark.parametrize(
    "text",
    ["[a\nk=v\n", "[a]\njustakey\n", "[a]\nk=1\nk=2\n", "[a]\n[a]\n"],
)
def test_read_ini_errors(tmp_path, text):
    path = tmp_path / "bad.ini"
    path.write_text(text)
    with pytest.raises(ParserError):
        read_ini(path)


def test_read_info_nested_and_quoted(tmp_path):
    path = tmp_path / "x.info"
    path.write_text(
        'server ; comment\n{\n  port 8888\n  name "media server"\n'
        '  long "ab" \\\n       "cd"\n  inner { leaf value }\n}\n'
    )
    tree = read_info(path)
    assert tree.get("server.port") == "8888"
    assert tree.get("server.name") == "media server"
    assert tree.get("server.long") == "abcd"
    assert tree.get("server.inner.leaf") == "value"


def test_read_info_include(tmp_path):
    (tmp_path / "inc.info").write_text("included yes\n")
    path = tmp_path / "main.info"
    path.write_text('first 1\n#include "inc.info"\n')
    tree = read_info(path)
    assert tree.get("first") == "1"
    assert tree.get("included") == "yes"


@pytest.mark.parametrize("text", ["a {\n b 1\n", "}\n", 'a "open\n'])
def test_read_info_errors(tmp_path, text):
    path = tmp_path / "bad.info"
    path.write_text(text)
    with pytest.raises(ParserError):
        read_info(path)


def test_read_xml_attributes_and_text(tmp_path):
    path = tmp_path / "x.xml"
    path.write_text('<root><server port="8888"><name>kms</name></server></root>')
    tree = read_xml(path)
    assert tree.get("root.server.<xmlattr>.port") == "8888"
    assert tree.get("root.server.name") == "kms"


def test_read_xml_error(tmp_path):
    path = tmp_path / "bad.xml"
    path.write_text("<root><open></root>")
    with pytest.raises(ParserError):
        read_xml(path)


def test_merge_overrides_values_and_merges_objects():
    merged = PropertyTree.from_python({"a": {"x": "1", "y": "2"}, "b": "keep"})
    second = PropertyTree.from_python({"a": {"y": "3", "z": "4"}})
    merge_property_trees(merged, second)
    assert merged.to_python() == {"b": "keep", "a": {"x": "1", "y": "3", "z": "4"}}
    assert [key for key, _ in merged.items()] == ["b", "a"]


def test_merge_replaces_arrays():
    merged = PropertyTree.from_python({"list": ["a", "b", "c"]})
    second = PropertyTree.from_python({"list": ["z"]})
    merge_property_trees(merged, second)
    assert merged.get_child("list").to_python() == ["z"]


def test_merge_does_not_alias_second():
    merged = PropertyTree()
    second = PropertyTree.from_python({"a": {"b": "1"}})
    merge_property_trees(merged, second)
    second.put("a.b", "2")
    assert merged.get("a.b") == "1"