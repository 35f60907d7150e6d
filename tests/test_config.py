import json

import pytest

from mediarpc.config import (
    ParseError,
    diff_path_to_key,
    load_config,
    load_file,
    load_modules_config,
    load_modules_config_from_dir,
)
from mediarpc.ptree import PropertyTree


def write_json(path, value):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value))
    return path


def test_load_file_returns_name_and_sets_config_path(tmp_path):
    path = write_json(tmp_path / "server.conf.json", {"mediaServer": {"port": 8888}})
    config = PropertyTree()
    assert load_file(config, path) == "server"
    assert config.get("mediaServer.port", 0) == 8888
    assert config.get("configPath") == str(tmp_path)


def test_load_file_ini_format(tmp_path):
    path = tmp_path / "mod.conf.ini"
    path.write_text("[section]\nkey = value\n")
    config = PropertyTree()
    assert load_file(config, path) == "mod"
    assert config.get("section.key") == "value"


def test_load_file_unknown_type(tmp_path):
    path = write_json(tmp_path / "server.json", {})
    with pytest.raises(ParseError) as info:
        load_file(PropertyTree(), path)
    assert info.value.message == "Unknown file type: server.json"


def test_load_file_unknown_format(tmp_path):
    path = tmp_path / "server.conf.yaml"
    path.write_text("a: 1\n")
    with pytest.raises(ParseError) as info:
        load_file(PropertyTree(), path)
    assert info.value.message == "Unknown conf format: .yaml"


def test_load_file_parse_error(tmp_path):
    path = tmp_path / "server.conf.json"
    path.write_text("{ broken")
    with pytest.raises(ParseError) as info:
        load_file(PropertyTree(), path)
    assert info.value.message.startswith("JSON parse error: ")


def test_diff_path_to_key_uses_stems(tmp_path):
    assert diff_path_to_key(tmp_path / "a" / "b.x" / "c", tmp_path) == "a.b.c"
    assert diff_path_to_key(tmp_path, tmp_path) == ""


def test_diff_path_to_key_not_ancestor(tmp_path):
    with pytest.raises(ValueError):
        diff_path_to_key(tmp_path / "a", tmp_path / "other")


def test_modules_from_dir_nested_keys(tmp_path):
    modules = tmp_path / "modules"
    write_json(modules / "Top.conf.json", {"value": 1})
    write_json(modules / "kurento" / "Endpoint.conf.json", {"port": 5000})
    config = PropertyTree()
    load_modules_config_from_dir(config, modules, modules)
    assert config.get("modules.Top.value", 0) == 1
    assert config.get("modules.kurento.Endpoint.port", 0) == 5000
    assert config.get("modules.kurento.Endpoint.configPath") == str(modules / "kurento")


def test_modules_from_dir_skips_bad_files(tmp_path, capsys):
    modules = tmp_path / "modules"
    write_json(modules / "Good.conf.json", {"ok": True})
    (modules / "notes.txt").write_text("hello")
    config = PropertyTree()
    load_modules_config_from_dir(config, modules, modules)
    assert config.get("modules.Good.ok", False) is True
    assert "notes.txt" in capsys.readouterr().err


def test_modules_from_missing_dir_leaves_config(tmp_path):
    config = PropertyTree.from_python({"a": "1"})
    load_modules_config_from_dir(config, tmp_path / "missing", tmp_path / "missing")
    assert config.to_python() == {"a": "1"}


def test_load_modules_config_multiple_locations(tmp_path):
    write_json(tmp_path / "one" / "A.conf.json", {"v": "a"})
    write_json(tmp_path / "two" / "B.conf.json", {"v": "b"})
    config = PropertyTree()
    location = f"{tmp_path / 'one'}:{tmp_path / 'two'}"
    load_modules_config(config, tmp_path / "main.conf.json", location)
    assert config.get("modules.A.v") == "a"
    assert config.get("modules.B.v") == "b"


def test_load_config_with_default_modules_dir(tmp_path):
    main = write_json(tmp_path / "server.conf.json", {"mediaServer": {"port": 8888}})
    write_json(tmp_path / "modules" / "Mod.conf.json", {"x": "y"})
    config = PropertyTree()
    load_config(config, main, "")
    assert config.get("mediaServer.port", 0) == 8888
    assert config.get("modules.Mod.x") == "y"


def test_later_module_overrides_earlier_values(tmp_path):
    write_json(tmp_path / "one" / "M.conf.json", {"v": "first", "keep": "k"})
    write_json(tmp_path / "two" / "M.conf.json", {"v": "second"})
    config = PropertyTree()
    location = f"{tmp_path / 'one'}:{tmp_path / 'two'}"
    load_modules_config(config, tmp_path / "main.conf.json", location)
    assert config.get("modules.M.v") == "second"
    assert config.get("modules.M.keep") == "k"


def test_load_config_bad_main_file_exits(tmp_path, capsys):
    main = tmp_path / "server.conf.json"
    main.write_text("{ broken")
    with pytest.raises(SystemExit) as info:
        load_config(PropertyTree(), main, "")
    assert info.value.code == 1
    assert "Error reading configuration" in capsys.readouterr().err