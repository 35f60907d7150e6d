"""Loading of the server configuration file and per-module configuration."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path, PurePath

from mediarpc.ptree import (
    ParserError,
    PropertyTree,
    PtreeError,
    merge_property_trees,
    read_info,
    read_ini,
    read_json,
    read_xml,
)

__all__ = [
    "ParseError",
    "load_file",
    "diff_path_to_key",
    "load_modules_config_from_dir",
    "load_modules_config",
    "load_config",
]

log = logging.getLogger(__name__)

_READERS = {
    ".json": ("JSON", read_json),
    ".info": ("INFO", read_info),
    ".ini": ("INI", read_ini),
    ".xml": ("XML", read_xml),
}


class ParseError(Exception):
    """Raised when a configuration file has an unknown type or cannot be parsed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def load_file(config: PropertyTree, path: str | os.PathLike[str]) -> str:
    """Merge a ``<name>.conf.<format>`` file into ``config``; return ``<name>``.

    ``configPath`` is set to the directory holding the file.
    """
    path_str = os.fspath(path)
    fs_path = PurePath(path_str)
    extension1 = PurePath(fs_path.stem).suffix
    extension2 = fs_path.suffix

    if extension1 != ".conf":
        raise ParseError("Unknown file type: " + fs_path.name)
    reader = _READERS.get(extension2)
    if reader is None:
        raise ParseError("Unknown conf format: " + extension2)
    label, read = reader
    try:
        read_config = read(path_str)
    except ParserError as exc:
        raise ParseError(f"{label} parse error: {exc}") from exc

    merge_property_trees(config, read_config)
    config.put("configPath", os.path.dirname(path_str))

    file_name = fs_path.name
    return file_name[: len(file_name) - len(extension1) - len(extension2)]


def diff_path_to_key(
    path: str | os.PathLike[str], ancestor: str | os.PathLike[str]
) -> str:
    """Dotted key of the stems of the directories from ``ancestor`` down to ``path``."""
    current = PurePath(path)
    target = PurePath(ancestor)
    stems: list[str] = []
    while current != target:
        parent = current.parent
        if parent == current:
            raise ValueError(f"{ancestor} is not an ancestor of {path}")
        stems.append(current.stem)
        current = parent
    return ".".join(reversed(stems))


def load_modules_config_from_dir(
    config: PropertyTree,
    directory: str | os.PathLike[str],
    parent_dir: str | os.PathLike[str],
) -> None:
    """Load every config file below ``directory`` under ``modules.<subdirs>.<name>``."""
    directory = Path(directory)
    log.info("Looking for config files in %s", directory)

    if not directory.is_dir():
        log.warning(
            "Unable to load config files from: %s, it is not a directory", directory
        )
        return

    for entry in sorted(directory.iterdir()):
        if entry.is_file():
            path_str = str(entry)
            try:
                module_config = PropertyTree()
                file_name = load_file(module_config, entry)
                key = diff_path_to_key(entry.parent, parent_dir)
                key = "modules" if not key else "modules." + key
                key += "." + file_name

                loaded = PropertyTree()
                loaded.put_child(key, module_config)
                merge_property_trees(config, loaded)
                log.info("Loaded module config: %s", path_str)
            except ParseError as exc:
                log.warning("Error loading config: %s, %s", path_str, exc)
                print(f"Error loading config: {path_str}, {exc}", file=sys.stderr)
        elif entry.is_dir():
            load_modules_config_from_dir(config, entry, parent_dir)


def _split_locations(value: str) -> list[str]:
    parts = value.split(":")
    if parts and parts[-1] == "":
        parts.pop()
    return parts


def load_modules_config(
    config: PropertyTree,
    config_file_path: str | os.PathLike[str],
    modules_config_path: str = "",
) -> None:
    """Load module configs from ``:``-separated dirs, by default ``<config dir>/modules``."""
    if not modules_config_path:
        modules_config_path = os.path.join(
            os.path.dirname(os.fspath(config_file_path)), "modules"
        )

    for location in _split_locations(modules_config_path):
        if not location:
            log.warning("Unable to load config files from an empty location")
            continue
        directory = Path(os.path.normpath(location))
        load_modules_config_from_dir(config, directory, directory)


def load_config(
    config: PropertyTree,
    file_name: str | os.PathLike[str],
    modules_config_path: str = "",
) -> None:
    """Load the main configuration file and then every module configuration.

    An unreadable main file is reported on stderr and exits with status 1.
    """
    file_name = os.fspath(file_name)
    log.info("Reading configuration from: %s", file_name)

    try:
        load_file(config, file_name)
    except (ParseError, PtreeError) as exc:
        log.error("Error reading configuration: %s", exc)
        print(f"Error reading configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    load_modules_config(config, file_name, modules_config_path)

    log.info("Configuration loaded successfully")
    log.info(
        "Loaded config in effect:\n%s", json.dumps(config.to_python(), indent=4)
    )