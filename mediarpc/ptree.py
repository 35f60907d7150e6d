"""Ordered string property tree with JSON, INI, INFO and XML readers."""

from __future__ import annotations

import copy
import json
import os
import xml.etree.ElementTree as ET
from collections.abc import Iterator
from typing import Any

__all__ = [
    "PtreeError",
    "ParserError",
    "PropertyTree",
    "read_json",
    "read_ini",
    "read_info",
    "read_xml",
    "merge_property_trees",
]

_MISSING: Any = object()


class PtreeError(Exception):
    """Base class of property tree errors."""


class ParserError(PtreeError):
    """Raised when a configuration file cannot be read or parsed."""

    def __init__(self, message: str, filename: str = "", line: int = 0) -> None:
        self.message = message
        self.filename = filename
        self.line = line
        text = f"{filename}({line}): {message}" if filename else message
        super().__init__(text)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _convert(text: str, kind: type) -> Any:
    if kind is bool:
        lowered = text.strip().lower()
        if lowered in ("true", "1"):
            return True
        if lowered in ("false", "0"):
            return False
        raise ValueError(text)
    return kind(text.strip())


class PropertyTree:
    """A node holding a string value and an ordered list of keyed children.

    Keys may repeat; children with an empty key represent array items.
    Paths address nested nodes with ``.`` between keys.
    """

    def __init__(self, data: str = "") -> None:
        self.data = data
        self._children: list[tuple[str, PropertyTree]] = []

    @staticmethod
    def _split(path: str) -> list[str]:
        return path.split(".") if path else []

    def _find(self, key: str) -> PropertyTree | None:
        for child_key, child in self._children:
            if child_key == key:
                return child
        return None

    def _walk(self, path: str) -> PropertyTree | None:
        node: PropertyTree | None = self
        for key in self._split(path):
            node = node._find(key)
            if node is None:
                return None
        return node

    def _make_path(self, keys: list[str]) -> PropertyTree:
        node = self
        for key in keys:
            child = node._find(key)
            if child is None:
                child = PropertyTree()
                node._children.append((key, child))
            node = child
        return node

    @property
    def empty(self) -> bool:
        """Whether the node has no children."""
        return not self._children

    def get(self, path: str, default: Any = _MISSING) -> Any:
        """Value at ``path``, converted to the type of ``default`` when given.

        A missing path or a failed conversion gives ``default``; without a
        default a missing path raises :class:`KeyError`.
        """
        node = self._walk(path)
        if node is None:
            if default is _MISSING:
                raise KeyError(path)
            return default
        if default is _MISSING or default is None or isinstance(default, str):
            return node.data
        try:
            return _convert(node.data, type(default))
        except (TypeError, ValueError):
            return default

    def put(self, path: str, value: Any) -> PropertyTree:
        """Set the value at ``path``, creating nodes as needed."""
        node = self._make_path(self._split(path))
        node.data = _to_text(value)
        return node

    def get_child(self, path: str, default: Any = _MISSING) -> Any:
        """Node at ``path``; ``default`` or :class:`KeyError` when missing."""
        node = self._walk(path)
        if node is None:
            if default is _MISSING:
                raise KeyError(path)
            return default
        return node

    def put_child(self, path: str, child: PropertyTree) -> PropertyTree:
        """Store a copy of ``child`` at ``path``, replacing the first match."""
        keys = self._split(path)
        if not keys:
            raise PtreeError("put_child needs a non-empty path")
        parent = self._make_path(keys[:-1])
        stored = copy.deepcopy(child)
        for index, (key, _) in enumerate(parent._children):
            if key == keys[-1]:
                parent._children[index] = (key, stored)
                return stored
        parent._children.append((keys[-1], stored))
        return stored

    def add_child(self, key: str, child: PropertyTree) -> PropertyTree:
        """Append a copy of ``child`` under the path ``key``, even if it exists."""
        keys = self._split(key)
        if not keys:
            raise PtreeError("add_child needs a non-empty path")
        parent = self._make_path(keys[:-1])
        stored = copy.deepcopy(child)
        parent._children.append((keys[-1], stored))
        return stored

    def erase(self, key: str) -> int:
        """Remove every direct child named ``key``; return how many."""
        before = len(self._children)
        self._children = [(k, c) for k, c in self._children if k != key]
        return before - len(self._children)

    def count(self, key: str) -> int:
        """Number of direct children named ``key``."""
        return sum(1 for k, _ in self._children if k == key)

    def items(self) -> Iterator[tuple[str, PropertyTree]]:
        """Iterate over ``(key, child)`` pairs in order."""
        return iter(list(self._children))

    def __iter__(self) -> Iterator[tuple[str, PropertyTree]]:
        return self.items()

    def __len__(self) -> int:
        return len(self._children)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyTree):
            return NotImplemented
        return self.data == other.data and self._children == other._children

    def __repr__(self) -> str:
        return f"PropertyTree({self.to_python()!r})"

    def to_python(self) -> Any:
        """Plain value: a string, a list for array nodes, otherwise a dict."""
        if not self._children:
            return self.data
        if all(key == "" for key, _ in self._children):
            return [child.to_python() for _, child in self._children]
        return {key: child.to_python() for key, child in self._children}

    @staticmethod
    def from_python(value: Any) -> PropertyTree:
        """Build a tree from dicts, lists and scalars."""
        if isinstance(value, PropertyTree):
            return copy.deepcopy(value)
        if isinstance(value, dict):
            node = PropertyTree()
            for key, item in value.items():
                node._children.append((str(key), PropertyTree.from_python(item)))
            return node
        if isinstance(value, (list, tuple)):
            node = PropertyTree()
            for item in value:
                node._children.append(("", PropertyTree.from_python(item)))
            return node
        if value is None:
            return PropertyTree("null")
        return PropertyTree(_to_text(value))


# JSON


class _Pairs(list):
    pass


def _from_json(value: Any) -> PropertyTree:
    if isinstance(value, _Pairs):
        node = PropertyTree()
        for key, item in value:
            node._children.append((key, _from_json(item)))
        return node
    if isinstance(value, list):
        node = PropertyTree()
        for item in value:
            node._children.append(("", _from_json(item)))
        return node
    if value is None:
        return PropertyTree("null")
    return PropertyTree(_to_text(value))


def read_json(path: str | os.PathLike[str]) -> PropertyTree:
    """Read a JSON file; every scalar is kept as its text."""
    filename = os.fspath(path)
    try:
        with open(filename, encoding="utf-8") as handle:
            document = json.load(
                handle,
                object_pairs_hook=_Pairs,
                parse_int=str,
                parse_float=str,
                parse_constant=str,
            )
    except json.JSONDecodeError as exc:
        raise ParserError(exc.msg, filename, exc.lineno) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ParserError("cannot open file", filename) from exc
    return _from_json(document)


# INI


def read_ini(path: str | os.PathLike[str]) -> PropertyTree:
    """Read an INI file into sections of keys; keys before any section are top level."""
    filename = os.fspath(path)
    try:
        with open(filename, encoding="utf-8") as handle:
            lines = handle.read().splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParserError("cannot open file", filename) from exc

    root = PropertyTree()
    section: PropertyTree | None = None
    for line_no, raw in enumerate(lines, 1):
        line = raw.strip()
        if not line or line[0] in ";#":
            continue
        if line.startswith("["):
            end = line.find("]")
            if end == -1:
                raise ParserError("unmatched '['", filename, line_no)
            name = line[1:end].strip()
            if root.count(name):
                raise ParserError("duplicate section name", filename, line_no)
            section = PropertyTree()
            root._children.append((name, section))
            continue
        target = section if section is not None else root
        if "=" not in line:
            raise ParserError("'=' character not found in line", filename, line_no)
        key, _, value = line.partition("=")
        key = key.strip()
        if target.count(key):
            raise ParserError("duplicate key name", filename, line_no)
        target._children.append((key, PropertyTree(value.strip())))
    return root


# INFO

_ESCAPES = {
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    '"': '"',
    "'": "'",
    "\\": "\\",
}


def _read_quoted(line: str, start: int, filename: str, line_no: int) -> tuple[str, int]:
    chars: list[str] = []
    pos = start + 1
    while pos < len(line):
        char = line[pos]
        if char == "\\":
            if pos + 1 >= len(line):
                raise ParserError("unterminated escape sequence", filename, line_no)
            escaped = _ESCAPES.get(line[pos + 1])
            if escaped is None:
                raise ParserError("unknown escape sequence", filename, line_no)
            chars.append(escaped)
            pos += 2
        elif char == '"':
            return "".join(chars), pos + 1
        else:
            chars.append(char)
            pos += 1
    raise ParserError("unterminated string", filename, line_no)


def _tokenize_info(text: str, filename: str) -> list[tuple[str, str, int]]:
    tokens: list[tuple[str, str, int]] = []
    continuation = False
    for line_no, line in enumerate(text.splitlines(), 1):
        stripped = line.strip()
        if not continuation and stripped.startswith("#include"):
            target = stripped[len("#include"):].strip()
            if target.startswith('"'):
                target, _ = _read_quoted(target, 0, filename, line_no)
            if not target:
                raise ParserError("expected include file name", filename, line_no)
            tokens.append(("include", target, line_no))
            continue
        pos = 0
        while pos < len(line):
            char = line[pos]
            if char.isspace():
                pos += 1
                continue
            if char == ";":
                break
            if char == '"':
                value, pos = _read_quoted(line, pos, filename, line_no)
                if continuation:
                    kind, previous, first_line = tokens[-1]
                    tokens[-1] = (kind, previous + value, first_line)
                    continuation = False
                else:
                    tokens.append(("str", value, line_no))
                rest = line[pos:].lstrip()
                if rest.startswith("\\"):
                    after = rest[1:].strip()
                    if after and not after.startswith(";"):
                        raise ParserError("garbage after line continuation", filename, line_no)
                    continuation = True
                    break
                continue
            if continuation:
                raise ParserError("expected string after line continuation", filename, line_no)
            if char in "{}":
                tokens.append((char, char, line_no))
                pos += 1
                continue
            end = pos
            while end < len(line) and not line[end].isspace() and line[end] not in '{};"':
                end += 1
            tokens.append(("word", line[pos:end], line_no))
            pos = end
    if continuation:
        raise ParserError("unexpected end of file after line continuation", filename, 0)
    return tokens


def _parse_info_block(
    tokens: list[tuple[str, str, int]],
    pos: int,
    node: PropertyTree,
    closing: bool,
    filename: str,
) -> int:
    while pos < len(tokens):
        kind, text, line_no = tokens[pos]
        if kind == "}":
            if not closing:
                raise ParserError("unmatched '}'", filename, line_no)
            return pos + 1
        if kind == "{":
            raise ParserError("unexpected '{'", filename, line_no)
        if kind == "include":
            target = text
            if not os.path.isabs(target):
                target = os.path.join(os.path.dirname(filename), target)
            node._children.extend(read_info(target)._children)
            pos += 1
            continue
        child = PropertyTree()
        pos += 1
        if pos < len(tokens) and tokens[pos][0] in ("str", "word") and tokens[pos][2] == line_no:
            child.data = tokens[pos][1]
            pos += 1
        if pos < len(tokens) and tokens[pos][0] == "{":
            pos = _parse_info_block(tokens, pos + 1, child, True, filename)
        node._children.append((text, child))
    if closing:
        raise ParserError("unmatched '{'", filename, tokens[-1][2] if tokens else 0)
    return pos


def read_info(path: str | os.PathLike[str]) -> PropertyTree:
    """Read an INFO file: ``key value`` lines with ``{ }`` blocks and ``;`` comments."""
    filename = os.fspath(path)
    try:
        with open(filename, encoding="utf-8") as handle:
            text = handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParserError("cannot open file", filename) from exc
    tokens = _tokenize_info(text, filename)
    root = PropertyTree()
    _parse_info_block(tokens, 0, root, False, filename)
    return root


# XML


def _from_xml(element: ET.Element) -> PropertyTree:
    node = PropertyTree(element.text or "")
    if element.attrib:
        attributes = PropertyTree()
        for name, value in element.attrib.items():
            attributes._children.append((name, PropertyTree(value)))
        node._children.append(("<xmlattr>", attributes))
    for child in element:
        node._children.append((child.tag, _from_xml(child)))
        if child.tail:
            node.data += child.tail
    return node


def read_xml(path: str | os.PathLike[str]) -> PropertyTree:
    """Read an XML file; attributes go under a ``<xmlattr>`` child."""
    filename = os.fspath(path)
    try:
        document = ET.parse(filename)
    except ET.ParseError as exc:
        raise ParserError(str(exc), filename, exc.position[0]) from exc
    except OSError as exc:
        raise ParserError("cannot open file", filename) from exc
    root = PropertyTree()
    element = document.getroot()
    root._children.append((element.tag, _from_xml(element)))
    return root


# Merging


def merge_property_trees(
    merged: PropertyTree, second: PropertyTree, level: int = 0
) -> None:
    """Merge ``second`` into ``merged`` in place.

    Below the top level, values and arrays of ``second`` replace what is in
    ``merged``; objects are merged key by key, and each merged key moves to
    the end.
    """
    if level > 0 and (second.empty or second.count("") == len(second)):
        merged.data = second.data
        merged._children = copy.deepcopy(second._children)
        return

    for key, sub in second.items():
        existing = merged._find(key)
        child = copy.deepcopy(existing) if existing is not None else PropertyTree()
        merge_property_trees(child, sub, level + 1)
        merged.erase(key)
        merged._children.append((key, child))