"""AST node dataclasses for the rule language.

The AST is built by parser.py and evaluated by scope.DefaultScope.

Leaf nodes
----------
Int / Float / String — literals
Symbol               — a name looked up in the current scope (``time:second``)

Branch nodes
------------
List — a parenthesised form ``(head arg …)``
Root — every top-level form of one source file, evaluated in order
"""
from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Pos:
    """A resolved source position (1-based line and column)."""
    filename: str
    line:     int
    col:      int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.col}"


class File:
    """One source file registered in a FileSet."""

    def __init__(self, name: str, source: str) -> None:
        self.name = name
        self.size = len(source)
        # offsets where each line starts
        self._lines = [0] + [i + 1 for i, ch in enumerate(source) if ch == "\n"]

    def position(self, offset: int) -> Pos:
        idx = bisect.bisect_right(self._lines, offset) - 1
        return Pos(self.name, idx + 1, offset - self._lines[idx] + 1)


class FileSet:
    """Registry of parsed source files, used for error positions."""

    def __init__(self) -> None:
        self._files: dict[str, File] = {}

    def add_file(self, name: str, source: str) -> File:
        f = File(name, source)
        self._files[name] = f
        return f

    def file(self, name: str) -> File | None:
        return self._files.get(name)

    def __len__(self) -> int:
        return len(self._files)


@dataclass(frozen=True)
class Int:
    value: int
    pos:   Pos


@dataclass(frozen=True)
class Float:
    value: float
    pos:   Pos


@dataclass(frozen=True)
class String:
    value: str
    pos:   Pos


@dataclass(frozen=True)
class Symbol:
    name: str
    pos:  Pos


@dataclass(frozen=True)
class List:
    """A parenthesised form; ``items[0]`` is the head."""
    items: tuple["Node", ...] = field(default_factory=tuple)
    pos:   Pos | None = None


@dataclass(frozen=True)
class Root:
    """All top-level forms of one file."""
    forms: tuple["Node", ...] = field(default_factory=tuple)
    pos:   Pos | None = None


# Convenience union type (for type hints only; use isinstance() at runtime)
Node = Union[Int, Float, String, Symbol, List, Root]
