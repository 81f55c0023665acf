"""Rule language parser — tokenizer and s-expression reader.

Responsibilities
----------------
- Split source text into tokens, dropping whitespace and ``;`` comments
- Classify atoms as Int / Float / Symbol
- Unescape double-quoted strings (``\\"``, ``\\\\``, ``\\n``, ``\\t``)
- Build a Root node holding every top-level form
"""
from __future__ import annotations

import re

from .errors import ParseError
from .nodes import File, FileSet, Float, Int, List, Node, Root, String, Symbol

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<comment>;[^\n]*)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<atom>[^\s()";]+)
""", re.VERBOSE | re.DOTALL)

_INT_RE   = re.compile(r"[+-]?\d+\Z")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?\Z")

_ESCAPES = {"n": "\n", "t": "\t", '"': '"', "\\": "\\"}


def tokenize(source: str, f: File) -> list[tuple[str, str, int]]:
    """Return ``(kind, text, offset)`` tuples; whitespace and comments omitted."""
    tokens: list[tuple[str, str, int]] = []
    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            if source[pos] == '"':
                raise ParseError("unterminated string", f.position(pos))
            raise ParseError(f"unexpected character {source[pos]!r}", f.position(pos))
        kind = m.lastgroup
        if kind not in ("ws", "comment"):
            tokens.append((kind, m.group(0), pos))
        pos = m.end()
    return tokens


def _unescape(raw: str, offset: int, f: File) -> str:
    out: list[str] = []
    i = 1
    end = len(raw) - 1
    while i < end:
        ch = raw[i]
        if ch == "\\":
            nxt = raw[i + 1]
            if nxt not in _ESCAPES:
                raise ParseError(f"unknown escape sequence \\{nxt}", f.position(offset + i))
            out.append(_ESCAPES[nxt])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _atom(text: str, offset: int, f: File) -> Node:
    pos = f.position(offset)
    if _INT_RE.match(text):
        return Int(int(text), pos)
    if _FLOAT_RE.match(text):
        return Float(float(text), pos)
    return Symbol(text, pos)


# ---------------------------------------------------------------------------
# Reader
# ---------------------------------------------------------------------------

class _Reader:
    def __init__(self, tokens: list[tuple[str, str, int]], f: File) -> None:
        self._tokens = tokens
        self._file = f
        self._i = 0

    def at_end(self) -> bool:
        return self._i >= len(self._tokens)

    def read(self) -> Node:
        kind, text, offset = self._tokens[self._i]
        self._i += 1

        if kind == "lparen":
            items: list[Node] = []
            while True:
                if self.at_end():
                    raise ParseError("unterminated list", self._file.position(offset))
                if self._tokens[self._i][0] == "rparen":
                    self._i += 1
                    return List(tuple(items), self._file.position(offset))
                items.append(self.read())

        if kind == "rparen":
            raise ParseError("unexpected ')'", self._file.position(offset))
        if kind == "string":
            return String(_unescape(text, offset, self._file), self._file.position(offset))
        return _atom(text, offset, self._file)


def parse(fset: FileSet, name: str, source: str | bytes) -> Root:
    """Parse ``source`` registered as ``name`` in ``fset``.

    Raises ParseError with a ``name:line:col`` position on malformed input.
    """
    if isinstance(source, bytes):
        try:
            source = source.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"{name}: source is not valid UTF-8: {exc}") from exc

    f = fset.add_file(name, source)
    reader = _Reader(tokenize(source, f), f)
    forms: list[Node] = []
    while not reader.at_end():
        forms.append(reader.read())
    return Root(tuple(forms), f.position(0))
