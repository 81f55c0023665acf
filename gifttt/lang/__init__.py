"""
Embedded rule language: a small Lisp evaluated against pluggable scopes.
"""
from .errors import EvalError, LangError, ParseError
from .nodes import FileSet, Node, Pos, Root
from .parser import parse
from .scope import DEFAULT_GLOBALS, DefaultScope, Function, Scope, format_value, truthy


def new_file_set() -> FileSet:
    """Return an empty FileSet for parse()."""
    return FileSet()


__all__ = [
    "DEFAULT_GLOBALS",
    "DefaultScope",
    "EvalError",
    "FileSet",
    "Function",
    "LangError",
    "Node",
    "ParseError",
    "Pos",
    "Root",
    "Scope",
    "format_value",
    "new_file_set",
    "parse",
    "truthy",
]
