# gifttt/lang/errors.py
from __future__ import annotations

from typing import Optional

from .nodes import Pos


class LangError(Exception):
    """Base exception for the rule language."""

    def __init__(self, message: str, pos: Optional[Pos] = None):
        super().__init__(message)
        self.message = message
        self.pos = pos

    def __str__(self) -> str:
        if self.pos is None:
            return self.message
        return f"{self.pos}: {self.message}"


class ParseError(LangError):
    """Raised when rule source cannot be parsed."""
    pass


class EvalError(LangError):
    """Raised when evaluation of a parsed program fails."""
    pass
