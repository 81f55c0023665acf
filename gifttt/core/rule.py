from __future__ import annotations

import os
from typing import Any

from gifttt.lang import Node, new_file_set, parse
from .scope import GlobalScope
from .variables import VariableManager


class Rule:
    """A parsed rule bound to its own GlobalScope.

    The program is parsed once; every run re-evaluates the same AST.
    """

    def __init__(self, name: str, source: str | bytes, variables: VariableManager):
        fset = new_file_set()
        self.name = name
        self.program: Node = parse(fset, name, source)
        self.scope = GlobalScope(variables, fset)

    @classmethod
    def from_file(cls, path: str, variables: VariableManager) -> "Rule":
        """Read ``path`` and name the rule after its file name."""
        with open(path, "rb") as f:
            data = f.read()
        return cls(os.path.basename(path), data, variables)

    async def run(self) -> Any:
        return await self.scope.eval(self.program)

    def __repr__(self) -> str:
        return f"Rule({self.name!r})"
