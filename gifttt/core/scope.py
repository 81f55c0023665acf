# gifttt/core/scope.py
"""
GlobalScope — the root of every rule's scope chain.

The rule interpreter resolves unknown symbols by walking up to this scope,
which answers from the VariableManager instead of a symbol table. Lexical
operations (create/branch/enclose) belong to the DefaultScope the bridge
builds underneath itself and are refused here.

Built-ins injected into each evaluation:
    (run "cmd" "arg" ...)   start an external command and wait for it
    (log "message")         write a line to the gifttt.rules logger
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from gifttt.lang import DefaultScope, FileSet, Node, Scope
from .exceptions import ArgumentCountError, ArgumentTypeError, UnsupportedScopeOperation
from .variables import VariableManager

_logger = logging.getLogger("gifttt.core.scope")
rules_logger = logging.getLogger("gifttt.rules")


class GlobalScope(Scope):
    """Scope whose symbols are gifttt variables."""

    def __init__(self, variables: VariableManager, fset: FileSet):
        self.variables = variables
        self.fset = fset

    async def create(self, symbol: str, value: Any) -> None:
        raise UnsupportedScopeOperation("create")

    async def set(self, symbol: str, value: Any) -> None:
        await self.variables.set(symbol, value)

    async def get(self, symbol: str) -> Any:
        return self.variables.get(symbol)

    def branch(self) -> Scope:
        raise UnsupportedScopeOperation("branch")

    def enclose(self, parent: Scope) -> None:
        raise UnsupportedScopeOperation("enclose")

    async def eval(self, node: Node) -> Any:
        scope = DefaultScope(self.fset)
        scope.enclose(self)
        await scope.create("run", run_builtin)
        await scope.create("log", log_builtin)
        return await scope.eval(node)


# ----------------------------------------------------------
# Built-ins
# ----------------------------------------------------------
async def run_builtin(args: List[Any]) -> None:
    """Run an external command; failures are logged, never raised."""
    if len(args) < 1:
        raise ArgumentCountError("run takes at least one argument")
    if not all(isinstance(a, str) for a in args):
        raise ArgumentTypeError("run only takes string arguments")

    try:
        proc = await asyncio.create_subprocess_exec(*args)
    except (OSError, ValueError) as e:
        _logger.warning(f"run: could not start {args[0]!r}: {e}")
        return None

    code = await proc.wait()
    if code != 0:
        _logger.warning(f"run: {args[0]!r} exited with status {code}")
    else:
        _logger.debug(f"run: {args[0]!r} finished")
    return None


def log_builtin(args: List[Any]) -> None:
    """Write a single string to the rules logger."""
    if len(args) != 1:
        raise ArgumentCountError("log takes a single string argument")
    if not isinstance(args[0], str):
        raise ArgumentTypeError("log takes a single string argument")
    rules_logger.info(args[0])
    return None
