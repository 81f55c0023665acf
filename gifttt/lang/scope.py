"""Scopes and evaluation for the rule language.

A Scope resolves symbols and evaluates nodes. DefaultScope is the standard
lexical scope: it owns a symbol table, falls back to an enclosing parent for
symbols it does not bind, and knows the special forms

    var set if do func and or for range

plus the default function table (arithmetic, comparison, ``not``, ``error``,
``str``, ``len``). Callables receive the list of evaluated arguments and may
return an awaitable.
"""
from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Sequence

from .errors import EvalError
from .nodes import FileSet, Float, Int, List, Node, Pos, Root, String, Symbol


class Scope(ABC):
    """Symbol resolution and evaluation contract."""

    @abstractmethod
    async def create(self, symbol: str, value: Any) -> None:
        """Bind a new symbol in this scope."""

    @abstractmethod
    async def set(self, symbol: str, value: Any) -> None:
        """Assign an existing symbol."""

    @abstractmethod
    async def get(self, symbol: str) -> Any:
        """Resolve a symbol."""

    @abstractmethod
    def branch(self) -> "Scope":
        """Return a new child scope enclosed by this one."""

    @abstractmethod
    def enclose(self, parent: "Scope") -> None:
        """Attach ``parent`` as the fallback for unresolved symbols."""

    @abstractmethod
    async def eval(self, node: Node) -> Any:
        """Evaluate ``node`` in this scope."""


def truthy(value: Any) -> bool:
    """``false`` and ``nil`` are false; everything else is true."""
    return not (value is None or value is False)


def format_value(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------

class Function:
    """A closure created by ``func``."""

    def __init__(self, name: str, params: Sequence[str], body: Sequence[Node], scope: Scope):
        self.name = name
        self.params = tuple(params)
        self.body = tuple(body)
        self.scope = scope

    async def __call__(self, args: list) -> Any:
        if len(args) != len(self.params):
            raise EvalError(
                f"function {self.name} takes {len(self.params)} arguments, got {len(args)}"
            )
        local = self.scope.branch()
        for param, arg in zip(self.params, args):
            await local.create(param, arg)
        result = None
        for form in self.body:
            result = await local.eval(form)
        return result

    def __repr__(self) -> str:
        return f"<func {self.name}>"


def _numbers(name: str, args: list) -> list:
    for a in args:
        if not _is_number(a):
            raise EvalError(f"{name} takes numeric arguments, got {format_value(a)!r}")
    return args


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def _add(args: list) -> Any:
    if args and all(isinstance(a, str) for a in args):
        return "".join(args)
    result = 0
    for a in _numbers("+", args):
        result += a
    return result


def _sub(args: list) -> Any:
    _numbers("-", args)
    if not args:
        raise EvalError("- takes at least one argument")
    if len(args) == 1:
        return -args[0]
    result = args[0]
    for a in args[1:]:
        result -= a
    return result


def _mul(args: list) -> Any:
    result = 1
    for a in _numbers("*", args):
        result *= a
    return result


def _div(args: list) -> Any:
    _numbers("/", args)
    if len(args) < 2:
        raise EvalError("/ takes at least two arguments")
    result = args[0]
    for a in args[1:]:
        if a == 0:
            raise EvalError("division by zero")
        if isinstance(result, int) and isinstance(a, int):
            result = _trunc_div(result, a)
        else:
            result = result / a
    return result


def _mod(args: list) -> Any:
    if len(args) != 2 or not all(isinstance(a, int) and not isinstance(a, bool) for a in args):
        raise EvalError("% takes two integer arguments")
    a, b = args
    if b == 0:
        raise EvalError("division by zero")
    return a - b * _trunc_div(a, b)


def _equal(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    if type(a) is not type(b):
        return False
    return a == b


def _eq(args: list) -> bool:
    if len(args) != 2:
        raise EvalError("== takes two arguments")
    return _equal(args[0], args[1])


def _ne(args: list) -> bool:
    if len(args) != 2:
        raise EvalError("!= takes two arguments")
    return not _equal(args[0], args[1])


def _comparison(name: str, op: Callable[[Any, Any], bool]) -> Callable[[list], bool]:
    def compare(args: list) -> bool:
        if len(args) != 2:
            raise EvalError(f"{name} takes two arguments")
        a, b = args
        if not ((_is_number(a) and _is_number(b)) or (isinstance(a, str) and isinstance(b, str))):
            raise EvalError(f"cannot compare {format_value(a)!r} and {format_value(b)!r} with {name}")
        return op(a, b)
    return compare


def _not(args: list) -> bool:
    if len(args) != 1:
        raise EvalError("not takes one argument")
    return not truthy(args[0])


def _error(args: list) -> Any:
    if len(args) != 1 or not isinstance(args[0], str):
        raise EvalError("error takes a single string argument")
    raise EvalError(args[0])


def _str(args: list) -> str:
    if len(args) != 1:
        raise EvalError("str takes one argument")
    return format_value(args[0])


def _len(args: list) -> int:
    if len(args) != 1 or not isinstance(args[0], (str, list, dict)):
        raise EvalError("len takes one string, list or map argument")
    return len(args[0])


DEFAULT_GLOBALS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "nil": None,
    "+": _add,
    "-": _sub,
    "*": _mul,
    "/": _div,
    "%": _mod,
    "==": _eq,
    "!=": _ne,
    "<": _comparison("<", lambda a, b: a < b),
    ">": _comparison(">", lambda a, b: a > b),
    "<=": _comparison("<=", lambda a, b: a <= b),
    ">=": _comparison(">=", lambda a, b: a >= b),
    "not": _not,
    "error": _error,
    "str": _str,
    "len": _len,
}


# ---------------------------------------------------------------------------
# DefaultScope
# ---------------------------------------------------------------------------

class DefaultScope(Scope):
    """Standard lexical scope.

    ``DefaultScope(fset)`` starts with the default globals; scopes produced
    by ``branch()`` start empty and resolve through their parent.
    """

    def __init__(self, fset: FileSet, *, parent: Optional[Scope] = None, with_globals: bool = True):
        self.fset = fset
        self._parent = parent
        self._vars: Dict[str, Any] = dict(DEFAULT_GLOBALS) if with_globals else {}

    @property
    def parent(self) -> Optional[Scope]:
        return self._parent

    async def create(self, symbol: str, value: Any) -> None:
        if symbol in self._vars:
            raise EvalError(f"symbol already defined: {symbol}")
        self._vars[symbol] = value

    async def set(self, symbol: str, value: Any) -> None:
        if symbol in self._vars:
            self._vars[symbol] = value
        elif self._parent is not None:
            await self._parent.set(symbol, value)
        else:
            raise EvalError(f"undefined symbol: {symbol}")

    async def get(self, symbol: str) -> Any:
        if symbol in self._vars:
            return self._vars[symbol]
        if self._parent is not None:
            return await self._parent.get(symbol)
        raise EvalError(f"undefined symbol: {symbol}")

    def branch(self) -> "DefaultScope":
        return DefaultScope(self.fset, parent=self, with_globals=False)

    def enclose(self, parent: Scope) -> None:
        if self._parent is not None:
            raise EvalError("scope is already enclosed")
        self._parent = parent

    # ------------------------------------------------------------------
    async def eval(self, node: Node) -> Any:
        if isinstance(node, (Int, Float, String)):
            return node.value
        if isinstance(node, Symbol):
            try:
                return await self.get(node.name)
            except EvalError as exc:
                if exc.pos is None:
                    exc.pos = node.pos
                raise
        if isinstance(node, Root):
            result = None
            for form in node.forms:
                result = await self.eval(form)
            return result
        if isinstance(node, List):
            return await self._eval_list(node)
        raise EvalError(f"cannot evaluate node of type {type(node).__name__}")

    async def _eval_list(self, node: List) -> Any:
        if not node.items:
            raise EvalError("cannot evaluate empty list", node.pos)

        head, args = node.items[0], node.items[1:]
        if isinstance(head, Symbol):
            special = _SPECIAL_FORMS.get(head.name)
            if special is not None:
                return await special(self, args, node.pos)

        fn = await self.eval(head)
        values = [await self.eval(a) for a in args]
        if not callable(fn):
            raise EvalError(f"cannot call non-function {format_value(fn)!r}", node.pos)

        try:
            result = fn(values)
            if inspect.isawaitable(result):
                result = await result
        except EvalError as exc:
            if exc.pos is None:
                exc.pos = node.pos
            raise
        return result

    async def _body(self, forms: Sequence[Node]) -> Any:
        result = None
        for form in forms:
            result = await self.eval(form)
        return result

    # ------------------------------------------------------------------
    # Special forms
    # ------------------------------------------------------------------

    async def _form_var(self, args: Sequence[Node], pos: Pos) -> Any:
        if len(args) not in (1, 2) or not isinstance(args[0], Symbol):
            raise EvalError("var takes a symbol and an optional value", pos)
        value = await self.eval(args[1]) if len(args) == 2 else None
        await self.create(args[0].name, value)
        return value

    async def _form_set(self, args: Sequence[Node], pos: Pos) -> Any:
        if len(args) != 2 or not isinstance(args[0], Symbol):
            raise EvalError("set takes a symbol and a value", pos)
        value = await self.eval(args[1])
        await self.set(args[0].name, value)
        return value

    async def _form_if(self, args: Sequence[Node], pos: Pos) -> Any:
        if len(args) not in (2, 3):
            raise EvalError("if takes a condition, a then-branch and an optional else-branch", pos)
        if truthy(await self.eval(args[0])):
            return await self.eval(args[1])
        if len(args) == 3:
            return await self.eval(args[2])
        return None

    async def _form_do(self, args: Sequence[Node], pos: Pos) -> Any:
        return await self.branch()._body(args)

    async def _form_func(self, args: Sequence[Node], pos: Pos) -> Any:
        name = "anonymous"
        rest = list(args)
        if rest and isinstance(rest[0], Symbol):
            name = rest.pop(0).name
        if not rest or not isinstance(rest[0], List):
            raise EvalError("func takes an optional name, a parameter list and a body", pos)
        params = rest.pop(0).items
        if not all(isinstance(p, Symbol) for p in params):
            raise EvalError("func parameters must be symbols", pos)
        fn = Function(name, [p.name for p in params], rest, self)
        if name != "anonymous":
            await self.create(name, fn)
        return fn

    async def _form_and(self, args: Sequence[Node], pos: Pos) -> Any:
        result: Any = True
        for a in args:
            result = await self.eval(a)
            if not truthy(result):
                return result
        return result

    async def _form_or(self, args: Sequence[Node], pos: Pos) -> Any:
        result: Any = False
        for a in args:
            result = await self.eval(a)
            if truthy(result):
                return result
        return result

    async def _form_for(self, args: Sequence[Node], pos: Pos) -> Any:
        if len(args) < 3:
            raise EvalError("for takes init, condition, post and a body", pos)
        init, cond, post, body = args[0], args[1], args[2], args[3:]
        local = self.branch()
        await local.eval(init)
        result = None
        while truthy(await local.eval(cond)):
            result = await local.branch()._body(body)
            await local.eval(post)
        return result

    async def _form_range(self, args: Sequence[Node], pos: Pos) -> Any:
        if len(args) < 2 or not isinstance(args[0], Symbol):
            raise EvalError("range takes a symbol, a count and a body", pos)
        count = await self.eval(args[1])
        if not isinstance(count, int) or isinstance(count, bool):
            raise EvalError("range count must be an integer", pos)
        local = self.branch()
        await local.create(args[0].name, 0)
        result = None
        for i in range(count):
            await local.set(args[0].name, i)
            result = await local.branch()._body(args[2:])
        return result


_SPECIAL_FORMS = {
    "var": DefaultScope._form_var,
    "set": DefaultScope._form_set,
    "if": DefaultScope._form_if,
    "do": DefaultScope._form_do,
    "func": DefaultScope._form_func,
    "and": DefaultScope._form_and,
    "or": DefaultScope._form_or,
    "for": DefaultScope._form_for,
    "range": DefaultScope._form_range,
}
