# gifttt/core/__init__.py
"""
Core reactive engine: variables, the global rule scope, rules and the
rule manager.
"""
from importlib import import_module

__all__ = ["VariableManager", "GlobalScope", "Rule", "RuleManager", "Clock"]

_LAZY = {
    "VariableManager": "gifttt.core.variables",
    "GlobalScope": "gifttt.core.scope",
    "Rule": "gifttt.core.rule",
    "RuleManager": "gifttt.core.manager",
    "Clock": "gifttt.core.clock",
}


def __getattr__(name: str):
    if name in _LAZY:
        obj = getattr(import_module(_LAZY[name]), name)
        globals()[name] = obj
        return obj
    raise AttributeError(f"module 'gifttt.core' has no attribute '{name}'")
