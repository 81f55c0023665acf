# gifttt/__init__.py
"""
gifttt - reactive automation engine

Named, persisted variables whose changes re-run user rules written in a
small Lisp. Heavy runtime components are imported lazily.
"""

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "main",
    "Clock",
    "GlobalScope",
    "Rule",
    "RuleManager",
    "VariableManager",
]

from importlib import import_module


# ---------------------------------------------------------------------------
# Lazy import layer — avoids circular imports at package import time
# ---------------------------------------------------------------------------
def __getattr__(name: str):
    """Dynamically expose runtime components only when accessed."""
    mapping = {
        "Clock": "gifttt.core.clock",
        "GlobalScope": "gifttt.core.scope",
        "Rule": "gifttt.core.rule",
        "RuleManager": "gifttt.core.manager",
        "VariableManager": "gifttt.core.variables",
    }

    if name in mapping:
        module = import_module(mapping[name])
        obj = getattr(module, name)
        globals()[name] = obj  # cache for future lookups
        return obj

    raise AttributeError(f"module 'gifttt' has no attribute '{name}'")


def main() -> int:
    """Console-script entrypoint; delegates to gifttt.cli."""
    from gifttt.cli import main as cli_main
    return cli_main()
