# exceptions.py
class GiftttError(Exception):
    """Base exception for all gifttt errors."""
    pass

class StoreError(GiftttError):
    """Raised when the backing store cannot be read or written."""
    pass

class KeyNotFoundError(StoreError):
    """Raised by a Store when a key does not exist."""

    def __init__(self, key: str):
        super().__init__(f"key not found: {key}")
        self.key = key

class DecodeError(GiftttError):
    """Raised when a persisted variable record cannot be decoded."""
    pass

class UndefinedSymbolError(GiftttError):
    """Raised when a variable has never been set."""

    def __init__(self, name: str):
        super().__init__(f"undefined symbol: {name}")
        self.name = name

class ValueTypeError(GiftttError):
    """Raised when a value cannot be stored in a variable."""
    pass

class UnsupportedScopeOperation(GiftttError):
    """Raised for lexical operations on the global variable scope."""

    def __init__(self, operation: str):
        super().__init__(f"operation not supported at global scope: {operation}")
        self.operation = operation

class BuiltinArgumentError(GiftttError):
    """Raised when a rule built-in is called with bad arguments."""
    pass

class ArgumentCountError(BuiltinArgumentError):
    """Wrong number of arguments."""
    pass

class ArgumentTypeError(BuiltinArgumentError):
    """Argument of the wrong type."""
    pass

class ConfigError(GiftttError):
    """Raised when configuration is invalid."""
    pass
