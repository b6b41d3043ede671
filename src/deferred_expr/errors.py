"""Exceptions raised by expression construction and invocation.

Every error here is a programmer error rather than an expected runtime
condition. The classes also derive from the matching built-in exception so
callers can catch ``IndexError``/``TypeError`` without importing this module.
"""


class ExpressionError(Exception):
    """Base class for expression errors."""

    pass


class PlaceholderArityError(ExpressionError, IndexError):
    """Raised when an invocation supplies fewer arguments than a placeholder selects."""

    def __init__(self, required: int, supplied: int, formula: str = "") -> None:
        self.required = required
        self.supplied = supplied
        self.formula = formula
        where = f" in {formula}" if formula else ""
        super().__init__(
            f"Placeholder out of range{where}: needs {required} argument(s), got {supplied}"
        )


class OperandTypeError(ExpressionError, TypeError):
    """Raised when an operator cannot be applied to its operands."""

    pass


class NotAssignableError(ExpressionError, TypeError):
    """Raised when assigning through a node or place without writable storage."""

    pass
