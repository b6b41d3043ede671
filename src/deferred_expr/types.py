"""Node kinds and operator signatures.

Every combinator is described by an OperatorSpec in OPERATORS. The spec
drives both construction (arity, the Python function applied to evaluated
operands) and formula rendering (symbol, fixity).
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable
import operator


class NodeType(Enum):
    """Kinds of expression nodes."""

    PLACEHOLDER = auto()  # Selects one invocation argument
    VARIABLE = auto()     # Non-owning reference to caller storage
    CONSTANT = auto()     # Owned private copy of a value
    COMPOSITE = auto()    # Operator applied to sub-expressions
    BINDER = auto()       # First stage of a member-function call

    def is_leaf(self) -> bool:
        """Check if nodes of this kind terminate a tree."""
        return self in (NodeType.PLACEHOLDER, NodeType.VARIABLE, NodeType.CONSTANT)


class Fixity(Enum):
    """How an operator is written when a tree is rendered."""

    PREFIX = auto()    # -x, ++x, not x
    POSTFIX = auto()   # x++
    INFIX = auto()     # (x + y)
    SEQUENCE = auto()  # (x, y, z)
    CALL = auto()      # f(x, y)
    INDEX = auto()     # x[i]
    MEMBER = auto()    # x.name


@dataclass(frozen=True)
class OperatorSpec:
    """Signature of a combinator.

    Attributes:
        name: Registry key and builder name
        symbol: Text used when rendering
        arity: Number of operands (None for variadic)
        fixity: Rendering style
        function: Python function applied to evaluated operands, if any
    """

    name: str
    symbol: str
    arity: int | None
    fixity: Fixity
    function: Callable[..., Any] | None = None

    def __deepcopy__(self, memo: dict) -> "OperatorSpec":
        return self

    def accepts(self, n_operands: int) -> bool:
        """Check if the operator can take n_operands operands."""
        if self.arity is None:
            return n_operands >= 1
        return n_operands == self.arity


def _spec(name: str, symbol: str, arity: int | None, fixity: Fixity,
          function: Callable[..., Any] | None = None) -> OperatorSpec:
    return OperatorSpec(name, symbol, arity, fixity, function)


_UNARY = [
    _spec("pos", "+", 1, Fixity.PREFIX, operator.pos),
    _spec("neg", "-", 1, Fixity.PREFIX, operator.neg),
    _spec("invert", "~", 1, Fixity.PREFIX, operator.invert),
    _spec("abs", "abs", 1, Fixity.CALL, operator.abs),
    _spec("not_", "not ", 1, Fixity.PREFIX, operator.not_),
    _spec("deref", "*", 1, Fixity.PREFIX),
    _spec("address_of", "&", 1, Fixity.PREFIX),
    _spec("pre_inc", "++", 1, Fixity.PREFIX, operator.iadd),
    _spec("pre_dec", "--", 1, Fixity.PREFIX, operator.isub),
    _spec("post_inc", "++", 1, Fixity.POSTFIX, operator.iadd),
    _spec("post_dec", "--", 1, Fixity.POSTFIX, operator.isub),
]

_BINARY = [
    # Arithmetic
    _spec("add", "+", 2, Fixity.INFIX, operator.add),
    _spec("sub", "-", 2, Fixity.INFIX, operator.sub),
    _spec("mul", "*", 2, Fixity.INFIX, operator.mul),
    _spec("truediv", "/", 2, Fixity.INFIX, operator.truediv),
    _spec("floordiv", "//", 2, Fixity.INFIX, operator.floordiv),
    _spec("mod", "%", 2, Fixity.INFIX, operator.mod),
    _spec("pow", "**", 2, Fixity.INFIX, operator.pow),
    _spec("matmul", "@", 2, Fixity.INFIX, operator.matmul),

    # Bitwise
    _spec("bit_and", "&", 2, Fixity.INFIX, operator.and_),
    _spec("bit_or", "|", 2, Fixity.INFIX, operator.or_),
    _spec("bit_xor", "^", 2, Fixity.INFIX, operator.xor),
    _spec("lshift", "<<", 2, Fixity.INFIX, operator.lshift),
    _spec("rshift", ">>", 2, Fixity.INFIX, operator.rshift),

    # Comparison
    _spec("lt", "<", 2, Fixity.INFIX, operator.lt),
    _spec("le", "<=", 2, Fixity.INFIX, operator.le),
    _spec("gt", ">", 2, Fixity.INFIX, operator.gt),
    _spec("ge", ">=", 2, Fixity.INFIX, operator.ge),
    _spec("eq", "==", 2, Fixity.INFIX, operator.eq),
    _spec("ne", "!=", 2, Fixity.INFIX, operator.ne),

    # Logical (short-circuit, evaluated by the combinator itself)
    _spec("and_", "and", 2, Fixity.INFIX),
    _spec("or_", "or", 2, Fixity.INFIX),
]

_ASSIGNMENT = [
    _spec("assign", "=", 2, Fixity.INFIX),
    _spec("iadd", "+=", 2, Fixity.INFIX, operator.iadd),
    _spec("isub", "-=", 2, Fixity.INFIX, operator.isub),
    _spec("imul", "*=", 2, Fixity.INFIX, operator.imul),
    _spec("itruediv", "/=", 2, Fixity.INFIX, operator.itruediv),
    _spec("ifloordiv", "//=", 2, Fixity.INFIX, operator.ifloordiv),
    _spec("imod", "%=", 2, Fixity.INFIX, operator.imod),
    _spec("ipow", "**=", 2, Fixity.INFIX, operator.ipow),
    _spec("imatmul", "@=", 2, Fixity.INFIX, operator.imatmul),
    _spec("iand", "&=", 2, Fixity.INFIX, operator.iand),
    _spec("ior", "|=", 2, Fixity.INFIX, operator.ior),
    _spec("ixor", "^=", 2, Fixity.INFIX, operator.ixor),
    _spec("ilshift", "<<=", 2, Fixity.INFIX, operator.ilshift),
    _spec("irshift", ">>=", 2, Fixity.INFIX, operator.irshift),
]

_STRUCTURAL = [
    _spec("comma", ",", None, Fixity.SEQUENCE),
    _spec("index", "[]", 2, Fixity.INDEX, operator.getitem),
    _spec("member", ".", 1, Fixity.MEMBER),
    _spec("method", ".", None, Fixity.MEMBER),
    _spec("bind", "()", None, Fixity.CALL),
]

OPERATORS: dict[str, OperatorSpec] = {
    spec.name: spec for spec in _UNARY + _BINARY + _ASSIGNMENT + _STRUCTURAL
}


def get_operator(name: str) -> OperatorSpec:
    """Look up an operator signature by name."""
    try:
        return OPERATORS[name]
    except KeyError:
        raise ValueError(f"Unknown operator: {name}") from None

