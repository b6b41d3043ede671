"""Expression nodes for deferred evaluation.

Implements the nodes an expression tree is built from:
- Placeholder: selects one invocation argument (_1 .. _7)
- Variable: non-owning reference to caller storage
- Constant: private copy of a value
- Composite: an operator applied to already-coerced sub-expressions

Every node is callable. Calling a tree with arguments evaluates it bottom-up
against those arguments; building a tree never evaluates anything.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar
import copy
import logging
import operator
import reprlib

from deferred_expr.config import get_settings
from deferred_expr.errors import (
    NotAssignableError,
    OperandTypeError,
    PlaceholderArityError,
)
from deferred_expr.refs import ObjectRef, Place, Ref, ItemRef
from deferred_expr.types import Fixity, NodeType, OperatorSpec, get_operator

logger = logging.getLogger(__name__)

Args = tuple[Any, ...]
Operation = Callable[[Args, tuple["Expression", ...]], Any]
Locator = Callable[[Args, tuple["Expression", ...]], Place]


def _binary_method(name: str) -> Callable[["Expression", Any], "Composite"]:
    def method(self: "Expression", other: Any) -> "Composite":
        return binary_expression(name, self, other)

    method.__name__ = f"__{name}__"
    return method


def _reflected_method(name: str) -> Callable[["Expression", Any], "Composite"]:
    def method(self: "Expression", other: Any) -> "Composite":
        return binary_expression(name, other, self)

    method.__name__ = f"__r{name}__"
    return method


def _unary_method(name: str) -> Callable[["Expression"], "Composite"]:
    def method(self: "Expression") -> "Composite":
        return unary_expression(name, self)

    method.__name__ = f"__{name}__"
    return method


class Expression(ABC):
    """Abstract base class for expression nodes.

    Operators applied to an expression build a new Composite instead of
    computing a value. Python has no spelling for some operators (logical
    and/or, increment, assignment, dereference); those are the named builders
    in deferred_expr.combinators.
    """

    # Keep numpy from broadcasting over expressions: ndarray + expr -> expr
    __array_ufunc__ = None

    @property
    @abstractmethod
    def node_type(self) -> NodeType:
        """Get the kind of this node."""
        pass

    @abstractmethod
    def evaluate(self, args: Args) -> Any:
        """Evaluate this node against an argument tuple.

        Unlike calling the node, no arity check is made.
        """
        pass

    @abstractmethod
    def to_string(self) -> str:
        """Convert node to its formula."""
        pass

    def locate(self, args: Args) -> Place:
        """Get the storage place this node denotes for the given arguments."""
        raise NotAssignableError(f"{self.to_string()} is not assignable")

    @property
    def assignable(self) -> bool:
        """Whether locate() can produce a writable place."""
        return False

    @property
    def is_const(self) -> bool:
        """Whether this node reads from a Constant's private value."""
        return False

    @property
    def children(self) -> tuple["Expression", ...]:
        """Get the direct sub-expressions."""
        return ()

    @property
    def arity(self) -> int:
        """Get the number of invocation arguments this tree needs."""
        return max((c.arity for c in self.children), default=0)

    @property
    def formula(self) -> str:
        """Get string representation of the tree."""
        return self.to_string()

    def __call__(self, *args: Any) -> Any:
        """Invoke the tree with concrete arguments."""
        required = self.arity
        if len(args) < required:
            logger.debug(f"Arity check failed for {self.formula}: {len(args)} < {required}")
            raise PlaceholderArityError(required, len(args), self.formula)
        return self.evaluate(args)

    def clone(self) -> "Expression":
        """Create an independent deep copy of this tree."""
        return copy.deepcopy(self)

    def assign(self, rhs: Any) -> "Composite":
        """Build ``self = rhs``."""
        from deferred_expr.combinators import assign

        return assign(self, rhs)

    def call(self, *params: Any, **keywords: Any) -> "Composite":
        """Build a call of this node's value with the given parameters."""
        from deferred_expr.combinators import bind

        return bind(self, *params, **keywords)

    def __getitem__(self, key: Any) -> "Composite":
        return index_expression(self, key)

    def __iter__(self):
        raise TypeError(f"{type(self).__name__} is not iterable")

    def __bool__(self) -> bool:
        raise OperandTypeError(
            "Expressions have no truth value until invoked; "
            "use and_(), or_() or not_() instead of and/or/not"
        )

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.to_string()})"

    # Arithmetic
    __add__ = _binary_method("add")
    __radd__ = _reflected_method("add")
    __sub__ = _binary_method("sub")
    __rsub__ = _reflected_method("sub")
    __mul__ = _binary_method("mul")
    __rmul__ = _reflected_method("mul")
    __truediv__ = _binary_method("truediv")
    __rtruediv__ = _reflected_method("truediv")
    __floordiv__ = _binary_method("floordiv")
    __rfloordiv__ = _reflected_method("floordiv")
    __mod__ = _binary_method("mod")
    __rmod__ = _reflected_method("mod")
    __pow__ = _binary_method("pow")
    __rpow__ = _reflected_method("pow")
    __matmul__ = _binary_method("matmul")
    __rmatmul__ = _reflected_method("matmul")

    # Bitwise
    __and__ = _binary_method("bit_and")
    __rand__ = _reflected_method("bit_and")
    __or__ = _binary_method("bit_or")
    __ror__ = _reflected_method("bit_or")
    __xor__ = _binary_method("bit_xor")
    __rxor__ = _reflected_method("bit_xor")
    __lshift__ = _binary_method("lshift")
    __rlshift__ = _reflected_method("lshift")
    __rshift__ = _binary_method("rshift")
    __rrshift__ = _reflected_method("rshift")

    # Comparison (Python reflects these itself: 3 < _1 becomes _1 > 3)
    __lt__ = _binary_method("lt")
    __le__ = _binary_method("le")
    __gt__ = _binary_method("gt")
    __ge__ = _binary_method("ge")
    __eq__ = _binary_method("eq")  # type: ignore[assignment]
    __ne__ = _binary_method("ne")  # type: ignore[assignment]
    __hash__ = object.__hash__

    # Unary
    __neg__ = _unary_method("neg")
    __pos__ = _unary_method("pos")
    __invert__ = _unary_method("invert")
    __abs__ = _unary_method("abs")


@dataclass(eq=False, repr=False)
class Placeholder(Expression):
    """Leaf selecting the index-th invocation argument.

    Placeholders are interned: Placeholder(0) is _1. A Ref argument is read
    through, and is what assignments through the placeholder write to.
    """

    index: int

    _instances: ClassVar[dict[int, "Placeholder"]] = {}

    def __new__(cls, index: int) -> "Placeholder":
        index = operator.index(index)
        limit = get_settings().max_placeholders
        if not 0 <= index < limit:
            raise ValueError(f"Placeholder index {index} outside [0, {limit})")
        return cls._intern(index)

    @classmethod
    def _intern(cls, index: int) -> "Placeholder":
        instance = cls._instances.get(index)
        if instance is None:
            instance = super().__new__(cls)
            instance.index = index
            cls._instances[index] = instance
        return instance

    def __copy__(self) -> "Placeholder":
        return self

    def __deepcopy__(self, memo: dict) -> "Placeholder":
        return self

    def __reduce__(self):
        return (Placeholder, (self.index,))

    @property
    def node_type(self) -> NodeType:
        return NodeType.PLACEHOLDER

    @property
    def arity(self) -> int:
        return self.index + 1

    @property
    def assignable(self) -> bool:
        return True

    def evaluate(self, args: Args) -> Any:
        value = args[self.index]
        if isinstance(value, Ref):
            return value.value
        return value

    def locate(self, args: Args) -> Place:
        value = args[self.index]
        if isinstance(value, Ref):
            return value
        return ObjectRef(value)

    def member(self, pointer: Any) -> Expression:
        """Access a member of the selected argument through a member pointer.

        Data members give an assignable expression; member functions give a
        binder which, called with parameter expressions, builds the call.
        """
        from deferred_expr.members import member_access

        return member_access(self, pointer)

    def to_string(self) -> str:
        return f"_{self.index + 1}"


@dataclass(eq=False, repr=False)
class Variable(Expression):
    """Leaf referring to caller-owned storage.

    A Ref storage box is read and written through. Any other object, pointers
    and other places included, is yielded as is and can only be mutated in
    place, the same way a placeholder treats its argument.
    The storage is never copied, including when the tree is cloned.
    """

    storage: Any

    def __deepcopy__(self, memo: dict) -> "Variable":
        return Variable(self.storage)

    @property
    def node_type(self) -> NodeType:
        return NodeType.VARIABLE

    @property
    def assignable(self) -> bool:
        return True

    def evaluate(self, args: Args) -> Any:
        if isinstance(self.storage, Ref):
            return self.storage.value
        return self.storage

    def locate(self, args: Args) -> Place:
        if isinstance(self.storage, Ref):
            return self.storage
        return ObjectRef(self.storage)

    def to_string(self) -> str:
        # Callables captured by bind() render by name
        if callable(self.storage) and not isinstance(self.storage, Place):
            return _short_repr(self.storage)
        return f"var({_short_repr(self.storage)})"


@dataclass(eq=False, repr=False)
class Constant(Expression):
    """Leaf owning a private copy of a value.

    The copy is taken at construction according to settings.constant_copy;
    a value that cannot be copied raises OperandTypeError.
    Constants cannot be assigned to, and neither can anything indexed from them.
    """

    value: Any

    def __post_init__(self) -> None:
        self.value = _private_copy(self.value, get_settings().constant_copy)

    @property
    def node_type(self) -> NodeType:
        return NodeType.CONSTANT

    @property
    def is_const(self) -> bool:
        return True

    def evaluate(self, args: Args) -> Any:
        return self.value

    def assign(self, rhs: Any) -> "Composite":
        raise NotAssignableError(f"Cannot assign to constant {self.to_string()}")

    def to_string(self) -> str:
        return _short_repr(self.value)


@dataclass(eq=False, repr=False)
class Composite(Expression):
    """Operator applied to sub-expressions.

    Attributes:
        spec: Operator signature (symbol and fixity used for rendering)
        operation: Stateless function of (args, operands) giving the value
        operands: Coerced sub-expressions, evaluated against the same args
        locator: Function of (args, operands) giving the place, for lvalues
        detail: Member name for member access nodes
        keywords: Names for the trailing operands passed as keyword arguments
        const: Whether the result reads from a Constant
    """

    spec: OperatorSpec
    operation: Operation
    operands: tuple[Expression, ...] = ()
    locator: Locator | None = None
    detail: str = ""
    keywords: tuple[str, ...] = ()
    const: bool = False
    _arity: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if not self.spec.accepts(len(self.operands)):
            raise ValueError(
                f"Operator {self.spec.name!r} cannot take {len(self.operands)} operand(s)"
            )
        self._arity = max((o.arity for o in self.operands), default=0)

    @property
    def node_type(self) -> NodeType:
        return NodeType.COMPOSITE

    @property
    def children(self) -> tuple[Expression, ...]:
        return self.operands

    @property
    def arity(self) -> int:
        return self._arity

    @property
    def assignable(self) -> bool:
        return self.locator is not None

    @property
    def is_const(self) -> bool:
        return self.const

    def evaluate(self, args: Args) -> Any:
        return self.operation(args, self.operands)

    def locate(self, args: Args) -> Place:
        if self.locator is None:
            return super().locate(args)
        return self.locator(args, self.operands)

    def to_string(self) -> str:
        spec = self.spec
        parts = [o.to_string() for o in self.operands]
        if self.keywords:
            n = len(parts) - len(self.keywords)
            parts = parts[:n] + [f"{k}={v}" for k, v in zip(self.keywords, parts[n:])]

        if spec.fixity == Fixity.PREFIX:
            return f"{spec.symbol}{parts[0]}"
        if spec.fixity == Fixity.POSTFIX:
            return f"{parts[0]}{spec.symbol}"
        if spec.fixity == Fixity.INFIX:
            return f"({parts[0]} {spec.symbol} {parts[1]})"
        if spec.fixity == Fixity.SEQUENCE:
            return f"({', '.join(parts)})"
        if spec.fixity == Fixity.INDEX:
            return f"{parts[0]}[{parts[1]}]"
        if spec.fixity == Fixity.MEMBER:
            if spec.name == "method":
                return f"{parts[0]}.{self.detail}({', '.join(parts[1:])})"
            return f"{parts[0]}.{self.detail}"
        if spec.name == "bind":
            return f"{parts[0]}({', '.join(parts[1:])})"
        return f"{spec.symbol}({', '.join(parts)})"


# =============================================================================
# Coercion
# =============================================================================

def is_expression(value: Any) -> bool:
    """Check if value is already an expression node."""
    return isinstance(value, Expression)


def expressify(value: Any, by_ref: bool | None = None) -> Expression:
    """Turn any value into an expression node.

    Args:
        value: Expression, storage or plain value
        by_ref: Force a Variable (True) or a Constant (False). By default
            places (Ref boxes, pointers) and values that cannot be copied are
            captured by reference; everything else is copied.

    Returns:
        value itself if it is an expression, otherwise a Variable or Constant

    Raises:
        OperandTypeError: If by_ref is False and value cannot be copied
    """
    if isinstance(value, Expression):
        return value
    if by_ref is None:
        if isinstance(value, Place):
            by_ref = True
        else:
            try:
                return Constant(value)
            except OperandTypeError:
                logger.debug(f"{type(value).__name__} cannot be copied, sharing it")
                by_ref = True
    if by_ref:
        logger.debug(f"Capturing {type(value).__name__} by reference")
        return Variable(value)
    return Constant(value)


def variable(value: Any) -> Expression:
    """Capture value by reference."""
    return expressify(value, by_ref=True)


def constant(value: Any) -> Expression:
    """Capture a private copy of value."""
    return expressify(value, by_ref=False)


# =============================================================================
# Generic composite builders
# =============================================================================

def apply_operator(spec: OperatorSpec, function: Callable[..., Any], *values: Any) -> Any:
    """Apply an operator function to evaluated operands.

    TypeErrors from the operator are re-raised as OperandTypeError naming the
    operator and the operand types.
    """
    try:
        return function(*values)
    except OperandTypeError:
        raise
    except TypeError as e:
        types = ", ".join(type(v).__name__ for v in values)
        raise OperandTypeError(
            f"Cannot apply '{spec.symbol.strip()}' to ({types}): {e}"
        ) from e


def unary_expression(name: str, operand: Any) -> Composite:
    """Build a composite applying a unary operator to one operand."""
    spec = get_operator(name)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        (inner,) = operands
        return apply_operator(spec, spec.function, inner.evaluate(args))

    return Composite(spec, operation, (expressify(operand),))


def binary_expression(name: str, lhs: Any, rhs: Any) -> Composite:
    """Build a composite applying a binary operator, left operand first."""
    spec = get_operator(name)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        left, right = operands
        lhs_value = left.evaluate(args)
        rhs_value = right.evaluate(args)
        return apply_operator(spec, spec.function, lhs_value, rhs_value)

    return Composite(spec, operation, (expressify(lhs), expressify(rhs)))


def index_expression(base: Any, key: Any) -> Composite:
    """Build ``base[key]``.

    The result is assignable unless base reads from a Constant. Slices with
    expression bounds are evaluated like any other operand.
    """
    spec = get_operator("index")
    base = expressify(base)
    if isinstance(key, slice) and any(
        is_expression(p) for p in (key.start, key.stop, key.step)
    ):
        from deferred_expr.combinators import bind

        key = bind(slice, key.start, key.stop, key.step)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        container_node, key_node = operands
        container = container_node.evaluate(args)
        k = key_node.evaluate(args)
        return apply_operator(spec, spec.function, container, k)

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        container_node, key_node = operands
        container = container_node.evaluate(args)
        return ItemRef(container, key_node.evaluate(args))

    const = base.is_const
    return Composite(
        spec,
        operation,
        (base, expressify(key)),
        locator=None if const else locator,
        const=const,
    )


# =============================================================================
# Tree utilities
# =============================================================================

def count_nodes(node: Expression) -> int:
    """Count total nodes in a subtree."""
    return 1 + sum(count_nodes(c) for c in node.children)


def get_depth(node: Expression) -> int:
    """Get the depth of a subtree."""
    if node.children:
        return 1 + max(get_depth(c) for c in node.children)
    return 1


def collect_nodes(node: Expression) -> list[Expression]:
    """Collect all nodes in a subtree (pre-order traversal)."""
    result = [node]
    for child in node.children:
        result.extend(collect_nodes(child))
    return result


def _private_copy(value: Any, mode: str) -> Any:
    try:
        if mode == "deep":
            return copy.deepcopy(value)
        if mode == "shallow":
            return copy.copy(value)
    except (TypeError, copy.Error) as e:
        raise OperandTypeError(
            f"Cannot copy {type(value).__name__} into a constant: {e}; "
            "capture it with variable() instead"
        ) from e
    return value


def _short_repr(value: Any) -> str:
    if callable(value) and hasattr(value, "__qualname__"):
        return value.__qualname__
    return reprlib.repr(value)


_1 = Placeholder._intern(0)
_2 = Placeholder._intern(1)
_3 = Placeholder._intern(2)
_4 = Placeholder._intern(3)
_5 = Placeholder._intern(4)
_6 = Placeholder._intern(5)
_7 = Placeholder._intern(6)

PLACEHOLDERS: tuple[Placeholder, ...] = (_1, _2, _3, _4, _5, _6, _7)
