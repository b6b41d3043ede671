"""Member pointers: deferred access to attributes and methods.

A MemberPointer names a member of a class. Applied to a placeholder it builds
either a data-member access (assignable through an AttributeRef) or, for
methods, a binder: calling the binder with parameter expressions builds the
method call. Both stages evaluate against the same invocation arguments,
target first, then parameters in order.

    scale = member_pointer(Vector, "scale")
    doubled = _1.member(scale)(2)
    doubled(Vector(1, 2))  # same as Vector(1, 2).scale(2)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import inspect
import logging

from deferred_expr.errors import OperandTypeError
from deferred_expr.nodes import (
    Args,
    Composite,
    Expression,
    expressify,
)
from deferred_expr.refs import AttributeRef, Place
from deferred_expr.types import NodeType, get_operator

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class MemberPointer:
    """Pointer to a named member of a class.

    Attributes:
        owner: Class declaring the member
        name: Member name
        is_method: True for member functions, False for data members
    """

    owner: type
    name: str
    is_method: bool

    @property
    def is_data(self) -> bool:
        """Whether this points to a data member."""
        return not self.is_method

    def check_target(self, target: Any) -> None:
        """Reject targets that are not instances of the owner class."""
        if not isinstance(target, self.owner):
            raise OperandTypeError(
                f"Member pointer {self} applied to {type(target).__name__}"
            )

    def __str__(self) -> str:
        return f"{self.owner.__qualname__}.{self.name}"


def _declares_field(owner: type, name: str) -> bool:
    """Check annotations and __slots__ for instance attributes without class values."""
    for klass in owner.__mro__:
        if name in inspect.get_annotations(klass):
            return True
        slots = getattr(klass, "__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        if name in slots:
            return True
    return False


def member_pointer(owner: type, name: str) -> MemberPointer:
    """Resolve a member of owner and classify it as data or method.

    Args:
        owner: Class to look the member up on
        name: Member name

    Returns:
        MemberPointer for the member

    Raises:
        TypeError: If owner is not a class
        AttributeError: If owner has no such member
    """
    if not isinstance(owner, type):
        raise TypeError(f"Member pointers need a class, got {type(owner).__name__}")

    attr = inspect.getattr_static(owner, name, _MISSING)
    if attr is _MISSING:
        if not _declares_field(owner, name):
            raise AttributeError(f"{owner.__qualname__} has no member {name!r}")
        is_method = False
    elif isinstance(attr, (staticmethod, classmethod)):
        is_method = True
    elif inspect.isdatadescriptor(attr):
        is_method = False
    else:
        is_method = callable(attr) and not _declares_field(owner, name)

    pointer = MemberPointer(owner, name, is_method)
    logger.debug(f"Resolved {pointer} as {'method' if is_method else 'data member'}")
    return pointer


def member_access(target: Any, pointer: MemberPointer) -> Expression:
    """Apply a member pointer to a target expression.

    Returns an assignable composite for data members, or a MethodBinder for
    member functions.
    """
    if not isinstance(pointer, MemberPointer):
        raise OperandTypeError(
            f"Expected a MemberPointer, got {type(pointer).__name__}"
        )
    target = expressify(target)
    if pointer.is_method:
        return MethodBinder(target, pointer)
    return _data_member(target, pointer)


def _data_member(target: Expression, pointer: MemberPointer) -> Composite:
    spec = get_operator("member")

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        obj = operands[0].evaluate(args)
        pointer.check_target(obj)
        return AttributeRef(obj, pointer.name)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        return locator(args, operands).get()

    const = target.is_const
    return Composite(
        spec,
        operation,
        (target,),
        locator=None if const else locator,
        detail=pointer.name,
        const=const,
    )


def method_call(target: Any, pointer: MemberPointer, *params: Any) -> Composite:
    """Build ``target.name(*params)`` for a member-function pointer.

    Raw parameters are passed to the method as the same objects, as in bind().
    """
    spec = get_operator("method")

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        obj = operands[0].evaluate(args)
        pointer.check_target(obj)
        values = [node.evaluate(args) for node in operands[1:]]
        return getattr(obj, pointer.name)(*values)

    operands = (expressify(target), *(expressify(p, by_ref=True) for p in params))
    return Composite(spec, operation, operands, detail=pointer.name)


@dataclass(eq=False, repr=False)
class MethodBinder(Expression):
    """First stage of a member-function call.

    Invoking the binder with parameters (expressions or values) does not call
    the method; it returns the Composite that will, once invoked itself.
    """

    target: Expression
    pointer: MemberPointer

    @property
    def node_type(self) -> NodeType:
        return NodeType.BINDER

    @property
    def children(self) -> tuple[Expression, ...]:
        return (self.target,)

    @property
    def arity(self) -> int:
        return 0

    def evaluate(self, args: Args) -> Composite:
        return method_call(self.target, self.pointer, *args)

    def to_string(self) -> str:
        return f"{self.target.to_string()}.{self.pointer.name}"
