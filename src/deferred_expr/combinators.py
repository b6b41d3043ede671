"""Named combinators for operators Python cannot overload.

Arithmetic, bitwise, comparison and indexing operators are overloaded on
Expression directly. This module provides the rest:

- logical: and_, or_ (short-circuit), not_
- sequencing: comma
- assignment: assign and the compound forms iadd, isub, ...
- increment/decrement: pre_inc, pre_dec, post_inc, post_dec
- pointers: deref, address_of
- calls: bind

All operands are evaluated against the same invocation arguments, left to
right, and only when the operator needs them.
"""

from __future__ import annotations

from typing import Any, Callable
import copy

from deferred_expr.errors import NotAssignableError, OperandTypeError
from deferred_expr.nodes import (
    Args,
    Composite,
    Expression,
    apply_operator,
    expressify,
    is_expression,
    unary_expression,
)
from deferred_expr.refs import Place
from deferred_expr.types import OperatorSpec, get_operator


def _require_expression(spec: OperatorSpec, *operands: Any) -> None:
    """Reject calls where no operand is an expression."""
    if not any(is_expression(o) for o in operands):
        raise OperandTypeError(f"{spec.name}() needs at least one expression operand")


def _require_assignable(spec: OperatorSpec, target: Expression) -> None:
    if not target.assignable:
        raise NotAssignableError(
            f"Cannot apply '{spec.symbol}' to {target.to_string()}: not assignable"
        )


def _truth(spec: OperatorSpec, value: Any) -> bool:
    try:
        return bool(value)
    except (TypeError, ValueError) as e:
        raise OperandTypeError(
            f"'{spec.symbol}' needs a truth value, got {type(value).__name__}: {e}"
        ) from e


# =============================================================================
# Logical
# =============================================================================

def not_(operand: Any) -> Composite:
    """Build ``not operand``."""
    spec = get_operator("not_")
    _require_expression(spec, operand)
    return unary_expression("not_", operand)


def and_(lhs: Any, rhs: Any) -> Composite:
    """Build ``lhs and rhs``.

    rhs is evaluated only when lhs is truthy. Like Python's ``and`` the
    result is the deciding operand's value, not a bool.
    """
    spec = get_operator("and_")
    _require_expression(spec, lhs, rhs)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        left, right = operands
        value = left.evaluate(args)
        if not _truth(spec, value):
            return value
        return right.evaluate(args)

    return Composite(spec, operation, (expressify(lhs), expressify(rhs)))


def or_(lhs: Any, rhs: Any) -> Composite:
    """Build ``lhs or rhs``.

    rhs is evaluated only when lhs is falsy.
    """
    spec = get_operator("or_")
    _require_expression(spec, lhs, rhs)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        left, right = operands
        value = left.evaluate(args)
        if _truth(spec, value):
            return value
        return right.evaluate(args)

    return Composite(spec, operation, (expressify(lhs), expressify(rhs)))


# =============================================================================
# Sequencing
# =============================================================================

def comma(first: Any, *rest: Any) -> Composite:
    """Build ``(first, *rest)``: evaluate every operand in order, keep the last."""
    spec = get_operator("comma")
    _require_expression(spec, first, *rest)
    operands = tuple(expressify(o) for o in (first, *rest))

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        result = None
        for node in operands:
            result = node.evaluate(args)
        return result

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        for node in operands[:-1]:
            node.evaluate(args)
        return operands[-1].locate(args)

    return Composite(
        spec,
        operation,
        operands,
        locator=locator if operands[-1].assignable else None,
    )


# =============================================================================
# Assignment
# =============================================================================

def assign(target: Any, rhs: Any) -> Composite:
    """Build ``target = rhs``.

    The target's place is resolved before rhs is evaluated. The result is the
    assigned place, so assignments can be chained or incremented.
    """
    spec = get_operator("assign")
    _require_expression(spec, target, rhs)
    target = expressify(target)
    _require_assignable(spec, target)

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        lhs, value_node = operands
        place = lhs.locate(args)
        place.set(value_node.evaluate(args))
        return place

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        return locator(args, operands).get()

    return Composite(spec, operation, (target, expressify(rhs)), locator=locator)


def _compound_assignment(name: str) -> Callable[[Any, Any], Composite]:
    spec = get_operator(name)

    def build(target: Any, rhs: Any) -> Composite:
        _require_expression(spec, target, rhs)
        target = expressify(target)
        _require_assignable(spec, target)

        def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
            lhs, value_node = operands
            place = lhs.locate(args)
            value = value_node.evaluate(args)
            place.set(apply_operator(spec, spec.function, place.get(), value))
            return place

        def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
            return locator(args, operands).get()

        return Composite(spec, operation, (target, expressify(rhs)), locator=locator)

    build.__name__ = build.__qualname__ = name
    build.__doc__ = f"Build ``target {spec.symbol} rhs``, writing through target's place."
    return build


iadd = _compound_assignment("iadd")
isub = _compound_assignment("isub")
imul = _compound_assignment("imul")
itruediv = _compound_assignment("itruediv")
ifloordiv = _compound_assignment("ifloordiv")
imod = _compound_assignment("imod")
ipow = _compound_assignment("ipow")
imatmul = _compound_assignment("imatmul")
iand = _compound_assignment("iand")
ior = _compound_assignment("ior")
ixor = _compound_assignment("ixor")
ilshift = _compound_assignment("ilshift")
irshift = _compound_assignment("irshift")


# =============================================================================
# Increment / decrement
# =============================================================================

def _step(name: str, operand: Any) -> tuple[OperatorSpec, Expression]:
    spec = get_operator(name)
    _require_expression(spec, operand)
    operand = expressify(operand)
    _require_assignable(spec, operand)
    return spec, operand


def _snapshot(spec: OperatorSpec, value: Any) -> Any:
    # ndarray += 1 mutates in place, so the old value is copied first
    try:
        return copy.copy(value)
    except (TypeError, copy.Error) as e:
        raise OperandTypeError(
            f"'{spec.symbol}' needs a copy of the old {type(value).__name__}: {e}"
        ) from e


def _prefix_step(name: str, operand: Any) -> Composite:
    spec, operand = _step(name, operand)

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        place = operands[0].locate(args)
        place.set(apply_operator(spec, spec.function, place.get(), 1))
        return place

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        return locator(args, operands).get()

    return Composite(spec, operation, (operand,), locator=locator)


def _postfix_step(name: str, operand: Any) -> Composite:
    spec, operand = _step(name, operand)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        place = operands[0].locate(args)
        old = place.get()
        previous = _snapshot(spec, old)
        place.set(apply_operator(spec, spec.function, old, 1))
        return previous

    return Composite(spec, operation, (operand,))


def pre_inc(operand: Any) -> Composite:
    """Build ``++operand``: increment, then yield the new value."""
    return _prefix_step("pre_inc", operand)


def pre_dec(operand: Any) -> Composite:
    """Build ``--operand``: decrement, then yield the new value."""
    return _prefix_step("pre_dec", operand)


def post_inc(operand: Any) -> Composite:
    """Build ``operand++``: yield the old value, then increment."""
    return _postfix_step("post_inc", operand)


def post_dec(operand: Any) -> Composite:
    """Build ``operand--``: yield the old value, then decrement."""
    return _postfix_step("post_dec", operand)


# =============================================================================
# Pointers
# =============================================================================

def deref(operand: Any) -> Composite:
    """Build ``*operand``.

    operand must evaluate to a Place (Ref, ItemRef, AttributeRef...). The
    result reads the place and is itself assignable through it.
    """
    spec = get_operator("deref")
    _require_expression(spec, operand)

    def locator(args: Args, operands: tuple[Expression, ...]) -> Place:
        target = operands[0].evaluate(args)
        if not isinstance(target, Place):
            raise OperandTypeError(
                f"Cannot dereference {type(target).__name__}; expected a Place"
            )
        return target

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        return locator(args, operands).get()

    return Composite(spec, operation, (expressify(operand),), locator=locator)


def address_of(operand: Any) -> Composite:
    """Build ``&operand``: yield the place operand denotes."""
    spec = get_operator("address_of")
    _require_expression(spec, operand)
    operand = expressify(operand)
    if not operand.assignable:
        raise NotAssignableError(f"{operand.to_string()} has no address")

    def operation(args: Args, operands: tuple[Expression, ...]) -> Place:
        return operands[0].locate(args)

    return Composite(spec, operation, (operand,))


# =============================================================================
# Calls
# =============================================================================

def bind(func: Any, *params: Any, **keywords: Any) -> Composite:
    """Build a deferred call ``func(*params, **keywords)``.

    func may be any callable or an expression that evaluates to one. Like a
    plain Python call, raw func and parameter values are passed as the same
    objects rather than copies, so the call can mutate them; wrap a value in
    constant() for a private copy. On invocation func is evaluated first,
    then each parameter in order, then the call is made.

    Example:
        >>> bind(max, _1, _2, 10)(3, 20)
        20
    """
    spec = get_operator("bind")
    names = tuple(keywords)
    operands = (
        expressify(func, by_ref=True),
        *(expressify(p, by_ref=True) for p in params),
        *(expressify(v, by_ref=True) for v in keywords.values()),
    )
    n_positional = len(operands) - len(names)

    def operation(args: Args, operands: tuple[Expression, ...]) -> Any:
        target = operands[0].evaluate(args)
        values = [node.evaluate(args) for node in operands[1:]]
        if not callable(target):
            raise OperandTypeError(f"{type(target).__name__} object is not callable")
        positional = values[: n_positional - 1]
        named = dict(zip(names, values[n_positional - 1:]))
        return target(*positional, **named)

    return Composite(spec, operation, operands, keywords=names)
