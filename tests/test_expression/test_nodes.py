"""Tests for expression nodes, coercion and tree utilities."""

import copy
import threading

import numpy as np
import pytest

from deferred_expr import (
    _1,
    _2,
    _3,
    _7,
    Composite,
    Constant,
    Expression,
    NotAssignableError,
    OperandTypeError,
    Placeholder,
    PlaceholderArityError,
    Ref,
    Variable,
    and_,
    assign,
    bind,
    collect_nodes,
    comma,
    constant,
    count_nodes,
    deref,
    expressify,
    get_depth,
    is_expression,
    member_pointer,
    not_,
    pointer,
    post_inc,
    pre_inc,
    variable,
)
from deferred_expr.types import NodeType, get_operator


class TestPlaceholder:
    """Test Placeholder leaves."""

    def test_placeholders_are_interned(self):
        """Test placeholders are singletons per index."""
        assert Placeholder(0) is _1
        assert Placeholder(6) is _7
        assert copy.deepcopy(_2) is _2
        assert copy.copy(_3) is _3

    def test_index_out_of_range(self):
        """Test indices beyond the configured bound are rejected."""
        with pytest.raises(ValueError):
            Placeholder(7)
        with pytest.raises(ValueError):
            Placeholder(-1)

    def test_selects_argument(self):
        """Test each placeholder selects its argument position."""
        assert _1(1, 2, 3) == 1
        assert _3(1, 2, 3) == 3

    def test_reads_through_ref(self):
        """Test a Ref argument is read through."""
        assert _1(Ref(5)) == 5
        assert (_1 + 1)(Ref(5)) == 6

    def test_returns_argument_object(self):
        """Test plain arguments are returned as the same object."""
        data = [1, 2]
        assert _1(data) is data

    def test_arity(self):
        """Test arity is one past the highest placeholder index."""
        assert _1.arity == 1
        assert _7.arity == 7
        assert (_1 + _3).arity == 3
        assert constant(1).arity == 0

    def test_missing_argument_raises(self):
        """Test invoking with too few arguments fails before evaluation."""
        with pytest.raises(PlaceholderArityError) as exc_info:
            (_1 + _3)(1, 2)

        assert exc_info.value.required == 3
        assert exc_info.value.supplied == 2
        assert isinstance(exc_info.value, IndexError)

    def test_arity_failure_has_no_side_effects(self):
        """Test no sub-expression runs when arity is insufficient."""
        counter = Ref(0)
        expr = comma(pre_inc(_1), _3)

        with pytest.raises(PlaceholderArityError):
            expr(counter, 0)

        assert counter.value == 0

    def test_arity_counts_short_circuited_branches(self):
        """Test arity is a property of the tree, not of the evaluated path."""
        from deferred_expr import or_

        with pytest.raises(PlaceholderArityError):
            or_(_1, _3)(True, 0)

    def test_extra_arguments_ignored(self):
        """Test surplus arguments are accepted."""
        assert (_1 * 2)(4, "unused", None) == 8


class TestVariable:
    """Test Variable leaves."""

    def test_reads_current_value(self):
        """Test a variable sees later changes to its storage."""
        box = Ref(1)
        node = variable(box)
        box.value = 7

        assert node() == 7

    def test_ignores_arguments(self):
        """Test arguments do not affect the variable's value."""
        box = Ref("x")
        assert variable(box)(1, 2, 3) == "x"

    def test_object_storage(self):
        """Test non-Place storage is yielded as the same object."""
        data = [1, 2, 3]
        node = variable(data)

        assert isinstance(node, Variable)
        assert node() is data

    def test_assignment(self):
        """Test assigning into a Ref-backed variable."""
        box = Ref(0)
        variable(box).assign(_1 + 1)(41)

        assert box.value == 42

    def test_rebinding_object_storage_fails(self):
        """Test a variable over a plain object cannot be rebound."""
        expr = variable([1, 2]).assign(_1)

        with pytest.raises(NotAssignableError):
            expr([3])

    def test_pointer_storage_is_a_value(self):
        """Test a pointer variable behaves like a pointer argument."""
        arr = [10, 20, 30]
        p = pointer(arr)

        assert (variable(p) + 1)() == pointer(arr, 1)
        assert deref(variable(p) + 1)() == 20
        assert variable(p)[2]() == 30
        assert (_1 + 1)(p) == (variable(p) + 1)()

    def test_pointer_variable_cannot_be_rebound(self):
        """Test assignment writes through deref, not into the pointer."""
        arr = [1, 2, 3]
        p = pointer(arr, 1)

        assign(deref(variable(p)), _1)(9)
        assert arr == [1, 9, 3]
        with pytest.raises(NotAssignableError):
            assign(p, _1)(0)

    def test_deepcopy_shares_storage(self):
        """Test copying a variable keeps the same storage."""
        data = [1]
        node = variable(data)

        assert copy.deepcopy(node).storage is data


class TestConstant:
    """Test Constant leaves."""

    def test_owns_private_copy(self):
        """Test later changes to the source do not leak in."""
        data = [1, 2]
        node = constant(data)
        data.append(3)

        assert node() == [1, 2]
        assert node() is not data

    def test_ignores_arguments(self):
        """Test arguments do not affect the constant's value."""
        assert constant(3)(10, 20) == 3

    def test_indexing(self):
        """Test indexing a constant with a placeholder."""
        table = constant(["zero", "one", "two"])

        assert table[_1](2) == "two"

    def test_assignment_rejected_at_build(self):
        """Test constants refuse assignment when the tree is built."""
        with pytest.raises(NotAssignableError):
            constant(1).assign(_1)

    def test_indexed_constant_not_assignable(self):
        """Test elements of a constant cannot be assigned either."""
        with pytest.raises(NotAssignableError):
            assign(constant([1, 2])[_1], 5)
        with pytest.raises(NotAssignableError):
            pre_inc(constant([1, 2])[_1])


class TestCoercion:
    """Test expressify and the explicit wrappers."""

    def test_plain_value_becomes_constant(self):
        """Test values without storage are captured by value."""
        assert isinstance(expressify(5), Constant)

    def test_ref_becomes_variable(self):
        """Test Ref boxes are captured by reference."""
        box = Ref(1)
        node = expressify(box)

        assert isinstance(node, Variable)
        assert node.storage is box

    def test_forced_capture(self):
        """Test by_ref overrides the default choice."""
        assert isinstance(expressify([1], by_ref=True), Variable)
        assert isinstance(expressify(Ref(1), by_ref=False), Constant)

    def test_places_become_variables(self):
        """Test pointers and attribute refs are captured without copying."""
        arr = [1, 2, 3]
        p = pointer(arr, 1)
        node = expressify(p)

        assert isinstance(node, Variable)
        assert node.storage is p
        assert node() is p

    def test_uncopyable_value_is_shared(self):
        """Test values that cannot be copied are captured by reference."""
        lock = threading.Lock()
        node = expressify(lock)

        assert isinstance(node, Variable)
        assert node() is lock
        assert and_(_1, lock)(True) is lock

    def test_uncopyable_constant_rejected(self):
        """Test forcing a copy of an uncopyable value names the problem."""
        with pytest.raises(OperandTypeError) as exc_info:
            constant(threading.Lock())

        assert "variable()" in str(exc_info.value)

    def test_wrappers_pass_expressions_through(self):
        """Test variable() and constant() leave expressions unchanged."""
        expr = _1 + 1

        assert variable(expr) is expr
        assert constant(expr) is expr

    def test_is_expression(self):
        """Test the capability check."""
        assert is_expression(_1)
        assert is_expression(constant(1))
        assert not is_expression(1)
        assert not is_expression(Ref(1))

    def test_operands_are_coerced(self):
        """Test combinators wrap raw operands."""
        box = Ref(2)
        expr = _1 + box

        assert isinstance(expr, Composite)
        assert expr.operands[0] is _1
        assert isinstance(expr.operands[1], Variable)
        assert expr(1) == 3
        box.value = 10
        assert expr(1) == 11


class TestExpressionProtocol:
    """Test behaviour shared by all nodes."""

    def test_no_truth_value(self):
        """Test expressions refuse implicit truth tests."""
        with pytest.raises(OperandTypeError):
            bool(_1 > 1)
        with pytest.raises(TypeError):
            if _1:
                pass

    def test_not_iterable(self):
        """Test expressions cannot be iterated by accident."""
        with pytest.raises(TypeError):
            list(_1)

    def test_hashable(self):
        """Test nodes hash by identity despite overloaded equality."""
        expr = _1 + 1
        nodes = {_1, _2, expr}

        assert len(nodes) == 3
        assert isinstance(_1 == _2, Composite)

    def test_numpy_defers_to_expression(self):
        """Test ndarray on the left builds an expression."""
        expr = np.arange(3) + _1

        assert isinstance(expr, Expression)
        np.testing.assert_array_equal(expr(np.ones(3)), [1.0, 2.0, 3.0])


class TestRendering:
    """Test formula strings."""

    def test_infix(self):
        assert str(_1 > _2) == "(_1 > _2)"
        assert str((_1 + 2) * _2) == "((_1 + 2) * _2)"

    def test_prefix_and_postfix(self):
        assert str(-_1) == "-_1"
        assert str(not_(_1)) == "not _1"
        assert str(pre_inc(_1)) == "++_1"
        assert str(post_inc(_1)) == "_1++"

    def test_index_and_variable(self):
        arr = [1, 2, 3, 4, 5]
        assert pre_inc(variable(arr)[_1]).formula == "++var([1, 2, 3, 4, 5])[_1]"

    def test_calls(self):
        assert str(abs(_1)) == "abs(_1)"
        assert str(bind(max, _1, 10)) == "max(_1, var(10))"
        assert str(bind(max, _1, constant(10))) == "max(_1, 10)"
        assert str(bind(sorted, _1, reverse=_2)) == "sorted(_1, reverse=_2)"

    def test_sequence(self):
        assert str(comma(_1, _2, 3)) == "(_1, _2, 3)"

    def test_members(self):
        class Point:
            x: int

            def shift(self, dx):
                return self.x + dx

        assert str(_1.member(member_pointer(Point, "x"))) == "_1.x"
        binder = _1.member(member_pointer(Point, "shift"))
        assert str(binder) == "_1.shift"
        assert str(binder(_2)) == "_1.shift(_2)"

    def test_repr(self):
        assert repr(_1 + 1) == "Composite((_1 + 1))"
        assert repr(_1) == "Placeholder(_1)"


class TestTreeUtilities:
    """Test tree inspection helpers."""

    def test_count_and_depth(self):
        expr = (_1 + 2) * _2

        assert count_nodes(expr) == 5
        assert get_depth(expr) == 3
        assert count_nodes(_1) == 1
        assert get_depth(_1) == 1

    def test_collect_nodes_preorder(self):
        expr = (_1 + 2) * _2
        nodes = collect_nodes(expr)

        assert nodes[0] is expr
        assert [n.node_type for n in nodes] == [
            NodeType.COMPOSITE,
            NodeType.COMPOSITE,
            NodeType.PLACEHOLDER,
            NodeType.CONSTANT,
            NodeType.PLACEHOLDER,
        ]

    def test_node_type_leaf(self):
        assert NodeType.VARIABLE.is_leaf()
        assert not NodeType.COMPOSITE.is_leaf()
        assert not NodeType.BINDER.is_leaf()

    def test_composite_checks_operand_count(self):
        """Test a composite refuses operands its operator cannot take."""
        with pytest.raises(ValueError):
            Composite(get_operator("add"), lambda args, operands: None, (_1,))
        with pytest.raises(ValueError):
            Composite(get_operator("comma"), lambda args, operands: None, ())
