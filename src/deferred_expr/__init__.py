"""
deferred-expr: point-free deferred expressions for Python.

Build a computation from placeholders, captured variables and constants, and
pass it anywhere a callable is expected:

    sorted(values, key=cmp_to_key(bind(compare, _1, _2)))
    list(map(_1 + _2, a, b))
    step = iadd(total, _1)
    for item in items:
        step(item)

Nothing is evaluated until the expression is called.
"""

__version__ = "0.1.0"

from deferred_expr.combinators import (
    address_of,
    and_,
    assign,
    bind,
    comma,
    deref,
    iadd,
    iand,
    ifloordiv,
    ilshift,
    imatmul,
    imod,
    imul,
    ior,
    ipow,
    irshift,
    isub,
    itruediv,
    ixor,
    not_,
    or_,
    post_dec,
    post_inc,
    pre_dec,
    pre_inc,
)
from deferred_expr.config import (
    ExpressionSettings,
    configure,
    get_settings,
    reset_settings,
)
from deferred_expr.errors import (
    ExpressionError,
    NotAssignableError,
    OperandTypeError,
    PlaceholderArityError,
)
from deferred_expr.members import MemberPointer, MethodBinder, member_pointer
from deferred_expr.nodes import (
    Composite,
    Constant,
    Expression,
    Placeholder,
    Variable,
    _1,
    _2,
    _3,
    _4,
    _5,
    _6,
    _7,
    collect_nodes,
    constant,
    count_nodes,
    expressify,
    get_depth,
    is_expression,
    variable,
)
from deferred_expr.refs import AttributeRef, ItemRef, ObjectRef, Place, Ref, pointer
from deferred_expr.types import NodeType, OperatorSpec, OPERATORS

__all__ = [
    "__version__",
    # Placeholders
    "_1", "_2", "_3", "_4", "_5", "_6", "_7",
    # Nodes
    "Expression",
    "Placeholder",
    "Variable",
    "Constant",
    "Composite",
    "MethodBinder",
    "NodeType",
    "OperatorSpec",
    "OPERATORS",
    # Coercion
    "expressify",
    "is_expression",
    "variable",
    "constant",
    # Combinators
    "not_", "and_", "or_", "comma",
    "assign",
    "iadd", "isub", "imul", "itruediv", "ifloordiv", "imod", "ipow",
    "imatmul", "iand", "ior", "ixor", "ilshift", "irshift",
    "pre_inc", "pre_dec", "post_inc", "post_dec",
    "deref", "address_of",
    "bind",
    # Members
    "MemberPointer",
    "member_pointer",
    # Storage
    "Place", "Ref", "ItemRef", "AttributeRef", "ObjectRef", "pointer",
    # Errors
    "ExpressionError",
    "PlaceholderArityError",
    "OperandTypeError",
    "NotAssignableError",
    # Settings
    "ExpressionSettings",
    "get_settings",
    "configure",
    "reset_settings",
    # Tree utilities
    "count_nodes",
    "get_depth",
    "collect_nodes",
]
