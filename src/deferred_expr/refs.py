"""Storage places: the Python stand-in for references and pointers.

A Place is anything with get()/set(). Expressions write through places when
an assignment, compound assignment or increment is evaluated:

- Ref: a mutable box owned by the caller (the usual way to share a scalar)
- ItemRef: an element of an indexable container; supports pointer arithmetic
- AttributeRef: an attribute of an object
- ObjectRef: an object that can be mutated in place but not rebound

Places are handles, not owners: copying one never copies what it refers to.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any
import operator

from deferred_expr.errors import NotAssignableError


class Place(ABC):
    """Abstract readable/writable storage location."""

    __slots__ = ()

    @abstractmethod
    def get(self) -> Any:
        """Read the current value."""
        pass

    @abstractmethod
    def set(self, value: Any) -> None:
        """Write a new value."""
        pass

    def __copy__(self) -> "Place":
        return self

    def __deepcopy__(self, memo: dict) -> "Place":
        return self


class Ref(Place):
    """Mutable box holding a single value.

    Passing a Ref as an invocation argument lets placeholders assign into it:

        >>> counter = Ref(0)
        >>> pre_inc(_1)(counter)
        1
        >>> counter.value
        1
    """

    __slots__ = ("value",)

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def get(self) -> Any:
        return self.value

    def set(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Ref({self.value!r})"


class ItemRef(Place):
    """Reference to container[key].

    With an integer key this behaves like a pointer into a sequence:
    ``ref + n`` moves n elements, ``ref[i]`` reads ``container[key + i]`` and
    two refs into the same container can be subtracted and ordered.
    """

    __slots__ = ("container", "key")

    def __init__(self, container: Any, key: Any = 0) -> None:
        self.container = container
        self.key = key

    def get(self) -> Any:
        return self.container[self.key]

    def set(self, value: Any) -> None:
        self.container[self.key] = value

    def _offset(self, n: Any) -> "ItemRef":
        return ItemRef(self.container, self.key + operator.index(n))

    def _same_container(self, other: "ItemRef") -> None:
        if other.container is not self.container:
            raise ValueError("Pointers refer to different containers")

    def __add__(self, n: Any) -> "ItemRef":
        if isinstance(n, Place):
            return NotImplemented
        return self._offset(n)

    __radd__ = __add__

    def __sub__(self, other: Any) -> Any:
        if isinstance(other, ItemRef):
            self._same_container(other)
            return self.key - other.key
        if isinstance(other, Place):
            return NotImplemented
        return self._offset(-operator.index(other))

    def __getitem__(self, i: Any) -> Any:
        return self.container[self.key + operator.index(i)]

    def __setitem__(self, i: Any, value: Any) -> None:
        self.container[self.key + operator.index(i)] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ItemRef):
            return NotImplemented
        return self.container is other.container and self.key == other.key

    def __hash__(self) -> int:
        return hash((id(self.container), self.key))

    def __lt__(self, other: "ItemRef") -> bool:
        self._same_container(other)
        return self.key < other.key

    def __le__(self, other: "ItemRef") -> bool:
        self._same_container(other)
        return self.key <= other.key

    def __gt__(self, other: "ItemRef") -> bool:
        self._same_container(other)
        return self.key > other.key

    def __ge__(self, other: "ItemRef") -> bool:
        self._same_container(other)
        return self.key >= other.key

    def __repr__(self) -> str:
        return f"ItemRef({type(self.container).__name__}, {self.key!r})"


class AttributeRef(Place):
    """Reference to obj.name."""

    __slots__ = ("obj", "name")

    def __init__(self, obj: Any, name: str) -> None:
        self.obj = obj
        self.name = name

    def get(self) -> Any:
        return getattr(self.obj, self.name)

    def set(self, value: Any) -> None:
        setattr(self.obj, self.name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttributeRef):
            return NotImplemented
        return self.obj is other.obj and self.name == other.name

    def __hash__(self) -> int:
        return hash((id(self.obj), self.name))

    def __repr__(self) -> str:
        return f"AttributeRef({type(self.obj).__name__}, {self.name!r})"


class ObjectRef(Place):
    """Place for an object that has no rebindable storage.

    In-place operators (``list += ...``) return the same object and are
    accepted; writing any other value raises NotAssignableError.
    """

    __slots__ = ("obj",)

    def __init__(self, obj: Any) -> None:
        self.obj = obj

    def get(self) -> Any:
        return self.obj

    def set(self, value: Any) -> None:
        if value is self.obj:
            return
        raise NotAssignableError(
            f"Cannot rebind a {type(self.obj).__name__} passed by value; "
            "wrap it in a Ref to make it assignable"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectRef):
            return NotImplemented
        return self.obj is other.obj

    def __hash__(self) -> int:
        return hash(id(self.obj))

    def __repr__(self) -> str:
        return f"ObjectRef({type(self.obj).__name__})"


def pointer(container: Any, offset: int = 0) -> ItemRef:
    """Create a pointer to container[offset]."""
    return ItemRef(container, operator.index(offset))
