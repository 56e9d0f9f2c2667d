"""
Value marshaling between host Python values and the foreign runtime.

Conversion rules:
- Python ints stay ints and floats stay floats. Nothing is coerced between
  the two; integer-only foreign parameters (dimensions, strides, axes) need
  ``int`` values or the ``Int`` tag.
- Lists of numbers become numpy arrays of matching rank. The dtype follows
  the host values: all ints -> int64, any float -> float64. A one-element
  list becomes a one-element 1-D array, never a bare scalar. Use
  ``shape()`` when a plain list is required.
- Tuples keep tuple semantics and are converted item by item.
- Axis and dimension indices are passed through as given. The foreign
  convention is zero-based and no renumbering happens here.
"""

import numbers
from typing import Any, Sequence, Tuple

import numpy as np

_SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes)


def _is_integral(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, (numbers.Integral, np.integer)):
        return True
    if isinstance(value, (float, np.floating)):
        return float(value).is_integer()
    return False


def _is_real(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (numbers.Real, np.integer, np.floating))


def _check_nested(value: Any, predicate, kind: str) -> None:
    if isinstance(value, np.ndarray):
        if value.dtype == np.bool_:
            raise TypeError(f"{kind} cannot tag boolean array")
        flat = value.ravel().tolist()
        for item in flat:
            if not predicate(item):
                raise TypeError(f"{kind} cannot tag {item!r}")
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _check_nested(item, predicate, kind)
        return
    if not predicate(value):
        raise TypeError(f"{kind} cannot tag {value!r}")


class _Tagged:
    """Base for explicitly typed numeric values."""

    __slots__ = ("value",)
    dtype = None
    scalar = None

    def __init__(self, value):
        if isinstance(value, _Tagged):
            value = value.value
        self._validate(value)
        self.value = value

    def _validate(self, value):
        raise NotImplementedError

    @property
    def is_scalar(self) -> bool:
        return not isinstance(self.value, (list, tuple, np.ndarray))

    def to_foreign(self):
        if self.is_scalar:
            return self.scalar(self.value)
        return np.asarray(self.value, dtype=self.dtype)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return bool(np.array_equal(np.asarray(self.value), np.asarray(other.value)))

    def __hash__(self):
        if self.is_scalar:
            return hash((type(self).__name__, self.scalar(self.value)))
        return hash((type(self).__name__, np.asarray(self.value).tobytes()))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Int(_Tagged):
    """
    Integer-tagged value for integer-only foreign parameters.

    Accepts ints, numpy integers, integral floats (``Int(2.0)``) and nested
    sequences of them. Anything else fails here instead of at the foreign
    call.

    Example:
        >>> Int(3).to_foreign()
        3
        >>> Int([1, 2, 2, 1]).to_foreign()
        array([1, 2, 2, 1])
        >>> Int(2.5)
        Traceback (most recent call last):
        TypeError: Int cannot tag 2.5
    """

    __slots__ = ()
    dtype = np.int64
    scalar = int

    def _validate(self, value):
        _check_nested(value, _is_integral, "Int")


class Float(_Tagged):
    """Floating-point-tagged value or sequence."""

    __slots__ = ()
    dtype = np.float64
    scalar = float

    def _validate(self, value):
        _check_nested(value, _is_real, "Float")


def _numeric_leaves(value: Any):
    """Return (shape, leaves) of a rectangular nested list, or None.

    Only plain lists count; a ``Shape`` inside a list stays a list.
    """
    if type(value) is list:
        if not value:
            return None
        children = [_numeric_leaves(item) for item in value]
        if any(child is None for child in children):
            return None
        first_shape = children[0][0]
        if any(child[0] != first_shape for child in children[1:]):
            return None
        leaves = [leaf for child in children for leaf in child[1]]
        return (len(value),) + first_shape, leaves
    if isinstance(value, (bool, np.bool_)) or _is_real(value):
        return (), [value]
    return None


def _list_dtype(leaves: Sequence[Any]):
    if all(isinstance(v, (bool, np.bool_)) for v in leaves):
        return np.bool_
    if any(isinstance(v, (bool, np.bool_)) for v in leaves):
        return None
    if all(isinstance(v, (numbers.Integral, np.integer)) for v in leaves):
        return np.int64
    return np.float64


def to_foreign(value: Any) -> Any:
    """
    Convert a host value to the representation the foreign runtime expects.

    Args:
        value: Host value (scalar, list, tuple, dict, proxy, tagged number,
            shape, keyed map or foreign object)

    Returns:
        Foreign-ready value
    """
    from .helpers import KeyedMap, Shape
    from .proxy import ForeignProxy, unwrap

    if isinstance(value, ForeignProxy):
        return unwrap(value)
    if isinstance(value, _SCALAR_TYPES):
        return value
    if isinstance(value, _Tagged):
        return value.to_foreign()
    if isinstance(value, (np.ndarray, np.generic)):
        return value
    if isinstance(value, Shape):
        return value.to_foreign()
    if isinstance(value, KeyedMap):
        return value.to_foreign()
    if isinstance(value, dict):
        return {key: to_foreign(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return tuple(to_foreign(item) for item in value)
    if isinstance(value, list):
        numeric = _numeric_leaves(value)
        if numeric is not None:
            dtype = _list_dtype(numeric[1])
            if dtype is not None:
                return np.array(value, dtype=dtype)
        return [to_foreign(item) for item in value]
    return value


def marshal_args(args: Tuple[Any, ...], kwargs: dict):
    """Marshal positional and keyword call arguments in order."""
    return (
        tuple(to_foreign(arg) for arg in args),
        {name: to_foreign(arg) for name, arg in kwargs.items()},
    )


def from_foreign(value: Any, path: Sequence[str] = ()) -> Any:
    """
    Convert a foreign value back to a host value.

    Plain scalars and numpy arrays come back as host values; containers are
    converted item by item; any other foreign object is wrapped in a
    ``ForeignProxy`` at ``path``.
    """
    from .proxy import ForeignProxy

    if isinstance(value, ForeignProxy):
        return value
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, _SCALAR_TYPES):
        return value
    if isinstance(value, np.ndarray):
        return value
    if type(value) is list:
        return [from_foreign(item, path) for item in value]
    if type(value) is tuple:
        return tuple(from_foreign(item, path) for item in value)
    if type(value) is dict:
        return {key: from_foreign(item, path) for key, item in value.items()}
    return ForeignProxy(value, path)


def to_host(value: Any) -> Any:
    """Like ``from_foreign`` but turns arrays into nested Python lists."""
    converted = from_foreign(value)
    if isinstance(converted, np.ndarray):
        return converted.tolist()
    if isinstance(converted, list):
        return [to_host(item) for item in converted]
    if isinstance(converted, tuple):
        return tuple(to_host(item) for item in converted)
    if isinstance(converted, dict):
        return {key: to_host(item) for key, item in converted.items()}
    return converted

