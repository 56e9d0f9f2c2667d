"""
Dynamic attribute proxy over a foreign object graph.

A ``ForeignProxy`` stands for a module, class, function or instance in the
foreign runtime. Members are looked up on the live object every time they
are accessed, and each call goes through the value marshaler in both
directions.

Every public attribute name on a proxy belongs to the foreign object, so
the proxy's own metadata is read through module-level functions:
``unwrap``, ``path_of``, ``kind_of``, ``is_constructor`` and ``resolve``.

Example:
    >>> tf = tfproxy.runtime()
    >>> opt = tf.train.GradientDescentOptimizer(0.5)
    >>> path_of(opt)
    ('tf', 'train', 'GradientDescentOptimizer()')
"""

import importlib
import inspect
import logging
import sys
from enum import Enum
from typing import Any, NamedTuple, Tuple

import numpy as np

from .config import get_config
from .core import (
    ResolutionError,
    _record_error,
    _record_foreign_failure,
    format_path,
)
from .marshal import from_foreign, marshal_args, to_foreign

logger = logging.getLogger(__name__)

_MISSING = object()

# Dunder names that Python, copy, pickle, inspect and numpy probe on
# instances. They are never foreign members.
_PROTOCOL_PROBES = frozenset({
    "__copy__", "__deepcopy__", "__getstate__", "__setstate__",
    "__getnewargs__", "__getnewargs_ex__", "__reduce__", "__reduce_ex__",
    "__length_hint__", "__wrapped__", "__signature__", "__fspath__",
    "__dlpack__", "__dlpack_device__",
})


def _is_protocol_probe(name: str) -> bool:
    return name in _PROTOCOL_PROBES or name.startswith(("__array", "__cuda_array"))


class MemberKind(Enum):
    """What a resolved member is."""
    NAMESPACE = "namespace"
    CALLABLE = "callable"
    VALUE = "value"
    UNRESOLVED = "unresolved"


class Resolution(NamedTuple):
    kind: MemberKind
    name: str
    path: Tuple[str, ...]
    value: Any


def _import_submodule(module, name: str):
    """Import ``module.name`` if it is a submodule that is not loaded yet."""
    if getattr(module, "__path__", None) is None:
        return _MISSING
    if sys.modules.get(module.__name__) is not module:
        return _MISSING
    full_name = f"{module.__name__}.{name}"
    try:
        return importlib.import_module(full_name)
    except ModuleNotFoundError as e:
        # only a missing full_name means "no such member"; anything else
        # is a real failure inside the submodule
        if e.name != full_name:
            raise
        return _MISSING


def _classify(value: Any) -> MemberKind:
    if inspect.ismodule(value):
        return MemberKind.NAMESPACE
    if callable(value):
        return MemberKind.CALLABLE
    return MemberKind.VALUE


def _is_exception_class(value: Any) -> bool:
    return isinstance(value, type) and issubclass(value, BaseException)


def _call_path(path: Tuple[str, ...]) -> Tuple[str, ...]:
    if not path:
        return ("()",)
    return path[:-1] + (f"{path[-1]}()",)


class ForeignProxy:
    """
    Handle to an object in the foreign runtime.

    Attribute access returns a new proxy for namespaces, callables and
    complex objects, and a host value for plain scalars and arrays.
    Calling the proxy marshals the arguments, calls the foreign object and
    converts the result back.

    Args:
        obj: The live foreign object (a proxy is unwrapped first)
        path: Names traversed from the root, e.g. ("tf", "train")
    """

    __slots__ = ("_obj", "_path", "_scopes")

    def __init__(self, obj: Any, path=()):
        if isinstance(obj, ForeignProxy):
            obj = obj._obj
        if isinstance(path, str):
            path = (path,)
        object.__setattr__(self, "_obj", obj)
        object.__setattr__(self, "_path", tuple(path))
        object.__setattr__(self, "_scopes", [])

    def __getattr__(self, name: str):
        # unset slots and protocol probes are not foreign members
        if name in ForeignProxy.__slots__ or _is_protocol_probe(name):
            raise AttributeError(name)

        resolution = resolve(self, name)
        logger.debug("resolve %s -> %s",
                     format_path(resolution.path), resolution.kind.value)
        if resolution.kind is MemberKind.UNRESOLVED:
            raise _record_error(ResolutionError(resolution.path))
        if resolution.kind is MemberKind.VALUE:
            return from_foreign(resolution.value, resolution.path)
        if _is_exception_class(resolution.value):
            # usable in ``except`` clauses
            return resolution.value
        return ForeignProxy(resolution.value, resolution.path)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._obj, name, to_foreign(value))

    def __delattr__(self, name: str) -> None:
        delattr(self._obj, name)

    def __dir__(self):
        return sorted(set(dir(self._obj)))

    def __call__(self, *args, **kwargs):
        if not callable(self._obj):
            raise TypeError(f"'{format_path(self._path)}' is not callable")

        foreign_args, foreign_kwargs = marshal_args(args, kwargs)
        logger.debug("call %s with %d args, kwargs=%s",
                     format_path(self._path), len(foreign_args),
                     sorted(foreign_kwargs))
        try:
            result = self._obj(*foreign_args, **foreign_kwargs)
        except Exception as e:
            _record_foreign_failure(self._path, e)
            raise
        return from_foreign(result, _call_path(self._path))

    # Arithmetic operators delegate to the foreign object
    def __add__(self, other):
        return _apply_operator(self, "__add__", other)

    def __radd__(self, other):
        return _apply_operator(self, "__radd__", other)

    def __sub__(self, other):
        return _apply_operator(self, "__sub__", other)

    def __rsub__(self, other):
        return _apply_operator(self, "__rsub__", other)

    def __mul__(self, other):
        return _apply_operator(self, "__mul__", other)

    def __rmul__(self, other):
        return _apply_operator(self, "__rmul__", other)

    def __truediv__(self, other):
        return _apply_operator(self, "__truediv__", other)

    def __rtruediv__(self, other):
        return _apply_operator(self, "__rtruediv__", other)

    def __matmul__(self, other):
        return _apply_operator(self, "__matmul__", other)

    def __rmatmul__(self, other):
        return _apply_operator(self, "__rmatmul__", other)

    def __pow__(self, other):
        return _apply_operator(self, "__pow__", other)

    def __rpow__(self, other):
        return _apply_operator(self, "__rpow__", other)

    def __neg__(self):
        result = _apply_operator(self, "__neg__")
        if result is NotImplemented:
            raise TypeError(
                f"bad operand for unary -: '{format_path(self._path)}'"
            )
        return result

    # Container protocol
    def __getitem__(self, key):
        path = self._path + (f"[{key!r}]",)
        try:
            result = self._obj[to_foreign(key)]
        except Exception as e:
            _record_foreign_failure(path, e)
            raise
        return from_foreign(result, path)

    def __setitem__(self, key, value) -> None:
        self._obj[to_foreign(key)] = to_foreign(value)

    def __len__(self) -> int:
        return len(self._obj)

    def __iter__(self):
        for index, item in enumerate(self._obj):
            yield from_foreign(item, self._path + (f"[{index}]",))

    def __bool__(self) -> bool:
        return bool(self._obj)

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self._obj, dtype=dtype)

    # Identity of the wrapped object
    def __eq__(self, other):
        if isinstance(other, ForeignProxy):
            return self._obj is other._obj
        return NotImplemented

    def __ne__(self, other):
        if isinstance(other, ForeignProxy):
            return self._obj is not other._obj
        return NotImplemented

    def __hash__(self) -> int:
        return hash(id(self._obj))

    # Scoped context support: ``with proxy as value:``
    def __enter__(self):
        from .context import ForeignContext

        scope = ForeignContext(self)
        value = scope.__enter__()
        self._scopes.append(scope)
        return value

    def __exit__(self, exc_type, exc, tb):
        scope = self._scopes.pop()
        return scope.__exit__(exc_type, exc, tb)

    def __repr__(self) -> str:
        return f"<ForeignProxy {format_path(self._path)}: {self._obj!r}>"

    def __str__(self) -> str:
        return str(self._obj)


def _apply_operator(proxy: ForeignProxy, method: str, *operands):
    fn = getattr(proxy._obj, method, None)
    if fn is None:
        return NotImplemented
    path = proxy._path + (method,)
    try:
        result = fn(*(to_foreign(operand) for operand in operands))
    except Exception as e:
        _record_foreign_failure(path, e)
        raise
    if result is NotImplemented:
        return NotImplemented
    return from_foreign(result, _call_path(path))


def resolve(proxy: ForeignProxy, name: str) -> Resolution:
    """
    Look up ``name`` on the live foreign object behind ``proxy``.

    Modules that have not imported a submodule yet are given a chance to
    import it, so lazily loaded namespaces resolve too. Errors other than
    a missing attribute propagate with their own type and are recorded
    as the last error.

    Returns:
        Resolution tagged NAMESPACE, CALLABLE, VALUE or UNRESOLVED
    """
    obj = proxy._obj
    path = proxy._path + (name,)
    try:
        value = getattr(obj, name)
    except AttributeError:
        value = _MISSING
        if inspect.ismodule(obj) and get_config().lazy_submodules:
            value = _import_submodule(obj, name)
    except Exception as e:
        _record_foreign_failure(path, e)
        raise

    if value is _MISSING:
        return Resolution(MemberKind.UNRESOLVED, name, path, None)
    return Resolution(_classify(value), name, path, value)


def attach(obj: Any, name: str = "root") -> ForeignProxy:
    """Wrap ``obj`` as a root proxy named ``name``."""
    return ForeignProxy(obj, (name,))


def unwrap(value: Any) -> Any:
    """Return the foreign object behind a proxy, or ``value`` unchanged."""
    if isinstance(value, ForeignProxy):
        return value._obj
    return value


def path_of(proxy: ForeignProxy) -> Tuple[str, ...]:
    """Names traversed from the root to reach ``proxy``."""
    return proxy._path


def kind_of(proxy: ForeignProxy) -> MemberKind:
    """Classify the foreign object behind ``proxy``."""
    return _classify(proxy._obj)


def is_constructor(proxy: ForeignProxy) -> bool:
    """True when the last traversed name is capitalized.

    Capitalized names construct a class by convention. This is informational
    only; constructors and functions are called the same way.
    """
    path = proxy._path
    return bool(path) and path[-1][:1].isupper()
