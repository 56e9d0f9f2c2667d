"""
Scoped use of foreign context managers.

The foreign ``__exit__`` always runs once the foreign ``__enter__`` has
succeeded, whether the block finished or raised.

Exit-error policy:
- A block failure is never suppressed, even when the foreign ``__exit__``
  returns a true value.
- If the foreign ``__exit__`` raises, a ``ContextExitError`` is raised in
  its place. The exit failure is its ``exit_error`` and ``__cause__``; the
  block failure, if there was one, is kept on ``original``.

Example:
    >>> with scope(tf.Session()) as sess:
    ...     sess.run(train_op)

    >>> scope(tf.Session(), lambda sess: sess.run(total))
    42.0
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Optional

from .core import (
    ContextExitError,
    ScopeError,
    _record_error,
    _record_foreign_failure,
    format_path,
)
from .marshal import from_foreign
from .proxy import ForeignProxy, path_of, unwrap

logger = logging.getLogger(__name__)


class ScopeState(Enum):
    UNENTERED = "unentered"
    ACTIVE = "active"
    EXITED = "exited"


class ForeignContext:
    """
    Wrapper running a block inside a foreign context manager.

    Attributes:
        state: UNENTERED, ACTIVE or EXITED
        value: Host-converted value yielded by the foreign ``__enter__``
        path: Names used in error messages
    """

    def __init__(self, obj: Any, path=None):
        if isinstance(obj, ForeignProxy):
            if path is None:
                path = path_of(obj)
            obj = unwrap(obj)
        if path is None:
            path = (type(obj).__name__,)
        kind = type(obj)
        if not (hasattr(kind, "__enter__") and hasattr(kind, "__exit__")):
            raise TypeError(
                f"'{format_path(path)}' does not support the context manager "
                f"protocol"
            )
        self._obj = obj
        self.path = tuple(path)
        self.state = ScopeState.UNENTERED
        self.value = None

    def __enter__(self):
        if self.state is not ScopeState.UNENTERED:
            raise _record_error(
                ScopeError(f"cannot enter {format_path(self.path)}: "
                           f"scope is {self.state.value}")
            )
        try:
            raw = type(self._obj).__enter__(self._obj)
        except Exception as e:
            _record_foreign_failure(self.path + ("__enter__",), e)
            raise

        self.value = from_foreign(raw, self.path + ("__enter__()",))
        self.state = ScopeState.ACTIVE
        logger.debug("entered %s", format_path(self.path))
        return self.value

    def __exit__(self, exc_type, exc, tb):
        if self.state is not ScopeState.ACTIVE:
            raise _record_error(
                ScopeError(f"cannot exit {format_path(self.path)}: "
                           f"scope is {self.state.value}")
            )
        self.state = ScopeState.EXITED
        try:
            suppress = type(self._obj).__exit__(self._obj, exc_type, exc, tb)
        except Exception as exit_error:
            raise _record_error(
                ContextExitError(self.path, exit_error, original=exc)
            ) from exit_error

        logger.debug("exited %s", format_path(self.path))
        if suppress and exc is not None:
            logger.debug("ignoring suppression of %s by %s",
                         exc_type.__name__, format_path(self.path))
        return False

    def __repr__(self) -> str:
        return f"ForeignContext({format_path(self.path)}, state={self.state.value})"


def _takes_value(block: Callable) -> bool:
    try:
        params = inspect.signature(block).parameters.values()
    except (TypeError, ValueError):
        return True
    return any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL)
        for p in params
    )


def scope(obj: Any, block: Optional[Callable] = None):
    """
    Enter a foreign context manager.

    Args:
        obj: Foreign context manager, proxied or not
        block: Optional callable run inside the context. It receives the
            entered value when it accepts a positional argument.

    Returns:
        The block's result when ``block`` is given, otherwise a
        ``ForeignContext`` for use in a ``with`` statement
    """
    context = ForeignContext(obj)
    if block is None:
        return context
    with context as value:
        if _takes_value(block):
            return block(value)
        return block()
