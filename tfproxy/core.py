"""
Core functionality and runtime loading for tfproxy.
"""

import importlib
import logging
import os
import sys
from typing import Any, Dict, Optional

from .config import get_config

logger = logging.getLogger(__name__)

__version__ = "0.2.0"


# Error codes reported by ProxyError
class ErrorCode:
    OK = 0
    RUNTIME_NOT_FOUND = 1
    NOT_INITIALIZED = 2
    RESOLUTION = 3
    FOREIGN_CALL = 4
    CONTEXT_EXIT = 5
    SCOPE_STATE = 6
    INVALID_ARGUMENT = 7


_ERROR_MESSAGES = {
    ErrorCode.OK: "No error",
    ErrorCode.RUNTIME_NOT_FOUND: "Foreign runtime could not be imported",
    ErrorCode.NOT_INITIALIZED: "Foreign runtime is not initialized",
    ErrorCode.RESOLUTION: "Member not found",
    ErrorCode.FOREIGN_CALL: "Foreign call failed",
    ErrorCode.CONTEXT_EXIT: "Foreign context exit failed",
    ErrorCode.SCOPE_STATE: "Invalid scope state",
    ErrorCode.INVALID_ARGUMENT: "Invalid argument",
}


class ProxyError(Exception):
    """Exception raised when a proxied operation fails."""

    error_code = ErrorCode.INVALID_ARGUMENT

    def __init__(self, message: str = None, error_code: int = None):
        if error_code is not None:
            self.error_code = error_code
        if message is None:
            message = get_error_message(self.error_code)
        self.message = message
        super().__init__(f"ProxyError({self.error_code}): {message}")


class RuntimeNotFoundError(ProxyError, ImportError):
    """The foreign runtime module could not be imported."""

    error_code = ErrorCode.RUNTIME_NOT_FOUND

    def __init__(self, module_name: str, reason: str = ""):
        self.module_name = module_name
        message = f"Could not import foreign runtime '{module_name}'"
        if reason:
            message += f". Original error: {reason}"
        ProxyError.__init__(self, message)


class ResolutionError(ProxyError, AttributeError):
    """A requested member does not exist on the foreign object."""

    error_code = ErrorCode.RESOLUTION

    def __init__(self, path):
        self.path = tuple(path)
        ProxyError.__init__(self, f"'{format_path(self.path)}' not found")


class ForeignCallError(ProxyError):
    """Last-error record of a foreign call that raised.

    The foreign exception itself propagates with its own type. This record
    keeps it on ``foreign`` together with the proxy path, and reproduces
    its message verbatim.
    """

    error_code = ErrorCode.FOREIGN_CALL

    def __init__(self, path, foreign: BaseException):
        self.path = tuple(path)
        self.foreign = foreign
        ProxyError.__init__(
            self,
            f"{format_path(self.path)}: {type(foreign).__name__}: {foreign}",
        )


class ContextExitError(ProxyError):
    """The foreign ``__exit__`` of a scope raised.

    Attributes:
        original: Exception raised by the protected block, or None
        exit_error: Exception raised by the foreign exit
    """

    error_code = ErrorCode.CONTEXT_EXIT

    def __init__(self, path, exit_error: BaseException,
                 original: Optional[BaseException] = None):
        self.path = tuple(path)
        self.exit_error = exit_error
        self.original = original
        message = (f"exit of {format_path(self.path)} failed: "
                   f"{type(exit_error).__name__}: {exit_error}")
        if original is not None:
            message += (f" (while handling {type(original).__name__}: "
                        f"{original})")
        ProxyError.__init__(self, message)


class ScopeError(ProxyError):
    """A scope was used outside its Unentered -> Active -> Exited order."""

    error_code = ErrorCode.SCOPE_STATE


def format_path(path) -> str:
    return ".".join(str(p) for p in path) or "<root>"


# Last error record

_last_error: Optional[ProxyError] = None


def _record_error(error: ProxyError) -> ProxyError:
    global _last_error
    _last_error = error
    # attribute misses are routine (hasattr, getattr with a default)
    level = logging.DEBUG if isinstance(error, ResolutionError) else logging.WARNING
    logger.log(level, "%s", error.message)
    return error


def _record_foreign_failure(path, error: BaseException) -> None:
    """Record a foreign exception and tag it with the proxy path.

    The exception is not wrapped; callers re-raise it unchanged. The
    innermost path wins when a failure crosses several proxies.
    """
    path = tuple(path)
    if getattr(error, "proxy_path", None) is None:
        error.proxy_path = path
        if hasattr(error, "add_note"):
            error.add_note(f"raised by {format_path(path)}")
    _record_error(ForeignCallError(path, error))


def get_last_error() -> Optional[ProxyError]:
    """Get the last error recorded by a proxied operation."""
    return _last_error


def get_error_message(error_code: int) -> str:
    """Get the message for an error code."""
    return _ERROR_MESSAGES.get(error_code, f"Unknown error ({error_code})")


def clear_error() -> None:
    """Clear the last error."""
    global _last_error
    _last_error = None


# Runtime loading

_root = None
_module_name: Optional[str] = None


def _find_runtime(module_name: Optional[str] = None) -> str:
    """Pick the foreign runtime module name.

    Search order: explicit argument, ``TFPROXY_MODULE``, configured default.
    """
    if module_name:
        return module_name
    env = os.environ.get("TFPROXY_MODULE", "").strip()
    if env:
        return env
    return get_config().module


def init(module_name: Optional[str] = None) -> None:
    """Import the foreign runtime and create the root proxy.

    Calling again after a successful init is a no-op, unless a different
    module is named explicitly.

    Raises:
        RuntimeNotFoundError: If the runtime module cannot be imported
        ProxyError: If another runtime is already initialized
    """
    global _root, _module_name
    if _root is not None:
        if module_name and module_name != _module_name:
            raise _record_error(ProxyError(
                f"Runtime '{_module_name}' is already initialized; "
                f"call shutdown() before loading '{module_name}'",
                ErrorCode.INVALID_ARGUMENT,
            ))
        return

    name = _find_runtime(module_name)
    try:
        module = importlib.import_module(name)
    except ImportError as e:
        raise _record_error(RuntimeNotFoundError(name, str(e))) from e

    logger.info("Loaded foreign runtime %s from %s",
                name, getattr(module, "__file__", "<builtin>"))
    use_runtime(module, get_config().alias)
    _module_name = name


def use_runtime(obj: Any, name: Optional[str] = None) -> None:
    """Install an already-loaded object as the foreign runtime root."""
    from .proxy import attach

    global _root, _module_name
    _root = attach(obj, name or get_config().alias)
    _module_name = getattr(obj, "__name__", type(obj).__name__)


def shutdown() -> None:
    """Drop the root proxy. The foreign module stays imported."""
    global _root, _module_name
    if _root is not None:
        logger.info("Releasing foreign runtime %s", _module_name)
    _root = None
    _module_name = None


def is_initialized() -> bool:
    return _root is not None


def runtime():
    """Return the root proxy, initializing the runtime on first use."""
    if _root is None:
        init()
    return _root


def version() -> str:
    """Get the tfproxy version string."""
    return __version__


def runtime_version() -> Optional[str]:
    """Get the foreign runtime's ``__version__`` (None if it has none)."""
    if _root is None:
        raise _record_error(ProxyError(error_code=ErrorCode.NOT_INITIALIZED))
    value = getattr(_root._obj, "__version__", None)
    return None if value is None else str(value)


def runtime_config() -> Dict[str, Any]:
    """Describe the active foreign runtime.

    Returns:
        Dict with ``available``, ``module``, ``version``, ``location``
        and ``python`` keys.
    """
    report = {
        "available": _root is not None,
        "module": _module_name or _find_runtime(),
        "version": None,
        "location": None,
        "python": sys.executable,
    }
    if _root is not None:
        report["version"] = runtime_version()
        report["location"] = getattr(_root._obj, "__file__", None)
    return report
