"""
tfproxy - Dynamic proxy bindings for a deep-learning framework's Python API

Exposes the framework (TensorFlow by default) through attribute proxies
that resolve members on the live object graph, marshal arguments and
results at every call, and run foreign context managers with guaranteed
cleanup.

Example Usage:
    >>> import tfproxy
    >>> from tfproxy import tf, shape, keyed_dict, scope, Int
    >>>
    >>> x = tf.placeholder(tf.float32, shape(None, 784))
    >>> W = tf.Variable(tf.zeros(shape(784, 10)))
    >>> y = tf.nn.softmax(tf.matmul(x, W))
    >>>
    >>> # Integer-only parameters take ints or Int(...)
    >>> conv = tf.nn.conv2d(x_image, W_conv, strides=Int([1, 1, 1, 1]),
    ...                     padding="SAME")
    >>>
    >>> with scope(tf.Session()) as sess:
    ...     sess.run(tf.global_variables_initializer())
    ...     sess.run(y, feed_dict=keyed_dict((x, batch)))
    >>>
    >>> print(tfproxy.runtime_config())
"""

import logging

from .config import ProxyConfig, get_config, set_config, configure_logging
from .core import (
    ErrorCode,
    ProxyError,
    RuntimeNotFoundError,
    ResolutionError,
    ForeignCallError,
    ContextExitError,
    ScopeError,
    init,
    shutdown,
    is_initialized,
    runtime,
    use_runtime,
    version,
    runtime_version,
    runtime_config,
    get_last_error,
    get_error_message,
    clear_error,
    __version__,
)
from .marshal import Int, Float, to_foreign, from_foreign, to_host
from .proxy import (
    ForeignProxy,
    MemberKind,
    Resolution,
    attach,
    unwrap,
    resolve,
    path_of,
    kind_of,
    is_constructor,
)
from .context import ForeignContext, ScopeState, scope
from .helpers import UNKNOWN, Shape, KeyedMap, shape, keyed_dict, tuple_

logging.getLogger(__name__).addHandler(logging.NullHandler())


def __getattr__(name):
    # ``tfproxy.tf`` imports the runtime on first access
    if name == "tf":
        return runtime()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Core
    "init",
    "shutdown",
    "is_initialized",
    "runtime",
    "use_runtime",
    "version",
    "runtime_version",
    "runtime_config",
    "get_last_error",
    "get_error_message",
    "clear_error",
    "tf",
    # Errors
    "ErrorCode",
    "ProxyError",
    "RuntimeNotFoundError",
    "ResolutionError",
    "ForeignCallError",
    "ContextExitError",
    "ScopeError",
    # Config
    "ProxyConfig",
    "get_config",
    "set_config",
    "configure_logging",
    # Marshaling
    "Int",
    "Float",
    "to_foreign",
    "from_foreign",
    "to_host",
    # Proxy
    "ForeignProxy",
    "MemberKind",
    "Resolution",
    "attach",
    "unwrap",
    "resolve",
    "path_of",
    "kind_of",
    "is_constructor",
    # Scopes
    "ForeignContext",
    "ScopeState",
    "scope",
    # Helpers
    "UNKNOWN",
    "Shape",
    "KeyedMap",
    "shape",
    "keyed_dict",
    "tuple_",
]
