"""
Small stand-in for a deep-learning runtime, used by the tfproxy tests.

``make_runtime()`` returns a fresh module object shaped like a framework
root: a ``train`` namespace, tensor factories, a session context manager
and a few deliberately failing members.
"""

import sys
import types

import numpy as np

RUNTIME_NAME = "fakeflow"


class DType:
    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f"fakeflow.{self.name}"


class FakeTensor:
    """Eager tensor holding a numpy array."""

    def __init__(self, value, dtype=None):
        self.value = np.asarray(value)
        self.dtype = dtype

    @staticmethod
    def _val(other):
        return other.value if isinstance(other, FakeTensor) else np.asarray(other)

    @property
    def shape(self):
        return list(self.value.shape)

    def numpy(self):
        return self.value.copy()

    def __add__(self, other):
        return FakeTensor(self.value + self._val(other))

    def __radd__(self, other):
        return FakeTensor(self._val(other) + self.value)

    def __sub__(self, other):
        return FakeTensor(self.value - self._val(other))

    def __mul__(self, other):
        return FakeTensor(self.value * self._val(other))

    def __rmul__(self, other):
        return FakeTensor(self._val(other) * self.value)

    def __matmul__(self, other):
        return FakeTensor(self.value @ self._val(other))

    def __neg__(self):
        return FakeTensor(-self.value)

    def __getitem__(self, key):
        return self.value[key]

    def __len__(self):
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def __repr__(self):
        return f"FakeTensor(shape={self.shape})"


class Placeholder:
    def __init__(self, dtype, shape=None, name=None):
        self.dtype = dtype
        self.shape = shape
        self.name = name


class Session:
    """Context manager that counts its enters and exits."""

    def __init__(self):
        self.enters = 0
        self.exits = 0
        self.closed = False
        self.last_exc_type = None

    def __enter__(self):
        self.enters += 1
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exits += 1
        self.closed = True
        self.last_exc_type = exc_type
        return False

    def run(self, fetch, feed_dict=None):
        if self.closed:
            raise RuntimeError("Attempted to use a closed Session.")
        if isinstance(fetch, Placeholder):
            return feed_dict[fetch]
        if isinstance(fetch, FakeTensor):
            return fetch.numpy()
        return fetch


class SuppressingSession(Session):
    """Session whose exit asks for the block's exception to be swallowed."""

    def __exit__(self, exc_type, exc, tb):
        super().__exit__(exc_type, exc, tb)
        return True


class FailingExitSession(Session):
    """Session whose exit raises after counting."""

    def __exit__(self, exc_type, exc, tb):
        super().__exit__(exc_type, exc, tb)
        raise RuntimeError("session close failed")


class FailingEnterSession(Session):
    def __enter__(self):
        raise RuntimeError("could not open session")


class OutOfRangeError(Exception):
    """Raised when an input pipeline is exhausted."""


class Dataset:
    """Input pipeline yielding a fixed number of batches."""

    def __init__(self, batches):
        self.remaining = batches

    def get_next(self):
        if self.remaining <= 0:
            raise OutOfRangeError("End of sequence")
        self.remaining -= 1
        return self.remaining


class GradientDescentOptimizer:
    def __init__(self, learning_rate, use_locking=False, name="GradientDescent"):
        self.learning_rate = learning_rate
        self.use_locking = use_locking
        self.name = name

    def minimize(self, loss):
        return ("minimize", self.learning_rate, loss)


class Variable:
    def __init__(self, initial_value, name=None):
        self.value = initial_value
        self.name = name


def constant(value, dtype=None):
    return FakeTensor(value, dtype)


def zeros(shape, dtype=None):
    return FakeTensor(np.zeros(shape), dtype)


def reshape(tensor, shape):
    for dim in shape:
        if dim is not None and not isinstance(dim, (int, np.integer)):
            raise TypeError(f"Expected int for shape, got {type(dim).__name__}")
    return FakeTensor(np.reshape(tensor.value, [-1 if d is None else d for d in shape]))


def reduce_sum(tensor, axis=None):
    return FakeTensor(np.sum(tensor.value, axis=axis))


def identity(value):
    return value


def describe(*args, **kwargs):
    return {"args": args, "kwargs": kwargs}


def fail(message="something went wrong"):
    raise ValueError(message)


def make_runtime(register=False):
    """Build a fresh fake runtime module.

    Args:
        register: Also install it (and its ``contrib`` package) in sys.modules
    """
    root = types.ModuleType(RUNTIME_NAME)
    root.__version__ = "0.0.1-fake"
    root.__path__ = []

    train = types.ModuleType(f"{RUNTIME_NAME}.train")
    train.GradientDescentOptimizer = GradientDescentOptimizer
    train.default_rate = 0.01
    root.train = train

    errors = types.ModuleType(f"{RUNTIME_NAME}.errors")
    errors.OutOfRangeError = OutOfRangeError
    root.errors = errors

    root.float32 = DType("float32")
    root.int32 = DType("int32")
    root.pi = np.float64(3.14159)
    root.dims = np.arange(3)
    root.FakeTensor = FakeTensor
    root.Placeholder = Placeholder
    root.Session = Session
    root.SuppressingSession = SuppressingSession
    root.FailingExitSession = FailingExitSession
    root.FailingEnterSession = FailingEnterSession
    root.Variable = Variable
    root.Dataset = Dataset
    root.placeholder = Placeholder
    root.constant = constant
    root.zeros = zeros
    root.reshape = reshape
    root.reduce_sum = reduce_sum
    root.identity = identity
    root.describe = describe
    root.fail = fail

    if register:
        contrib = types.ModuleType(f"{RUNTIME_NAME}.contrib")
        contrib.layers = types.ModuleType(f"{RUNTIME_NAME}.contrib.layers")
        sys.modules[RUNTIME_NAME] = root
        sys.modules[f"{RUNTIME_NAME}.contrib"] = contrib
    return root


def unregister_runtime():
    for name in (RUNTIME_NAME, f"{RUNTIME_NAME}.contrib"):
        sys.modules.pop(name, None)
