"""
Shape, keyed-map and tuple constructors for foreign call arguments.
"""

from collections.abc import Mapping, MutableMapping
from typing import Any, Iterator, List, Optional

import numpy as np

from .marshal import Int, to_foreign


class _Unknown:
    """Marker for a dimension whose size is not known."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()

# Host keys matched by equality; every other key is matched by identity
_EQUALITY_KEYS = (str, bytes, int, float, complex, type(None), tuple, np.generic)


def _dimension(dim: Any) -> Optional[int]:
    if dim is None or dim is UNKNOWN:
        return None
    if isinstance(dim, Int):
        if not dim.is_scalar:
            raise TypeError(f"Shape dimension must be a scalar, got {dim!r}")
        dim = dim.to_foreign()
    if isinstance(dim, (bool, np.bool_)):
        raise TypeError(f"Shape dimension must be an integer, got {dim!r}")
    if isinstance(dim, (int, np.integer)):
        if dim < 0:
            raise ValueError(f"Shape dimension must be >= 0, got {dim}")
        return int(dim)
    raise TypeError(
        f"Shape dimension must be an integer or None, got {type(dim).__name__} "
        f"{dim!r}"
    )


class Shape(list):
    """
    Shape descriptor that always marshals as a plain list.

    Unknown dimensions are stored as None, whether given as None or as
    ``UNKNOWN``. A single-dimension shape stays a one-element list.

    Example:
        >>> shape(None, 784)
        Shape([None, 784])
        >>> shape(3).to_foreign()
        [3]
    """

    def __init__(self, dims=()):
        super().__init__(_dimension(dim) for dim in dims)

    @property
    def rank(self) -> int:
        return len(self)

    @property
    def is_fully_defined(self) -> bool:
        return all(dim is not None for dim in self)

    def to_foreign(self) -> List[Optional[int]]:
        return list(self)

    def __repr__(self) -> str:
        return f"Shape({list(self)!r})"


def shape(*dims) -> Shape:
    """
    Create a shape descriptor.

    Args:
        *dims: Dimension sizes; None or UNKNOWN for an unknown size

    Returns:
        Shape (a list) that is never unwrapped or turned into an array
    """
    return Shape(dims)


class KeyedMap(MutableMapping):
    """
    Mapping keyed by object identity, with host scalar keys matched by equality.

    Used for foreign arguments that need dictionaries keyed by foreign
    objects, such as session feed dicts. Proxy keys are stored as the
    foreign object they wrap, so a proxy and its object find the same
    entry. Strings, numbers, bytes, None and tuples are matched by
    equality like ordinary dict keys. A string never matches an object key.

    Example:
        >>> feed = keyed_dict((x, [1.0, 2.0]), (y, [3.0]))
        >>> feed[x]
        [1.0, 2.0]
        >>> "x" in feed
        False
    """

    def __init__(self, *pairs, **named):
        self._entries = {}
        if len(pairs) == 1 and isinstance(pairs[0], Mapping):
            pairs = tuple(pairs[0].items())
        for pair in pairs:
            if not isinstance(pair, tuple) or len(pair) != 2:
                raise TypeError(
                    f"keyed_dict entries must be (key, value) tuples, got {pair!r}"
                )
            self[pair[0]] = pair[1]
        for name, value in named.items():
            self[name] = value

    @staticmethod
    def _slot(key):
        from .proxy import unwrap

        key = unwrap(key)
        if isinstance(key, _EQUALITY_KEYS):
            return ("eq", key), key
        return ("id", id(key)), key

    def __setitem__(self, key, value):
        slot, key = self._slot(key)
        self._entries[slot] = (key, value)

    def __getitem__(self, key):
        slot, _ = self._slot(key)
        try:
            return self._entries[slot][1]
        except KeyError:
            raise KeyError(key) from None

    def __delitem__(self, key):
        slot, _ = self._slot(key)
        try:
            del self._entries[slot]
        except KeyError:
            raise KeyError(key) from None

    def __iter__(self) -> Iterator[Any]:
        return (key for key, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def to_foreign(self) -> dict:
        """
        Plain dict keyed by the foreign objects, values marshaled.

        Raises:
            ValueError: If two distinct key objects compare equal, since a
                plain dict would merge their entries
        """
        result = {key: to_foreign(value) for key, value in self._entries.values()}
        if len(result) != len(self._entries):
            raise ValueError(
                "keyed_dict has distinct keys that compare equal; "
                "they cannot be passed as one dict"
            )
        return result

    def __repr__(self) -> str:
        items = ", ".join(f"{key!r}: {value!r}"
                          for key, value in self._entries.values())
        return f"KeyedMap({{{items}}})"


def keyed_dict(*pairs, **named) -> KeyedMap:
    """
    Create a mapping whose keys may be foreign objects.

    Args:
        *pairs: (key, value) tuples, or a single mapping
        **named: String-keyed entries

    Returns:
        KeyedMap
    """
    return KeyedMap(*pairs, **named)


def tuple_(*items) -> tuple:
    """Build a tuple argument, including the one-item case."""
    return tuple(items)
