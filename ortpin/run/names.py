"""
NameTable - tensor names as a NUL-terminated C string array.
"""

from __future__ import annotations

import ctypes
from collections.abc import Iterable, Iterator
from typing import Any

from ..exceptions import InvalidNameError, ValidationError

__all__ = ["NameTable"]


def _encode(index: int, name: Any) -> bytes:
    if isinstance(name, str):
        encoded = name.encode("utf-8")
    elif isinstance(name, (bytes, bytearray)):
        encoded = bytes(name)
    else:
        raise ValidationError(
            f"name {index} must be str or bytes, got {type(name).__name__}",
            details={"index": index, "type": type(name).__name__},
        )
    if b"\x00" in encoded:
        raise InvalidNameError(
            f"name {index} contains a NUL byte: {name!r}",
            details={"index": index, "name": repr(name)},
        )
    return encoded


class NameTable:
    """
    Immutable ordered tensor names and their ``c_char_p`` array.

    The array points into ``bytes`` objects held by the table, so the
    pointers stay valid for as long as the table is alive.

    Example:
        >>> names = NameTable(["input_ids", "attention_mask"])
        >>> len(names), names[1]
        (2, 'attention_mask')
    """

    __slots__ = ("_encoded", "_pointers")

    def __init__(self, names: Iterable[str | bytes]) -> None:
        if isinstance(names, (str, bytes)):
            raise ValidationError(
                "names must be a sequence of names, not a single name",
                details={"type": type(names).__name__},
            )
        self._encoded = tuple(_encode(i, n) for i, n in enumerate(names))
        self._pointers = (ctypes.c_char_p * len(self._encoded))(*self._encoded)

    @classmethod
    def build(cls, names: Iterable[str | bytes]) -> NameTable:
        """Encode ``names`` (UTF-8 for str) into a new table."""
        return cls(names)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(n.decode("utf-8", errors="replace") for n in self._encoded)

    @property
    def encoded(self) -> tuple[bytes, ...]:
        return self._encoded

    def as_pointer_array(self) -> Any:
        """The ``c_char_p`` array passed to ``Run``."""
        return self._pointers

    def __len__(self) -> int:
        return len(self._encoded)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __getitem__(self, index: int) -> str:
        return self._encoded[index].decode("utf-8", errors="replace")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, NameTable):
            return self._encoded == other._encoded
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._encoded)

    def __repr__(self) -> str:
        return f"NameTable({list(self.names)!r})"
