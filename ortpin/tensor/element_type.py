"""
Tensor element types.

``ElementType`` mirrors ``ONNXTensorElementDataType``: its values are the
native tags, so ``int(ElementType.FLOAT) == 1`` is what crosses the FFI
boundary. Tags arriving from outside the process (model metadata, dtype
negotiation with another process) go through ``from_tag``, which never
accepts a value outside the enumeration.

Example:
    >>> from ortpin import ElementType, width_of
    >>> width_of(ElementType.INT64)
    8
    >>> ElementType.from_tag(11)
    <ElementType.DOUBLE: 11>
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

import numpy as np

from ..exceptions import UnknownTypeTagError, UnsupportedTypeError, ValidationError

__all__ = [
    "ElementType",
    "width_of",
    "from_tag",
    "tag_of",
    "from_dtype",
    "to_dtype",
]


class ElementType(IntEnum):
    """Scalar kind of a tensor's entries (``ONNXTensorElementDataType``)."""

    UNDEFINED = 0
    FLOAT = 1
    UINT8 = 2
    INT8 = 3
    UINT16 = 4
    INT16 = 5
    INT32 = 6
    INT64 = 7
    STRING = 8
    BOOL = 9
    FLOAT16 = 10
    DOUBLE = 11
    UINT32 = 12
    UINT64 = 13
    COMPLEX64 = 14
    COMPLEX128 = 15
    BFLOAT16 = 16

    # NumPy-style aliases
    FLOAT32 = 1
    FLOAT64 = 11

    @property
    def tag(self) -> int:
        """Native tag value."""
        return int(self)

    @property
    def width(self) -> int:
        """Byte width. Raises UnsupportedTypeError for STRING and UNDEFINED."""
        return width_of(self)

    @classmethod
    def from_tag(cls, raw: Any) -> ElementType:
        """Validate an untrusted integer tag. See :func:`from_tag`."""
        return from_tag(raw)


# None marks "no fixed width"
_WIDTHS: dict[ElementType, int | None] = {
    ElementType.UNDEFINED: None,
    ElementType.FLOAT: 4,
    ElementType.UINT8: 1,
    ElementType.INT8: 1,
    ElementType.UINT16: 2,
    ElementType.INT16: 2,
    ElementType.INT32: 4,
    ElementType.INT64: 8,
    ElementType.STRING: None,
    ElementType.BOOL: 1,
    ElementType.FLOAT16: 2,
    ElementType.DOUBLE: 8,
    ElementType.UINT32: 4,
    ElementType.UINT64: 8,
    ElementType.COMPLEX64: 8,
    ElementType.COMPLEX128: 16,
    ElementType.BFLOAT16: 2,
}

# NumPy has no bfloat16; STRING is variable width
_DTYPES: dict[ElementType, np.dtype] = {
    ElementType.FLOAT: np.dtype(np.float32),
    ElementType.UINT8: np.dtype(np.uint8),
    ElementType.INT8: np.dtype(np.int8),
    ElementType.UINT16: np.dtype(np.uint16),
    ElementType.INT16: np.dtype(np.int16),
    ElementType.INT32: np.dtype(np.int32),
    ElementType.INT64: np.dtype(np.int64),
    ElementType.BOOL: np.dtype(np.bool_),
    ElementType.FLOAT16: np.dtype(np.float16),
    ElementType.DOUBLE: np.dtype(np.float64),
    ElementType.UINT32: np.dtype(np.uint32),
    ElementType.UINT64: np.dtype(np.uint64),
    ElementType.COMPLEX64: np.dtype(np.complex64),
    ElementType.COMPLEX128: np.dtype(np.complex128),
}

# Keyed by (kind, itemsize) so platform aliases (long vs longlong) resolve alike
_BY_KIND = {(dt.kind, dt.itemsize): et for et, dt in _DTYPES.items()}


def from_tag(raw: Any) -> ElementType:
    """
    Convert an untrusted integer into an ElementType.

    Args:
        raw: Candidate tag value.

    Returns:
        The matching ElementType.

    Raises:
        UnknownTypeTagError: If ``raw`` is not an int (bools included) or
            does not name a defined element type.
    """
    if isinstance(raw, ElementType):
        return raw
    if isinstance(raw, bool) or not isinstance(raw, (int, np.integer)):
        raise UnknownTypeTagError(
            f"Element type tag must be an integer, got {type(raw).__name__}",
            details={"tag": repr(raw)},
        )
    try:
        return ElementType(int(raw))
    except ValueError:
        raise UnknownTypeTagError(
            f"Unknown element type tag: {int(raw)}",
            details={"tag": int(raw)},
        ) from None


def tag_of(element_type: ElementType) -> int:
    """Return the native tag of ``element_type``."""
    return int(element_type)


def width_of(element_type: ElementType | int) -> int:
    """
    Byte width of one element.

    Args:
        element_type: An ElementType, or a raw tag validated through
            :func:`from_tag`.

    Raises:
        UnsupportedTypeError: For STRING (no fixed width), UNDEFINED, and
            any raw tag outside the enumeration.
    """
    try:
        et = from_tag(element_type)
    except UnknownTypeTagError as e:
        raise UnsupportedTypeError(
            f"No element width for tag {element_type!r}",
            details=dict(e.details),
        ) from e
    width = _WIDTHS[et]
    if width is None:
        raise UnsupportedTypeError(
            f"{et.name} has no fixed element width",
            details={"element_type": et.name},
        )
    return width


def from_dtype(dtype: Any) -> ElementType:
    """
    Map a NumPy dtype (or anything ``np.dtype`` accepts) to an ElementType.

    Raises:
        UnsupportedTypeError: For dtypes with no tensor element type
            (object, str, bytes, datetime, structured).
        ValidationError: For non-native byte order; the engine reads
            elements in native order.
    """
    dt = np.dtype(dtype)
    if not dt.isnative:
        raise ValidationError(
            f"dtype {dt.str} is not in native byte order",
            code="NON_NATIVE_BYTE_ORDER",
            details={"dtype": dt.str},
        )
    et = _BY_KIND.get((dt.kind, dt.itemsize))
    if et is None or dt.fields is not None:
        raise UnsupportedTypeError(
            f"dtype {dt} has no tensor element type",
            details={"dtype": str(dt)},
        )
    return et


def to_dtype(element_type: ElementType | int) -> np.dtype:
    """
    NumPy dtype for ``element_type``.

    Raises:
        UnsupportedTypeError: For STRING, UNDEFINED and BFLOAT16.
    """
    et = from_tag(element_type)
    dt = _DTYPES.get(et)
    if dt is None:
        raise UnsupportedTypeError(
            f"{et.name} has no NumPy dtype",
            details={"element_type": et.name},
        )
    return dt
