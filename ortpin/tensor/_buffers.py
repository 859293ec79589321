"""
Buffer ownership policies for OwnedTensor.

An OwnedTensor must keep the memory behind a native tensor
at a fixed address for as long as the native value is alive. Each policy
holds a *pin*: a ``memoryview`` exported from the caller's object. While an
export is outstanding, ``bytearray`` resizes raise ``BufferError`` and NumPy
``resize`` raises ``ValueError``, so the memory cannot move.

The element data itself is exposed through NumPy arrays built on a second,
independent export. The pin therefore never has exports of its own and
``unpin()`` always succeeds, even while a caller still holds an array view.

Exactly three policies exist:

- ``OwnedBuffer`` - the tensor took ownership; read-write when the memory is
  and the binding is mutable.
- ``ExclusiveBuffer`` - lent to this tensor alone; always read-write.
- ``SharedBuffer`` - borrowed; read-only through the tensor.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ..exceptions import StateError, UnsupportedTypeError, ValidationError

__all__ = ["BufferPolicy", "OwnedBuffer", "ExclusiveBuffer", "SharedBuffer"]


def _export(source: Any) -> memoryview:
    try:
        return memoryview(source)
    except TypeError:
        raise ValidationError(
            f"{type(source).__name__} does not support the buffer protocol",
            code="NOT_A_BUFFER",
            details={"type": type(source).__name__},
            buffer=source,
        ) from None


class BufferPolicy:
    """A pinned, C-contiguous caller buffer.

    Args:
        source: The caller's object. Returned untouched by ``unpin()``.
        raw: Expose the memory as flat ``uint8`` instead of its own
            element format.
        require_writable: Reject read-only memory.
    """

    kind = "abstract"

    def __init__(self, source: Any, *, raw: bool = False, require_writable: bool = False) -> None:
        pin = _export(source)
        if not pin.c_contiguous:
            pin.release()
            raise ValidationError(
                "Buffer must be C-contiguous; tensors are bound without copying",
                code="BUFFER_NOT_CONTIGUOUS",
                details={"type": type(source).__name__},
                buffer=source,
            )
        if require_writable and pin.readonly:
            pin.release()
            raise ValidationError(
                f"{type(source).__name__} is read-only; a mutable binding needs writable memory",
                code="READ_ONLY_BUFFER",
                details={"type": type(source).__name__},
                buffer=source,
            )

        data = memoryview(source)
        try:
            if raw:
                elements = np.asarray(data.cast("B"))
            else:
                elements = np.asarray(data).reshape(-1)
        except (TypeError, ValueError, NotImplementedError) as e:
            pin.release()
            raise UnsupportedTypeError(
                f"Cannot view buffer format {data.format!r} as array elements: {e}",
                details={"format": data.format},
                buffer=source,
            ) from None

        self._source = source
        self._pin: memoryview | None = pin
        self._elements: np.ndarray | None = elements
        self._memory_writable = not pin.readonly

    # -- properties -----------------------------------------------------------

    @property
    def source(self) -> Any:
        """The caller's object."""
        return self._source

    @property
    def pinned(self) -> bool:
        return self._pin is not None

    @property
    def writable(self) -> bool:
        """Whether the tensor may hand out a mutable view."""
        return self._memory_writable

    @property
    def dtype(self) -> np.dtype:
        return self._live().dtype

    @property
    def length(self) -> int:
        """Element count (byte count for raw buffers)."""
        return self._live().size

    @property
    def nbytes(self) -> int:
        return self._live().nbytes

    @property
    def address(self) -> int:
        """Address of the first byte."""
        return self._live().__array_interface__["data"][0]

    # -- views ----------------------------------------------------------------

    def _live(self) -> np.ndarray:
        if self._elements is None:
            raise StateError("Buffer has been unpinned", code="STATE_UNPINNED")
        return self._elements

    def read_view(self, dtype: np.dtype | None = None) -> np.ndarray:
        """Read-only flat array over the buffer, optionally reinterpreted as ``dtype``."""
        arr = self._live()
        view = arr.view(dtype) if dtype is not None else arr.view()
        view.flags.writeable = False
        return view

    def write_view(self, dtype: np.dtype | None = None) -> np.ndarray:
        """Writable flat array over the buffer."""
        if not self.writable:
            raise StateError(
                f"{self.kind} buffer is read-only through this tensor",
                code="STATE_READ_ONLY",
                details={"policy": self.kind},
            )
        arr = self._live()
        return arr.view(dtype) if dtype is not None else arr.view()

    def unpin(self) -> Any:
        """Drop the pin and return the caller's object. Idempotent."""
        self._elements = None
        if self._pin is not None:
            self._pin.release()
            self._pin = None
        return self._source

    def __repr__(self) -> str:
        state = "pinned" if self.pinned else "unpinned"
        return f"{type(self).__name__}({type(self._source).__name__}, {state})"


class OwnedBuffer(BufferPolicy):
    """The tensor owns the buffer; ``take_buffer()`` hands it back.

    ``read_only=True`` keeps an owned buffer read-only through the tensor
    even when the memory is writable, as for an immutable binding.
    """

    kind = "owned"

    def __init__(
        self,
        source: Any,
        *,
        raw: bool = False,
        require_writable: bool = False,
        read_only: bool = False,
    ) -> None:
        super().__init__(source, raw=raw, require_writable=require_writable)
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def writable(self) -> bool:
        return self._memory_writable and not self._read_only


class ExclusiveBuffer(BufferPolicy):
    """Writable buffer lent to one tensor; the engine may write through it."""

    kind = "exclusive"

    def __init__(self, source: Any, *, raw: bool = False) -> None:
        super().__init__(source, raw=raw, require_writable=True)


class SharedBuffer(BufferPolicy):
    """Borrowed buffer, read-only through the tensor even if the memory is writable."""

    kind = "shared"

    @property
    def writable(self) -> bool:
        return False
