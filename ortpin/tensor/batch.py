"""
HandleBatch - an ordered group of OwnedTensors plus their ``OrtValue*`` array.

The pointer array is what ``Run`` consumes. It is derived once from the
handles and re-derived whenever a handle is replaced, so a prebuilt batch
can be passed to many runs without rebuilding it.
"""

from __future__ import annotations

import ctypes
from collections.abc import Iterable, Iterator
from typing import Any

from ..exceptions import IndexOutOfRangeError, StateError, ValidationError
from .owned import OwnedTensor

__all__ = ["HandleBatch"]


class HandleBatch:
    """
    Ordered OwnedTensors and a ``c_void_p`` array snapshot of their pointers.

    A batch built with ``HandleBatch(handles)`` or :meth:`from_handles` owns
    its handles: :meth:`close` releases every one. :meth:`borrow` builds a
    view that leaves the handles to the caller.

    Indexing accepts ``0 <= i < len(batch)`` only; negative indices raise
    IndexOutOfRangeError rather than counting from the end.
    """

    def __init__(self, handles: Iterable[OwnedTensor], *, owning: bool = True) -> None:
        items = list(handles)
        for i, handle in enumerate(items):
            if not isinstance(handle, OwnedTensor):
                raise ValidationError(
                    f"batch entry {i} is {type(handle).__name__}, expected OwnedTensor",
                    details={"index": i, "type": type(handle).__name__},
                )
        self._handles: list[OwnedTensor] = items
        self._owning = owning
        self._closed = False
        self._pointers: Any = None
        self._derive()

    @classmethod
    def from_handles(cls, handles: Iterable[OwnedTensor]) -> HandleBatch:
        """Take ownership of ``handles`` and derive the pointer array."""
        return cls(handles)

    @classmethod
    def borrow(cls, handles: Iterable[OwnedTensor]) -> HandleBatch:
        """Non-owning batch; closing it leaves ``handles`` untouched."""
        return cls(handles, owning=False)

    def _derive(self) -> None:
        # Released handles snapshot as NULL; as_pointer_array rejects them
        ptrs = [None if h.released else h.ptr for h in self._handles]
        self._pointers = (ctypes.c_void_p * len(ptrs))(*ptrs)

    def _check_open(self) -> None:
        if self._closed:
            raise StateError("HandleBatch is closed.", code="STATE_ERROR")

    def _check_index(self, index: Any) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRangeError(
                f"batch index must be an int, got {type(index).__name__}",
                details={"index": repr(index), "length": len(self._handles)},
            )
        if not 0 <= index < len(self._handles):
            raise IndexOutOfRangeError(
                f"batch index {index} outside [0, {len(self._handles)})",
                details={"index": index, "length": len(self._handles)},
            )
        return index

    # =========================================================================
    # Pointer arrays
    # =========================================================================

    def as_pointer_array(self) -> Any:
        """
        Return the ``c_void_p`` array of ``OrtValue*`` pointers.

        Raises:
            StateError: If the batch is closed or any handle was released.
        """
        self._check_open()
        for i, handle in enumerate(self._handles):
            if handle.released:
                raise StateError(
                    f"handle {i} in batch is released",
                    code="STATE_ERROR",
                    details={"index": i},
                )
        return self._pointers

    def as_mutable_pointer_array(self) -> Any:
        """
        Pointer array for outputs the engine writes into.

        Raises:
            StateError: As :meth:`as_pointer_array`, or if a handle is bound
                read-only.
        """
        pointers = self.as_pointer_array()
        for i, handle in enumerate(self._handles):
            if not handle.writable:
                raise StateError(
                    f"handle {i} in batch is read-only ({handle.policy.kind} buffer)",
                    code="STATE_READ_ONLY",
                    details={"index": i, "policy": handle.policy.kind},
                )
        return pointers

    # =========================================================================
    # Sequence access
    # =========================================================================

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[OwnedTensor]:
        return iter(self._handles)

    def __getitem__(self, index: int) -> OwnedTensor:
        return self._handles[self._check_index(index)]

    def __setitem__(self, index: int, handle: OwnedTensor) -> None:
        self.replace(index, handle)

    def replace(self, index: int, handle: OwnedTensor) -> OwnedTensor:
        """
        Put ``handle`` at ``index`` and return the handle it replaces.

        The returned handle is not released; it now belongs to the caller.
        ``batch[i] = handle`` does the same and discards the return value.
        """
        self._check_open()
        index = self._check_index(index)
        if not isinstance(handle, OwnedTensor):
            raise ValidationError(
                f"batch entry must be OwnedTensor, got {type(handle).__name__}",
                details={"index": index, "type": type(handle).__name__},
            )
        previous = self._handles[index]
        self._handles[index] = handle
        self._derive()
        return previous

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release every handle if the batch owns them. Idempotent."""
        if self._closed:
            return
        self._closed = True
        if self._owning:
            for handle in self._handles:
                handle.release()
        self._pointers = None

    def __enter__(self) -> HandleBatch:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        mode = "owning" if self._owning else "borrowed"
        return f"HandleBatch(len={len(self._handles)}, {mode})"
