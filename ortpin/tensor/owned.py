"""
OwnedTensor - a native tensor value bound to caller memory without copying.

The engine reads inputs from, and writes outputs into, the exact bytes of a
Python buffer (``bytearray``, ``numpy.ndarray``, ``array.array``, ...). The
handle pins that buffer for its whole life and releases the native value
before letting go of it.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

import numpy as np

from .._bindings import NativeApi, resolve_api
from .._logging import scoped_logger
from ..exceptions import (
    NativeCreateFailedError,
    NativeError,
    NullBufferError,
    OrtPinError,
    ShapeMismatchError,
    StateError,
    ValidationError,
)
from ._buffers import BufferPolicy, ExclusiveBuffer, OwnedBuffer, SharedBuffer
from .element_type import ElementType, from_dtype, from_tag, to_dtype, width_of
from .memory_info import AllocatorType, MemoryInfo, MemType

__all__ = ["OwnedTensor"]

log = scoped_logger("tensor")

_INT64_MAX = 2**63 - 1


def _validate_shape(shape: Iterable[int]) -> tuple[tuple[int, ...], int]:
    """Return ``(dims, element_count)`` or raise ValidationError."""
    try:
        dims = tuple(shape)
    except TypeError:
        raise ValidationError(
            f"shape must be a sequence of ints, got {type(shape).__name__}",
            code="INVALID_SHAPE",
        ) from None
    for d in dims:
        if isinstance(d, bool) or not isinstance(d, (int, np.integer)) or d < 0:
            raise ValidationError(
                f"shape dimensions must be non-negative ints, got {d!r}",
                code="INVALID_SHAPE",
                details={"shape": [repr(x) for x in dims]},
            )
    dims = tuple(int(d) for d in dims)
    count = math.prod(dims)
    if count > _INT64_MAX or any(d > _INT64_MAX for d in dims):
        raise ValidationError(
            f"shape {list(dims)} has more elements than fit in int64",
            code="SHAPE_OVERFLOW",
            details={"shape": list(dims)},
        )
    return dims, count


class OwnedTensor:
    """
    Native tensor value whose data is a pinned Python buffer.

    Create with :meth:`bind_immutable`, :meth:`bind_mutable` or
    :meth:`bind_raw`. The handle holds three things and releases them in
    this order: the native ``OrtValue``, its ``OrtMemoryInfo``, and the pin
    on the caller's buffer. The buffer itself is never freed or written by
    the handle.

    While bound, the buffer cannot be resized: ``bytearray`` raises
    ``BufferError`` and ``ndarray.resize`` raises ``ValueError``.

    Thread safety: handles carry no locks. A handle must not be passed to
    two concurrent runs, and must not be written through ``view_mut()``
    while a run reads it.

    Example:
        >>> import numpy as np
        >>> data = np.arange(6, dtype=np.float32)
        >>> with OwnedTensor.bind_immutable([2, 3], data) as t:
        ...     t.element_type
        <ElementType.FLOAT: 1>
    """

    def __init__(
        self,
        value: int,
        memory_info: MemoryInfo,
        policy: BufferPolicy,
        shape: tuple[int, ...],
        element_type: ElementType,
        api: NativeApi,
        view_dtype: np.dtype | None = None,
    ) -> None:
        # Use the bind_* constructors; this takes ownership of already-created parts
        self._value: int | None = value
        self._memory_info: MemoryInfo | None = memory_info
        self._policy = policy
        self._shape = shape
        self._element_type = element_type
        self._api = api
        self._view_dtype = view_dtype

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def bind_immutable(
        cls,
        shape: Iterable[int],
        buffer: Any,
        element_type: ElementType | int | None = None,
        *,
        take_ownership: bool = False,
        api: NativeApi | None = None,
    ) -> OwnedTensor:
        """
        Bind a buffer the engine will only read.

        Args:
            shape: Tensor dimensions. ``[]`` is a scalar (one element).
            buffer: Any C-contiguous object supporting the buffer protocol.
                Its element type comes from the buffer's format.
            element_type: Optional expected element type; must match the
                buffer's.
            take_ownership: Hold the buffer as owned (``OwnedBuffer``) so
                :meth:`take_buffer` can hand it back. Otherwise it is
                borrowed (``SharedBuffer``). Either way the handle is
                read-only: ``view_mut()`` raises and runs refuse it as an
                output.
            api: Native API. Defaults to the process-wide table.

        Returns:
            The bound handle.

        Raises:
            ValidationError: Bad shape, not a buffer, not contiguous, or
                element type mismatch.
            UnsupportedTypeError: Buffer format has no tensor element type.
            ShapeMismatchError: Shape element count differs from the
                buffer's element count.
            NullBufferError: Buffer has a null address.
            NativeCreateFailedError: The engine refused the tensor.
        """
        dims, count = _validate_shape(shape)
        policy: BufferPolicy
        if take_ownership:
            policy = OwnedBuffer(buffer, read_only=True)
        else:
            policy = SharedBuffer(buffer)
        return cls._bind_typed(dims, count, policy, element_type, api)

    @classmethod
    def bind_mutable(
        cls,
        shape: Iterable[int],
        buffer: Any,
        element_type: ElementType | int | None = None,
        *,
        take_ownership: bool = False,
        api: NativeApi | None = None,
    ) -> OwnedTensor:
        """
        Bind a writable buffer, typically a run output.

        Same contract as :meth:`bind_immutable`. Additionally raises
        ``ValidationError(code="READ_ONLY_BUFFER")`` for read-only memory.
        The policy is ``ExclusiveBuffer``, or ``OwnedBuffer`` with
        ``take_ownership=True``.
        """
        dims, count = _validate_shape(shape)
        if take_ownership:
            policy: BufferPolicy = OwnedBuffer(buffer, require_writable=True)
        else:
            policy = ExclusiveBuffer(buffer)
        return cls._bind_typed(dims, count, policy, element_type, api)

    @classmethod
    def bind_raw(
        cls,
        shape: Iterable[int],
        byte_buffer: Any,
        element_type: ElementType | int,
        *,
        writable: bool = False,
        api: NativeApi | None = None,
    ) -> OwnedTensor:
        """
        Bind untyped bytes as a tensor of ``element_type``.

        The escape hatch for foreign memory and for element types NumPy
        cannot describe (BFLOAT16). The byte length must be exactly
        ``prod(shape) * width_of(element_type)``.

        Args:
            shape: Tensor dimensions.
            byte_buffer: Any C-contiguous buffer; its format is ignored.
            element_type: ElementType or raw integer tag.
            writable: Require writable memory and allow ``view_mut()``.
            api: Native API. Defaults to the process-wide table.

        Raises:
            UnknownTypeTagError: ``element_type`` is not a known tag.
            UnsupportedTypeError: STRING or UNDEFINED, whatever
                ``byte_buffer`` is.
            ShapeMismatchError: Byte length disagrees with the shape.
        """
        dims, count = _validate_shape(shape)
        # The element type is checked before the buffer is even exported
        try:
            et = from_tag(element_type)
            width = width_of(et)
        except OrtPinError as e:
            if getattr(e, "buffer", None) is None:
                e.buffer = byte_buffer  # type: ignore[attr-defined]
            raise

        policy: BufferPolicy
        if writable:
            policy = ExclusiveBuffer(byte_buffer, raw=True)
        else:
            policy = SharedBuffer(byte_buffer, raw=True)

        try:
            if count * width != policy.nbytes:
                raise ShapeMismatchError(
                    f"shape {list(dims)} of {et.name} needs {count * width} bytes, "
                    f"buffer has {policy.nbytes}",
                    details={
                        "shape": list(dims),
                        "element_type": et.name,
                        "expected_bytes": count * width,
                        "buffer_bytes": policy.nbytes,
                    },
                )
            try:
                view_dtype: np.dtype | None = to_dtype(et)
            except OrtPinError:
                view_dtype = None
        except OrtPinError as e:
            cls._drop(policy, e)
            raise
        return cls._create(dims, et, policy, api, view_dtype)

    @classmethod
    def _bind_typed(
        cls,
        dims: tuple[int, ...],
        count: int,
        policy: BufferPolicy,
        element_type: ElementType | int | None,
        api: NativeApi | None,
    ) -> OwnedTensor:
        try:
            et = from_dtype(policy.dtype)
            if element_type is not None:
                expected = from_tag(element_type)
                if expected != et:
                    raise ValidationError(
                        f"buffer holds {et.name}, expected {expected.name}",
                        code="DTYPE_MISMATCH",
                        details={"buffer": et.name, "expected": expected.name},
                    )
            if count != policy.length:
                raise ShapeMismatchError(
                    f"shape {list(dims)} has {count} elements, buffer has {policy.length}",
                    details={
                        "shape": list(dims),
                        "element_count": count,
                        "buffer_len": policy.length,
                    },
                )
        except OrtPinError as e:
            cls._drop(policy, e)
            raise
        return cls._create(dims, et, policy, api, None)

    @classmethod
    def _create(
        cls,
        dims: tuple[int, ...],
        et: ElementType,
        policy: BufferPolicy,
        api: NativeApi | None,
        view_dtype: np.dtype | None,
    ) -> OwnedTensor:
        try:
            address = policy.address
            if not address:
                raise NullBufferError(details={"shape": list(dims)})

            api = resolve_api(api)
            memory_info = MemoryInfo.cpu(AllocatorType.ARENA, MemType.DEFAULT, api=api)
            try:
                value = api.create_tensor_with_data(
                    memory_info.ptr, address, policy.nbytes, dims, int(et)
                )
            except NativeError:
                memory_info.close()
                raise

            try:
                is_tensor = api.is_tensor(value)
            except NativeError:
                api.release_value(value)
                memory_info.close()
                raise
            if not is_tensor:
                api.release_value(value)
                memory_info.close()
                raise NativeCreateFailedError(
                    "Created value is not a tensor",
                    code="NOT_A_TENSOR",
                    details={"shape": list(dims), "element_type": et.name},
                )
        except OrtPinError as e:
            cls._drop(policy, e)
            raise

        log.debug(
            "Bound tensor",
            extra={"shape": list(dims), "element_type": et.name, "policy": policy.kind},
        )
        return cls(value, memory_info, policy, dims, et, api, view_dtype)

    @staticmethod
    def _drop(policy: BufferPolicy, error: Exception) -> None:
        """Unpin after a failed bind and attach the caller's buffer to the error."""
        buffer = policy.unpin()
        if getattr(error, "buffer", None) is None:
            error.buffer = buffer  # type: ignore[attr-defined]

    # =========================================================================
    # Properties
    # =========================================================================

    def _check_open(self) -> None:
        if self._value is None:
            raise StateError("OwnedTensor is released.", code="STATE_ERROR")

    @property
    def shape(self) -> tuple[int, ...]:
        """Tensor dimensions."""
        return self._shape

    @property
    def element_count(self) -> int:
        """Product of ``shape`` (1 for a scalar)."""
        return math.prod(self._shape)

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def nbytes(self) -> int:
        """Byte length of the bound data."""
        return self.element_count * width_of(self._element_type)

    @property
    def policy(self) -> BufferPolicy:
        """The buffer ownership policy (owned, exclusive or shared)."""
        return self._policy

    @property
    def writable(self) -> bool:
        """Whether the engine and ``view_mut()`` may write the buffer."""
        return self._value is not None and self._policy.writable

    @property
    def released(self) -> bool:
        return self._value is None

    @property
    def ptr(self) -> int:
        """
        Raw ``OrtValue*`` address.

        Raises:
            StateError: After release or ``take_buffer()``.
        """
        self._check_open()
        return self._value  # type: ignore[return-value]

    # =========================================================================
    # Data access
    # =========================================================================

    def view(self) -> np.ndarray:
        """
        Read-only flat NumPy view over the bound memory.

        Typed bindings use the buffer's dtype; raw bindings use the element
        dtype, or ``uint8`` when NumPy has none. The view must not be kept
        past the handle's lifetime.
        """
        self._check_open()
        return self._policy.read_view(self._view_dtype)

    def view_mut(self) -> np.ndarray:
        """
        Writable flat NumPy view over the bound memory.

        Raises:
            StateError: For a shared (read-only) binding, or after release.
        """
        self._check_open()
        return self._policy.write_view(self._view_dtype)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def release(self) -> None:
        """
        Release the native value, then the memory info, then the pin.

        Idempotent. The caller's buffer is left untouched.
        """
        value = getattr(self, "_value", None)
        if value:
            self._api.release_value(value)
            self._value = None
            log.debug("Released tensor", extra={"shape": list(self._shape)})
        memory_info = getattr(self, "_memory_info", None)
        if memory_info is not None:
            memory_info.close()
            self._memory_info = None
        policy = getattr(self, "_policy", None)
        if policy is not None:
            policy.unpin()

    def take_buffer(self) -> Any:
        """
        Release the native parts and return the original buffer object.

        After this the handle is closed: ``ptr``, ``view``, ``view_mut`` and
        ``take_buffer`` raise StateError.
        """
        self._check_open()
        self.release()
        return self._policy.source

    def close(self) -> None:
        """Alias of :meth:`release`."""
        self.release()

    def __enter__(self) -> OwnedTensor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()

    def __del__(self):
        """Release native parts when garbage collected.

        Robust to interpreter shutdown - silently ignores errors when
        module globals may be unavailable.
        """
        try:
            self.release()
        except Exception:
            # Ignore errors during interpreter shutdown when globals may be cleared
            pass

    def __repr__(self) -> str:
        if self._value is None:
            return f"OwnedTensor(released, shape={self._shape})"
        return (
            f"OwnedTensor(shape={self._shape}, element_type={self._element_type.name}, "
            f"policy={self._policy.kind})"
        )
