"""
Ortpin exceptions.

This module defines the exception hierarchy for ortpin:

    OrtPinError (base)
    ├── ValidationError - Invalid argument, detected before any native call
    │   ├── ShapeMismatchError - Shape element count disagrees with buffer length
    │   ├── NullBufferError - Buffer has no data address
    │   ├── InvalidNameError - Tensor name cannot be encoded as a C string
    │   └── OutputCountMismatchError - Output handles disagree with output names
    ├── UnsupportedTypeError - Element type has no fixed width / dtype
    ├── UnknownTypeTagError - Integer tag outside the element type enumeration
    ├── IndexOutOfRangeError - Batch index outside [0, len)
    ├── StateError - Handle used after release
    ├── LibraryNotFoundError - onnxruntime shared library could not be loaded
    └── NativeError - The engine reported a failure
        ├── NativeCreateFailedError - Tensor creation failed
        └── InferenceFailedError - Run failed

Usage:
    try:
        tensor = OwnedTensor.bind_immutable([2, 3], data)
    except ortpin.ShapeMismatchError as e:
        print(f"Bad shape: {e.details}")
        data = e.buffer  # the caller's buffer, untouched
    except ortpin.OrtPinError as e:
        print(f"Error {e.code}: {e}")
"""

from typing import Any

__all__ = [
    # Base
    "OrtPinError",
    # Validation
    "ValidationError",
    "ShapeMismatchError",
    "NullBufferError",
    "InvalidNameError",
    "OutputCountMismatchError",
    # Types
    "UnsupportedTypeError",
    "UnknownTypeTagError",
    # Containers
    "IndexOutOfRangeError",
    # State
    "StateError",
    # Native
    "LibraryNotFoundError",
    "NativeError",
    "NativeCreateFailedError",
    "InferenceFailedError",
    "NATIVE_ERROR_NAMES",
]

# OrtErrorCode values from onnxruntime_c_api.h
NATIVE_ERROR_NAMES = {
    0: "ORT_OK",
    1: "ORT_FAIL",
    2: "ORT_INVALID_ARGUMENT",
    3: "ORT_NO_SUCHFILE",
    4: "ORT_NO_MODEL",
    5: "ORT_ENGINE_ERROR",
    6: "ORT_RUNTIME_EXCEPTION",
    7: "ORT_INVALID_PROTOBUF",
    8: "ORT_MODEL_LOADED",
    9: "ORT_NOT_IMPLEMENTED",
    10: "ORT_INVALID_GRAPH",
    11: "ORT_EP_FAIL",
}


class OrtPinError(Exception):
    """
    Base exception for all ortpin errors.

    Attributes
    ----------
    message : str
        Human-readable error description.
    code : str
        Stable, string-based error code (e.g., "SHAPE_MISMATCH").
        Use this for programmatic error handling.
    details : dict[str, Any]
        Structured context (e.g., {"shape": [2, 3], "buffer_len": 5}).
    original_code : int | None
        The native ``OrtErrorCode`` when the error came from the engine.
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_code = original_code

    @property
    def message(self) -> str:
        return self.args[0]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, code={self.code!r})"


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(OrtPinError, ValueError):
    """
    Invalid parameter value.

    Raised before any native object is created. Inherits from ValueError,
    so both work::

        except ortpin.OrtPinError:   # catches all ortpin errors
        except ValueError:           # catches validation errors (Pythonic)
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_ARGUMENT",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
        buffer: Any = None,
    ):
        super().__init__(message, code, details, original_code)
        self.buffer = buffer


class ShapeMismatchError(ValidationError):
    """
    Declared shape disagrees with the buffer length.

    For typed bindings the shape's element count must equal the buffer's
    element count. For raw bindings the element count times the element
    width must equal the byte length. No native tensor is created.

    The caller's buffer is available as ``error.buffer``.
    """

    def __init__(
        self,
        message: str,
        code: str = "SHAPE_MISMATCH",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
        buffer: Any = None,
    ):
        super().__init__(message, code, details, original_code, buffer)


class NullBufferError(ValidationError):
    """Buffer exposes a null data address."""

    def __init__(
        self,
        message: str = "Buffer has a null data address",
        code: str = "NULL_BUFFER",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
        buffer: Any = None,
    ):
        super().__init__(message, code, details, original_code, buffer)


class InvalidNameError(ValidationError):
    """
    Tensor name cannot be passed to the engine.

    Names cross the boundary as NUL-terminated C strings, so a name that
    contains a NUL byte cannot be represented.
    """

    def __init__(
        self,
        message: str,
        code: str = "INVALID_NAME",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class OutputCountMismatchError(ValidationError):
    """
    Output handle count disagrees with the output names in use.

    Raised when outputs are matched against the session's declared outputs
    (or against explicit output names) and the counts differ. Detected
    before the native run is attempted.
    """

    def __init__(
        self,
        message: str,
        code: str = "OUTPUT_COUNT_MISMATCH",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Type Errors
# =============================================================================


class UnsupportedTypeError(OrtPinError, TypeError):
    """
    Element type cannot be used where a fixed width or dtype is required.

    STRING tensors have no fixed element width and cannot be laid out in a
    flat buffer; UNDEFINED has no width at all.
    """

    def __init__(
        self,
        message: str,
        code: str = "UNSUPPORTED_TYPE",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
        buffer: Any = None,
    ):
        super().__init__(message, code, details, original_code)
        self.buffer = buffer


class UnknownTypeTagError(OrtPinError, ValueError):
    """Integer does not correspond to any element type."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_TYPE_TAG",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Container Errors
# =============================================================================


class IndexOutOfRangeError(OrtPinError, IndexError):
    """Handle batch index outside ``[0, len)``. Negative indices are rejected."""

    def __init__(
        self,
        message: str,
        code: str = "INDEX_OUT_OF_RANGE",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# State Errors
# =============================================================================


class StateError(OrtPinError, RuntimeError):
    """
    Invalid object state error.

    Raised when an operation is attempted on an object in an invalid state:
    - Using a released tensor, session, or run options object
    - Asking for a mutable view of a shared (read-only) buffer
    - Using a tensor after ``take_buffer()`` handed its buffer back
    """

    def __init__(
        self,
        message: str,
        code: str = "STATE_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


# =============================================================================
# Native Errors
# =============================================================================


class LibraryNotFoundError(OrtPinError, OSError):
    """
    The onnxruntime shared library could not be located or loaded.

    Set ``ORTPIN_ORT_LIBRARY`` to the library path, or install the
    ``onnxruntime`` wheel.
    """

    def __init__(
        self,
        message: str,
        code: str = "LIBRARY_NOT_FOUND",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)


class NativeError(OrtPinError, RuntimeError):
    """
    The native engine returned a non-OK status.

    The engine's message is passed through verbatim; its ``OrtErrorCode``
    is in ``original_code`` and its symbolic name in
    ``details["native_code"]``.
    """

    def __init__(
        self,
        message: str,
        code: str = "NATIVE_ERROR",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        details = dict(details or {})
        if original_code is not None:
            details.setdefault("native_code", NATIVE_ERROR_NAMES.get(original_code, "UNKNOWN"))
        super().__init__(message, code, details, original_code)


class NativeCreateFailedError(NativeError):
    """
    The engine failed to wrap a buffer as a tensor.

    Also raised when the created value does not report itself as a tensor.
    Any native value created before the failure has already been released.
    The caller's buffer is available as ``error.buffer``.
    """

    def __init__(
        self,
        message: str,
        code: str = "NATIVE_CREATE_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
        buffer: Any = None,
    ):
        super().__init__(message, code, details, original_code)
        self.buffer = buffer


class InferenceFailedError(NativeError):
    """
    The engine's Run call failed.

    No rollback is attempted: output buffers may hold partial results.
    The run is not retried.
    """

    def __init__(
        self,
        message: str,
        code: str = "INFERENCE_FAILED",
        details: dict[str, Any] | None = None,
        original_code: int | None = None,
    ):
        super().__init__(message, code, details, original_code)
