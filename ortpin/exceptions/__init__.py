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
"""

from .exceptions import (
    NATIVE_ERROR_NAMES,
    IndexOutOfRangeError,
    InferenceFailedError,
    InvalidNameError,
    LibraryNotFoundError,
    NativeCreateFailedError,
    NativeError,
    NullBufferError,
    OrtPinError,
    OutputCountMismatchError,
    ShapeMismatchError,
    StateError,
    UnknownTypeTagError,
    UnsupportedTypeError,
    ValidationError,
)

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
