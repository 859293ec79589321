"""
ortpin - Zero-copy onnxruntime tensors over Python buffers.

ortpin binds Python buffers (NumPy arrays, ``bytearray``, ``array.array``)
directly to onnxruntime tensors through the C API. The engine reads inputs
from, and writes outputs into, your memory. Nothing is copied on the way
in or out.

Quick Start
-----------

    >>> import numpy as np
    >>> from ortpin import Session, OwnedTensor
    >>>
    >>> session = Session("model.onnx")
    >>> x = OwnedTensor.bind_immutable([1, 4], np.arange(4, dtype=np.float32))
    >>> y = OwnedTensor.bind_mutable([1, 2], np.zeros(2, dtype=np.float32))
    >>> session.run_io(session.input_names, [x], [y])
    >>> y.view()
    array([...], dtype=float32)

Hand a buffer back when done:

    >>> out = np.zeros(2, dtype=np.float32)
    >>> y = OwnedTensor.bind_mutable([1, 2], out, take_ownership=True)
    >>> session.run_io(["x"], [x], [y])
    >>> out = y.take_buffer()

Repeated runs over the same buffers:

    >>> names_in, names_out = NameTable(["x"]), NameTable(["y"])
    >>> inputs, outputs = HandleBatch([x]), HandleBatch([y])
    >>> for batch in data:
    ...     x.view_mut()[:] = batch   # x bound with bind_mutable
    ...     session.run_with_batches(names_in, inputs, names_out, outputs)


Core Classes
------------

- `OwnedTensor` - A native tensor over a pinned Python buffer
- `HandleBatch` - Tensors plus the pointer array a run consumes
- `NameTable` - Tensor names as C strings
- `Session` - A loaded model
- `RunOptions` - Tag and cooperative cancellation for runs


Library Discovery
-----------------

The onnxruntime shared library is found, in order, from:

- ``ORTPIN_ORT_LIBRARY`` (path to the library)
- the ``onnxruntime`` wheel, if installed
- the system library search path
"""

from ortpin._logging import setup_logging
from ortpin._version import __version__ as __version__

# Exceptions (commonly-used exceptions at root; all via ortpin.exceptions)
from ortpin.exceptions import (
    InferenceFailedError as InferenceFailedError,
)
from ortpin.exceptions import (
    NativeCreateFailedError as NativeCreateFailedError,
)
from ortpin.exceptions import (
    OrtPinError,
)
from ortpin.exceptions import (
    ShapeMismatchError as ShapeMismatchError,
)
from ortpin.exceptions import (
    StateError as StateError,
)
from ortpin.exceptions import (
    ValidationError as ValidationError,
)

# Run
from ortpin.run import NameTable, invoke

# Session
from ortpin.session import ModelMetadata, RunOptions, Session

# Tensor
from ortpin.tensor import (
    ElementType,
    HandleBatch,
    MemoryInfo,
    OwnedTensor,
    from_tag,
    width_of,
)

# =============================================================================
# Public API
# =============================================================================
#
# Other symbols remain importable via submodules
# (e.g., from ortpin.tensor import SharedBuffer).
#
__all__ = [
    # Tensor
    "OwnedTensor",
    "HandleBatch",
    "ElementType",
    "MemoryInfo",
    "width_of",
    "from_tag",
    # Run
    "NameTable",
    "invoke",
    # Session
    "Session",
    "RunOptions",
    "ModelMetadata",
    # Logging
    "setup_logging",
    # Exceptions
    "OrtPinError",
]
