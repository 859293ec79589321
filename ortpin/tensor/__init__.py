"""
Tensors bound to caller memory.

Classes
-------
OwnedTensor
    A native tensor value whose data is a pinned Python buffer.
HandleBatch
    Ordered OwnedTensors plus the pointer array a run consumes.
MemoryInfo
    CPU memory descriptor owned by each tensor.
OwnedBuffer, ExclusiveBuffer, SharedBuffer
    The three buffer ownership policies.

Functions
---------
width_of, from_tag, tag_of, from_dtype, to_dtype
    Element type registry.
"""

from ._buffers import BufferPolicy, ExclusiveBuffer, OwnedBuffer, SharedBuffer
from .batch import HandleBatch
from .element_type import ElementType, from_dtype, from_tag, tag_of, to_dtype, width_of
from .memory_info import AllocatorType, MemoryInfo, MemType
from .owned import OwnedTensor

__all__ = [
    "OwnedTensor",
    "HandleBatch",
    "MemoryInfo",
    "AllocatorType",
    "MemType",
    "BufferPolicy",
    "OwnedBuffer",
    "ExclusiveBuffer",
    "SharedBuffer",
    "ElementType",
    "width_of",
    "from_tag",
    "tag_of",
    "from_dtype",
    "to_dtype",
]
