"""CPU memory descriptors (``OrtMemoryInfo``)."""

from __future__ import annotations

from typing import Any

from .._bindings import NativeApi, resolve_api
from .._native import AllocatorType, MemType
from ..exceptions import StateError

__all__ = ["MemoryInfo", "AllocatorType", "MemType"]


class MemoryInfo:
    """
    Owner of one ``OrtMemoryInfo``.

    Describes where a tensor's data lives. Every OwnedTensor creates one for
    CPU memory and releases it after its native value.

    Example:
        >>> with MemoryInfo.cpu() as info:
        ...     info.allocator
        <AllocatorType.ARENA: 1>
    """

    def __init__(
        self,
        ptr: int,
        allocator: AllocatorType,
        mem_type: MemType,
        api: NativeApi,
    ) -> None:
        self._ptr: int | None = ptr
        self._api = api
        self.allocator = allocator
        self.mem_type = mem_type

    @classmethod
    def cpu(
        cls,
        allocator: AllocatorType = AllocatorType.ARENA,
        mem_type: MemType = MemType.DEFAULT,
        *,
        api: NativeApi | None = None,
    ) -> MemoryInfo:
        """
        Create a CPU memory descriptor.

        Args:
            allocator: Allocator kind recorded in the descriptor.
            mem_type: Memory type recorded in the descriptor.
            api: Native API to use. Defaults to the process-wide table.

        Raises:
            NativeError: If the engine cannot create the descriptor.
        """
        api = resolve_api(api)
        allocator = AllocatorType(allocator)
        mem_type = MemType(mem_type)
        ptr = api.create_cpu_memory_info(int(allocator), int(mem_type))
        return cls(ptr, allocator, mem_type, api)

    @property
    def ptr(self) -> int:
        """Raw ``OrtMemoryInfo*`` address."""
        if self._ptr is None:
            raise StateError("MemoryInfo is closed.", code="STATE_ERROR")
        return self._ptr

    @property
    def closed(self) -> bool:
        return self._ptr is None

    def close(self) -> None:
        """Release the descriptor. Safe to call multiple times."""
        if getattr(self, "_ptr", None):
            self._api.release_memory_info(self._ptr)
            self._ptr = None

    def __enter__(self) -> MemoryInfo:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __del__(self):
        try:
            self.close()
        except Exception:
            # Ignore errors during interpreter shutdown when globals may be cleared
            pass

    def __repr__(self) -> str:
        state = "closed" if self._ptr is None else "open"
        return f"MemoryInfo(cpu, {self.allocator.name}, {self.mem_type.name}, {state})"
