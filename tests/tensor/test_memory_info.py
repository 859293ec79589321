"""
Tests for MemoryInfo.
"""

import pytest

from ortpin.exceptions import NativeError, StateError
from ortpin.tensor import AllocatorType, MemoryInfo, MemType


class TestCpu:
    """Tests for MemoryInfo.cpu()."""

    def test_defaults(self, fake_api):
        """The default descriptor is an arena allocator with default memory."""
        info = MemoryInfo.cpu(api=fake_api)

        assert info.allocator is AllocatorType.ARENA
        assert info.mem_type is MemType.DEFAULT
        assert fake_api.live_count("memory_info") == 1

    def test_int_arguments_coerced(self, fake_api):
        """Plain ints are converted to the enums."""
        info = MemoryInfo.cpu(0, -1, api=fake_api)

        assert info.allocator is AllocatorType.DEVICE
        assert info.mem_type is MemType.CPU_OUTPUT

    def test_invalid_allocator(self, fake_api):
        """Values outside OrtAllocatorType raise ValueError before any native call."""
        with pytest.raises(ValueError):
            MemoryInfo.cpu(7, api=fake_api)

        assert "create_cpu_memory_info" not in fake_api.calls

    def test_native_failure(self, fake_api):
        """An engine failure surfaces as NativeError."""
        fake_api.failures["CreateCpuMemoryInfo"] = (1, "no memory info")

        with pytest.raises(NativeError, match="no memory info"):
            MemoryInfo.cpu(api=fake_api)


class TestLifecycle:
    """close, context manager and ptr."""

    def test_close_idempotent(self, fake_api):
        """close() releases the descriptor once."""
        info = MemoryInfo.cpu(api=fake_api)

        info.close()
        info.close()

        assert info.closed
        assert fake_api.released_kinds() == ["memory_info"]

    def test_ptr_after_close(self, fake_api):
        """ptr raises StateError after close."""
        info = MemoryInfo.cpu(api=fake_api)
        info.close()

        with pytest.raises(StateError, match="MemoryInfo is closed"):
            _ = info.ptr

    def test_context_manager(self, fake_api):
        """Leaving the with-block closes the descriptor."""
        with MemoryInfo.cpu(api=fake_api) as info:
            assert not info.closed

        assert fake_api.live_count("memory_info") == 0

    def test_repr(self, fake_api):
        """repr shows allocator, memory type and state."""
        info = MemoryInfo.cpu(api=fake_api)

        assert repr(info) == "MemoryInfo(cpu, ARENA, DEFAULT, open)"
        info.close()
        assert repr(info) == "MemoryInfo(cpu, ARENA, DEFAULT, closed)"
