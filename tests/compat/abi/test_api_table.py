"""
Tests for the OrtApi struct layout.

OrtApi is read by offset, so a missing or misplaced entry shifts every
later function pointer and calls the wrong native function. These tests pin
the indices of every entry ortpin calls.
"""

import ctypes

import pytest

from ortpin import _native

POINTER_SIZE = ctypes.sizeof(ctypes.c_void_p)


class TestFieldIndices:
    """Entries ortpin calls sit at their header indices."""

    @pytest.mark.parametrize(
        ("name", "index"),
        [
            ("GetErrorCode", 1),
            ("GetErrorMessage", 2),
            ("CreateEnv", 3),
            ("CreateSession", 7),
            ("CreateSessionFromArray", 8),
            ("Run", 9),
            ("CreateSessionOptions", 10),
            ("SessionGetInputCount", 30),
            ("SessionGetOutputCount", 31),
            ("SessionGetInputName", 36),
            ("SessionGetOutputName", 37),
            ("CreateRunOptions", 39),
            ("RunOptionsSetRunTag", 42),
            ("RunOptionsSetTerminate", 46),
            ("RunOptionsUnsetTerminate", 47),
            ("CreateTensorWithDataAsOrtValue", 49),
            ("IsTensor", 50),
            ("CreateCpuMemoryInfo", 69),
            ("AllocatorFree", 76),
            ("GetAllocatorWithDefaultOptions", 78),
            ("ReleaseEnv", 92),
            ("ReleaseStatus", 93),
            ("ReleaseMemoryInfo", 94),
            ("ReleaseSession", 95),
            ("ReleaseValue", 96),
            ("ReleaseRunOptions", 97),
            ("ReleaseSessionOptions", 100),
            ("SessionGetModelMetadata", 111),
            ("ModelMetadataGetVersion", 117),
            ("ReleaseModelMetadata", 118),
        ],
    )
    def test_index(self, name, index):
        """The field is at its index and its struct offset matches."""
        names = [field[0] for field in _native.ORT_API_FIELDS]

        assert names[index] == name
        assert getattr(_native.OrtApi, name).offset == index * POINTER_SIZE

    def test_field_count(self):
        """The mirror ends at ReleaseModelMetadata."""
        assert len(_native.ORT_API_FIELDS) == 119
        assert ctypes.sizeof(_native.OrtApi) == 119 * POINTER_SIZE

    def test_names_unique(self):
        """No entry is declared twice."""
        names = [field[0] for field in _native.ORT_API_FIELDS]

        assert len(names) == len(set(names))

    def test_every_field_pointer_sized(self):
        """Every entry is a single pointer."""
        for name, ftype in _native.ORT_API_FIELDS:
            assert ctypes.sizeof(ftype) == POINTER_SIZE, name


class TestPrototypes:
    """Prototypes of the entries on the hot path."""

    def test_run_argtypes(self):
        """Run takes session, options, names, values and counts."""
        argtypes = _native.RunFn._argtypes_

        assert len(argtypes) == 8
        assert argtypes[4] is ctypes.c_size_t
        assert argtypes[6] is ctypes.c_size_t
        assert _native.RunFn._restype_ is ctypes.c_void_p

    def test_create_tensor_argtypes(self):
        """CreateTensorWithDataAsOrtValue takes int64 dims and an int element type."""
        argtypes = _native.CreateTensorWithDataFn._argtypes_

        assert len(argtypes) == 7
        assert argtypes[3] is ctypes.POINTER(ctypes.c_int64)
        assert argtypes[5] is ctypes.c_int

    def test_release_returns_void(self):
        """Release functions return nothing."""
        assert _native.ReleaseFn._restype_ is None

    def test_status_entries_return_pointer(self):
        """Status-returning entries are declared with a pointer result."""
        for fn in (
            _native.CreateEnvFn,
            _native.CreateSessionFn,
            _native.IsTensorFn,
            _native.CreateCpuMemoryInfoFn,
        ):
            assert fn._restype_ is ctypes.c_void_p


class TestEnums:
    """Enum values match the C header."""

    def test_allocator_type(self):
        """OrtAllocatorType values."""
        assert _native.AllocatorType.DEVICE == 0
        assert _native.AllocatorType.ARENA == 1

    def test_mem_type(self):
        """OrtMemType values."""
        assert _native.MemType.DEFAULT == 0
        assert _native.MemType.CPU_OUTPUT == -1

    def test_logging_level(self):
        """OrtLoggingLevel values."""
        assert _native.LoggingLevel.WARNING == 2
        assert _native.LoggingLevel.FATAL == 4
