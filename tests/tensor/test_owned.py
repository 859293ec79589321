"""
Tests for OwnedTensor binding, views and lifecycle.

All tests run against the in-process FakeApi backend.
"""

import array
import gc
from unittest.mock import PropertyMock, patch

import numpy as np
import pytest

from ortpin.exceptions import (
    NativeCreateFailedError,
    NativeError,
    NullBufferError,
    ShapeMismatchError,
    StateError,
    UnknownTypeTagError,
    UnsupportedTypeError,
    ValidationError,
)
from ortpin.tensor import (
    BufferPolicy,
    ElementType,
    ExclusiveBuffer,
    OwnedBuffer,
    OwnedTensor,
    SharedBuffer,
)


class TestBindImmutable:
    """Tests for OwnedTensor.bind_immutable."""

    def test_view_returns_original_elements(self, fake_api, float_data):
        """A [2, 3] float32 tensor views back 1..6 in order."""
        t = OwnedTensor.bind_immutable([2, 3], float_data, api=fake_api)

        assert t.shape == (2, 3)
        assert t.element_count == 6
        assert t.element_type is ElementType.FLOAT
        assert t.view().tolist() == [1, 2, 3, 4, 5, 6]

    def test_native_tensor_wraps_caller_memory(self, fake_api, float_data):
        """The engine receives the buffer's own address, shape and tag."""
        t = OwnedTensor.bind_immutable([2, 3], float_data, api=fake_api)

        native = fake_api.tensors[t.ptr]
        assert native.address == float_data.ctypes.data
        assert native.nbytes == 24
        assert native.shape == (2, 3)
        assert native.element_type == 1

    def test_view_is_zero_copy_and_read_only(self, fake_api, float_data):
        """view() shares memory with the buffer and cannot be written."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)
        view = t.view()

        assert np.shares_memory(view, float_data)
        assert not view.flags.writeable

    def test_shared_policy_by_default(self, fake_api, float_data):
        """Borrowed buffers use SharedBuffer."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        assert isinstance(t.policy, SharedBuffer)
        assert not t.writable

    def test_view_mut_rejected_for_shared(self, fake_api, float_data):
        """view_mut() on a shared binding raises StateError."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        with pytest.raises(StateError):
            t.view_mut()

    def test_take_ownership_uses_owned_policy(self, fake_api, float_data):
        """take_ownership=True holds the buffer as OwnedBuffer."""
        t = OwnedTensor.bind_immutable([6], float_data, take_ownership=True, api=fake_api)

        assert isinstance(t.policy, OwnedBuffer)
        assert t.policy.kind == "owned"

    def test_take_ownership_stays_read_only(self, fake_api, float_data):
        """An owned immutable binding of writable memory is still read-only."""
        t = OwnedTensor.bind_immutable([6], float_data, take_ownership=True, api=fake_api)

        assert float_data.flags.writeable
        assert not t.writable
        assert t.policy.read_only
        with pytest.raises(StateError) as exc_info:
            t.view_mut()

        assert exc_info.value.code == "STATE_READ_ONLY"
        assert float_data.tolist() == [1, 2, 3, 4, 5, 6]

    def test_take_ownership_view_not_writeable(self, fake_api, float_data):
        """The read view of an owned immutable binding rejects writes."""
        t = OwnedTensor.bind_immutable([6], float_data, take_ownership=True, api=fake_api)

        with pytest.raises(ValueError):
            t.view()[0] = 99

        assert float_data[0] == 1

    def test_bytes_bind_as_uint8(self, fake_api):
        """bytes buffers bind as UINT8."""
        t = OwnedTensor.bind_immutable([4], b"\x01\x02\x03\x04", api=fake_api)

        assert t.element_type is ElementType.UINT8
        assert t.view().tolist() == [1, 2, 3, 4]

    def test_array_module_buffer(self, fake_api):
        """array.array buffers bind with their own element type."""
        data = array.array("d", [0.5, 1.5])
        t = OwnedTensor.bind_immutable([2], data, api=fake_api)

        assert t.element_type is ElementType.DOUBLE
        assert t.nbytes == 16

    def test_multidimensional_array_is_flattened(self, fake_api):
        """A C-contiguous 2-D array binds with a flat view."""
        data = np.arange(6, dtype=np.int64).reshape(2, 3)
        t = OwnedTensor.bind_immutable([3, 2], data, api=fake_api)

        assert t.view().shape == (6,)
        assert t.element_type is ElementType.INT64

    def test_explicit_matching_element_type(self, fake_api, float_data):
        """An explicit element type that matches is accepted."""
        t = OwnedTensor.bind_immutable([6], float_data, ElementType.FLOAT, api=fake_api)

        assert t.element_type is ElementType.FLOAT

    def test_scalar_shape(self, fake_api):
        """An empty shape is a scalar with one element."""
        t = OwnedTensor.bind_immutable([], np.array([7], dtype=np.int32), api=fake_api)

        assert t.element_count == 1
        assert t.view().tolist() == [7]

    def test_zero_dimension(self, fake_api):
        """A zero dimension is valid with an empty buffer."""
        t = OwnedTensor.bind_immutable([0, 3], np.empty(0, dtype=np.float32), api=fake_api)

        assert t.element_count == 0
        assert t.view().size == 0


class TestBindValidation:
    """Validation failures create no native objects."""

    def test_shape_mismatch_short_buffer(self, fake_api):
        """Five elements for a [2, 3] shape raise ShapeMismatchError."""
        data = np.arange(5, dtype=np.float32)

        with pytest.raises(ShapeMismatchError) as exc_info:
            OwnedTensor.bind_immutable([2, 3], data, api=fake_api)

        assert exc_info.value.buffer is data
        assert exc_info.value.details["buffer_len"] == 5
        assert fake_api.calls == []

    def test_shape_mismatch_long_buffer(self, fake_api):
        """Length equality is strict: a longer buffer is rejected too."""
        with pytest.raises(ShapeMismatchError):
            OwnedTensor.bind_mutable([2], np.zeros(3, dtype=np.float32), api=fake_api)

        assert fake_api.live_count() == 0

    @pytest.mark.parametrize("shape", [[-1, 3], [2.0, 3], [True], ["2"], None, 5])
    def test_invalid_shape(self, fake_api, float_data, shape):
        """Negative, non-int and non-sequence shapes raise INVALID_SHAPE."""
        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_immutable(shape, float_data, api=fake_api)

        assert exc_info.value.code == "INVALID_SHAPE"

    def test_shape_overflow(self, fake_api, float_data):
        """A shape whose product exceeds int64 raises SHAPE_OVERFLOW."""
        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_immutable([2**32, 2**32], float_data, api=fake_api)

        assert exc_info.value.code == "SHAPE_OVERFLOW"

    def test_not_a_buffer(self, fake_api):
        """Objects without the buffer protocol raise NOT_A_BUFFER."""
        data = [1.0, 2.0]

        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_immutable([2], data, api=fake_api)

        assert exc_info.value.code == "NOT_A_BUFFER"
        assert exc_info.value.buffer is data

    def test_non_contiguous(self, fake_api):
        """Strided views cannot be bound without copying."""
        data = np.arange(8, dtype=np.float32)[::2]

        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_immutable([4], data, api=fake_api)

        assert exc_info.value.code == "BUFFER_NOT_CONTIGUOUS"

    def test_dtype_mismatch(self, fake_api, float_data):
        """An explicit element type that differs raises DTYPE_MISMATCH."""
        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_immutable([6], float_data, ElementType.INT32, api=fake_api)

        assert exc_info.value.code == "DTYPE_MISMATCH"
        assert exc_info.value.buffer is float_data

    def test_string_buffer_unsupported(self, fake_api):
        """Byte-string arrays have no tensor element type."""
        data = np.array([b"ab", b"cd"])

        with pytest.raises(UnsupportedTypeError) as exc_info:
            OwnedTensor.bind_immutable([2], data, api=fake_api)

        assert exc_info.value.buffer is data

    def test_null_buffer(self, fake_api, float_data):
        """A null data address raises NullBufferError before any native call."""
        with patch.object(BufferPolicy, "address", new_callable=PropertyMock, return_value=0):
            with pytest.raises(NullBufferError) as exc_info:
                OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        assert exc_info.value.buffer is float_data
        assert fake_api.calls == []

    def test_failed_bind_unpins(self, fake_api):
        """After a failed bind the buffer can be resized again."""
        data = bytearray(3)

        with pytest.raises(ShapeMismatchError):
            OwnedTensor.bind_immutable([4], data, api=fake_api)

        data.extend(b"\x00")
        assert len(data) == 4


class TestNativeFailures:
    """Native errors during bind release what was created."""

    def test_create_failure_releases_memory_info(self, fake_api, float_data):
        """A failed CreateTensorWithDataAsOrtValue releases the memory info."""
        fake_api.failures["CreateTensorWithDataAsOrtValue"] = (2, "invalid shape for tensor")

        with pytest.raises(NativeCreateFailedError) as exc_info:
            OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        err = exc_info.value
        assert err.message == "invalid shape for tensor"
        assert err.original_code == 2
        assert err.details["native_code"] == "ORT_INVALID_ARGUMENT"
        assert err.buffer is float_data
        assert fake_api.live_count() == 0
        assert fake_api.released_kinds() == ["memory_info"]

    def test_not_a_tensor_releases_value_then_memory_info(self, fake_api, float_data):
        """A value that is not a tensor is released before its memory info."""
        fake_api.not_a_tensor = True

        with pytest.raises(NativeCreateFailedError) as exc_info:
            OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        assert exc_info.value.code == "NOT_A_TENSOR"
        assert exc_info.value.buffer is float_data
        assert fake_api.live_count() == 0
        assert fake_api.released_kinds() == ["value", "memory_info"]

    def test_is_tensor_failure_releases_value(self, fake_api, float_data):
        """A failing IsTensor call still releases the created value."""
        fake_api.failures["IsTensor"] = (1, "boom")

        with pytest.raises(NativeCreateFailedError):
            OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        assert fake_api.live_count() == 0

    def test_memory_info_failure_carries_buffer(self, fake_api, float_data):
        """A failing CreateCpuMemoryInfo surfaces with the caller's buffer."""
        fake_api.failures["CreateCpuMemoryInfo"] = (1, "no memory info")

        with pytest.raises(NativeError) as exc_info:
            OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        assert exc_info.value.buffer is float_data
        assert fake_api.live_count() == 0


class TestBindMutable:
    """Tests for OwnedTensor.bind_mutable."""

    def test_exclusive_policy(self, fake_api):
        """Lent writable buffers use ExclusiveBuffer."""
        t = OwnedTensor.bind_mutable([4], np.zeros(4, dtype=np.float32), api=fake_api)

        assert isinstance(t.policy, ExclusiveBuffer)
        assert t.writable

    def test_view_mut_writes_through(self, fake_api):
        """Writes through view_mut() land in the caller's array."""
        data = np.zeros(4, dtype=np.float32)
        t = OwnedTensor.bind_mutable([2, 2], data, api=fake_api)

        t.view_mut()[:] = [1, 2, 3, 4]

        assert data.tolist() == [1, 2, 3, 4]

    def test_read_only_bytes_rejected(self, fake_api):
        """bytes are read-only and cannot be bound mutably."""
        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_mutable([4], b"\x00" * 4, api=fake_api)

        assert exc_info.value.code == "READ_ONLY_BUFFER"
        assert fake_api.calls == []

    def test_read_only_array_rejected(self, fake_api):
        """A non-writeable ndarray cannot be bound mutably."""
        data = np.zeros(4, dtype=np.float32)
        data.flags.writeable = False

        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_mutable([4], data, take_ownership=True, api=fake_api)

        assert exc_info.value.code == "READ_ONLY_BUFFER"

    def test_owned_mutable(self, fake_api):
        """take_ownership=True gives a writable OwnedBuffer."""
        t = OwnedTensor.bind_mutable(
            [4], np.zeros(4, dtype=np.float32), take_ownership=True, api=fake_api
        )

        assert isinstance(t.policy, OwnedBuffer)
        assert t.writable
        assert not t.policy.read_only


class TestBindRaw:
    """Tests for OwnedTensor.bind_raw."""

    def test_bytes_as_float(self, fake_api):
        """Eight bytes bind as two FLOAT elements."""
        raw = np.array([1.5, -2.0], dtype=np.float32).tobytes()
        t = OwnedTensor.bind_raw([2], raw, ElementType.FLOAT, api=fake_api)

        assert t.view().dtype == np.float32
        assert t.view().tolist() == [1.5, -2.0]
        assert fake_api.tensors[t.ptr].nbytes == 8

    def test_raw_int_tag(self, fake_api):
        """A raw integer tag is validated and accepted."""
        t = OwnedTensor.bind_raw([1], bytes(8), 11, api=fake_api)

        assert t.element_type is ElementType.DOUBLE

    def test_bfloat16_views_as_bytes(self, fake_api):
        """BFLOAT16 has no NumPy dtype, so its view is uint8."""
        t = OwnedTensor.bind_raw([3], bytearray(6), ElementType.BFLOAT16, api=fake_api)

        assert t.view().dtype == np.uint8
        assert t.view().size == 6
        assert fake_api.tensors[t.ptr].element_type == 16

    def test_byte_length_must_match(self, fake_api):
        """Byte length must equal elements times width exactly."""
        data = bytes(7)

        with pytest.raises(ShapeMismatchError) as exc_info:
            OwnedTensor.bind_raw([2], data, ElementType.FLOAT, api=fake_api)

        assert exc_info.value.details["expected_bytes"] == 8
        assert exc_info.value.buffer is data

    def test_string_rejected(self, fake_api):
        """STRING is rejected whatever the buffer holds."""
        data = bytes(16)

        with pytest.raises(UnsupportedTypeError) as exc_info:
            OwnedTensor.bind_raw([2], data, ElementType.STRING, api=fake_api)

        assert exc_info.value.buffer is data

    @pytest.mark.parametrize(
        "byte_buffer",
        [None, 42, np.zeros((4, 4), dtype=np.uint8)[:, ::2]],
        ids=["none", "int", "non_contiguous"],
    )
    def test_string_rejected_before_buffer_checks(self, fake_api, byte_buffer):
        """STRING fails as unsupported even when the argument is no usable buffer."""
        with pytest.raises(UnsupportedTypeError) as exc_info:
            OwnedTensor.bind_raw([1], byte_buffer, ElementType.STRING, api=fake_api)

        assert exc_info.value.buffer is byte_buffer
        assert fake_api.calls == []

    def test_unknown_tag_before_buffer_checks(self, fake_api):
        """An unknown tag is reported before the buffer is exported."""
        with pytest.raises(UnknownTypeTagError):
            OwnedTensor.bind_raw([1], None, 99, api=fake_api)

    def test_undefined_rejected(self, fake_api):
        """UNDEFINED is rejected."""
        with pytest.raises(UnsupportedTypeError):
            OwnedTensor.bind_raw([0], b"", ElementType.UNDEFINED, api=fake_api)

    def test_unknown_tag(self, fake_api):
        """An unknown tag raises UnknownTypeTagError carrying the buffer."""
        data = bytes(4)

        with pytest.raises(UnknownTypeTagError) as exc_info:
            OwnedTensor.bind_raw([1], data, 99, api=fake_api)

        assert exc_info.value.buffer is data

    def test_writable_raw(self, fake_api):
        """writable=True allows writes through view_mut()."""
        data = bytearray(8)
        t = OwnedTensor.bind_raw([2], data, ElementType.INT32, writable=True, api=fake_api)

        t.view_mut()[:] = [1, 2]

        assert np.frombuffer(data, dtype=np.int32).tolist() == [1, 2]

    def test_writable_raw_requires_writable_memory(self, fake_api):
        """writable=True rejects read-only memory."""
        with pytest.raises(ValidationError) as exc_info:
            OwnedTensor.bind_raw([2], bytes(8), ElementType.INT32, writable=True, api=fake_api)

        assert exc_info.value.code == "READ_ONLY_BUFFER"

    def test_format_is_ignored(self, fake_api):
        """A float64 array can be bound as raw INT64 bytes."""
        data = np.zeros(2, dtype=np.float64)
        t = OwnedTensor.bind_raw([2], data, ElementType.INT64, api=fake_api)

        assert t.view().dtype == np.int64


class TestLifecycle:
    """Release order, pinning and take_buffer."""

    def test_release_order(self, fake_api, float_data):
        """Release frees the value before the memory info."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        t.release()

        assert fake_api.released_kinds() == ["value", "memory_info"]
        assert fake_api.live_count() == 0

    def test_release_is_idempotent(self, fake_api, float_data):
        """Releasing twice releases once."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        t.release()
        t.release()

        assert len(fake_api.released) == 2
        assert t.released

    def test_release_leaves_buffer_untouched(self, fake_api, float_data):
        """The caller's buffer survives release with its contents."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)

        t.release()

        assert float_data.tolist() == [1, 2, 3, 4, 5, 6]

    def test_ptr_after_release(self, fake_api, float_data):
        """The native reference is unreadable after release."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)
        t.release()

        with pytest.raises(StateError):
            _ = t.ptr
        with pytest.raises(StateError):
            t.view()

    def test_bytearray_pinned_while_bound(self, fake_api):
        """A bound bytearray cannot be resized until the tensor is released."""
        data = bytearray(8)
        t = OwnedTensor.bind_raw([2], data, ElementType.FLOAT, api=fake_api)

        with pytest.raises(BufferError):
            data.extend(b"\x00")

        t.release()
        data.extend(b"\x00")
        assert len(data) == 9

    def test_ndarray_pinned_while_bound(self, fake_api):
        """A bound ndarray cannot be resized in place."""
        data = np.zeros(4, dtype=np.float32)
        t = OwnedTensor.bind_mutable([4], data, api=fake_api)

        with pytest.raises(ValueError):
            data.resize(8)

        t.release()

    def test_take_buffer_returns_original_object(self, fake_api):
        """take_buffer hands back the same object with its latest contents."""
        data = np.zeros(3, dtype=np.int32)
        t = OwnedTensor.bind_mutable([3], data, take_ownership=True, api=fake_api)
        t.view_mut()[:] = [7, 8, 9]

        out = t.take_buffer()

        assert out is data
        assert out.tolist() == [7, 8, 9]
        assert fake_api.live_count() == 0

    def test_take_buffer_closes_handle(self, fake_api, float_data):
        """After take_buffer every access raises StateError."""
        t = OwnedTensor.bind_immutable([6], float_data, take_ownership=True, api=fake_api)
        t.take_buffer()

        with pytest.raises(StateError):
            _ = t.ptr
        with pytest.raises(StateError):
            t.view()
        with pytest.raises(StateError):
            t.view_mut()
        with pytest.raises(StateError):
            t.take_buffer()

    def test_context_manager(self, fake_api, float_data):
        """Leaving the with-block releases the tensor."""
        with OwnedTensor.bind_immutable([6], float_data, api=fake_api) as t:
            assert not t.released

        assert t.released
        assert fake_api.live_count() == 0

    def test_garbage_collection_releases(self, fake_api, float_data):
        """A dropped tensor releases its native parts."""
        t = OwnedTensor.bind_immutable([6], float_data, api=fake_api)
        del t
        gc.collect()

        assert fake_api.live_count() == 0

    def test_repr(self, fake_api, float_data):
        """repr shows shape, type and policy, or released."""
        t = OwnedTensor.bind_immutable([2, 3], float_data, api=fake_api)

        assert repr(t) == "OwnedTensor(shape=(2, 3), element_type=FLOAT, policy=shared)"
        t.release()
        assert "released" in repr(t)
