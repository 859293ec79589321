"""
Tests for NameTable.
"""

import ctypes

import pytest

from ortpin.exceptions import InvalidNameError, ValidationError
from ortpin.run import NameTable


class TestBuild:
    """Tests for NameTable construction."""

    def test_pointer_array_holds_encoded_names(self):
        """Each pointer reads back its NUL-terminated name."""
        table = NameTable.build(["input_ids", "attention_mask"])
        ptrs = table.as_pointer_array()

        assert ptrs[0] == b"input_ids"
        assert ptrs[1] == b"attention_mask"

    def test_pointers_address_held_bytes(self):
        """The pointers point into the table's own bytes objects."""
        table = NameTable(["x"])
        ptrs = table.as_pointer_array()
        address = ctypes.cast(ptrs, ctypes.POINTER(ctypes.c_void_p))[0]

        assert ctypes.string_at(address) == b"x"

    def test_utf8_encoding(self):
        """str names are UTF-8 encoded."""
        table = NameTable(["größe"])

        assert table.encoded == ("größe".encode(),)
        assert table[0] == "größe"

    def test_bytes_names(self):
        """bytes names are accepted unchanged."""
        table = NameTable([b"logits"])

        assert table.names == ("logits",)

    def test_embedded_nul(self):
        """A NUL byte inside a name raises InvalidNameError."""
        with pytest.raises(InvalidNameError) as exc_info:
            NameTable(["ok", "bad\x00name"])

        assert exc_info.value.details["index"] == 1

    def test_embedded_nul_is_validation_error(self):
        """InvalidNameError is a ValidationError."""
        with pytest.raises(ValidationError):
            NameTable([b"a\x00"])

    def test_non_string_entry(self):
        """Entries must be str or bytes."""
        with pytest.raises(ValidationError) as exc_info:
            NameTable(["x", 3])

        assert exc_info.value.details["type"] == "int"

    def test_single_string_rejected(self):
        """A bare string is not a sequence of names."""
        with pytest.raises(ValidationError):
            NameTable("x")

    def test_empty_table(self):
        """An empty table is valid."""
        table = NameTable([])

        assert len(table) == 0
        assert len(table.as_pointer_array()) == 0


class TestSequence:
    """Sequence behavior."""

    def test_len_and_iteration(self):
        """len() and iteration follow insertion order."""
        table = NameTable(["a", "b", "c"])

        assert len(table) == 3
        assert list(table) == ["a", "b", "c"]

    def test_equality(self):
        """Tables with the same names compare equal, str or bytes."""
        assert NameTable(["a", "b"]) == NameTable([b"a", b"b"])
        assert NameTable(["a"]) != NameTable(["b"])
        assert hash(NameTable(["a"])) == hash(NameTable([b"a"]))

    def test_repr(self):
        """repr lists the names."""
        assert repr(NameTable(["x"])) == "NameTable(['x'])"
