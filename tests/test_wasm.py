"""Tests for WebAssembly custom section helpers."""

import pytest

from actorkit.wasm import (
    InvalidModule,
    append_custom_section,
    decode_u32,
    encode_u32,
    find_custom_section,
    iter_sections,
    strip_custom_section,
)


class TestLeb128:
    @pytest.mark.parametrize(
        "value, encoded",
        [(0, b"\x00"), (127, b"\x7f"), (128, b"\x80\x01"), (624485, b"\xe5\x8e\x26")],
    )
    def test_known_encodings(self, value, encoded):
        assert encode_u32(value) == encoded
        assert decode_u32(encoded, 0) == (value, len(encoded))

    def test_truncated(self):
        with pytest.raises(InvalidModule):
            decode_u32(b"\x80", 0)


class TestSections:
    def test_rejects_non_wasm(self):
        with pytest.raises(InvalidModule):
            list(iter_sections(b"not wasm at all"))

    def test_rejects_overrun(self, wasm_bytes):
        with pytest.raises(InvalidModule):
            list(iter_sections(wasm_bytes + b"\x01\x7f"))

    def test_iterates_existing_sections(self, wasm_bytes):
        sections = list(iter_sections(wasm_bytes))
        assert len(sections) == 1
        assert sections[0][0] == 0

    def test_append_and_find(self, wasm_bytes):
        module = append_custom_section(wasm_bytes, "jwt", b"token")

        assert module.startswith(wasm_bytes)
        assert find_custom_section(module, "jwt") == b"token"
        assert find_custom_section(module, "name") == b""
        assert find_custom_section(module, "other") is None

    def test_strip(self, wasm_bytes):
        module = append_custom_section(wasm_bytes, "jwt", b"one")
        module = append_custom_section(module, "jwt", b"two")

        assert strip_custom_section(module, "jwt") == wasm_bytes
