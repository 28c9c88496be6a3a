"""Minimal WebAssembly binary helpers for custom sections."""

from __future__ import annotations

from collections.abc import Iterator

WASM_MAGIC = b"\x00asm"
HEADER_SIZE = 8
CUSTOM_SECTION_ID = 0


class InvalidModule(ValueError):
    """Raised when bytes are not a well-formed WebAssembly module."""
    pass


def encode_u32(value: int) -> bytes:
    """Encode an unsigned LEB128 integer."""
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_u32(data: bytes, offset: int) -> tuple[int, int]:
    """Decode an unsigned LEB128 integer, returning ``(value, next_offset)``."""
    result = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise InvalidModule("truncated LEB128 integer")
        byte = data[offset]
        offset += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, offset
        shift += 7
        if shift > 35:
            raise InvalidModule("LEB128 integer too long")


def iter_sections(module: bytes) -> Iterator[tuple[int, int, int, int]]:
    """Yield ``(section_id, section_start, payload_start, payload_end)``."""
    if len(module) < HEADER_SIZE or module[:4] != WASM_MAGIC:
        raise InvalidModule("missing WebAssembly magic header")
    offset = HEADER_SIZE
    while offset < len(module):
        start = offset
        section_id = module[offset]
        size, payload_start = decode_u32(module, offset + 1)
        payload_end = payload_start + size
        if payload_end > len(module):
            raise InvalidModule(f"section {section_id} at offset {start} overruns module")
        yield section_id, start, payload_start, payload_end
        offset = payload_end


def _custom_name(module: bytes, payload_start: int, payload_end: int) -> tuple[str, int]:
    length, name_start = decode_u32(module, payload_start)
    name_end = name_start + length
    if name_end > payload_end:
        raise InvalidModule("custom section name overruns section")
    return module[name_start:name_end].decode("utf-8", errors="replace"), name_end


def find_custom_section(module: bytes, name: str) -> bytes | None:
    """Return the contents of the first custom section called ``name``."""
    for section_id, _, payload_start, payload_end in iter_sections(module):
        if section_id != CUSTOM_SECTION_ID:
            continue
        section_name, data_start = _custom_name(module, payload_start, payload_end)
        if section_name == name:
            return module[data_start:payload_end]
    return None


def strip_custom_section(module: bytes, name: str) -> bytes:
    """Return ``module`` without any custom section called ``name``."""
    out = bytearray(module[:HEADER_SIZE])
    for section_id, start, payload_start, payload_end in iter_sections(module):
        if section_id == CUSTOM_SECTION_ID:
            section_name, _ = _custom_name(module, payload_start, payload_end)
            if section_name == name:
                continue
        out += module[start:payload_end]
    return bytes(out)


def append_custom_section(module: bytes, name: str, data: bytes) -> bytes:
    encoded_name = name.encode("utf-8")
    payload = encode_u32(len(encoded_name)) + encoded_name + data
    return module + bytes([CUSTOM_SECTION_ID]) + encode_u32(len(payload)) + payload
