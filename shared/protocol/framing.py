from __future__ import annotations

from typing import Optional

from .constants import HEADER_SIZE, MAX_IMAGE_SIZE
from .errors import ErrorCode, ProtocolError


def encode_length_header(length: int) -> bytes:
    """Encode an image length as the 2-byte little-endian transfer header."""
    if not (0 <= length <= MAX_IMAGE_SIZE):
        raise ProtocolError(
            ErrorCode.LENGTH_OUT_OF_RANGE,
            f"Image length {length} does not fit in {HEADER_SIZE} bytes",
        )
    return bytes([length & 0xFF, (length >> 8) & 0xFF])


def decode_length_header(data: bytes) -> int:
    """Decode the first HEADER_SIZE bytes of `data` back into a length."""
    if len(data) < HEADER_SIZE:
        raise ProtocolError(ErrorCode.HEADER_TRUNCATED, f"Expected {HEADER_SIZE} header bytes, got {len(data)}")
    return int.from_bytes(data[:HEADER_SIZE], "little")


def read_opcode(chunk: bytes) -> Optional[int]:
    """
    Return the opcode carried by an inbound chunk.

    Only byte 0 is meaningful; trailing bytes are ignored and opcodes split
    across reads are not reassembled. An empty chunk carries no opcode.
    """
    if not chunk:
        return None
    return chunk[0]


__all__ = ["encode_length_header", "decode_length_header", "read_opcode"]
