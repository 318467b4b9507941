"""
Shared protocol package: opcodes, the length-prefixed transfer framing and the
boot image model used by both the uploader and the mock boot agent.
"""

from .constants import (
    DEFAULT_GRACE_PERIOD,
    DEFAULT_HOST,
    DEFAULT_PORT,
    HEADER_SIZE,
    MAX_IMAGE_SIZE,
    READ_CHUNK_SIZE,
    READY_OPCODE,
)
from .errors import ErrorCode, ProtocolError
from .framing import decode_length_header, encode_length_header, read_opcode
from .image import BootImage
from .opcodes import Opcode, format_opcode, is_opcode

__all__ = [
    "DEFAULT_GRACE_PERIOD",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "HEADER_SIZE",
    "MAX_IMAGE_SIZE",
    "READ_CHUNK_SIZE",
    "READY_OPCODE",
    "ErrorCode",
    "ProtocolError",
    "encode_length_header",
    "decode_length_header",
    "read_opcode",
    "BootImage",
    "Opcode",
    "format_opcode",
    "is_opcode",
]
