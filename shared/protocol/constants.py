"""Wire-level constants shared by the uploader and the mock boot agent."""

READY_OPCODE = 0xAA
HEADER_SIZE = 2  # u16 little-endian image length
MAX_IMAGE_SIZE = 0xFFFF
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 2323
DEFAULT_GRACE_PERIOD = 3.0  # seconds
READ_CHUNK_SIZE = 4096

__all__ = [
    "READY_OPCODE",
    "HEADER_SIZE",
    "MAX_IMAGE_SIZE",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_GRACE_PERIOD",
    "READ_CHUNK_SIZE",
]
