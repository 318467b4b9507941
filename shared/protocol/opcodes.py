from __future__ import annotations

from enum import IntEnum

from .constants import READY_OPCODE


class Opcode(IntEnum):
    """
    Single-byte requests sent by the boot agent.
    Only READY is known; every other byte is logged and ignored.
    """

    READY = READY_OPCODE  # clear counter / send image


def is_opcode(value: int) -> bool:
    """Check if `value` is a known opcode."""
    try:
        Opcode(value)
        return True
    except ValueError:
        return False


def format_opcode(value: int) -> str:
    return f"0x{value:02x}"


__all__ = ["Opcode", "is_opcode", "format_opcode"]
