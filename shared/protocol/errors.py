from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Failure categories raised by the protocol helpers and the transport."""

    IMAGE_NOT_FOUND = 1001
    IMAGE_UNREADABLE = 1002
    IMAGE_TOO_LARGE = 1003
    LENGTH_OUT_OF_RANGE = 1004
    HEADER_TRUNCATED = 1005
    NOT_CONNECTED = 2001
    CONNECTION_FAILED = 2002
    WRITE_FAILED = 2003


class ProtocolError(Exception):
    """Structured exception carrying an error code and a message."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code.name} ({int(code)}): {message}")


__all__ = ["ErrorCode", "ProtocolError"]
