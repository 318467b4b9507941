from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import MAX_IMAGE_SIZE
from .errors import ErrorCode, ProtocolError
from .framing import encode_length_header


class BootImage(BaseModel):
    """Read-only binary image handed to the boot agent."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(default=b"", max_length=MAX_IMAGE_SIZE, description="Raw image bytes")
    source: Optional[str] = Field(default=None, description="Where the image was loaded from")

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def header(self) -> bytes:
        return encode_length_header(self.size)

    @classmethod
    def from_bytes(cls, data: bytes, source: Optional[str] = None) -> "BootImage":
        try:
            return cls(data=bytes(data), source=source)
        except ValidationError as exc:
            raise ProtocolError(
                ErrorCode.IMAGE_TOO_LARGE,
                f"Image is {len(data)} bytes, limit is {MAX_IMAGE_SIZE}",
            ) from exc

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BootImage":
        path = Path(path)
        if not path.is_file():
            raise ProtocolError(ErrorCode.IMAGE_NOT_FOUND, f"Image file {path} does not exist")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ProtocolError(ErrorCode.IMAGE_UNREADABLE, f"Cannot read {path}: {exc}") from exc
        return cls.from_bytes(data, source=str(path))


__all__ = ["BootImage"]
