from .lifecycle import ExitCode, ShutdownController
from .transport import SessionState, TransportError, TransportEvent, TransportSession
from .upload import HandlerState, UploadHandler

__all__ = [
    "ExitCode",
    "ShutdownController",
    "SessionState",
    "TransportError",
    "TransportEvent",
    "TransportSession",
    "HandlerState",
    "UploadHandler",
]
