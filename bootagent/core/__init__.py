from .agent import BootAgentServer, ReceivedImage

__all__ = ["BootAgentServer", "ReceivedImage"]
