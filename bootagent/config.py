from __future__ import annotations

import os
from typing import Any, Dict

from shared.protocol.constants import DEFAULT_PORT

DEFAULT_AGENT_CONFIG: Dict[str, Any] = {
    "host": "127.0.0.1",
    "port": DEFAULT_PORT,
    "log_level": "INFO",
    "output_dir": "",
    "close_after_upload": True,
}

AGENT_CONFIG = DEFAULT_AGENT_CONFIG.copy()


def load_agent_config() -> Dict[str, Any]:
    AGENT_CONFIG["host"] = os.getenv("AGENT_HOST", AGENT_CONFIG["host"])
    AGENT_CONFIG["port"] = int(os.getenv("AGENT_PORT", AGENT_CONFIG["port"]))
    AGENT_CONFIG["log_level"] = os.getenv("AGENT_LOG_LEVEL", AGENT_CONFIG["log_level"])
    AGENT_CONFIG["output_dir"] = os.getenv("AGENT_OUTPUT_DIR", AGENT_CONFIG["output_dir"])
    close_after = os.getenv("AGENT_CLOSE_AFTER_UPLOAD")
    if close_after is not None:
        AGENT_CONFIG["close_after_upload"] = close_after.lower() in ("1", "true", "yes", "on")
    return AGENT_CONFIG


__all__ = ["AGENT_CONFIG", "load_agent_config"]
