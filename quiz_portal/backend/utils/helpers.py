"""
Quiz Portal
Shared helper functions
"""

import logging
import time
from typing import Any, Dict, Optional

from ...config import get_settings


def setup_logging(level: Optional[str] = None):
    """Configure root logging from settings"""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        force=True
    )

    # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
    if not settings.DB_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def error_body(error: str, message: str, details: Any = None) -> Dict[str, Any]:
    """JSON body shared by all error responses"""
    body = {"error": error, "message": message, "timestamp": time.time()}
    if details is not None:
        body["details"] = details
    return body


__all__ = ["setup_logging", "error_body"]
