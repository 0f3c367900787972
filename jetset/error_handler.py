"""Error handling helpers for API endpoints."""
from typing import Any, Dict
import logging

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Dict[str, Any] = None, error: str = "Internal server error") -> Dict[str, Any]:
        logger.error("Unhandled exception (%s): %s", (context or {}).get("operation", "request"), exc, exc_info=True)
        return {
            "success": False,
            "error": error,
            "details": str(exc),
        }
