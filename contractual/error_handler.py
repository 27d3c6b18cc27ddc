"""Error handling helpers for the stub HTTP surface."""
from typing import Any, Dict, Optional
import logging

from contractual.exceptions import AmbiguousMatch, ContractError, NoMatch

logger = logging.getLogger(__name__)


class ErrorHandler:
    def handle_exception(self, exc: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if isinstance(exc, (NoMatch, AmbiguousMatch)):
            logger.warning("Stub request rejected: %s", exc)
        elif isinstance(exc, ContractError):
            logger.error("Contract error: %s", exc)
        else:
            logger.error("Unhandled exception in stub server: %s", exc, exc_info=True)

        details = exc.to_dict() if isinstance(exc, ContractError) else {"error": type(exc).__name__, "message": str(exc)}
        return {
            "message": str(exc),
            "stub": True,
            "metadata": {**details, "context": context or {}},
        }
