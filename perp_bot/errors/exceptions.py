"""Exception hierarchy for backend calls and input validation."""
from typing import Any, Dict, Optional


class PerpBotError(Exception):
    """Base exception for all bot errors."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ApiError(PerpBotError):
    """
    Failure reported by (or while reaching) the backend API.

    ``status`` is the HTTP status when the backend answered, None for
    transport failures such as timeouts or refused connections.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        payload: Any = None,
    ):
        super().__init__(message, {"status": status, "code": code})
        self.status = status
        self.code = code
        self.payload = payload

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, code={self.code!r}, message={self.message!r})"


class ValidationError(PerpBotError):
    """
    User input failed a step validator.

    ``key`` is a translation key; ``params`` are interpolated into it.
    """

    def __init__(self, key: str, **params: Any):
        super().__init__(key, params)
        self.key = key
        self.params = params
