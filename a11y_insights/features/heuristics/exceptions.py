from typing import Optional


class HeuristicsError(Exception):
    """Base error for the page evaluation engine."""


class ModelError(HeuristicsError):
    """Raised when the model API call fails (non-2xx, or unreachable after retries)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.body = body
        self.cause = cause
        detail = f"{message}: {status_code}" if status_code is not None else message
        if body:
            detail = f"{detail} - {body}"
        super().__init__(detail)
