"""Domain errors surfaced to API callers.

Every error here carries a message that is safe to show to the caller and an
HTTP status the boundary layer responds with. None of them are retried.
"""


class StockpileError(Exception):
    """Base class for errors reported to the caller."""

    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class UnauthenticatedError(StockpileError):
    """Missing, unknown, expired or destroyed session."""

    status_code = 401
    default_message = "Authentication required"


class NotFoundError(StockpileError):
    """Resource does not exist, or belongs to someone else."""

    status_code = 404
    default_message = "Not found"


class ValidationError(StockpileError):
    """One or more field constraints were violated."""

    status_code = 422
    default_message = "Validation failed"

    def __init__(self, errors: list[str], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = errors


class ConflictError(StockpileError):
    """A uniqueness constraint would be violated."""

    status_code = 409
    default_message = "Already exists"


class RateLimitedError(StockpileError):
    status_code = 429
    default_message = "Too many requests, try again later"

    def __init__(self, message: str | None = None, retry_after: int = 60) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(StockpileError):
    """A third-party service failed or is not configured."""

    status_code = 502
    default_message = "Upstream service unavailable"
