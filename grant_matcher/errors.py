from __future__ import annotations


class MatchingError(Exception):
    """Base class for failures surfaced at the matching service boundary."""

    status_code = 500
    retryable = False


class ValidationFailure(MatchingError, ValueError):
    status_code = 400


class NotFound(MatchingError, LookupError):
    status_code = 404


class UpstreamUnavailable(MatchingError):
    """Candidate retrieval failed; the search was not partially applied."""

    status_code = 503
    retryable = True


class RateLimited(MatchingError):
    status_code = 429
    retryable = True

    def __init__(self, client_id: str, retry_after_seconds: float) -> None:
        super().__init__(f"Rate limit exceeded for client '{client_id}'.")
        self.client_id = client_id
        self.retry_after_seconds = retry_after_seconds


class InternalError(MatchingError):
    status_code = 500
