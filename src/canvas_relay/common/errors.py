"""Normalized error kinds surfaced to relay callers as ``{"error": message}``."""
from __future__ import annotations


class RelayError(Exception):
    """Base error carrying the HTTP status returned to the caller."""

    status_code: int = 500
    default_message: str = "Relay error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__


class BadRequest(RelayError):
    status_code = 400
    default_message = "Bad request"


class Unauthorized(RelayError):
    status_code = 401
    default_message = "Invalid API key. Please check your OpenAI API key."


class InsufficientQuota(RelayError):
    status_code = 402
    default_message = "Insufficient credits. Please check your OpenAI account billing."


class NotFound(RelayError):
    status_code = 404
    default_message = "Endpoint not found"


class RateLimited(RelayError):
    status_code = 429
    default_message = "Rate limit exceeded. Please try again in a few moments."


class UpstreamError(RelayError):
    """Backend answered with a status that has no more specific kind."""

    status_code = 502
    default_message = "Upstream backend error"


class UpstreamTimeout(RelayError):
    status_code = 504
    default_message = "Request timed out. Please try again with a shorter prompt."


class UpstreamUnavailable(RelayError):
    status_code = 502
    default_message = "Cannot connect to the model backend. Please check your connection."


class UpstreamMalformedResponse(RelayError):
    status_code = 500
    default_message = "Malformed response from the model backend"


def error_for_status(status_code: int, message: str | None = None) -> RelayError:
    """
    Map a backend HTTP status onto a normalized error.

    The backend status code is propagated unchanged; only the message is
    normalized for the well-known cases.

    Args:
        status_code: Status the backend answered with.
        message: Human-readable message extracted from the backend body, if any.
    """
    if status_code in (401, 403):
        return Unauthorized(status_code=status_code)
    if status_code == 402:
        return InsufficientQuota()
    if status_code == 429:
        return RateLimited()
    if status_code == 400:
        return BadRequest("Bad request. The prompt may be too long or contain invalid content.")
    if status_code == 404:
        return NotFound(message or "Requested model was not found on the backend.")
    if status_code >= 500:
        return UpstreamError(
            "Model service is temporarily unavailable. Please try again later.",
            status_code=status_code,
        )
    if status_code < 400:
        return UpstreamError(message or f"Unexpected HTTP {status_code} from backend")
    return UpstreamError(message or f"HTTP {status_code}", status_code=status_code)
