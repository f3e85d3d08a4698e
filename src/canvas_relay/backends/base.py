"""Translator interface between the relay's generate schema and a backend's wire format."""
from __future__ import annotations
import json
from abc import ABC, abstractmethod
from typing import Any

import httpx

from canvas_relay.common.errors import RelayError, UpstreamMalformedResponse, error_for_status
from canvas_relay.common.schema import BackendRequest, GenerateRequest, GenerateResponse, ModelList

TRUNCATION_MARKER = "\n\n[Content truncated due to length]"
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0

def truncate_prompt(prompt: str, max_chars: int) -> str:
    """
    Cut an over-long prompt to ``max_chars`` and append the truncation marker.

    Args:
        prompt: Prompt text from the caller.
        max_chars: Maximum number of characters kept from the prompt.
    """
    if len(prompt) <= max_chars:
        return prompt
    return prompt[:max_chars] + TRUNCATION_MARKER

def clamp_temperature(value: float | None, default: float) -> float:
    """Clamp a sampling temperature into the range every backend accepts."""
    if value is None:
        value = default
    return min(max(float(value), MIN_TEMPERATURE), MAX_TEMPERATURE)


class Backend(ABC):
    """
    One completion backend.

    Subclasses only translate: the relay app owns the HTTP client, the
    timeout and the mapping of transport failures.
    """

    name: str = "backend"
    requires_credential: bool = False
    default_model: str = ""

    def __init__(self, base_url: str, max_tokens: int = 1500) -> None:
        self.base_url = base_url.rstrip("/")
        self.max_tokens = max_tokens

    def validate_credential(self, credential: str) -> None:
        """Raise ``BadRequest`` if the credential cannot be used with this backend."""
        return None

    def map_model(self, requested: str) -> str:
        return requested or self.default_model

    @abstractmethod
    def build_request(
        self, req: GenerateRequest, model: str, temperature: float, credential: str
    ) -> BackendRequest:
        """Translate a normalized request into the backend's wire format."""
        raise NotImplementedError

    @abstractmethod
    def parse_response(self, data: Any) -> GenerateResponse:
        """Translate a successful backend body into the normalized response."""
        raise NotImplementedError

    @abstractmethod
    async def list_models(self, client: httpx.AsyncClient) -> ModelList:
        raise NotImplementedError

    def extract_error_message(self, data: Any) -> str | None:
        """Pull a human-readable message out of a decoded error body."""
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, str):
                return err
            if isinstance(err, dict) and isinstance(err.get("message"), str):
                return err["message"]
        return None

    def error_from_response(self, response: httpx.Response) -> RelayError:
        """
        Build the normalized error for a non-success backend response.

        The raw body is only used to find a message; it is never echoed back.

        Args:
            response: Backend response with a non-2xx status.
        """
        message: str | None
        try:
            message = self.extract_error_message(json.loads(response.text))
        except ValueError:
            message = f"HTTP {response.status_code}: {response.reason_phrase}"
        return error_for_status(response.status_code, message)

    def _content_of(self, value: Any) -> str:
        if not isinstance(value, str):
            raise UpstreamMalformedResponse(f"Invalid response structure from {self.name} backend")
        return value
