"""OpenAI chat-completions backend.

Request:  POST {base}/chat/completions {model, messages:[{role:user, content}], ...}
Response: {choices:[{message:{content}}]}
"""
from __future__ import annotations
from typing import Any

import httpx

from canvas_relay.backends.base import Backend
from canvas_relay.common.errors import BadRequest
from canvas_relay.common.schema import BackendRequest, GenerateRequest, GenerateResponse, ModelList, ModelTag

# No discovery endpoint is used for the cloud API; widgets get this fixed list.
KNOWN_MODELS = ("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo")
USER_AGENT = "AI-Canvas-Analyzer/1.0"

class OpenAIChatBackend(Backend):
    name = "openai"
    requires_credential = True
    default_model = "gpt-3.5-turbo"

    def validate_credential(self, credential: str) -> None:
        if not credential:
            raise BadRequest(
                "OpenAI API key not configured. Please set your API key in the chat interface."
            )
        if not credential.startswith("sk-"):
            raise BadRequest('Invalid API key format. OpenAI API keys should start with "sk-".')

    def map_model(self, requested: str) -> str:
        # Only GPT-4 family ids are forwarded; anything else gets the default.
        if requested and "gpt-4" in requested:
            return requested
        return self.default_model

    def build_request(
        self, req: GenerateRequest, model: str, temperature: float, credential: str
    ) -> BackendRequest:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": req.prompt}],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
            "top_p": 1,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
            "User-Agent": USER_AGENT,
        }
        return BackendRequest(url=f"{self.base_url}/chat/completions", json=payload, headers=headers)

    def parse_response(self, data: Any) -> GenerateResponse:
        try:
            message = data["choices"][0]["message"]
            content = message["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        return GenerateResponse(response=self._content_of(content), done=True)

    async def list_models(self, client: httpx.AsyncClient) -> ModelList:
        return ModelList(models=[ModelTag(name=m) for m in KNOWN_MODELS])
