"""Local model-serving daemon (Ollama) backend.

The relay's own schema is modelled on this API, so translation is mostly a
pass-through; the daemon needs no credential.
"""
from __future__ import annotations
from typing import Any

import httpx

from canvas_relay.backends.base import Backend
from canvas_relay.common.errors import UpstreamMalformedResponse
from canvas_relay.common.schema import BackendRequest, GenerateRequest, GenerateResponse, ModelList, ModelTag

class OllamaBackend(Backend):
    name = "ollama"
    default_model = "cogito:3b"

    def build_request(
        self, req: GenerateRequest, model: str, temperature: float, credential: str
    ) -> BackendRequest:
        options = req.options.model_dump(exclude_none=True)
        options["temperature"] = temperature
        payload = {
            "model": model,
            "prompt": req.prompt,
            "stream": False,
            "options": options,
        }
        return BackendRequest(url=f"{self.base_url}/api/generate", json=payload)

    def parse_response(self, data: Any) -> GenerateResponse:
        content = data.get("response") if isinstance(data, dict) else None
        return GenerateResponse(response=self._content_of(content), done=True)

    async def list_models(self, client: httpx.AsyncClient) -> ModelList:
        r = await client.get(f"{self.base_url}/api/tags")
        r.raise_for_status()
        try:
            names = [m["name"] for m in r.json()["models"]]
        except (ValueError, KeyError, TypeError) as e:
            raise UpstreamMalformedResponse("Invalid model list from ollama backend") from e
        return ModelList(models=[ModelTag(name=n) for n in names])
