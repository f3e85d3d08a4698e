"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator

class GenerateOptions(BaseModel):
    model_config = ConfigDict(extra="allow")

    temperature: float | None = None

class GenerateRequest(BaseModel):
    """Ollama-style generate request sent by the browser widgets."""
    model: str = ""
    prompt: StrictStr
    stream: bool = False
    options: GenerateOptions = Field(default_factory=GenerateOptions)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("prompt must be a non-empty string")
        return v

class GenerateResponse(BaseModel):
    """Normalized completion shape consumed by every widget."""
    response: str
    done: bool = True

class ModelTag(BaseModel):
    name: str

class ModelList(BaseModel):
    models: list[ModelTag] = Field(default_factory=list)

class CredentialUpdate(BaseModel):
    credential: StrictStr

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "CredentialUpdate":
        # "apiKey" is what older chat widgets post to /api/update-key.
        if "credential" not in body and "apiKey" in body:
            body = {"credential": body["apiKey"]}
        return cls.model_validate(body)

class HealthOut(BaseModel):
    status: str = "ok"
    timestamp: str
    hasCredential: bool
    backend: str

class AnalyzeRequest(BaseModel):
    model: str = ""
    canvas: dict[str, str]
    temperature: float | None = None

class AnalysisOut(BaseModel):
    scores: dict[str, int] = Field(default_factory=dict)
    sectionRecommendations: dict[str, str] = Field(default_factory=dict)
    overallRecommendations: list[str] = Field(default_factory=list)

class AnalyzeResponse(GenerateResponse):
    analysis: AnalysisOut

@dataclass
class BackendRequest:
    """Outbound call built by a translator."""
    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
