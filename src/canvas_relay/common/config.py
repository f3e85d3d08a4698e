"""Relay configuration: environment first, optional YAML overlay, runtime credential updates."""
from __future__ import annotations
import logging
import os
import threading
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

LOGGER = logging.getLogger("canvas_relay.config")

BACKENDS = ("openai", "ollama")

def load_cfg(path: str) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

@dataclass
class RelaySettings:
    """Static settings, fixed once the process has started."""
    backend: str = "openai"
    openai_api_url: str = "https://api.openai.com/v1"
    ollama_base_url: str = "http://localhost:11434"
    timeout: float = 30.0
    max_prompt_chars: int = 12000
    default_temperature: float = 0.7
    max_tokens: int = 1500
    host: str = "127.0.0.1"
    port: int = 3000

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend {self.backend!r}; expected one of {BACKENDS}")

    @property
    def base_url(self) -> str:
        url = self.ollama_base_url if self.backend == "ollama" else self.openai_api_url
        return url.rstrip("/")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "RelaySettings":
        """Build settings from a flat mapping, ignoring unknown keys and coercing types."""
        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in data and data[f.name] is not None:
                kwargs[f.name] = type(f.default)(data[f.name])
        return cls(**kwargs)


_ENV_KEYS = {
    "backend": "RELAY_BACKEND",
    "openai_api_url": "OPENAI_API_URL",
    "ollama_base_url": "OLLAMA_BASE_URL",
    "timeout": "RELAY_TIMEOUT",
    "max_prompt_chars": "RELAY_MAX_PROMPT_CHARS",
    "default_temperature": "RELAY_DEFAULT_TEMPERATURE",
    "max_tokens": "RELAY_MAX_TOKENS",
    "host": "RELAY_HOST",
    "port": "RELAY_PORT",
}

@dataclass
class RelayConfig:
    """
    Process-wide relay state handed to the app factory.

    The credential is the only mutable part. Handlers run on a thread pool,
    so reads and writes go through a lock; the value is last-write-wins and
    never written to disk.
    """
    settings: RelaySettings = field(default_factory=RelaySettings)
    _credential: str = field(default="", repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def credential(self) -> str:
        with self._lock:
            return self._credential

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def update_credential(self, value: str) -> None:
        with self._lock:
            self._credential = value
        LOGGER.info("Credential updated (%s)", "set" if value else "cleared")

    def with_settings(self, **overrides: Any) -> "RelayConfig":
        """Return a new config with some settings replaced and the same credential."""
        return RelayConfig(settings=replace(self.settings, **overrides), _credential=self.credential)

    @classmethod
    def from_env(cls, config_path: str | None = None) -> "RelayConfig":
        """
        Load configuration.

        Precedence, lowest first: dataclass defaults, YAML file at
        ``config_path`` (or ``RELAY_CONFIG``), environment variables.

        Args:
            config_path: Optional YAML file with keys matching ``RelaySettings``.
        """
        data: dict[str, Any] = {}
        config_path = config_path or os.getenv("RELAY_CONFIG")
        if config_path:
            if Path(config_path).exists():
                data.update(load_cfg(config_path))
                LOGGER.info("Loaded relay config from %s", config_path)
            else:
                LOGGER.warning("Relay config file not found: %s", config_path)
        for key, env in _ENV_KEYS.items():
            value = os.getenv(env)
            if value:
                data[key] = value

        credential = os.getenv("OPENAI_API_KEY", "").strip()
        if credential:
            LOGGER.info("API key configured from environment variable")
        else:
            LOGGER.warning("No API key found in environment; callers can set it via /api/update-credential")
        return cls(settings=RelaySettings.from_mapping(data), _credential=credential)
