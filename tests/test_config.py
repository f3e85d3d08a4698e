from __future__ import annotations

import threading
from pathlib import Path

import pytest

from canvas_relay.common.config import RelayConfig, RelaySettings


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in ("OPENAI_API_KEY", "RELAY_BACKEND", "RELAY_PORT", "RELAY_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    config = RelayConfig.from_env()
    assert config.has_credential is False
    assert config.settings.backend == "openai"
    assert config.settings.port == 3000
    assert config.settings.base_url == "https://api.openai.com/v1"


def test_env_overrides_yaml(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    cfg = tmp_path / "relay.yaml"
    cfg.write_text("backend: ollama\nport: 4000\ntimeout: 5\nunknown_key: 1\n", encoding="utf-8")
    monkeypatch.setenv("RELAY_PORT", "4100")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    config = RelayConfig.from_env(str(cfg))
    assert config.settings.backend == "ollama"
    assert config.settings.port == 4100
    assert config.settings.timeout == 5.0
    assert config.settings.base_url == "http://localhost:11434"
    assert config.credential == "sk-env"


def test_unknown_backend_rejected() -> None:
    with pytest.raises(ValueError):
        RelaySettings(backend="bard")


def test_with_settings_keeps_credential() -> None:
    config = RelayConfig(_credential="sk-a")
    moved = config.with_settings(port=9999)
    assert moved.settings.port == 9999
    assert moved.credential == "sk-a"


def test_concurrent_updates_leave_a_written_value() -> None:
    config = RelayConfig()
    values = [f"sk-{i}" for i in range(20)]
    threads = [threading.Thread(target=config.update_credential, args=(v,)) for v in values]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert config.credential in values
