"""Launch the relay under uvicorn."""
from __future__ import annotations
import argparse
import errno
import logging
import socket
import sys

import uvicorn

from canvas_relay.common.config import BACKENDS, RelayConfig
from canvas_relay.common.logging_setup import setup_logging
from canvas_relay.serve.app import create_app

LOGGER = logging.getLogger("canvas_relay.serve.server")

def _ensure_port_free(host: str, port: int) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind((host, port))

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run the canvas completion relay")
    ap.add_argument("--config", default=None, help="YAML config path (overrides RELAY_CONFIG)")
    ap.add_argument("--backend", choices=BACKENDS, default=None)
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--timeout", type=float, default=None, help="Backend timeout in seconds")
    ap.add_argument("--log-level", default="INFO")
    return ap.parse_args(argv)

def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level)

    config = RelayConfig.from_env(args.config)
    overrides = {
        k: v
        for k, v in {"backend": args.backend, "host": args.host, "port": args.port, "timeout": args.timeout}.items()
        if v is not None
    }
    if overrides:
        config = config.with_settings(**overrides)
    settings = config.settings

    try:
        _ensure_port_free(settings.host, settings.port)
    except OSError as e:
        if e.errno == errno.EADDRINUSE:
            LOGGER.error(
                "Port %s is already in use. Stop any other process using this port and try again.",
                settings.port,
            )
        else:
            LOGGER.error("Cannot listen on %s:%s: %s", settings.host, settings.port, e)
        sys.exit(1)

    app = create_app(config)
    if app.state.backend.requires_credential and not config.has_credential:
        LOGGER.warning("No API key configured yet; /api/generate will reject requests until one is set")
    LOGGER.info("Relay running at http://%s:%s -> %s", settings.host, settings.port, settings.base_url)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)

if __name__ == "__main__":
    main()
