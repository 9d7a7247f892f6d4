"""Configuration, read from the environment.

| Variable                  | Meaning                                     |
|---------------------------|---------------------------------------------|
| RPCCONSOLE_SERVICE_DIRS   | service folders, os.pathsep separated       |
| RPCCONSOLE_TEMPLATE_DIR   | folder holding top.html / bottom.html       |
| RPCCONSOLE_HOST           | bind address (default 127.0.0.1)            |
| RPCCONSOLE_PORT           | bind port (default 8000)                    |
| RPCCONSOLE_LOG_LEVEL      | logging level name (default INFO)           |
| RPCCONSOLE_GATEWAY_PATH   | URL path of the console (default /)         |
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

PACKAGE_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _split_paths(value: str) -> tuple[Path, ...]:
    return tuple(Path(p).expanduser() for p in value.split(os.pathsep) if p.strip())


@dataclass(frozen=True)
class Settings:
    service_dirs: tuple[Path, ...] = field(default_factory=tuple)
    template_dir: Path = PACKAGE_TEMPLATE_DIR
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"
    gateway_path: str = "/"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ

        port_raw = env.get("RPCCONSOLE_PORT", "").strip()
        try:
            port = int(port_raw) if port_raw else cls.port
        except ValueError:
            raise ConfigurationError(
                f"RPCCONSOLE_PORT must be an integer, got {port_raw!r}",
                setting="RPCCONSOLE_PORT",
            ) from None

        log_level = (env.get("RPCCONSOLE_LOG_LEVEL") or cls.log_level).strip().upper()
        if log_level not in _LOG_LEVELS:
            raise ConfigurationError(
                f"Unknown log level: {log_level}", setting="RPCCONSOLE_LOG_LEVEL"
            )

        gateway_path = env.get("RPCCONSOLE_GATEWAY_PATH") or cls.gateway_path
        if not gateway_path.startswith("/"):
            gateway_path = "/" + gateway_path

        template_dir = env.get("RPCCONSOLE_TEMPLATE_DIR")
        return cls(
            service_dirs=_split_paths(env.get("RPCCONSOLE_SERVICE_DIRS", "")),
            template_dir=Path(template_dir).expanduser() if template_dir else PACKAGE_TEMPLATE_DIR,
            host=env.get("RPCCONSOLE_HOST") or cls.host,
            port=port,
            log_level=log_level,
            gateway_path=gateway_path,
        )

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
