"""Runtime settings: JSON file first, environment overrides on top."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PORT = 41888
DEFAULT_HOST = "127.0.0.1"
DEFAULT_REQUEST_TIMEOUT = 60.0
SETTINGS_FILENAME = ".switchboard.json"

MODELS_CONFIG_ENV = "SWITCHBOARD_MODELS_CONFIG"
LEGACY_MODELS_CONFIG_ENV = "LLM_MODELS_CONFIG_PATH"
SKIP_BUILTIN_ENV = "SWITCHBOARD_SKIP_BUILTIN_PROVIDERS"

_TRUTHY = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer setting {value!r}, using {default}")
        return default


def _safe_float(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Invalid numeric setting {value!r}, using {default}")
        return default
    return parsed if parsed > 0 else default


def env_flag(name: str, environ: dict[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(name, "").strip().lower() in _TRUTHY


def resolve_models_config_path(explicit: str | Path | None = None) -> Path:
    """Return the models.json location: argument, env, then the working directory."""
    if explicit:
        return Path(explicit).expanduser()
    for name in (MODELS_CONFIG_ENV, LEGACY_MODELS_CONFIG_ENV):
        value = os.environ.get(name)
        if value:
            return Path(value).expanduser()
    return Path.cwd() / "models.json"


@dataclass
class SwitchboardConfig:
    models_config_path: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    skip_builtin_providers: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> SwitchboardConfig:
        models_path = os.environ.get(MODELS_CONFIG_ENV) or os.environ.get(LEGACY_MODELS_CONFIG_ENV)
        port = _safe_int(os.environ.get("SWITCHBOARD_PORT", str(DEFAULT_PORT)), DEFAULT_PORT)
        timeout = _safe_float(
            os.environ.get("SWITCHBOARD_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT)),
            DEFAULT_REQUEST_TIMEOUT,
        )
        level = os.environ.get("SWITCHBOARD_LOG_LEVEL", "WARNING").upper()
        if level not in _LOG_LEVELS:
            logger.warning(f"Unknown log level {level!r}, using WARNING")
            level = "WARNING"

        return cls(
            models_config_path=Path(models_path).expanduser() if models_path else None,
            host=os.environ.get("SWITCHBOARD_HOST", DEFAULT_HOST),
            port=port,
            request_timeout=timeout,
            skip_builtin_providers=env_flag(SKIP_BUILTIN_ENV),
            log_level=level,
        )

    @classmethod
    def from_file(cls, path: Path) -> SwitchboardConfig:
        """Load settings from the ``switchboard`` key of *path*.

        Environment variables set for a field always win over the file.
        """
        config = cls()

        if path.exists():
            try:
                data = json.loads(path.read_text())
                section = data.get("switchboard", {})
                if not isinstance(section, dict):
                    raise ValueError("'switchboard' must be an object")
                _apply_file_section(config, section, base_dir=path.parent)
            except (json.JSONDecodeError, ValueError, OSError) as e:
                logger.warning(f"Failed to load switchboard settings from {path}: {e}")

        _apply_env(config)
        return config

    @property
    def resolved_models_path(self) -> Path:
        return resolve_models_config_path(self.models_config_path)


def _apply_file_section(config: SwitchboardConfig, section: dict, *, base_dir: Path) -> None:
    if "models_config" in section and section["models_config"]:
        candidate = Path(str(section["models_config"])).expanduser()
        config.models_config_path = candidate if candidate.is_absolute() else base_dir / candidate
    if "host" in section:
        config.host = str(section["host"])
    if "port" in section:
        config.port = _safe_int(str(section["port"]), config.port)
    if "request_timeout" in section:
        config.request_timeout = _safe_float(str(section["request_timeout"]), config.request_timeout)
    if "skip_builtin_providers" in section:
        config.skip_builtin_providers = bool(section["skip_builtin_providers"])
    if "log_level" in section:
        level = str(section["log_level"]).upper()
        if level in _LOG_LEVELS:
            config.log_level = level
        else:
            logger.warning(f"Unknown log level {level!r} in settings file, ignoring")


def _apply_env(config: SwitchboardConfig) -> None:
    env = SwitchboardConfig.from_env()
    if os.environ.get(MODELS_CONFIG_ENV) or os.environ.get(LEGACY_MODELS_CONFIG_ENV):
        config.models_config_path = env.models_config_path
    if "SWITCHBOARD_HOST" in os.environ:
        config.host = env.host
    if "SWITCHBOARD_PORT" in os.environ:
        config.port = env.port
    if "SWITCHBOARD_REQUEST_TIMEOUT" in os.environ:
        config.request_timeout = env.request_timeout
    if SKIP_BUILTIN_ENV in os.environ:
        config.skip_builtin_providers = env.skip_builtin_providers
    if "SWITCHBOARD_LOG_LEVEL" in os.environ:
        config.log_level = env.log_level


def load_config(path: Path | None = None) -> SwitchboardConfig:
    if path is None:
        path = Path.cwd() / SETTINGS_FILENAME
    return SwitchboardConfig.from_file(path)
