"""Load settings.yaml into typed dataclasses. Reports which backends have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

MERGE_POLICIES = ("shared", "independent")


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: float
    max_tokens: int
    base_url: str | None = None
    system_prompt: str | None = None


@dataclass
class DefaultsConfig:
    active_backend: str
    merge_policy: str = "shared"
    gateway_url: str | None = None
    request_timeout_sec: float = 180.0


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    server: ServerConfig = field(default_factory=ServerConfig)
    available_providers: set[str] = field(default_factory=set)

    @property
    def backends(self) -> tuple[str, ...]:
        """Configured backend tags, in settings order."""
        return tuple(self.models)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on an
    unknown merge policy or an active backend that has no model entry.
    Missing API keys are only logged; callers check available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for backend, model_raw in raw["models"].items():
        models[backend] = ModelConfig(
            name=backend,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=float(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
            system_prompt=model_raw.get("system_prompt"),
        )

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(backend)
            logger.info("Backend available: %s", backend)
        else:
            logger.info(
                "Backend skipped (no API key): %s (set %s in .env)",
                backend,
                model_raw["api_key_env"],
            )

    defaults_raw = raw.get("defaults") or {}
    defaults = DefaultsConfig(
        active_backend=str(defaults_raw.get("active_backend", next(iter(models)))),
        merge_policy=str(defaults_raw.get("merge_policy", "shared")),
        gateway_url=defaults_raw.get("gateway_url"),
        request_timeout_sec=float(defaults_raw.get("request_timeout_sec", 180.0)),
    )
    if defaults.merge_policy not in MERGE_POLICIES:
        raise ValueError(f"Unknown merge_policy: {defaults.merge_policy}")
    if defaults.active_backend not in models:
        raise ValueError(f"active_backend '{defaults.active_backend}' has no entry under models")

    server_raw = raw.get("server") or {}
    server = ServerConfig(
        host=str(server_raw.get("host", "127.0.0.1")),
        port=int(server_raw.get("port", 8000)),
    )

    return AppConfig(
        defaults=defaults,
        models=models,
        server=server,
        available_providers=available_providers,
    )
