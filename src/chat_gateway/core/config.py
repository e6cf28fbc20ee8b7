"""
Configuration loading for the chat gateway.

Process-wide defaults come from the environment, optionally overridden by a
YAML file. They are loaded once at startup and never mutated; per-request
credential overrides are merged into a fresh ``EffectiveConfig``.
"""

import os
import re
import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..models.request import ProviderCredential, ProviderType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL_ID = "gpt-4o"
DEFAULT_MAX_TOKENS = 64000

ENV_REF_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class GatewayDefaults:
    """Server-wide defaults, read-only after startup."""

    # Upstream
    provider: str = ProviderType.OPENAI.value
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""
    model_id: str = DEFAULT_MODEL_ID
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = 120.0

    # Access
    access_password: Optional[str] = None

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    # OpenTelemetry
    otel_endpoint: str = ""

    @classmethod
    def from_env(cls) -> "GatewayDefaults":
        """Build defaults from environment variables."""
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            provider=ProviderType.normalize(os.getenv("AI_PROVIDER")),
            base_url=os.getenv("AI_BASE_URL", DEFAULT_BASE_URL),
            api_key=os.getenv("AI_API_KEY", ""),
            model_id=os.getenv("AI_MODEL_ID", DEFAULT_MODEL_ID),
            max_tokens=int(os.getenv("AI_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
            timeout=float(os.getenv("AI_TIMEOUT_SECONDS", "120")),
            access_password=os.getenv("ACCESS_PASSWORD") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3001")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            otel_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
        )


@dataclass(frozen=True)
class EffectiveConfig:
    """Upstream settings resolved for a single request."""

    provider: str
    base_url: str
    api_key: str
    model_id: str
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout: float = 120.0


def load_config(config_path: Optional[str] = None) -> GatewayDefaults:
    """
    Load gateway defaults.

    Environment variables are read first; keys found in the YAML file
    replace them.

    Args:
        config_path: Path to config file. If None, uses CHAT_GATEWAY_CONFIG
            or the default location.

    Returns:
        Loaded defaults
    """
    defaults = GatewayDefaults.from_env()

    if config_path is None:
        config_path = os.getenv("CHAT_GATEWAY_CONFIG")
    if config_path is None:
        candidate = Path("config/chat-gateway.yaml")
        if candidate.exists():
            config_path = str(candidate)

    if config_path is None:
        return defaults

    if not Path(config_path).exists():
        logger.warning(f"Config file {config_path} not found, using environment defaults")
        return defaults

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return _parse_config(data, defaults)

    except Exception as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return defaults


def _expand_env(value: Any) -> Any:
    """Replace ``${VAR}`` references in a string with environment values."""
    if isinstance(value, str):
        return ENV_REF_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)
    return value


def _parse_config(data: Dict[str, Any], base: GatewayDefaults) -> GatewayDefaults:
    """Apply a configuration dictionary on top of ``base``."""
    known = {f.name for f in fields(GatewayDefaults)}
    updates = {}

    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        updates[key] = _expand_env(value)

    if "provider" in updates:
        updates["provider"] = ProviderType.normalize(updates["provider"])
    if isinstance(updates.get("cors_origins"), str):
        updates["cors_origins"] = [o.strip() for o in updates["cors_origins"].split(",")]

    return replace(base, **updates)


def resolve_config(
    defaults: GatewayDefaults,
    override: Optional[ProviderCredential] = None,
) -> EffectiveConfig:
    """
    Merge a credential override into the server defaults.

    Override fields replace defaults field by field. An override without an
    API key is ignored entirely.
    """
    config = EffectiveConfig(
        provider=defaults.provider,
        base_url=defaults.base_url,
        api_key=defaults.api_key,
        model_id=defaults.model_id,
        max_tokens=defaults.max_tokens,
        timeout=defaults.timeout,
    )

    if override is None or not override.is_usable:
        return config

    return replace(
        config,
        provider=override.provider.value if override.provider else config.provider,
        base_url=override.base_url or config.base_url,
        api_key=override.api_key,
        model_id=override.model_id or config.model_id,
    )
