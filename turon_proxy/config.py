"""
Configuration loading for the chat proxy.

Settings live in a YAML file whose string values may reference environment variables
as ``${VAR_NAME}``. The file is read once at startup and turned into a frozen
``ProxyConfig`` that is handed to the components that need it.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"

# Used when the configuration file does not exist
DEFAULT_CONFIG: Dict[str, Any] = {
    "replicate": {
        "api_token": "${REPLICATE_API_TOKEN}",
        "model_version": "${REPLICATE_MODEL_VERSION}",
        "model": "${REPLICATE_MODEL}",
    },
    "server": {"port": "${PORT}"},
}

_ENV_VAR = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: Any) -> Any:
    """Resolve environment variables in string values like ${VAR_NAME}.

    Unset variables resolve to an empty string so that a missing credential reads
    as "not configured" rather than as the literal placeholder.
    """
    if isinstance(value, str) and "${" in value:
        return _ENV_VAR.sub(lambda match: os.getenv(match.group(1), ""), value)
    return value


def _resolve_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _resolve_tree(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_resolve_tree(item) for item in node]
    return resolve_env_vars(node)


def load_env_file(env_path: str = ".env") -> int:
    """Load environment variables from a .env file if it exists.

    Variables already present in the environment win over the file.
    Returns the number of variables loaded.
    """
    env_file = Path(env_path)
    if not env_file.exists():
        return 0

    loaded = 0
    with open(env_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                if key and key not in os.environ:
                    os.environ[key] = value.strip().strip('"').strip("'")
                    loaded += 1
    return loaded


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from a YAML file and resolve ${VAR} references.

    A missing file falls back to the built-in defaults.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}, using built-in defaults")
        return _resolve_tree(DEFAULT_CONFIG)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing configuration file: {e}")

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    return _resolve_tree(config)


def setup_logging(config: Dict[str, Any]):
    """Setup logging configuration."""
    log_config = config.get("logging", {}) or {}
    log_level = getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    log_file = log_config.get("file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=log_level, format=log_format, handlers=handlers, force=True)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ReplicateConfig:
    """Connection and generation settings for the Replicate predictions API."""

    api_token: Optional[str] = None
    model_version: Optional[str] = None
    base_url: str = "https://api.replicate.com/v1"
    auth_header: str = "Authorization"
    auth_scheme: str = "Bearer"
    submit_timeout: float = 120.0
    poll_timeout: float = 30.0
    poll_interval: float = 1.2
    max_poll_attempts: int = 30
    max_new_tokens: int = 256
    temperature: float = 0.2

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "ReplicateConfig":
        section = section or {}
        defaults = cls()
        return cls(
            api_token=_optional_str(section.get("api_token")),
            model_version=(
                _optional_str(section.get("model_version"))
                or _optional_str(section.get("model"))
            ),
            base_url=str(section.get("base_url") or defaults.base_url).rstrip("/"),
            auth_header=str(section.get("auth_header") or defaults.auth_header),
            auth_scheme=str(section.get("auth_scheme", defaults.auth_scheme) or ""),
            submit_timeout=float(section.get("submit_timeout", defaults.submit_timeout)),
            poll_timeout=float(section.get("poll_timeout", defaults.poll_timeout)),
            poll_interval=float(section.get("poll_interval", defaults.poll_interval)),
            max_poll_attempts=int(section.get("max_poll_attempts", defaults.max_poll_attempts)),
            max_new_tokens=int(section.get("max_new_tokens", defaults.max_new_tokens)),
            temperature=float(section.get("temperature", defaults.temperature)),
        )

    def missing_settings(self) -> List[str]:
        """Names of the required settings that are not configured."""
        missing = []
        if not self.api_token:
            missing.append("api_token")
        if not self.model_version:
            missing.append("model_version")
        return missing

    def validate(self):
        """Raise ConfigError if the credential or model version is missing."""
        missing = self.missing_settings()
        if missing:
            raise ConfigError(
                "Server not configured with Replicate " + " and ".join(missing),
                detail={"missing": missing},
            )

    def auth_headers(self) -> Dict[str, str]:
        """Credential header for every outbound call."""
        value = f"{self.auth_scheme} {self.api_token}" if self.auth_scheme else str(self.api_token)
        return {self.auth_header: value}


@dataclass(frozen=True)
class ServerConfig:
    """Where the HTTP surface listens and which origins it accepts."""

    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: Tuple[str, ...] = ("*",)

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "ServerConfig":
        section = section or {}
        defaults = cls()
        port = _optional_str(section.get("port"))
        origins = section.get("cors_origins") or list(defaults.cors_origins)
        if isinstance(origins, str):
            origins = [origin.strip() for origin in origins.split(",") if origin.strip()]
        return cls(
            host=str(section.get("host") or defaults.host),
            port=int(port) if port else defaults.port,
            cors_origins=tuple(origins),
        )


@dataclass(frozen=True)
class ProxyConfig:
    """Process-wide configuration, built once at startup."""

    replicate: ReplicateConfig = field(default_factory=ReplicateConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    reply_separator: str = "\n"
    refusal: Optional[str] = None
    max_question_chars: int = 1000
    kb: Dict[str, Any] = field(default_factory=dict)
    topic_filter: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ProxyConfig":
        config = config or {}
        reply = config.get("reply", {}) or {}
        prompt = config.get("prompt", {}) or {}
        separator = reply.get("separator", "\n")
        return cls(
            replicate=ReplicateConfig.from_dict(config.get("replicate", {})),
            server=ServerConfig.from_dict(config.get("server", {})),
            reply_separator="\n" if separator is None else str(separator),
            refusal=_optional_str(reply.get("refusal")),
            max_question_chars=int(prompt.get("max_question_chars", 1000)),
            kb=config.get("kb", {}) or {},
            topic_filter=config.get("topic_filter", {}) or {},
        )
