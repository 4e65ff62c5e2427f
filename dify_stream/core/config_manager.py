import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from .logging import logger
from ..utils.deep_merge import deep_merge

DEFAULT_CONFIG: Dict[str, Any] = {
    "dify": {
        "base_url": None,
        "api_key": None,
        "endpoint": "/v1/chat-messages",
    },
    "performance": {
        "timeout_seconds": 30.0,
    },
    "rate_limit": {
        "requests_per_minute": 60,
        "window_seconds": 60.0,
    },
    "cache": {
        "enabled": True,
        "ttl_seconds": 300.0,
        "max_size": 100,
    },
    "streaming": {
        "flush_interval_ms": 50,
        "progress_divisor": 10,
    },
}

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

EVENT_STREAM = "text/event-stream"


@dataclass
class ConfigValidationResult:
    is_valid: bool
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class ConfigManager:
    def __init__(self, config_dir: str = "config", overrides: Optional[Dict[str, Any]] = None):
        self.config_dir = config_dir
        self.client_config_path = os.path.join(config_dir, "client.yaml")
        self.overrides = overrides or {}
        self.config = self._load_config()

        logger.info(
            "Configuration manager initialized",
            config_dir=config_dir,
            debug_enabled=self.debug,
            client_config_exists=os.path.exists(self.client_config_path),
            has_base_url=bool(self.base_url),
            has_api_key=bool(self.api_key)
        )

    def _load_config(self) -> Dict[str, Any]:
        config = DEFAULT_CONFIG
        try:
            with open(self.client_config_path, 'r') as f:
                config = deep_merge(config, yaml.safe_load(f))
        except FileNotFoundError as e:
            logger.warning(
                f"Configuration file not found: {e.filename}, using defaults",
                config_error_type="file_not_found"
            )
        except yaml.YAMLError as e:
            logger.error(
                f"Error parsing YAML file: {e}",
                config_error_type="yaml_parse_error"
            )

        config = deep_merge(config, self.overrides)
        self._apply_environment(config)

        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        return config

    @staticmethod
    def _apply_environment(config: Dict[str, Any]):
        base_url = os.getenv("DIFY_API_BASE_URL")
        if base_url:
            config["dify"]["base_url"] = base_url
        api_key = os.getenv("DIFY_API_KEY")
        if api_key:
            config["dify"]["api_key"] = api_key
        timeout = os.getenv("DIFY_TIMEOUT")
        if timeout:
            try:
                config["performance"]["timeout_seconds"] = float(timeout)
            except ValueError:
                logger.warning(f"Ignoring non-numeric DIFY_TIMEOUT={timeout!r}")

    def reload_config(self):
        logger.info("Reloading configuration", config_dir=self.config_dir)
        self.config = self._load_config()
        logger.reconfigure()
        logger.info("Configuration reloaded", has_base_url=bool(self.base_url), has_api_key=bool(self.api_key))

    @property
    def base_url(self) -> Optional[str]:
        return self.config["dify"].get("base_url")

    @property
    def api_key(self) -> Optional[str]:
        return self.config["dify"].get("api_key")

    @property
    def chat_endpoint(self) -> str:
        return self.config["dify"].get("endpoint") or "/v1/chat-messages"

    @property
    def timeout(self) -> float:
        return float(self.config["performance"]["timeout_seconds"])

    @property
    def rate_limit_per_minute(self) -> int:
        return int(self.config["rate_limit"]["requests_per_minute"])

    @property
    def rate_limit_window(self) -> float:
        return float(self.config["rate_limit"]["window_seconds"])

    @property
    def cache_enabled(self) -> bool:
        return bool(self.config["cache"]["enabled"])

    @property
    def cache_ttl(self) -> float:
        return float(self.config["cache"]["ttl_seconds"])

    @property
    def cache_max_size(self) -> int:
        return int(self.config["cache"]["max_size"])

    @property
    def flush_interval(self) -> float:
        """Batching interval for streamed text, in seconds."""
        return self.config["streaming"]["flush_interval_ms"] / 1000.0

    @property
    def progress_divisor(self) -> int:
        return int(self.config["streaming"]["progress_divisor"])

    def validate(self) -> ConfigValidationResult:
        """Check that the backend can be called at all."""
        issues = []
        warnings = []

        base_url = self.base_url
        if not base_url:
            issues.append("DIFY_API_BASE_URL is not configured")
        elif not base_url.startswith("http"):
            issues.append("DIFY_API_BASE_URL must be a valid URL (starting with http/https)")

        api_key = self.api_key
        if not api_key:
            issues.append("DIFY_API_KEY is not configured")
        elif len(api_key) < 10:
            warnings.append("DIFY_API_KEY looks too short and may be invalid")

        return ConfigValidationResult(is_valid=not issues, issues=issues, warnings=warnings)

    def get_chat_url(self) -> str:
        if not self.base_url:
            raise ValueError("DIFY_API_BASE_URL is not configured")
        endpoint = self.chat_endpoint
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{self.base_url.rstrip('/')}{endpoint}"

    def get_headers(self, additional_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        if not self.api_key:
            raise ValueError("DIFY_API_KEY is not configured")

        headers = {
            **DEFAULT_HEADERS,
            "Authorization": f"Bearer {self.api_key}",
            **(additional_headers or {}),
        }
        if headers.get("Accept") == EVENT_STREAM:
            headers["Accept-Encoding"] = "gzip, deflate"
        return headers

    def get_config_info(self) -> Dict[str, Any]:
        """Display-safe summary of the active configuration. Never includes the key."""
        validation = self.validate()
        return {
            "has_base_url": bool(self.base_url),
            "has_api_key": bool(self.api_key),
            "base_url": self.base_url,
            "endpoint": self.chat_endpoint,
            "is_valid": validation.is_valid,
            "issues": validation.issues,
            "warnings": validation.warnings,
            "timeout_seconds": self.timeout,
            "rate_limit_per_minute": self.rate_limit_per_minute,
            "cache_enabled": self.cache_enabled,
        }
