"""Agent configuration read from environment variables."""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

from hostwatch.errors import ConfigError
from hostwatch.monitor.agent import DEFAULT_INTERVAL, MIN_INTERVAL
from hostwatch.monitor.remote import DEFAULT_TIMEOUT
from hostwatch.monitor.thresholds import (
    CPU_THRESHOLD_PERCENT,
    MEMORY_THRESHOLD_PERCENT,
    NETWORK_THRESHOLD_BYTES,
    Thresholds,
)

UNSET_SENTINELS = {"", "none", "null", "n/a", "na", "undefined"}
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}

# field name -> environment variable
ENV_VARS = {
    "server_url": "MONITOR_SERVER_URL",
    "client_id": "CLIENT_ID",
    "interval": "HOSTWATCH_INTERVAL",
    "interface": "HOSTWATCH_INTERFACE",
    "request_timeout": "HOSTWATCH_REQUEST_TIMEOUT",
    "cpu_threshold": "HOSTWATCH_CPU_THRESHOLD",
    "memory_threshold": "HOSTWATCH_MEMORY_THRESHOLD",
    "network_threshold_bytes": "HOSTWATCH_NETWORK_THRESHOLD_BYTES",
    "rehydrate": "HOSTWATCH_REHYDRATE",
}


@dataclass
class AgentConfig:
    """Settings for one agent process.

    Attributes:
        server_url: Base URL of the monitor service
        client_id: Identifier of this host at the monitor service
        interval: Seconds between ticks
        interface: Network interface to sample; None selects automatically
        request_timeout: Per-request timeout for monitor service calls
        cpu_threshold: CPU percent above which a tick breaches
        memory_threshold: Memory percent above which a tick breaches
        network_threshold_bytes: Bytes per interval above which a tick breaches
        rehydrate: Recover open incidents from the service at startup
    """

    server_url: str = ""
    client_id: str = ""
    interval: float = DEFAULT_INTERVAL
    interface: Optional[str] = None
    request_timeout: float = DEFAULT_TIMEOUT
    cpu_threshold: float = CPU_THRESHOLD_PERCENT
    memory_threshold: float = MEMORY_THRESHOLD_PERCENT
    network_threshold_bytes: int = NETWORK_THRESHOLD_BYTES
    rehydrate: bool = True

    @property
    def thresholds(self) -> Thresholds:
        return Thresholds(
            cpu_percent=self.cpu_threshold,
            memory_percent=self.memory_threshold,
            network_bytes=self.network_threshold_bytes,
        )

    def validate(self, require_remote: bool = True) -> "AgentConfig":
        """Check the settings, raising ConfigError on the first problem."""
        if require_remote:
            if not self.server_url:
                raise ConfigError(f"{ENV_VARS['server_url']} is not set")
            if not self.client_id:
                raise ConfigError(f"{ENV_VARS['client_id']} is not set")
        if self.interval < MIN_INTERVAL:
            raise ConfigError(f"interval must be at least {MIN_INTERVAL}s")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        for name in ("cpu_threshold", "memory_threshold"):
            value = getattr(self, name)
            if not 0 < value <= 100:
                raise ConfigError(f"{name} must be between 0 and 100")
        if self.network_threshold_bytes <= 0:
            raise ConfigError("network_threshold_bytes must be positive")
        return self


def _env_value(environ: Mapping[str, str], name: str) -> Optional[str]:
    raw = environ.get(name)
    if raw is None:
        return None
    value = raw.strip()
    if value.lower() in UNSET_SENTINELS:
        return None
    return value


def _convert(name: str, raw: str, target: type):
    try:
        if target is bool:
            lowered = raw.lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            raise ValueError(raw)
        if target is int:
            return int(raw)
        if target is float:
            return float(raw)
    except ValueError:
        raise ConfigError(f"Invalid value for {ENV_VARS[name]}: {raw!r}") from None
    return raw


_FIELD_TYPES = {
    "server_url": str,
    "client_id": str,
    "interval": float,
    "interface": str,
    "request_timeout": float,
    "cpu_threshold": float,
    "memory_threshold": float,
    "network_threshold_bytes": int,
    "rehydrate": bool,
}


def load_config(
    environ: Optional[Mapping[str, str]] = None, require_remote: bool = True
) -> AgentConfig:
    """
    Build an AgentConfig from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ``
        require_remote: Whether MONITOR_SERVER_URL and CLIENT_ID are required

    Raises:
        ConfigError: If a value is missing or invalid
    """
    environ = os.environ if environ is None else environ
    values = {}
    for f in fields(AgentConfig):
        raw = _env_value(environ, ENV_VARS[f.name])
        if raw is not None:
            values[f.name] = _convert(f.name, raw, _FIELD_TYPES[f.name])

    config = AgentConfig(**values)
    config.server_url = config.server_url.rstrip("/")
    return config.validate(require_remote=require_remote)
