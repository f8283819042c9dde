import os
from dataclasses import dataclass, replace
from typing import Optional

from kubernetes_mcp.errors import ConfigurationError


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_optional_str(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ServerConfig:
    """Runtime configuration for the MCP server.

    Env vars:
    - KUBERNETES_MCP_KUBECONFIG: explicit kubeconfig path; wins over KUBECONFIG
    - KUBERNETES_MCP_TRANSPORT: stdio|http|sse
    - KUBERNETES_MCP_HOST / KUBERNETES_MCP_PORT: bind address for http and sse
    - KUBERNETES_MCP_LOG_LEVEL: logging level name

    When no kubeconfig is given the usual lookup applies: KUBECONFIG, then
    ~/.kube/config, then the pod's service account.
    """

    kubeconfig: Optional[str]
    transport: str
    host: str
    port: int
    log_level: str

    DEFAULT_TRANSPORT = "stdio"
    DEFAULT_HOST = "127.0.0.1"
    DEFAULT_PORT = 8000
    DEFAULT_LOG_LEVEL = "INFO"
    TRANSPORTS = ("stdio", "http", "sse")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            kubeconfig=_env_optional_str("KUBERNETES_MCP_KUBECONFIG"),
            transport=_env_str("KUBERNETES_MCP_TRANSPORT", cls.DEFAULT_TRANSPORT).lower(),
            host=_env_str("KUBERNETES_MCP_HOST", cls.DEFAULT_HOST),
            port=_env_int("KUBERNETES_MCP_PORT", cls.DEFAULT_PORT),
            log_level=_env_str("KUBERNETES_MCP_LOG_LEVEL", cls.DEFAULT_LOG_LEVEL).upper(),
        )

    def __post_init__(self):
        if self.transport not in self.TRANSPORTS:
            raise ConfigurationError(
                f"unsupported transport '{self.transport}' (expected one of: {', '.join(self.TRANSPORTS)})"
            )

    def with_overrides(self, **overrides) -> "ServerConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)
