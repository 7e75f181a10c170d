"""Environment-driven settings for the server and its Argo CD connection."""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from argocd_mcp.logging import LogLevel

TransportName = Literal["sse", "stdio"]


class ArgoCDSettings(BaseSettings):
    """Connection settings for the Argo CD API.

    All settings can be configured via environment variables with the prefix
    ARGOCD_. For example, ARGOCD_SERVER_URL=https://argocd.example.com.
    """

    model_config = SettingsConfigDict(env_prefix="ARGOCD_", env_file=".env", extra="ignore")

    server_url: str
    token: SecretStr | None = None
    username: str | None = None
    password: SecretStr | None = None

    verify_tls: bool = False
    """Argo CD installs commonly use self-signed certificates."""

    request_timeout: float = 30.0

    @model_validator(mode="after")
    def _require_credentials(self) -> ArgoCDSettings:
        if self.token is None and not (self.username and self.password):
            raise ValueError("Either ARGOCD_TOKEN or both ARGOCD_USERNAME and ARGOCD_PASSWORD must be set")
        return self


class ServerSettings(BaseSettings):
    """Process-level settings: which transport to serve and where."""

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True, extra="ignore")

    transport: TransportName = Field("sse", alias="MCP_SERVER_TRANSPORT")
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(58082, alias="PORT")
    log_level: LogLevel = Field("INFO", alias="LOG_LEVEL")
    tool_timeout: float = Field(30.0, alias="MCP_TOOL_TIMEOUT")
