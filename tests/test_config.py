import pytest
from pydantic import ValidationError

from argocd_mcp.config import ArgoCDSettings, ServerSettings

ENV_VARS = (
    "ARGOCD_SERVER_URL",
    "ARGOCD_TOKEN",
    "ARGOCD_USERNAME",
    "ARGOCD_PASSWORD",
    "ARGOCD_VERIFY_TLS",
    "MCP_SERVER_TRANSPORT",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "MCP_TOOL_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_argocd_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARGOCD_SERVER_URL", "https://argocd.example.com")
    monkeypatch.setenv("ARGOCD_TOKEN", "secret-token")

    settings = ArgoCDSettings(_env_file=None)  # type: ignore[call-arg]

    assert settings.server_url == "https://argocd.example.com"
    assert settings.token is not None
    assert settings.token.get_secret_value() == "secret-token"
    assert "secret-token" not in repr(settings)
    assert settings.verify_tls is False
    assert settings.request_timeout == 30


def test_username_and_password_are_enough(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARGOCD_SERVER_URL", "https://argocd.example.com")
    monkeypatch.setenv("ARGOCD_USERNAME", "admin")
    monkeypatch.setenv("ARGOCD_PASSWORD", "pw")

    settings = ArgoCDSettings(_env_file=None)  # type: ignore[call-arg]

    assert settings.token is None
    assert settings.username == "admin"


@pytest.mark.parametrize(
    "env",
    [
        {"ARGOCD_TOKEN": "t"},
        {"ARGOCD_SERVER_URL": "https://argocd.example.com"},
        {"ARGOCD_SERVER_URL": "https://argocd.example.com", "ARGOCD_USERNAME": "admin"},
    ],
)
def test_argocd_settings_validation(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        ArgoCDSettings(_env_file=None)  # type: ignore[call-arg]


def test_server_settings_defaults() -> None:
    settings = ServerSettings(_env_file=None)  # type: ignore[call-arg]

    assert settings.transport == "sse"
    assert settings.host == "0.0.0.0"
    assert settings.port == 58082
    assert settings.log_level == "INFO"
    assert settings.tool_timeout == 30


def test_server_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_SERVER_TRANSPORT", "stdio")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("MCP_TOOL_TIMEOUT", "2.5")

    settings = ServerSettings(_env_file=None)  # type: ignore[call-arg]

    assert settings.transport == "stdio"
    assert settings.port == 9000
    assert settings.tool_timeout == 2.5


def test_invalid_transport(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MCP_SERVER_TRANSPORT", "websocket")

    with pytest.raises(ValidationError):
        ServerSettings(_env_file=None)  # type: ignore[call-arg]
