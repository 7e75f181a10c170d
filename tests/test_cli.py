from typing import Any

import pytest
import uvicorn
from click.testing import CliRunner
from starlette.applications import Starlette

from argocd_mcp import cli


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> dict[str, Any]:
    """Capture what would be handed to uvicorn instead of serving."""
    calls: dict[str, Any] = {}

    def fake_run(app: Any, **kwargs: Any) -> None:
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    for name in ("ARGOCD_SERVER_URL", "ARGOCD_TOKEN", "ARGOCD_USERNAME", "ARGOCD_PASSWORD", "HOST", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("MCP_SERVER_TRANSPORT", raising=False)
    return calls


def test_sse_defaults(served: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARGOCD_SERVER_URL", "https://argocd.example.com")
    monkeypatch.setenv("ARGOCD_TOKEN", "t")

    result = CliRunner().invoke(cli.main, [])

    assert result.exit_code == 0, result.output
    assert isinstance(served["app"], Starlette)
    assert served["host"] == "0.0.0.0"
    assert served["port"] == 58082


def test_options_override_environment(served: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8000")

    result = CliRunner().invoke(cli.main, ["--host", "127.0.0.1", "--port", "9999", "--log-level", "debug"])

    assert result.exit_code == 0, result.output
    assert served["host"] == "127.0.0.1"
    assert served["port"] == 9999


def test_missing_configuration_still_serves(served: dict[str, Any], caplog: pytest.LogCaptureFixture) -> None:
    result = CliRunner().invoke(cli.main, [])

    assert result.exit_code == 0, result.output
    assert "app" in served
    assert "Failed to initialize ArgoCD client" in caplog.text


def test_invalid_transport_option(served: dict[str, Any]) -> None:
    result = CliRunner().invoke(cli.main, ["--transport", "websocket"])

    assert result.exit_code != 0
    assert served == {}
