"""Tests for the tool catalogue, result shaping and ToolDispatcher envelopes."""

import json

import anyio
import pytest

from argocd_mcp.client import Application, Project
from argocd_mcp.exceptions import ArgoCDError, AuthenticationError, McpError
from argocd_mcp.tools import TOOLS, ToolDispatcher, get_tool, summarize_applications, summarize_projects
from argocd_mcp.types.json_rpc import METHOD_NOT_FOUND

pytestmark = pytest.mark.anyio


class FakeClient:
    def __init__(
        self,
        applications: list[Application] | None = None,
        projects: list[Project] | None = None,
        error: Exception | None = None,
        delay: float = 0,
    ) -> None:
        self.applications = applications or []
        self.projects = projects or []
        self.error = error
        self.delay = delay
        self.completed = False

    async def _respond(self, value):
        await anyio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed = True
        return value

    async def list_applications(self) -> list[Application]:
        return await self._respond(self.applications)

    async def list_projects(self) -> list[Project]:
        return await self._respond(self.projects)


def _app(name: str, project: str, health: str | None = None) -> Application:
    status = {"health": {"status": health}} if health else {}
    return Application.model_validate({"metadata": {"name": name}, "spec": {"project": project}, "status": status})


def _project(name: str, **spec) -> Project:
    return Project.model_validate({"metadata": {"name": name}, "spec": spec})


def test_catalogue() -> None:
    assert [tool.name for tool in TOOLS] == ["list_applications", "list_projects"]
    tool = get_tool("list_applications")
    assert tool is not None
    assert tool.model_dump(by_alias=True, exclude_none=True)["inputSchema"] == {
        "type": "object",
        "properties": {},
        "required": [],
    }
    assert get_tool("delete_application") is None


def test_summarize_applications() -> None:
    assert summarize_applications([]) == "No ArgoCD applications found."
    summary = summarize_applications([_app("app1", "p1", "Healthy")])
    assert summary == '[{"name":"app1","project":"p1","status":"Healthy"}]'
    assert json.loads(summarize_applications([_app("app2", "p2")]))[0]["status"] == "Unknown"


def test_summarize_application_without_project() -> None:
    app = Application.model_validate({"metadata": {"name": "orphan"}, "spec": {}})

    assert json.loads(summarize_applications([app])) == [{"name": "orphan", "project": "", "status": "Unknown"}]


def test_summarize_projects() -> None:
    assert summarize_projects([]) == "No ArgoCD projects found."
    [summary] = json.loads(summarize_projects([_project("default", destinations=[{"server": "*"}])]))
    assert summary == {
        "name": "default",
        "description": "",
        "clusterResourceWhitelist": [],
        "namespaceResourceWhitelist": [],
        "destinations": [{"server": "*"}],
    }


async def test_dispatch_success() -> None:
    dispatcher = ToolDispatcher(FakeClient(applications=[_app("app1", "p1", "Healthy")]))  # type: ignore[arg-type]
    result = await dispatcher.dispatch("list_applications", {})

    assert result.is_error is False
    assert [c.text for c in result.content] == ['[{"name":"app1","project":"p1","status":"Healthy"}]']


async def test_dispatch_empty_listing() -> None:
    dispatcher = ToolDispatcher(FakeClient())  # type: ignore[arg-type]
    result = await dispatcher.dispatch("list_projects")

    assert result.is_error is False
    assert result.content[0].text == "No ArgoCD projects found."


async def test_unknown_tool_is_a_protocol_error() -> None:
    dispatcher = ToolDispatcher(FakeClient())  # type: ignore[arg-type]
    with pytest.raises(McpError) as exc_info:
        await dispatcher.dispatch("delete_everything")
    assert exc_info.value.error.code == METHOD_NOT_FOUND
    assert exc_info.value.error.message == "Unknown tool: delete_everything"


async def test_missing_client() -> None:
    result = await ToolDispatcher(None).dispatch("list_applications")

    assert result.is_error is True
    assert result.content[0].text == "Error: ArgoCD client is not initialized. Check environment variables."


@pytest.mark.parametrize(
    ("error", "text"),
    [
        (AuthenticationError("Authentication with ArgoCD failed"), "Error: Authentication with ArgoCD failed"),
        (ArgoCDError("Failed to list ArgoCD projects"), "Error: Failed to list ArgoCD projects"),
        (RuntimeError("unexpected"), "Error: unexpected"),
    ],
)
async def test_client_errors_become_error_results(error: Exception, text: str) -> None:
    result = await ToolDispatcher(FakeClient(error=error)).dispatch("list_projects")  # type: ignore[arg-type]

    assert result.is_error is True
    assert [c.text for c in result.content] == [text]


async def test_timeout_cancels_the_call() -> None:
    client = FakeClient(applications=[_app("app1", "p1")], delay=10)
    dispatcher = ToolDispatcher(client, timeout=0.05)  # type: ignore[arg-type]

    with anyio.fail_after(5):
        result = await dispatcher.dispatch("list_applications")

    assert result.is_error is True
    assert result.content[0].text == "Error: Operation timed out"
    assert client.completed is False


async def test_result_wire_format() -> None:
    result = await ToolDispatcher(None).dispatch("list_projects")
    data = result.model_dump(by_alias=True, exclude_none=True)
    assert data["isError"] is True
    assert data["content"][0]["type"] == "text"
