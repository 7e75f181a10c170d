"""The Argo CD tools: their catalogue and the dispatcher that runs them."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import anyio

from argocd_mcp.client import Application, ArgoCDClient, Project
from argocd_mcp.exceptions import McpError
from argocd_mcp.types.content import TextContent
from argocd_mcp.types.json_rpc import METHOD_NOT_FOUND, ErrorData
from argocd_mcp.types.tools import CallToolResult, JsonSchema, Tool, ToolAnnotations

logger = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT = 30.0

CLIENT_NOT_INITIALIZED = "ArgoCD client is not initialized. Check environment variables."
OPERATION_TIMED_OUT = "Operation timed out"
NO_APPLICATIONS = "No ArgoCD applications found."
NO_PROJECTS = "No ArgoCD projects found."

_READ_ONLY = ToolAnnotations(read_only_hint=True, destructive_hint=False, idempotent_hint=True)

TOOLS: tuple[Tool, ...] = (
    Tool(
        name="list_applications",
        description="List all ArgoCD applications",
        input_schema=JsonSchema(),
        annotations=_READ_ONLY,
    ),
    Tool(
        name="list_projects",
        description="List all ArgoCD projects",
        input_schema=JsonSchema(),
        annotations=_READ_ONLY,
    ),
)


def get_tool(name: str) -> Tool | None:
    """Look a tool up by name."""
    for tool in TOOLS:
        if tool.name == name:
            return tool
    return None


def _to_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"))


def summarize_applications(applications: Sequence[Application]) -> str:
    """Render applications as ``[{name, project, status}]`` JSON."""
    if not applications:
        return NO_APPLICATIONS
    return _to_json(
        [
            {
                "name": app.name,
                "project": app.project or "",
                "status": app.health_status or "Unknown",
            }
            for app in applications
        ]
    )


def summarize_projects(projects: Sequence[Project]) -> str:
    if not projects:
        return NO_PROJECTS
    return _to_json(
        [
            {
                "name": project.name,
                "description": project.spec.description or "",
                "clusterResourceWhitelist": project.spec.cluster_resource_whitelist or [],
                "namespaceResourceWhitelist": project.spec.namespace_resource_whitelist or [],
                "destinations": project.spec.destinations or [],
            }
            for project in projects
        ]
    )


def _error_result(message: str) -> CallToolResult:
    return CallToolResult(content=[TextContent(text=f"Error: {message}")], is_error=True)


async def _list_applications(client: ArgoCDClient) -> str:
    return summarize_applications(await client.list_applications())


async def _list_projects(client: ArgoCDClient) -> str:
    return summarize_projects(await client.list_projects())


_OPERATIONS: dict[str, Callable[[ArgoCDClient], Awaitable[str]]] = {
    "list_applications": _list_applications,
    "list_projects": _list_projects,
}


class ToolDispatcher:
    """Runs tool invocations against an Argo CD client.

    Every invocation of a known tool yields exactly one CallToolResult. Failures
    (no client, timeout, Argo CD errors) become error results with
    ``isError`` set; only an unknown tool name is a protocol error.

    The client may be None when its configuration was invalid at startup; the
    server keeps running and each call reports that the client is missing.
    """

    def __init__(self, client: ArgoCDClient | None, *, timeout: float = DEFAULT_TOOL_TIMEOUT) -> None:
        self.client = client
        self.timeout = timeout

    def list_tools(self) -> list[Tool]:
        return list(TOOLS)

    async def dispatch(self, name: str, arguments: dict[str, Any] | None = None) -> CallToolResult:
        """Run the named tool.

        Raises:
            McpError: METHOD_NOT_FOUND when no tool has this name.
        """
        operation = _OPERATIONS.get(name)
        if operation is None:
            raise McpError(ErrorData(code=METHOD_NOT_FOUND, message=f"Unknown tool: {name}"))

        logger.info("Calling tool %s", name)
        if self.client is None:
            logger.warning("Tool %s called without a configured Argo CD client", name)
            return _error_result(CLIENT_NOT_INITIALIZED)

        text: str | None = None
        try:
            with anyio.move_on_after(self.timeout):
                text = await operation(self.client)
        except Exception as err:
            logger.exception("Tool %s failed", name)
            return _error_result(str(err))

        if text is None:
            logger.warning("Tool %s timed out after %.1fs", name, self.timeout)
            return _error_result(OPERATION_TIMED_OUT)
        return CallToolResult(content=[TextContent(text=text)])
