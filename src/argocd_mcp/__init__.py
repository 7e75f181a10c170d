"""An MCP server exposing read-only Argo CD operations to AI agents.

Serve over SSE (default) or stdio:

```
ARGOCD_SERVER_URL=https://argocd.example.com ARGOCD_TOKEN=... argocd-mcp
argocd-mcp --transport stdio
```
"""

__version__ = "0.1.0"

from argocd_mcp.app import client_lifespan, create_server  # noqa: E402
from argocd_mcp.client import Application, ArgoCDClient, Project  # noqa: E402
from argocd_mcp.config import ArgoCDSettings, ServerSettings  # noqa: E402
from argocd_mcp.exceptions import ArgoCDError, AuthenticationError, McpError  # noqa: E402
from argocd_mcp.tools import TOOLS, ToolDispatcher  # noqa: E402

__all__ = [
    "TOOLS",
    "Application",
    "ArgoCDClient",
    "ArgoCDError",
    "ArgoCDSettings",
    "AuthenticationError",
    "McpError",
    "Project",
    "ServerSettings",
    "ToolDispatcher",
    "client_lifespan",
    "create_server",
]
