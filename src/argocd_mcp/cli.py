"""Command line entry point: ``argocd-mcp``."""

from __future__ import annotations

import logging
import signal

import anyio
import click
from pydantic import ValidationError

from argocd_mcp.app import client_lifespan, create_server
from argocd_mcp.client import ArgoCDClient
from argocd_mcp.config import ArgoCDSettings, ServerSettings
from argocd_mcp.logging import configure_logging
from argocd_mcp.tools import ToolDispatcher

logger = logging.getLogger(__name__)


def _load_client() -> ArgoCDClient | None:
    """Build the Argo CD client from the environment.

    Invalid configuration is logged, not fatal: the server still starts and
    every tool call reports that the client is not initialized.
    """
    try:
        settings = ArgoCDSettings()  # type: ignore[call-arg]
    except ValidationError as err:
        logger.error("Failed to initialize ArgoCD client: %s", err)
        return None
    logger.info("Using Argo CD at %s", settings.server_url)
    return ArgoCDClient.from_settings(settings)


async def _serve_stdio(dispatcher: ToolDispatcher, client: ArgoCDClient | None) -> None:
    from argocd_mcp.transport.stdio import run_stdio

    async with anyio.create_task_group() as tg:

        async def watch_signals() -> None:
            with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
                async for signum in signals:
                    logger.info("Received %s, shutting down", signal.Signals(signum).name)
                    tg.cancel_scope.cancel()
                    return

        tg.start_soon(watch_signals)
        await run_stdio(create_server(dispatcher), lifespan=client_lifespan(client))
        tg.cancel_scope.cancel()


@click.command()
@click.option(
    "--transport",
    type=click.Choice(["sse", "stdio"]),
    default=None,
    help="Transport type (default: MCP_SERVER_TRANSPORT or sse)",
)
@click.option("--host", default=None, help="Host to bind for SSE (default: HOST or 0.0.0.0)")
@click.option("--port", type=int, default=None, help="Port to listen on for SSE (default: PORT or 58082)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Log level (default: LOG_LEVEL or INFO)",
)
def main(transport: str | None, host: str | None, port: int | None, log_level: str | None) -> int:
    overrides = {
        "transport": transport,
        "host": host,
        "port": port,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = ServerSettings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging(settings.log_level)

    client = _load_client()
    dispatcher = ToolDispatcher(client, timeout=settings.tool_timeout)

    if settings.transport == "sse":
        import uvicorn

        from argocd_mcp.transport.starlette import create_sse_app

        app = create_sse_app(create_server(dispatcher), lifespan=client_lifespan(client))
        logger.info("ArgoCD MCP server listening on http://%s:%d/sse", settings.host, settings.port)
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    else:
        logger.info("ArgoCD MCP server running on stdio")
        anyio.run(_serve_stdio, dispatcher, client)

    return 0
