from argocd_mcp.transport.sse import SessionState, SseSession, SseSessionManager
from argocd_mcp.transport.starlette import create_sse_app
from argocd_mcp.transport.stdio import run_stdio

__all__ = ["SessionState", "SseSession", "SseSessionManager", "create_sse_app", "run_stdio"]
