"""Argo CD API client.

Read-only access to the two resources the server exposes: applications and
projects. The client authenticates at most once. A configured token is used as
is; otherwise the username and password are exchanged for a session token on
first use.

Example:
    ```python
    async with ArgoCDClient("https://argocd.example.com", token="...") as client:
        for app in await client.list_applications():
            print(app.name, app.health_status)
    ```
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import anyio
import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from argocd_mcp._httpx_utils import HttpClientFactory, create_http_client
from argocd_mcp.config import ArgoCDSettings
from argocd_mcp.exceptions import ArgoCDError, AuthenticationError
from argocd_mcp.logging import redact_sensitive_data

logger = logging.getLogger(__name__)

SESSION_PATH = "/api/v1/session"
APPLICATIONS_PATH = "/api/v1/applications"
PROJECTS_PATH = "/api/v1/projects"


class ArgoCDModel(BaseModel):
    """Base for Argo CD API objects. Unknown fields are kept, not rejected."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ObjectMeta(ArgoCDModel):
    name: str
    namespace: str | None = None


class HealthStatus(ArgoCDModel):
    status: str | None = None


class ApplicationSpec(ArgoCDModel):
    project: str | None = None


class ApplicationStatus(ArgoCDModel):
    health: HealthStatus | None = None


class Application(ArgoCDModel):
    """An Argo CD Application as returned by ``GET /api/v1/applications``."""

    metadata: ObjectMeta
    spec: ApplicationSpec = Field(default_factory=ApplicationSpec)
    status: ApplicationStatus = Field(default_factory=ApplicationStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def project(self) -> str | None:
        return self.spec.project

    @property
    def health_status(self) -> str | None:
        if self.status.health is None:
            return None
        return self.status.health.status


class ProjectSpec(ArgoCDModel):
    description: str | None = None
    cluster_resource_whitelist: list[dict[str, Any]] | None = Field(default=None, alias="clusterResourceWhitelist")
    namespace_resource_whitelist: list[dict[str, Any]] | None = Field(default=None, alias="namespaceResourceWhitelist")
    destinations: list[dict[str, Any]] | None = None


class Project(ArgoCDModel):
    """An Argo CD AppProject as returned by ``GET /api/v1/projects``."""

    metadata: ObjectMeta
    spec: ProjectSpec = Field(default_factory=ProjectSpec)

    @property
    def name(self) -> str:
        return self.metadata.name


class ApplicationList(ArgoCDModel):
    items: list[Application] | None = None


class ProjectList(ArgoCDModel):
    items: list[Project] | None = None


class SessionResponse(ArgoCDModel):
    token: str


_ListT = TypeVar("_ListT", ApplicationList, ProjectList)


class ArgoCDClient:
    """Authenticated accessor for the Argo CD REST API.

    The client owns the httpx.AsyncClient it creates; use it as an async
    context manager or call ``aclose()``.
    """

    def __init__(
        self,
        server_url: str,
        *,
        token: str | None = None,
        username: str | None = None,
        password: str | None = None,
        verify_tls: bool = False,
        timeout: float = 30.0,
        httpx_client_factory: HttpClientFactory = create_http_client,
    ) -> None:
        if token is None and not (username and password):
            raise ValueError("Either a token or both username and password are required")
        self.server_url = server_url
        self._token = token
        self._username = username
        self._password = password
        self._auth_lock = anyio.Lock()
        self._http = httpx_client_factory(
            base_url=server_url,
            verify=verify_tls,
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_settings(
        cls,
        settings: ArgoCDSettings,
        *,
        httpx_client_factory: HttpClientFactory = create_http_client,
    ) -> ArgoCDClient:
        return cls(
            settings.server_url,
            token=settings.token.get_secret_value() if settings.token else None,
            username=settings.username,
            password=settings.password.get_secret_value() if settings.password else None,
            verify_tls=settings.verify_tls,
            timeout=settings.request_timeout,
            httpx_client_factory=httpx_client_factory,
        )

    async def __aenter__(self) -> ArgoCDClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    async def authenticate(self) -> None:
        """Obtain a session token unless one is already held.

        Concurrent callers wait for a single exchange instead of racing.

        Raises:
            AuthenticationError: the exchange failed. It is not retried.
        """
        if self._token is not None:
            return
        async with self._auth_lock:
            if self._token is not None:
                return

            payload = {"username": self._username, "password": self._password}
            logger.debug("POST %s %s", SESSION_PATH, redact_sensitive_data(payload))
            try:
                response = await self._http.post(SESSION_PATH, json=payload)
                response.raise_for_status()
                session = SessionResponse.model_validate_json(response.content)
            except (httpx.HTTPError, ValidationError) as err:
                logger.error("Failed to authenticate with Argo CD: %s", err)
                raise AuthenticationError("Authentication with ArgoCD failed") from err

            self._token = session.token
            logger.info("Authenticated with Argo CD at %s", self.server_url)

    async def list_applications(self) -> list[Application]:
        """List every application visible to the configured credentials."""
        result = await self._get(APPLICATIONS_PATH, ApplicationList, "Failed to list ArgoCD applications")
        return result.items or []

    async def list_projects(self) -> list[Project]:
        """List every project visible to the configured credentials."""
        result = await self._get(PROJECTS_PATH, ProjectList, "Failed to list ArgoCD projects")
        return result.items or []

    async def _get(self, path: str, model: type[_ListT], failure: str) -> _ListT:
        await self.authenticate()
        headers = {"Authorization": f"Bearer {self._token}"}
        logger.debug("GET %s %s", path, redact_sensitive_data(headers))
        try:
            response = await self._http.get(path, headers=headers)
            response.raise_for_status()
            result = model.model_validate_json(response.content)
        except (httpx.HTTPError, ValidationError) as err:
            logger.error("%s: %s", failure, err)
            raise ArgoCDError(failure) from err
        logger.debug("GET %s returned %d item(s)", path, len(result.items or []))
        return result
