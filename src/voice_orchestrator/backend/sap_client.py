"""Live client for the SAP Build Process Automation workflow API."""

import logging
from typing import Any

import httpx

from voice_orchestrator.backend.client import normalize_task, normalize_workflow
from voice_orchestrator.config import SapConfig
from voice_orchestrator.errors import BackendError
from voice_orchestrator.models import Task, TaskDecision, WorkflowInstance

logger = logging.getLogger(__name__)

TASKS_PATH = "/task-instances"
WORKFLOWS_PATH = "/workflow-instances"


class SapBackendClient:
    """Backend client calling SAP BTP over HTTPS.

    A fresh OAuth client-credentials token is fetched for every call.
    """

    def __init__(
        self, config: SapConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        """Initialize with SAP settings and an optional httpx transport."""
        self._config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._config.timeout, transport=self._transport)

    async def list_tasks(self) -> list[Task]:
        """List task instances."""
        response = await self._request("GET", TASKS_PATH)
        data = _json(response)
        records = data if isinstance(data, list) else (data or {}).get("value", [])
        return [normalize_task(record) for record in records if isinstance(record, dict)]

    async def complete_task(
        self,
        task_id: str,
        decision: TaskDecision = TaskDecision.APPROVE,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Complete a task instance with a decision."""
        payload: dict[str, Any] = {"status": "COMPLETED", "decision": decision.value}
        if context:
            payload["context"] = context
        await self._request("PATCH", f"{TASKS_PATH}/{task_id}", json=payload)

    async def start_workflow(self, name: str) -> WorkflowInstance:
        """Start a workflow instance for a project."""
        payload = {
            "definitionId": self._config.workflow_definition_id,
            "context": {"projectName": name},
        }
        response = await self._request("POST", WORKFLOWS_PATH, json=payload)
        data = _json(response)
        if not isinstance(data, dict):
            raise BackendError("Unexpected workflow response", payload=data)
        return normalize_workflow(data)

    async def _fetch_token(self, client: httpx.AsyncClient) -> str:
        auth_url = _require(self._config.auth_url, "auth_url")
        client_id = _require(self._config.client_id, "client_id")
        client_secret = _require(self._config.client_secret, "client_secret")

        try:
            response = await client.post(
                auth_url,
                params={"grant_type": "client_credentials"},
                auth=(client_id, client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Failed to fetch auth token: {e}") from e

        if response.is_error:
            raise BackendError(
                "Failed to fetch auth token",
                status_code=response.status_code,
                payload=response.text,
            )
        data = _json(response)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise BackendError("Auth response did not contain an access token")
        return token

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, raising BackendError on any failure."""
        url = _build_url(_require(self._config.api_url, "api_url"), path)
        async with self._client() as client:
            token = await self._fetch_token(client)
            headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
            logger.debug(f"[SapBackend] {method} {url}")
            try:
                response = await client.request(method, url, headers=headers, **kwargs)
            except httpx.HTTPError as e:
                raise BackendError(f"SAP API request failed: {e}") from e

        if response.is_error:
            raise BackendError(
                f"SAP API error ({response.status_code}): {response.text}",
                status_code=response.status_code,
                payload=response.text,
            )
        return response


def _require(value: str, name: str) -> str:
    if not value:
        raise BackendError(f"Missing SAP configuration value: {name}")
    return value


def _build_url(base_url: str, path: str) -> str:
    normalized_path = path if path.startswith("/") else f"/{path}"
    return f"{base_url.rstrip('/')}{normalized_path}"


def _json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise BackendError("Invalid JSON from SAP API", payload=response.text) from e
