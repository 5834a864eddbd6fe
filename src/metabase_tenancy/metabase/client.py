"""Async HTTP client for the Metabase REST API.

Only the calls the provisioning workflow depends on are wrapped. Every call
sends the static ``x-api-key`` header; any non-2xx response or transport
failure is raised as :class:`MetabaseError` with the upstream body attached.
Nothing here retries.
"""

import logging
from typing import Any, Optional

import httpx

from metabase_tenancy.common.exceptions import MetabaseError

logger = logging.getLogger(__name__)


class MetabaseClient:
    """Typed wrapper over the Metabase group, permission, collection and dashboard APIs."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"x-api-key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Metabase %s %s failed: %s", method, path, e)
            raise MetabaseError(f"Metabase request failed: {e}") from e

        if resp.is_error:
            try:
                payload = resp.json()
            except ValueError:
                payload = resp.text
            logger.error(
                "Metabase %s %s returned %s: %s",
                method, path, resp.status_code, payload,
            )
            raise MetabaseError(
                _error_message(payload, resp.status_code),
                status_code=resp.status_code,
                payload=payload,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # ── Groups ──

    async def list_groups(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/permissions/group")

    async def create_group(self, name: str) -> dict[str, Any]:
        return await self._request("POST", "/api/permissions/group", json={"name": name})

    async def delete_group(self, group_id: int) -> None:
        await self._request("DELETE", f"/api/permissions/group/{group_id}")

    # ── Data permission graph ──

    async def get_permissions_graph(self) -> dict[str, Any]:
        return await self._request("GET", "/api/permissions/graph")

    async def put_permissions_graph(self, graph: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", "/api/permissions/graph", json=graph)

    # ── Sandboxing (GTAP) rules ──

    async def list_sandboxes(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/api/mt/gtap")

    async def create_sandbox(
        self,
        group_id: int,
        table_id: int,
        card_id: Optional[int] = None,
        attribute_remappings: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        payload = {
            "group_id": group_id,
            "table_id": table_id,
            "card_id": card_id,
            "attribute_remappings": attribute_remappings or {},
        }
        return await self._request("POST", "/api/mt/gtap", json=payload)

    async def delete_sandbox(self, sandbox_id: int) -> None:
        await self._request("DELETE", f"/api/mt/gtap/{sandbox_id}")

    # ── Collections ──

    async def get_collection_graph(self) -> dict[str, Any]:
        return await self._request("GET", "/api/collection/graph")

    async def put_collection_graph(self, graph: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", "/api/collection/graph", json=graph)

    async def create_collection(
        self,
        name: str,
        description: str,
        parent_id: Optional[int] = None,
        color: str = "#509EE3",
    ) -> dict[str, Any]:
        payload = {
            "name": name,
            "description": description,
            "parent_id": parent_id,
            "color": color,
        }
        return await self._request("POST", "/api/collection", json=payload)

    async def delete_collection(self, collection_id: int) -> None:
        await self._request("DELETE", f"/api/collection/{collection_id}")

    # ── Dashboards ──

    async def copy_dashboard(
        self,
        template_id: int,
        name: str,
        description: str,
        collection_id: int,
        deep_copy: bool = True,
    ) -> dict[str, Any]:
        payload = {
            "name": name,
            "description": description,
            "is_deep_copy": deep_copy,
            "collection_id": collection_id,
        }
        return await self._request(
            "POST", f"/api/dashboard/{template_id}/copy", json=payload
        )


def _error_message(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        for key in ("message", "error", "errors"):
            if payload.get(key):
                return f"Metabase error {status_code}: {payload[key]}"
    if isinstance(payload, str) and payload:
        return f"Metabase error {status_code}: {payload}"
    return f"Metabase error {status_code}"
