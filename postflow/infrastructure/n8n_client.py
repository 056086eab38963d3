# postflow/infrastructure/n8n_client.py
from typing import Optional

import httpx
import structlog
from fastapi import status

from ..services.errors import UpstreamError

logger = structlog.get_logger(__name__)


class N8nAuthError(UpstreamError):
    status_code = status.HTTP_401_UNAUTHORIZED


class N8nImportError(UpstreamError):
    def __init__(self, detail: str, status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(detail)
        self.status_code = status_code


class N8nClient:
    """Minimal client for the n8n REST API (session login + workflow import)."""

    def __init__(
        self,
        base_url: str,
        email: str,
        password: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.password = password
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    async def _login(self, client: httpx.AsyncClient) -> str:
        """
        Returns a Cookie header value. n8n versions differ on whether the login
        body uses "username" or "email", so both are tried in that order.
        """
        if not self.email or not self.password:
            raise N8nAuthError("n8n credentials are not configured (N8N_EMAIL / N8N_PASSWORD)")

        for field in ("username", "email"):
            try:
                resp = await client.post("/rest/login", json={field: self.email, "password": self.password})
            except httpx.HTTPError as e:
                logger.warning("n8n_login_error", method=field, error=str(e))
                continue

            if not resp.is_success:
                logger.info("n8n_login_rejected", method=field, status_code=resp.status_code)
                continue

            set_cookie = resp.headers.get("set-cookie")
            if set_cookie:
                logger.info("n8n_login_ok", method=field)
                return set_cookie.split(";")[0]
            try:
                token = (resp.json() or {}).get("token")
            except ValueError:
                token = None
            if token:
                logger.info("n8n_login_ok", method=field, via="token")
                return f"n8n-auth={token}"

        raise N8nAuthError(
            f"n8n authentication failed for {self.email}; create this account in n8n at {self.base_url} "
            "or update N8N_EMAIL / N8N_PASSWORD"
        )

    async def test_connection(self) -> None:
        async with self._client() as client:
            await self._login(client)

    async def import_workflow(self, template_id: str, workflow: dict) -> dict:
        async with self._client() as client:
            cookie = await self._login(client)
            body = {
                "name": workflow.get("name") or template_id,
                "nodes": workflow.get("nodes") or [],
                "connections": workflow.get("connections") or {},
                "settings": workflow.get("settings") or {},
                "staticData": workflow.get("staticData"),
                "tags": workflow.get("tags") or [],
            }
            try:
                resp = await client.post("/rest/workflows", json=body, headers={"Cookie": cookie})
            except httpx.HTTPError as e:
                raise N8nImportError(f"Failed to import workflow to n8n: {e}") from e

        if not resp.is_success:
            logger.warning("n8n_import_rejected", template_id=template_id, status_code=resp.status_code)
            raise N8nImportError(f"Failed to import workflow to n8n: {resp.text}", status_code=resp.status_code)

        created = resp.json()
        # newer n8n versions wrap the payload in {"data": ...}
        if isinstance(created, dict) and isinstance(created.get("data"), dict):
            created = created["data"]
        workflow_id = created.get("id")
        logger.info("n8n_workflow_imported", template_id=template_id, workflow_id=workflow_id)
        return {
            "id": workflow_id,
            "name": created.get("name"),
            "n8nUrl": f"{self.base_url}/workflow/{workflow_id}",
        }
