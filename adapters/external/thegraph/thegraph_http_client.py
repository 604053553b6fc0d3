from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from core.domain.errors import UpstreamError


class TheGraphHttpClient:
    """
    Minimal The Graph Gateway client.

    Uses POST JSON:
      { "query": "...", "variables": {...} }

    Authorization:
      Bearer {api_key} (omitted when no key is configured, e.g. self-hosted graph-node)

    GraphQL `errors` and transport failures are raised as UpstreamError.
    """

    def __init__(
        self,
        *,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout_s: float = 20.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = str(endpoint).strip()
        self._api_key = (api_key or "").strip()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=5.0))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def query(self, *, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {
            "query": query,
            "variables": variables or {},
        }
        try:
            r = await self._client.post(self._endpoint, headers=headers, json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamError(f"subgraph query failed: {exc}") from exc

        if data.get("errors"):
            raise UpstreamError("subgraph returned errors", details={"errors": data["errors"]})
        return data
