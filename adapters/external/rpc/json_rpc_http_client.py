from __future__ import annotations

from typing import Any, List, Optional

import httpx

from core.domain.errors import UpstreamError


class JsonRpcHttpClient:
    """
    Minimal EVM JSON-RPC 2.0 client.

    Uses POST JSON:
      { "jsonrpc": "2.0", "id": n, "method": "...", "params": [...] }

    Transport failures, HTTP errors and RPC error objects are all raised as UpstreamError.
    """

    def __init__(self, *, endpoint: str, timeout_s: float = 20.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._endpoint = str(endpoint).strip()
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s, connect=5.0))
        self._next_id = 0

    @property
    def endpoint(self) -> str:
        return self._endpoint

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self._next_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params or [],
        }
        try:
            r = await self._client.post(self._endpoint, json=payload)
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamError(f"RPC {method} failed: {exc}") from exc

        if not isinstance(data, dict):
            raise UpstreamError(f"RPC {method} returned an unexpected payload")

        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise UpstreamError(f"RPC {method} error: {message}", details={"rpc_error": error})

        return data.get("result")
