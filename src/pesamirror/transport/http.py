"""
HTTP client for the OAuth2 token endpoint and the FCM v1 API.

Returns raw responses; status interpretation is left to the caller so each
call site can raise its own error type.
"""

from typing import Any, Optional

import httpx

USER_AGENT = "pesamirror/0.1.0"


class HttpClient:
    def __init__(self, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def post_form(self, url: str, data: dict[str, str]) -> httpx.Response:
        return await self._client.post(
            url,
            data=data,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    async def post_json(self, url: str, body: dict[str, Any], token: Optional[str] = None) -> httpx.Response:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self._client.post(url, json=body, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()
