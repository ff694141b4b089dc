"""opencode host over HTTP.

Talks to the REST API of a running ``opencode serve`` instance with
aiohttp. Every request carries the project ``directory`` query
parameter. Non-2xx responses raise ``aiohttp.ClientResponseError``,
which the supervisor retry loop treats like any other call failure.
"""
from __future__ import annotations

from typing import Any

import aiohttp

from ..config import ModelRef
from .base import HostClient

SERVICE_NAME = "littlebrother"


class OpenCodeHostClient(HostClient):
    """HostClient backed by the opencode server API."""

    def __init__(
        self,
        base_url: str,
        directory: str,
        *,
        session: aiohttp.ClientSession | None = None,
        agent: str = "general",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._directory = directory
        self._agent = agent
        self._session = session
        self._owns_session = session is None
        self._closed = False

    def _http(self) -> aiohttp.ClientSession:
        if self._closed:
            raise RuntimeError("OpenCodeHostClient is closed")
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(raise_for_status=True)
            self._owns_session = True
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        async with self._http().request(
            method,
            url,
            params={"directory": self._directory},
            json=body,
        ) as resp:
            resp.raise_for_status()
            if resp.content_type != "application/json":
                return None
            return await resp.json()

    async def create_session(self, parent_id: str, title: str) -> str | None:
        data = await self._request(
            "POST", "/session", body={"parentID": parent_id, "title": title},
        )
        if isinstance(data, dict):
            return data.get("id")
        return None

    async def prompt(
        self,
        session_id: str,
        *,
        model: ModelRef,
        system: str,
        tools: dict[str, bool],
        text: str,
    ) -> list[dict[str, Any]] | None:
        data = await self._request(
            "POST",
            f"/session/{session_id}/message",
            body={
                "agent": self._agent,
                "model": {
                    "providerID": model.provider_id,
                    "modelID": model.model_id,
                },
                "system": system,
                "tools": tools,
                "parts": [{"type": "text", "text": text}],
            },
        )
        if not isinstance(data, dict):
            return None
        parts = data.get("parts")
        return parts if isinstance(parts, list) else []

    async def inject_message(self, session_id: str, text: str) -> None:
        await self._request(
            "POST",
            f"/session/{session_id}/message",
            body={
                "noReply": True,
                "parts": [{"type": "text", "text": text}],
            },
        )

    async def abort_session(self, session_id: str) -> None:
        await self._request("POST", f"/session/{session_id}/abort")

    async def list_tool_ids(self) -> list[str]:
        data = await self._request("GET", "/experimental/tool/ids")
        if not isinstance(data, list):
            return []
        return [str(item) for item in data]

    async def get_small_model(self) -> str | None:
        data = await self._request("GET", "/config")
        if isinstance(data, dict) and isinstance(data.get("small_model"), str):
            return data["small_model"]
        return None

    async def show_toast(self, message: str, variant: str = "warning") -> None:
        await self._request(
            "POST", "/tui/show-toast",
            body={"message": message, "variant": variant},
        )

    async def log(
        self,
        level: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        body: dict[str, Any] = {
            "service": SERVICE_NAME,
            "level": level,
            "message": message,
        }
        if extra:
            body["extra"] = extra
        await self._request("POST", "/log", body=body)

    async def close(self) -> None:
        self._closed = True
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
