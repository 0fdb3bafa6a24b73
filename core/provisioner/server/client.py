"""HTTP client for the local Ollama server API."""

import json
from typing import AsyncIterator, Optional

import httpx
from pydantic import BaseModel

from provisioner.config import PROBE_TIMEOUT, SERVER_URL, TAGS_CACHE_TTL
from provisioner.utils.singleflight import ShortLivedCache


class InstalledModel(BaseModel):
    """A model as listed by the server's /api/tags endpoint."""

    name: str
    digest: str = ""
    size: int = 0


class OllamaClient:
    """
    Thin async wrapper around the server endpoints the engine uses.

    Tag listings go through a short-lived cache so bursts of status queries
    cost a single request.
    """

    def __init__(
        self,
        base_url: str = SERVER_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        tags_ttl: float = TAGS_CACHE_TTL,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            transport=transport,
            timeout=httpx.Timeout(PROBE_TIMEOUT),
        )
        self._tags_cache = ShortLivedCache(ttl=tags_ttl)

    async def get_tags(self) -> list[InstalledModel]:
        """
        Installed models, cached for a few milliseconds.

        Raises:
            httpx.HTTPError: server unreachable or answered an error
            ValueError: response is not JSON
        """
        return await self._tags_cache.get("tags", self._fetch_tags)

    async def _fetch_tags(self) -> list[InstalledModel]:
        response = await self._client.get("/api/tags")
        response.raise_for_status()
        body = response.json()
        raw_models = body.get("models") if isinstance(body, dict) else None
        return [
            InstalledModel(
                name=m.get("name", ""),
                digest=m.get("digest") or "",
                size=m.get("size") or 0,
            )
            for m in (raw_models or [])
            if isinstance(m, dict)
        ]

    async def list_models(self) -> list[str]:
        """Model ids from the OpenAI-compatible listing; empty on unexpected shapes."""
        response = await self._client.get("/v1/models")
        response.raise_for_status()
        body = response.json()
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, list):
            return []
        return [m["id"] for m in data if isinstance(m, dict) and "id" in m]

    async def pull(self, model_name: str) -> AsyncIterator[dict]:
        """
        Stream the progress frames of a pull.

        Raises:
            httpx.HTTPError: server unreachable or answered an error
        """
        async with self._client.stream(
            "POST",
            "/api/pull",
            json={"name": model_name},
            timeout=httpx.Timeout(10.0, read=None),
        ) as response:
            response.raise_for_status()
            async for line in response.aiter_lines():
                line = line.strip()
                if not line:
                    continue
                yield json.loads(line)

    async def aclose(self) -> None:
        self._tags_cache.clear()
        await self._client.aclose()
