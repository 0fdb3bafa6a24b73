"""
Remote model metadata from the Ollama library.

The manifest of a model gives its download size (sum of layer sizes) and its
identity: the SHA-256 of the raw manifest, which is the digest the local
server reports for an installed model.
"""

import asyncio
import hashlib
from typing import Optional

import httpx
from pydantic import BaseModel

from provisioner.config import MANIFEST_MEDIA_TYPE, METADATA_TIMEOUT, REGISTRY_URL
from provisioner.models.catalog import standard_name
from provisioner.utils.cancellation import CancellationToken, run_cancellable
from provisioner.utils.logging import logger
from provisioner.utils.singleflight import SingleFlight


class ModelInfo(BaseModel):
    """Metadata of a model in the remote library."""

    id: str  # name as requested: "granite3.1-dense:8b"
    name: str  # canonical registry path: "library/granite3.1-dense:8b"
    size: int  # bytes
    digest: str


# Offline fallback used when the library cannot be reached.
# Digests are left empty so they never flag an installed model as stale.
DEFAULT_MODEL_INFO: dict[str, ModelInfo] = {
    "granite3.1-dense:8b": ModelInfo(
        id="granite3.1-dense:8b",
        name="library/granite3.1-dense:8b",
        size=4_997_000_000,
        digest="",
    ),
    "granite3.1-dense:2b": ModelInfo(
        id="granite3.1-dense:2b",
        name="library/granite3.1-dense:2b",
        size=1_545_000_000,
        digest="",
    ),
    "nomic-embed-text:latest": ModelInfo(
        id="nomic-embed-text:latest",
        name="library/nomic-embed-text:latest",
        size=274_302_450,
        digest="",
    ),
}


class RemoteModelLibrary:
    """Fetches model manifests from the registry."""

    def __init__(
        self,
        base_url: str = REGISTRY_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = METADATA_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._timeout = timeout

    @staticmethod
    def split_name(model_name: str) -> tuple[str, str, str]:
        """Split "ns/model:tag" into (namespace, model, tag)."""
        model, tag = standard_name(model_name).rsplit(":", 1)
        namespace = "library"
        if "/" in model:
            namespace, model = model.split("/", 1)
        return namespace, model, tag

    def manifest_url(self, model_name: str) -> str:
        namespace, model, tag = self.split_name(model_name)
        return f"{self.base_url}/v2/{namespace}/{model}/manifests/{tag}"

    async def fetch(self, model_name: str) -> ModelInfo:
        """
        Fetch the manifest for a model.

        Raises:
            httpx.HTTPError: the registry could not be reached or answered an error
            ValueError: the manifest is not in the expected shape
        """
        namespace, model, tag = self.split_name(model_name)
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=True,
        ) as client:
            response = await client.get(
                self.manifest_url(model_name),
                headers={"Accept": MANIFEST_MEDIA_TYPE},
            )
            response.raise_for_status()

        body = response.json()
        layers = body.get("layers") if isinstance(body, dict) else None
        if not isinstance(layers, list):
            raise ValueError(f"Manifest for {model_name} has no layers")

        size = sum(int(layer.get("size", 0)) for layer in layers)
        return ModelInfo(
            id=model_name,
            name=f"{namespace}/{model}:{tag}",
            size=size,
            digest=hashlib.sha256(response.content).hexdigest(),
        )


class MetadataResolver:
    """
    Per-process cache of remote model metadata.

    A name is fetched by at most one request at a time; the status path fires
    a single background fetch per name and never waits for it, while the pull
    path awaits the (shared) fetch.
    """

    def __init__(self, library: Optional[RemoteModelLibrary] = None):
        self.library = library or RemoteModelLibrary()
        self._results: dict[str, Optional[ModelInfo]] = {}
        self._requested: set[str] = set()
        self._flights = SingleFlight()

    def cached(self, model_name: str) -> Optional[ModelInfo]:
        """Result of the last completed fetch, if it succeeded."""
        return self._results.get(model_name)

    def ensure_background_fetch(self, model_name: str) -> None:
        """Start a background fetch, once per process lifetime per name."""
        if model_name in self._requested:
            return
        self._requested.add(model_name)
        self._flights.start(model_name, lambda: self._fetch(model_name))

    def refresh(self, model_name: str) -> asyncio.Task:
        """Re-fetch in the background; the previous result stays readable meanwhile."""
        self._requested.add(model_name)
        return self._flights.start(model_name, lambda: self._fetch(model_name))

    async def fetch(
        self,
        model_name: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[ModelInfo]:
        """
        Fetch metadata, joining any fetch already running for this name.

        Returns None when the manifest could not be retrieved.

        Raises:
            InterruptedError: cancelled before the fetch finished
        """
        self._requested.add(model_name)
        return await run_cancellable(
            self._flights.do(model_name, lambda: self._fetch(model_name)),
            cancel_token,
        )

    async def get_model_info(self, model_name: str) -> Optional[ModelInfo]:
        """Remote metadata, falling back to the built-in defaults."""
        info = await self.fetch(model_name)
        return info or DEFAULT_MODEL_INFO.get(model_name)

    async def _fetch(self, model_name: str) -> Optional[ModelInfo]:
        try:
            info = await self.library.fetch(model_name)
        except Exception as e:
            logger.warning(f"Failed to retrieve remote model info for {model_name}: {e}")
            return None
        self._results[model_name] = info
        return info

    def close(self) -> None:
        self._flights.cancel_all()
