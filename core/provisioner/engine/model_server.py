"""
The provisioning engine for one local Ollama server.

Owns the state shared by its components: the HTTP client (with its tag
cache), the metadata cache and the set of models currently being pulled.
"""

from typing import Optional

from provisioner.config import START_POLL_INTERVAL, START_TIMEOUT
from provisioner.engine.model_status import ModelStatusResolver
from provisioner.engine.pull import PullOrchestrator
from provisioner.models.catalog import ModelSize
from provisioner.models.metadata import MetadataResolver, ModelInfo
from provisioner.progress import ProgressCallback
from provisioner.server.client import OllamaClient
from provisioner.server.controller import InstallMode, ServerController
from provisioner.server.status import ModelStatus, ServerStatus
from provisioner.utils.cancellation import CancellationToken


class ModelServer:
    """Facade over server control, model status and model pulls."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        controller: Optional[ServerController] = None,
        metadata: Optional[MetadataResolver] = None,
    ):
        self.installing_models: set[str] = set()
        self.client = client or OllamaClient()
        self.controller = controller or ServerController(self.client)
        self.metadata = metadata or MetadataResolver()
        self.status_resolver = ModelStatusResolver(
            self.controller, self.client, self.metadata, self.installing_models
        )
        self.puller = PullOrchestrator(
            self.client, self.metadata, self.installing_models
        )

    def get_name(self) -> str:
        return self.controller.name

    # Server

    async def get_status(self) -> ServerStatus:
        return await self.controller.detect_status()

    async def supported_install_modes(self) -> list[InstallMode]:
        return await self.controller.list_install_modes()

    async def start_server(self) -> bool:
        return await self.controller.start_server()

    async def install_server(
        self,
        mode: str,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        return await self.controller.install_server(mode, cancel_token, progress_callback)

    async def wait_until_started(
        self,
        timeout: float = START_TIMEOUT,
        interval: float = START_POLL_INTERVAL,
    ) -> ServerStatus:
        return await self.controller.wait_until_started(timeout, interval)

    # Models

    async def get_model_status(self, model_name: Optional[str]) -> ModelStatus:
        return await self.status_resolver.get_model_status(model_name)

    async def list_models(self) -> list[str]:
        return await self.status_resolver.list_models()

    async def get_model_info(self, model_name: str) -> Optional[ModelInfo]:
        return await self.metadata.get_model_info(model_name)

    async def pull_models(
        self,
        size: ModelSize | str,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        return await self.puller.pull_models(size, cancel_token, progress_callback)

    async def aclose(self) -> None:
        self.metadata.close()
        await self.client.aclose()
