"""Resolves the installation status of catalog models."""

from typing import Optional

import httpx

from provisioner.models.catalog import standard_name
from provisioner.models.metadata import MetadataResolver
from provisioner.server.client import OllamaClient
from provisioner.server.controller import ServerController
from provisioner.server.status import ModelStatus, ServerStatus
from provisioner.utils.logging import logger


def is_stale(installed_digest: str, remote_digest: str) -> bool:
    """
    An installed model is current when its digest starts with the remote one.

    Only the remote digest is used as a prefix; a longer remote digest never
    matches a shorter installed one.
    """
    return not installed_digest.startswith(remote_digest)


class ModelStatusResolver:
    """Combines server state, in-flight pulls and remote metadata into a ModelStatus."""

    def __init__(
        self,
        controller: ServerController,
        client: OllamaClient,
        metadata: MetadataResolver,
        installing_models: set[str],
    ):
        self.controller = controller
        self.client = client
        self.metadata = metadata
        self.installing_models = installing_models

    async def get_model_status(self, model_name: Optional[str]) -> ModelStatus:
        if not model_name or self.controller.status != ServerStatus.STARTED:
            return ModelStatus.UNKNOWN

        if model_name in self.installing_models:
            return ModelStatus.INSTALLING

        try:
            models = await self.client.get_tags()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error getting {model_name} status: {e}")
            return ModelStatus.UNKNOWN

        name = standard_name(model_name)
        installed = next((m for m in models if m.name == name), None)
        if installed is None:
            return ModelStatus.MISSING

        # Look up the latest remote version once, without blocking the caller
        self.metadata.ensure_background_fetch(name)
        remote = self.metadata.cached(name)
        if remote and is_stale(installed.digest, remote.digest):
            return ModelStatus.STALE
        return ModelStatus.INSTALLED

    async def list_models(self) -> list[str]:
        try:
            return await self.client.list_models()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to list models: {e}")
            return []
