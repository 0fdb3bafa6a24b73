"""
Downloads a preset of models through the server's streaming pull endpoint.

Models are pulled one after another and their byte counts are aggregated into
a single progress operation sized from the remote manifests.
"""

from typing import Optional

import httpx

from provisioner.errors import ManifestError, PullError
from provisioner.models.catalog import ModelSize, models_for_size
from provisioner.models.metadata import MetadataResolver, ModelInfo
from provisioner.progress import ProgressCallback, ProgressReporter
from provisioner.server.client import OllamaClient
from provisioner.utils.cancellation import CancellationToken, run_cancellable
from provisioner.utils.logging import logger


class PullOrchestrator:
    """Sequential multi-model pull with aggregated progress and cancellation."""

    PROGRESS_KEY = "Downloading models"

    def __init__(
        self,
        client: OllamaClient,
        metadata: MetadataResolver,
        installing_models: set[str],
    ):
        self.client = client
        self.metadata = metadata
        self.installing_models = installing_models

    async def pull_models(
        self,
        size: ModelSize | str,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        """
        Pull every model of a size preset.

        Returns:
            True when all models were pulled, False when cancelled

        Raises:
            ManifestError: a model's manifest could not be fetched
            PullError: the server failed a pull
        """
        model_infos: list[ModelInfo] = []
        for model in models_for_size(size):
            if cancel_token and cancel_token.is_cancellation_requested:
                return False
            try:
                info = await self.metadata.fetch(model, cancel_token)
            except InterruptedError:
                return False
            if info is None:
                raise ManifestError(
                    f"Failed to fetch {model} manifest",
                    f"The model library did not return a manifest for {model}",
                )
            model_infos.append(info)

        expected_total = sum(info.size for info in model_infos)
        logger.info(f"Expected total: {expected_total} bytes")

        reporter = ProgressReporter(progress_callback)
        reporter.begin(self.PROGRESS_KEY, expected_total)
        for info in model_infos:
            if cancel_token and cancel_token.is_cancellation_requested:
                return False
            try:
                await run_cancellable(self._pull_model(info.id, reporter), cancel_token)
            except InterruptedError:
                logger.info(f"Pull of {info.id} cancelled")
                return False
        reporter.done()
        return True

    async def _pull_model(self, model_name: str, reporter: ProgressReporter) -> None:
        logger.info(f"Pulling {model_name}")
        self.installing_models.add(model_name)
        try:
            current = 0
            async for frame in self.client.pull(model_name):
                if frame.get("error"):
                    raise PullError(f"Failed to pull {model_name}", str(frame["error"]))
                if not frame.get("total"):
                    continue
                completed = frame.get("completed") or 0
                # The server restarts the count for every layer
                if completed < current:
                    current = 0
                reporter.update(completed - current, f"Pulling {model_name}")
                current = completed
        except httpx.HTTPError as e:
            raise PullError(f"Failed to pull {model_name}", str(e)) from e
        finally:
            self.installing_models.discard(model_name)
