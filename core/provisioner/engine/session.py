"""
One provisioning session, as driven by a setup front end.

The front end sends commands (init, fetch status, install server, pull
models, cancel, ...) and receives messages ``{"command": ..., "data": ...}``
through the publisher callback. Errors never cross this boundary as
exceptions: they are posted as ``{"error": message, "detail": detail}``.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from provisioner.config import START_POLL_INTERVAL, START_TIMEOUT, STATUS_DEBOUNCE
from provisioner.engine.model_server import ModelServer
from provisioner.engine.wizard import ProvisioningStateMachine, WizardState
from provisioner.errors import ServerStartTimeout, describe_error
from provisioner.models.catalog import DOWNLOADABLE_MODELS, ModelSize
from provisioner.progress import ProgressData
from provisioner.server.status import ModelStatus, ServerStatus
from provisioner.settings import Settings
from provisioner.utils.cancellation import CancellationTokenSource
from provisioner.utils.logging import logger
from provisioner.utils.system_info import get_system_info

Publisher = Callable[[dict], None]


class ProvisioningSession:
    """Maps front-end commands onto the provisioning engine."""

    def __init__(
        self,
        server: ModelServer,
        publisher: Publisher,
        settings: Optional[Settings] = None,
        wizard_state: Optional[WizardState] = None,
        configured_models: Optional[Callable[[], Awaitable[dict]]] = None,
        show_tutorial: Optional[Callable[[], Awaitable[None]]] = None,
        debounce: float = STATUS_DEBOUNCE,
        start_timeout: float = START_TIMEOUT,
        start_interval: float = START_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            server: Engine for the local model server
            publisher: Receives every message for the front end
            settings: Where the chosen model size is saved after a successful pull
            wizard_state: State handed back from a previous session
            configured_models: Optional provider of the models the editor is configured with
            show_tutorial: Called after the tutorial step is acknowledged
            debounce: fetch_status calls closer together than this are ignored
            start_timeout: How long to wait for the server before pulling
            start_interval: Delay between server polls while waiting
        """
        self.server = server
        self.machine = ProvisioningStateMachine(wizard_state)
        self.settings = settings
        self._publisher = publisher
        self._configured_models = configured_models
        self._show_tutorial = show_tutorial
        self.debounce = debounce
        self.start_timeout = start_timeout
        self.start_interval = start_interval
        self._clock = clock
        self._last_status_request: Optional[float] = None
        self._model_install_canceller: Optional[CancellationTokenSource] = None
        self._server_install_canceller: Optional[CancellationTokenSource] = None

    @property
    def wizard_state(self) -> WizardState:
        return self.machine.state

    def _post(self, command: str, data: dict) -> None:
        self._publisher({"command": command, "data": data})

    # ─────────────────────────────────────────────────────────
    # STATUS
    # ─────────────────────────────────────────────────────────

    async def init(self) -> dict:
        modes = await self.server.supported_install_modes()
        data = {
            "installModes": [m.model_dump() for m in modes],
            "systemInfo": get_system_info(),
            "modelSizes": await self.get_model_sizes(),
            "wizardState": self.machine.to_dict(),
        }
        self._post("init", data)
        return data

    async def get_model_sizes(self) -> dict[str, int]:
        """Download size of each catalog model, from the library or the built-in defaults."""
        infos = await asyncio.gather(
            *(self.server.get_model_info(name) for name in DOWNLOADABLE_MODELS)
        )
        return {name: info.size for name, info in zip(DOWNLOADABLE_MODELS, infos) if info}

    async def fetch_status(self) -> Optional[dict]:
        """Publish a status snapshot unless one was requested moments ago."""
        now = self._clock()
        if self._last_status_request is not None:
            elapsed = now - self._last_status_request
            if elapsed < self.debounce:
                logger.debug(f"Debouncing fetch_status: {elapsed * 1000:.0f}ms")
                return None
        self._last_status_request = now
        return await self.publish_status()

    async def publish_status(self) -> dict:
        server_status = await self.server.get_status()
        model_statuses = await self.get_model_statuses()
        self.machine.on_server_status(server_status)

        data = {
            "serverStatus": server_status.value,
            "modelStatuses": {name: s.value for name, s in model_statuses.items()},
            "wizardState": self.machine.to_dict(),
        }
        if self._configured_models:
            data["configuredModels"] = await self._configured_models()
        self._post("status", data)
        return data

    async def get_model_statuses(self) -> dict[str, ModelStatus]:
        statuses = await asyncio.gather(
            *(self.server.get_model_status(name) for name in DOWNLOADABLE_MODELS)
        )
        return dict(zip(DOWNLOADABLE_MODELS, statuses))

    async def on_config_change(self) -> dict:
        return await self.publish_status()

    # ─────────────────────────────────────────────────────────
    # SERVER
    # ─────────────────────────────────────────────────────────

    async def install_server(self, mode: str) -> bool:
        if self._server_install_canceller:
            self._server_install_canceller.dispose()
        self._server_install_canceller = CancellationTokenSource()

        def report_progress(progress: ProgressData) -> None:
            self._post("serverInstallationProgress", {"progress": progress.model_dump()})

        try:
            return await self.server.install_server(
                mode, self._server_install_canceller.token, report_progress
            )
        except Exception as e:
            logger.error(f"Error during {self.server.get_name()} installation: {e}")
            self._post("serverInstallationProgress", describe_error(e))
            return False

    async def start_server(self) -> bool:
        return await self.server.start_server()

    # ─────────────────────────────────────────────────────────
    # MODELS
    # ─────────────────────────────────────────────────────────

    def select_model_size(self, size: ModelSize | str) -> None:
        self.machine.select_model_size(size)

    async def pull_models(self, size: ModelSize | str) -> bool:
        """Make sure the server runs, then pull the models of ``size``."""
        server_status = await self.server.wait_until_started(
            self.start_timeout, self.start_interval
        )
        if server_status != ServerStatus.STARTED:
            error = ServerStartTimeout(
                f"{self.server.get_name()} server failed to start in "
                f"{self.start_timeout:g} seconds",
                f"Last status: {server_status.value}",
            )
            logger.error(error.message)
            self._post("modelInstallationProgress", error.to_dict())
            return False

        logger.info("Installing models")

        def report_progress(progress: ProgressData) -> None:
            self._post("modelInstallationProgress", {"progress": progress.model_dump()})

        if self._model_install_canceller:
            self._model_install_canceller.dispose()
        self._model_install_canceller = CancellationTokenSource()

        try:
            self.machine.select_model_size(size)
            result = await self.server.pull_models(
                size, self._model_install_canceller.token, report_progress
            )
            self.machine.on_models_installed(result)
            await self.publish_status()
            if result and self.settings:
                self.settings.save_model_size(size)
            return result
        except Exception as e:
            logger.error(f"Error during model installation: {e}")
            self._post("modelInstallationProgress", describe_error(e))
            return False

    def cancel_installation(self) -> None:
        logger.info("Cancelling installation")
        for canceller in (self._model_install_canceller, self._server_install_canceller):
            if canceller:
                canceller.cancel()

    # ─────────────────────────────────────────────────────────
    # TUTORIAL & LIFECYCLE
    # ─────────────────────────────────────────────────────────

    async def acknowledge_tutorial(self) -> None:
        self.machine.on_tutorial_shown()
        await self.publish_status()
        if self._show_tutorial:
            await self._show_tutorial()

    def dispose(self) -> WizardState:
        """Release cancellation handles and return the state for a later session."""
        for canceller in (self._model_install_canceller, self._server_install_canceller):
            if canceller:
                canceller.dispose()
        self._model_install_canceller = None
        self._server_install_canceller = None
        if self.settings:
            self.settings.save_wizard_state(self.machine.state.to_dict())
        return self.machine.state
