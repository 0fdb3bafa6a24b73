"""
Detects, starts and installs the local Ollama server.

Installation runs external procedures whose completion is not directly
observable, so the controller keeps an ``installing`` status until a probe
finds the server running.
"""

import asyncio
import os
import secrets
import tempfile
from pathlib import Path
from typing import Mapping, Optional

import httpx
from pydantic import BaseModel

from provisioner.config import (
    DEVSPACES_DOCS_URL,
    DOWNLOAD_PAGE_URL,
    HOMEBREW_SETTLE_DELAY,
    INSTALLER_TEMP_DIR,
    SERVER_NAME,
    START_POLL_INTERVAL,
    START_TIMEOUT,
    WINDOWS_INSTALLER_URL,
)
from provisioner.errors import CommandError
from provisioner.progress import ProgressCallback, ProgressReporter
from provisioner.runtime.downloader import download_file
from provisioner.runtime.process_runner import CommandSpec, ProcessRunner
from provisioner.server import platforms
from provisioner.server.client import OllamaClient
from provisioner.server.platforms import Platform, detect_platform
from provisioner.server.status import ServerStatus
from provisioner.utils.cancellation import CancellationToken
from provisioner.utils.logging import logger


class InstallMode(BaseModel):
    """A way of installing the server offered to the user."""

    id: str
    label: str
    supports_refresh: bool = True


class ServerController:
    """Owns the ServerStatus of the local server."""

    def __init__(
        self,
        client: OllamaClient,
        runner: Optional[ProcessRunner] = None,
        platform: Optional[Platform] = None,
        environ: Optional[Mapping[str, str]] = None,
        installer_url: str = WINDOWS_INSTALLER_URL,
        installer_transport: Optional[httpx.AsyncBaseTransport] = None,
        settle_delay: float = HOMEBREW_SETTLE_DELAY,
    ):
        self.client = client
        self.runner = runner or ProcessRunner()
        self.environ = os.environ if environ is None else environ
        self.platform = platform or detect_platform(environ=self.environ)
        self.name = SERVER_NAME
        self.installer_url = installer_url
        self._installer_transport = installer_transport
        self._settle_delay = settle_delay
        self._status = ServerStatus.UNKNOWN

    @property
    def status(self) -> ServerStatus:
        """Last detected status, without probing."""
        return self._status

    # ─────────────────────────────────────────────────────────
    # DETECTION
    # ─────────────────────────────────────────────────────────

    async def detect_status(self) -> ServerStatus:
        if await self.is_server_started():
            self._status = ServerStatus.STARTED
        else:
            installed = self.is_server_installed()
            # An install in progress is only ended by the server coming up
            if self._status != ServerStatus.INSTALLING:
                self._status = ServerStatus.STOPPED if installed else ServerStatus.MISSING
        return self._status

    async def is_server_started(self) -> bool:
        try:
            await self.client.get_tags()
            return True
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"{self.name} server is not reachable: {e}")
            return False

    def is_server_installed(self) -> bool:
        if self.runner.which("ollama"):
            return True
        return any(
            path.exists()
            for path in platforms.install_locations(self.platform, self.environ)
        )

    async def list_install_modes(self) -> list[InstallMode]:
        """Install strategies for this machine, most preferred first."""
        modes: list[InstallMode] = []
        if self.platform == Platform.DEVSPACES:
            # sudo is unavailable, so neither the script nor a package manager works
            modes.append(
                InstallMode(
                    id="devspaces",
                    label="See Red Hat Dev Spaces instructions",
                    supports_refresh=False,
                )
            )
        elif self.platform == Platform.LINUX:
            modes.append(InstallMode(id="script", label="Install with script"))

        if self._is_homebrew_available():
            modes.append(InstallMode(id="homebrew", label="Install with Homebrew"))

        if self.platform == Platform.WINDOWS:
            modes.append(InstallMode(id="windows", label="Install automatically"))

        modes.append(InstallMode(id="manual", label="Install manually"))
        return modes

    def _is_homebrew_available(self) -> bool:
        if self.platform == Platform.WINDOWS:
            return False
        return self.runner.which("brew") is not None

    # ─────────────────────────────────────────────────────────
    # START
    # ─────────────────────────────────────────────────────────

    async def start_server(self) -> bool:
        command = platforms.start_command(self.platform, self.environ)
        if command is None:
            logger.warning(f"No start command for platform {self.platform.value}")
            return False
        try:
            await self.runner.launch(command)
        except CommandError as e:
            logger.error(f"Failed to start {self.name}: {e.message} ({e.detail})")
            return False
        return True

    async def wait_until_started(
        self,
        timeout: float = START_TIMEOUT,
        interval: float = START_POLL_INTERVAL,
    ) -> ServerStatus:
        """
        Start the server if needed and poll until it answers.

        Polls ``round(timeout / interval)`` times at most, returning as soon as
        the server reports ``started``.
        """
        status = await self.detect_status()
        if status == ServerStatus.STARTED:
            return status

        logger.info(f"Starting {self.name} server")
        await self.start_server()
        for attempt in range(round(timeout / interval)):
            status = await self.detect_status()
            if status == ServerStatus.STARTED:
                break
            logger.debug(f"Waiting for {self.name} server to start ({attempt})")
            await asyncio.sleep(interval)
        return status

    # ─────────────────────────────────────────────────────────
    # INSTALL
    # ─────────────────────────────────────────────────────────

    async def install_server(
        self,
        mode: str,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        """
        Install the server using one of ``list_install_modes()``.

        Returns True once the install procedure ran (or, for manual installs,
        once the user was sent to the download page).

        Raises:
            CommandError: an install command failed
        """
        logger.info(f"Installing {self.name} with mode '{mode}'")

        if mode == "devspaces":
            self.runner.open_external(DEVSPACES_DOCS_URL)
            return False

        if mode == "homebrew":
            self._status = ServerStatus.INSTALLING
            await self._run_install_step(platforms.HOMEBREW_INSTALL)
            await asyncio.sleep(self._settle_delay)
            await self._run_install_step(platforms.OLLAMA_LIST)
            return True

        if mode == "script":
            if not self.runner.which("curl"):
                raise CommandError(
                    "curl is required but not installed",
                    "Install curl and try again",
                )
            self._status = ServerStatus.INSTALLING
            await self._run_install_step(platforms.INSTALL_SCRIPT)
            await self.start_server()
            return True

        if mode == "windows":
            self._status = ServerStatus.INSTALLING
            installer_path = await self.download_installer(
                cancel_token, progress_callback
            )
            if installer_path is None:
                # Nothing was installed; let the next poll reclassify
                self._status = ServerStatus.UNKNOWN
                return False
            await self._run_install_step(
                platforms.windows_installer_command(installer_path)
            )
            return True

        if mode != "manual":
            logger.warning(f"Unknown install mode '{mode}', falling back to manual")
        self.runner.open_external(DOWNLOAD_PAGE_URL)
        return True

    async def _run_install_step(self, spec: CommandSpec) -> None:
        try:
            await self.runner.run(spec)
        except CommandError:
            # Failed installs are reclassified by the next detection poll
            self._status = ServerStatus.UNKNOWN
            raise

    async def download_installer(
        self,
        cancel_token: Optional[CancellationToken] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Optional[Path]:
        """Download the Windows installer to a temp path. None if cancelled or failed."""
        suffix = secrets.token_hex(4)
        dest = Path(tempfile.gettempdir()) / INSTALLER_TEMP_DIR / f"OllamaSetup-{suffix}.exe"
        try:
            return await download_file(
                self.installer_url,
                dest,
                ProgressReporter(progress_callback),
                cancel_token=cancel_token,
                label=f"Downloading {self.name}",
                transport=self._installer_transport,
            )
        except InterruptedError:
            logger.info(f"{self.name} installer download cancelled")
            return None
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"{self.name} installer download failed: {e}")
            return None
