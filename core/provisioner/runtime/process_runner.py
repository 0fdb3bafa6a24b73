"""
Runs external commands for the server controller.

Commands are structured (executable + args) and executed without a shell,
so callers never deal with quoting.
"""

import asyncio
import os
import shlex
import shutil
import webbrowser
from dataclasses import dataclass, field
from typing import Optional

from provisioner.errors import CommandError
from provisioner.utils.logging import logger


@dataclass(frozen=True)
class CommandSpec:
    """An executable and its arguments."""

    executable: str
    args: tuple[str, ...] = ()
    name: Optional[str] = None  # shown in logs

    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv())


@dataclass
class CommandResult:
    """Outcome of a finished command."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    spec: Optional[CommandSpec] = field(default=None, repr=False)

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """Executes commands and opens URLs on behalf of the engine."""

    # Truncate very long output kept in results/errors
    MAX_OUTPUT = 10000

    def __init__(self):
        self.processes: dict[str, asyncio.subprocess.Process] = {}

    def which(self, executable: str) -> Optional[str]:
        return shutil.which(executable)

    async def run(
        self, spec: CommandSpec, timeout: Optional[float] = None
    ) -> CommandResult:
        """
        Run a command to completion.

        Raises:
            CommandError: the command could not start, timed out or exited non-zero
        """
        logger.info(f"Executing command: {spec}")
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CommandError(f"Could not run {spec.executable}", str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            raise CommandError(
                f"{spec.name or spec.executable} timed out after {timeout} seconds"
            )

        result = CommandResult(
            exit_code=process.returncode,
            stdout=self._truncate(stdout.decode("utf-8", errors="replace")),
            stderr=self._truncate(stderr.decode("utf-8", errors="replace")),
            spec=spec,
        )
        if not result.success:
            raise CommandError(
                f"{spec.name or spec.executable} failed with exit code {result.exit_code}",
                result.stderr.strip() or result.stdout.strip() or None,
                exit_code=result.exit_code,
            )
        return result

    async def launch(self, spec: CommandSpec) -> asyncio.subprocess.Process:
        """
        Start a long-running command without waiting for it.

        The child runs in its own session and outlives the provisioner. It is
        not reaped here; its handle is kept in ``processes`` under the
        executable name so callers can poll ``returncode``.

        Raises:
            CommandError: the command could not start
        """
        logger.info(f"Launching: {spec}")
        kwargs = {}
        if os.name == "posix":
            kwargs["start_new_session"] = True
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.argv(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                **kwargs,
            )
        except OSError as e:
            raise CommandError(f"Could not launch {spec.executable}", str(e)) from e
        self.processes[spec.executable] = process
        return process

    def open_external(self, url: str) -> bool:
        """Open a URL in the user's browser."""
        logger.info(f"Opening {url}")
        return webbrowser.open(url)

    def _truncate(self, text: str) -> str:
        if len(text) > self.MAX_OUTPUT:
            return text[: self.MAX_OUTPUT] + "\n... (output truncated)"
        return text
