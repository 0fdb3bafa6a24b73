"""
Per-platform commands for starting and installing the Ollama server.

Each entry of PLATFORMS produces structured CommandSpecs for the process
runner; nothing here builds shell strings from user-controlled values.
"""

import os
import platform as _platform
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping, Optional

from provisioner.config import INSTALL_SCRIPT_URL
from provisioner.runtime.process_runner import CommandSpec


class Platform(str, Enum):
    """Platforms with distinct install and start procedures."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    DEVSPACES = "devspaces"  # sandboxed Linux without sudo
    OTHER = "other"


def detect_platform(
    system: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Platform:
    system = (system or _platform.system()).lower()
    environ = os.environ if environ is None else environ

    if system.startswith("win"):
        return Platform.WINDOWS
    if system == "darwin":
        return Platform.MACOS
    if system == "linux":
        # sudo is not available in Dev Spaces workspaces
        if "DEVWORKSPACE_ID" in environ:
            return Platform.DEVSPACES
        return Platform.LINUX
    return Platform.OTHER


def _windows_install_dir(environ: Mapping[str, str]) -> Path:
    return Path(environ.get("LOCALAPPDATA", "")) / "Programs" / "Ollama"


@dataclass(frozen=True)
class PlatformCommands:
    """How to start the server and where to find an existing install."""

    start: Callable[[Mapping[str, str]], CommandSpec]
    install_locations: Callable[[Mapping[str, str]], list[Path]]


PLATFORMS: dict[Platform, PlatformCommands] = {
    Platform.WINDOWS: PlatformCommands(
        start=lambda env: CommandSpec(
            str(_windows_install_dir(env) / "ollama app.exe"), name="Start Ollama"
        ),
        install_locations=lambda env: [_windows_install_dir(env) / "ollama.exe"],
    ),
    Platform.MACOS: PlatformCommands(
        start=lambda env: CommandSpec("open", ("-a", "Ollama.app"), name="Start Ollama"),
        install_locations=lambda env: [Path("/Applications/Ollama.app")],
    ),
    Platform.LINUX: PlatformCommands(
        start=lambda env: CommandSpec("ollama", ("serve",), name="Start Ollama"),
        install_locations=lambda env: [],
    ),
    Platform.DEVSPACES: PlatformCommands(
        start=lambda env: CommandSpec("ollama", ("serve",), name="Start Ollama"),
        install_locations=lambda env: [],
    ),
}


def start_command(
    target: Platform, environ: Optional[Mapping[str, str]] = None
) -> Optional[CommandSpec]:
    """Start command for a platform, or None when the platform is unsupported."""
    entry = PLATFORMS.get(target)
    if entry is None:
        return None
    return entry.start(os.environ if environ is None else environ)


def install_locations(
    target: Platform, environ: Optional[Mapping[str, str]] = None
) -> list[Path]:
    entry = PLATFORMS.get(target)
    if entry is None:
        return []
    return entry.install_locations(os.environ if environ is None else environ)


# ─────────────────────────────────────────────────────────
# INSTALL PROCEDURES
# ─────────────────────────────────────────────────────────

HOMEBREW_INSTALL = CommandSpec(
    "brew", ("install", "--cask", "ollama"), name="Install Ollama with Homebrew"
)

# Running any client command starts the freshly installed server
OLLAMA_LIST = CommandSpec("ollama", ("list",), name="Ollama list")

INSTALL_SCRIPT = CommandSpec(
    "sh",
    ("-c", f"curl -fsSL {INSTALL_SCRIPT_URL} | sh"),
    name="Ollama install script",
)


def windows_installer_command(installer_path: Path) -> CommandSpec:
    return CommandSpec(str(installer_path), ("/SILENT",), name="Ollama installer")
