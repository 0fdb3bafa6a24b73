"""Runtime module - external processes and file downloads."""

from provisioner.runtime.downloader import download_file
from provisioner.runtime.process_runner import CommandResult, CommandSpec, ProcessRunner

__all__ = [
    "download_file",
    "CommandResult",
    "CommandSpec",
    "ProcessRunner",
]
