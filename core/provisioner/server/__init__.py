"""Server module - local model server detection, start and installation."""

from provisioner.server.controller import InstallMode, ServerController
from provisioner.server.platforms import Platform, detect_platform
from provisioner.server.status import ModelStatus, ServerStatus

__all__ = [
    "InstallMode",
    "ServerController",
    "Platform",
    "detect_platform",
    "ModelStatus",
    "ServerStatus",
]
