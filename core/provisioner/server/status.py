"""Status values reported for the server and for individual models."""

from enum import Enum


class ServerStatus(str, Enum):
    """State of the local model server."""

    UNKNOWN = "unknown"
    MISSING = "missing"
    STOPPED = "stopped"
    INSTALLING = "installing"
    STARTED = "started"


class ModelStatus(str, Enum):
    """Installation state of a model on the server."""

    UNKNOWN = "unknown"
    MISSING = "missing"
    INSTALLING = "installing"
    INSTALLED = "installed"
    STALE = "stale"
