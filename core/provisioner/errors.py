"""
Errors raised by the provisioning engine.

Every error carries a short human-readable message and an optional detail
string. Only those two fields cross the presentation boundary.
"""

from typing import Optional


class ProvisioningError(Exception):
    """Base class for provisioning failures."""

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.message, "detail": self.detail}


class ManifestError(ProvisioningError):
    """A model manifest could not be fetched from the remote library."""


class PullError(ProvisioningError):
    """The server reported an error while pulling a model."""


class CommandError(ProvisioningError):
    """An external command exited unsuccessfully or could not be run."""

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        exit_code: Optional[int] = None,
    ):
        super().__init__(message, detail)
        self.exit_code = exit_code


class ServerStartTimeout(ProvisioningError):
    """The server did not become reachable within the startup timeout."""


def describe_error(error: BaseException) -> dict:
    """Reduce any exception to the ``{error, detail}`` shape shown to users."""
    if isinstance(error, ProvisioningError):
        return error.to_dict()
    return {"error": str(error) or type(error).__name__, "detail": type(error).__name__}
