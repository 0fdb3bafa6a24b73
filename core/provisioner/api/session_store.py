"""Shared provisioning session for API routes."""

from collections import deque
from typing import Optional

from provisioner.engine.model_server import ModelServer
from provisioner.engine.session import ProvisioningSession
from provisioner.engine.wizard import WizardState
from provisioner.settings import Settings

# Messages posted by the session, drained by GET /setup/messages
messages: deque[dict] = deque(maxlen=1000)

session: Optional[ProvisioningSession] = None


async def get_session() -> ProvisioningSession:
    """Get or create the session, resuming any saved wizard state."""
    global session
    if session is None:
        settings = Settings()
        wizard_state = (
            WizardState.from_dict(settings.wizard_state) if settings.wizard_state else None
        )
        session = ProvisioningSession(
            ModelServer(),
            messages.append,
            settings=settings,
            wizard_state=wizard_state,
        )
    return session


def drain_messages() -> list[dict]:
    drained = list(messages)
    messages.clear()
    return drained


async def shutdown() -> None:
    global session
    if session is not None:
        session.dispose()
        await session.server.aclose()
        session = None
