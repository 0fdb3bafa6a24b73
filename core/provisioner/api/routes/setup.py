"""Setup wizard API routes."""

from fastapi import APIRouter, BackgroundTasks, Depends

from provisioner.api.schemas import (
    InstallServerRequest,
    MessagesResponse,
    ModelSizeRequest,
    StatusResponse,
    SuccessResponse,
)
from provisioner.api.session_store import drain_messages, get_session
from provisioner.engine.session import ProvisioningSession
from provisioner.models.catalog import ModelSize
from provisioner.utils.logging import logger

router = APIRouter(prefix="/setup", tags=["setup"])

# Only one model pull runs at a time
pull_in_progress = False


# ─────────────────────────────────────────────────────────
# STATUS
# ─────────────────────────────────────────────────────────


@router.post("/init")
async def init(session: ProvisioningSession = Depends(get_session)):
    """Install modes, system info and wizard state."""
    return await session.init()


@router.post("/status", response_model=StatusResponse)
async def fetch_status(session: ProvisioningSession = Depends(get_session)):
    """Resolve server and model status."""
    data = await session.fetch_status()
    return StatusResponse(debounced=data is None, status=data)


@router.get("/messages", response_model=MessagesResponse)
async def messages():
    """Progress and status messages posted since the last call."""
    return MessagesResponse(messages=drain_messages())


@router.post("/config")
async def config_changed(session: ProvisioningSession = Depends(get_session)):
    """Re-publish status after the editor's model configuration changed."""
    return await session.on_config_change()


@router.get("/models")
async def list_models(session: ProvisioningSession = Depends(get_session)):
    """Models the server can serve."""
    return {"models": await session.server.list_models()}


# ─────────────────────────────────────────────────────────
# SERVER
# ─────────────────────────────────────────────────────────


@router.post("/server/install", response_model=SuccessResponse)
async def install_server(
    request: InstallServerRequest,
    session: ProvisioningSession = Depends(get_session),
):
    """Install the model server with the given mode."""
    success = await session.install_server(request.mode)
    return SuccessResponse(success=success)


@router.post("/server/start", response_model=SuccessResponse)
async def start_server(session: ProvisioningSession = Depends(get_session)):
    """Launch the installed model server."""
    success = await session.start_server()
    return SuccessResponse(success=success)


# ─────────────────────────────────────────────────────────
# MODELS
# ─────────────────────────────────────────────────────────


@router.post("/models/select", response_model=SuccessResponse)
async def select_models(
    request: ModelSizeRequest,
    session: ProvisioningSession = Depends(get_session),
):
    session.select_model_size(request.size)
    return SuccessResponse(success=True)


@router.post("/models/install")
async def install_models(
    request: ModelSizeRequest,
    background_tasks: BackgroundTasks,
    session: ProvisioningSession = Depends(get_session),
):
    """Start pulling models; progress is reported through /setup/messages."""
    global pull_in_progress
    if pull_in_progress:
        return {"status": "already_installing"}

    pull_in_progress = True
    background_tasks.add_task(_pull_task, session, request.size)
    return {"status": "started"}


async def _pull_task(session: ProvisioningSession, size: ModelSize):
    global pull_in_progress
    try:
        result = await session.pull_models(size)
        logger.info(f"Model installation finished: {result}")
    finally:
        pull_in_progress = False


@router.post("/models/cancel", response_model=SuccessResponse)
async def cancel_installation(session: ProvisioningSession = Depends(get_session)):
    session.cancel_installation()
    return SuccessResponse(success=True, message="Cancelling")


# ─────────────────────────────────────────────────────────
# TUTORIAL
# ─────────────────────────────────────────────────────────


@router.post("/tutorial", response_model=SuccessResponse)
async def acknowledge_tutorial(session: ProvisioningSession = Depends(get_session)):
    await session.acknowledge_tutorial()
    return SuccessResponse(success=True)
