"""Local AI Provisioner - FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from provisioner import __version__
from provisioner.api import session_store
from provisioner.api.routes import setup
from provisioner.api.schemas import HealthResponse
from provisioner.config import API_PREFIX, HOST, PORT
from provisioner.errors import ProvisioningError
from provisioner.utils.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(f"Local AI Provisioner v{__version__} starting...")
    logger.info(f"Server running at http://{HOST}:{PORT}")
    yield
    await session_store.shutdown()
    logger.info("Local AI Provisioner stopped")


app = FastAPI(
    title="Local AI Provisioner",
    description="Sets up a local model server and the models it serves",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for the local setup UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(setup.router, prefix=API_PREFIX)


@app.exception_handler(ProvisioningError)
async def provisioning_error_handler(request: Request, exc: ProvisioningError):
    return JSONResponse(status_code=502, content=exc.to_dict())


@app.get(f"{API_PREFIX}/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=HOST, port=PORT)
