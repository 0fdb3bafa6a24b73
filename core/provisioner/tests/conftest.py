"""
Shared fakes for provisioning tests.
HTTP goes through httpx.MockTransport; processes through a recording runner.
"""

import asyncio
import json
from typing import Optional

import httpx
import pytest

from provisioner.engine.model_server import ModelServer
from provisioner.errors import CommandError
from provisioner.models.metadata import MetadataResolver, ModelInfo, RemoteModelLibrary
from provisioner.runtime.process_runner import CommandResult, CommandSpec, ProcessRunner
from provisioner.server.client import OllamaClient
from provisioner.server.controller import ServerController
from provisioner.server.platforms import Platform


class FakeRunner(ProcessRunner):
    """Records commands instead of running them."""

    def __init__(
        self,
        available: tuple[str, ...] = ("curl",),
        fail_on: Optional[str] = None,
        launch_error: bool = False,
    ):
        super().__init__()
        self.available = set(available)
        self.fail_on = fail_on
        self.launch_error = launch_error
        self.ran: list[CommandSpec] = []
        self.launched: list[CommandSpec] = []
        self.opened: list[str] = []

    def which(self, executable: str) -> Optional[str]:
        return f"/usr/bin/{executable}" if executable in self.available else None

    async def run(self, spec: CommandSpec, timeout: Optional[float] = None) -> CommandResult:
        self.ran.append(spec)
        if self.fail_on and spec.executable == self.fail_on:
            raise CommandError(f"{spec.executable} failed with exit code 1", "boom", exit_code=1)
        return CommandResult(exit_code=0, spec=spec)

    async def launch(self, spec: CommandSpec) -> None:
        if self.launch_error:
            raise CommandError(f"Could not launch {spec.executable}", "not found")
        self.launched.append(spec)

    def open_external(self, url: str) -> bool:
        self.opened.append(url)
        return True


class BlockingStream(httpx.AsyncByteStream):
    """Yields some lines, then blocks until closed."""

    def __init__(self, lines: list[bytes]):
        self.lines = lines
        self.closed = False

    async def __aiter__(self):
        for line in self.lines:
            yield line
        await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


class FakeOllama:
    """In-memory stand-in for the Ollama HTTP API."""

    def __init__(self):
        self.running = True
        self.tags: list[dict] = []
        self.models_body: object = {"data": []}
        self.pull_frames: dict[str, list[dict]] = {}
        self.blocking_pulls: dict[str, list[dict]] = {}
        self.streams: list[BlockingStream] = []
        self.tag_requests = 0
        self.pull_requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.running:
            raise httpx.ConnectError("Connection refused", request=request)

        path = request.url.path
        if path == "/api/tags":
            self.tag_requests += 1
            return httpx.Response(200, json={"models": self.tags})
        if path == "/v1/models":
            return httpx.Response(200, json=self.models_body)
        if path == "/api/pull":
            name = json.loads(request.content)["name"]
            self.pull_requests.append(name)
            if name in self.blocking_pulls:
                stream = BlockingStream(
                    [(json.dumps(f) + "\n").encode() for f in self.blocking_pulls[name]]
                )
                self.streams.append(stream)
                return httpx.Response(200, stream=stream)
            body = "".join(json.dumps(f) + "\n" for f in self.pull_frames.get(name, []))
            return httpx.Response(200, content=body.encode())
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeLibrary(RemoteModelLibrary):
    """Serves ModelInfo from a dict; missing names fail like a 404."""

    def __init__(self, infos: Optional[dict[str, ModelInfo]] = None):
        super().__init__()
        self.infos = infos or {}
        self.requests: list[str] = []
        self.gate: Optional[asyncio.Event] = None

    async def fetch(self, model_name: str) -> ModelInfo:
        self.requests.append(model_name)
        if self.gate is not None:
            await self.gate.wait()
        if model_name not in self.infos:
            raise httpx.HTTPStatusError(
                "404 Not Found",
                request=httpx.Request("GET", self.manifest_url(model_name)),
                response=httpx.Response(404),
            )
        return self.infos[model_name]


def make_info(name: str, size: int, digest: str = "abc") -> ModelInfo:
    return ModelInfo(id=name, name=f"library/{name}", size=size, digest=digest)


@pytest.fixture
def ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def library() -> FakeLibrary:
    return FakeLibrary(
        {
            "granite3.1-dense:8b": make_info("granite3.1-dense:8b", 5000),
            "granite3.1-dense:2b": make_info("granite3.1-dense:2b", 1000),
            "nomic-embed-text:latest": make_info("nomic-embed-text:latest", 2000),
        }
    )


@pytest.fixture
def model_server(ollama: FakeOllama, runner: FakeRunner, library: FakeLibrary) -> ModelServer:
    client = OllamaClient(transport=ollama.transport(), tags_ttl=0)
    controller = ServerController(
        client,
        runner=runner,
        platform=Platform.LINUX,
        environ={},
        settle_delay=0,
    )
    return ModelServer(
        client=client,
        controller=controller,
        metadata=MetadataResolver(library),
    )
