import asyncio

import pytest

from provisioner.errors import ManifestError, PullError
from provisioner.progress import ProgressData
from provisioner.utils.cancellation import CancellationTokenSource

from conftest import make_info

SMALL = "granite3.1-dense:2b"
EMBED = "nomic-embed-text:latest"


def frames(*completed: int, total: int = 1000) -> list[dict]:
    result = [{"status": "pulling manifest"}]
    result += [
        {"status": "pulling sha256:abc", "digest": "sha256:abc", "total": total, "completed": c}
        for c in completed
    ]
    result.append({"status": "success"})
    return result


@pytest.mark.asyncio
async def test_small_preset_aggregates_to_declared_total(model_server, ollama, library):
    library.infos[SMALL] = make_info(SMALL, 1000)
    library.infos[EMBED] = make_info(EMBED, 2000)
    ollama.pull_frames[SMALL] = frames(0, 400, 1000, total=1000)
    ollama.pull_frames[EMBED] = frames(500, 2000, total=2000)
    events: list[ProgressData] = []

    result = await model_server.pull_models("small", None, events.append)

    assert result is True
    assert ollama.pull_requests == [SMALL, EMBED]
    assert events[-1].completed == 3000
    assert events[-1].total == 3000
    assert all(e.key == "Downloading models" for e in events)


@pytest.mark.asyncio
async def test_increments_sum_to_final_completed(model_server, ollama, library):
    library.infos[SMALL] = make_info(SMALL, 900)
    library.infos[EMBED] = make_info(EMBED, 0)
    ollama.pull_frames[SMALL] = frames(100, 100, 350, 700, 900, total=900)
    events: list[ProgressData] = []

    await model_server.pull_models("small", None, events.append)

    pulled = [e for e in events if e.status == f"Pulling {SMALL}"]
    assert sum(e.increment for e in pulled) == 900
    assert all(e.increment >= 0 for e in pulled)


@pytest.mark.asyncio
async def test_regressing_counter_resets(model_server, ollama, library):
    library.infos[SMALL] = make_info(SMALL, 1500)
    library.infos[EMBED] = make_info(EMBED, 0)
    ollama.pull_frames[SMALL] = frames(800, 1000, 300, 500, total=1000)
    events: list[ProgressData] = []

    await model_server.pull_models("small", None, events.append)

    increments = [e.increment for e in events if e.status == f"Pulling {SMALL}"]
    assert increments == [800, 200, 300, 200]


@pytest.mark.asyncio
async def test_frames_without_total_are_ignored(model_server, ollama, library):
    library.infos[SMALL] = make_info(SMALL, 10)
    library.infos[EMBED] = make_info(EMBED, 0)
    ollama.pull_frames[SMALL] = [
        {"status": "pulling manifest"},
        {"status": "verifying sha256 digest", "completed": 10},
        {"status": "pulling sha256:abc", "total": 10},
        {"status": "success"},
    ]
    events: list[ProgressData] = []

    await model_server.pull_models("small", None, events.append)

    pulled = [e for e in events if e.status == f"Pulling {SMALL}"]
    assert [e.increment for e in pulled] == [0]


@pytest.mark.asyncio
async def test_missing_manifest_is_fatal(model_server, ollama, library):
    del library.infos[EMBED]

    with pytest.raises(ManifestError, match=EMBED):
        await model_server.pull_models("small")
    assert ollama.pull_requests == []


@pytest.mark.asyncio
async def test_error_frame_fails_pull(model_server, ollama, library):
    ollama.pull_frames[SMALL] = [{"error": "pull model manifest: file does not exist"}]

    with pytest.raises(PullError):
        await model_server.pull_models("small")
    assert model_server.installing_models == set()


@pytest.mark.asyncio
async def test_cancel_before_start_returns_false(model_server, ollama):
    source = CancellationTokenSource()
    source.cancel()

    assert await model_server.pull_models("small", source.token) is False
    assert ollama.pull_requests == []
    assert model_server.installing_models == set()


@pytest.mark.asyncio
async def test_cancel_mid_stream_keeps_progress(model_server, ollama, library):
    library.infos[SMALL] = make_info(SMALL, 1000)
    ollama.blocking_pulls[SMALL] = [{"status": "pulling", "total": 1000, "completed": 250}]
    source = CancellationTokenSource()
    events: list[ProgressData] = []

    def on_progress(progress: ProgressData) -> None:
        events.append(progress)
        assert SMALL in model_server.installing_models
        source.cancel()

    result = await model_server.pull_models("small", source.token, on_progress)

    assert result is False
    assert [e.completed for e in events] == [250]
    assert model_server.installing_models == set()
    assert ollama.pull_requests == [SMALL]
    assert ollama.streams[0].closed


@pytest.mark.asyncio
async def test_large_preset_pulls_in_order(model_server, ollama):
    await model_server.pull_models("large")
    assert ollama.pull_requests == ["granite3.1-dense:8b", EMBED]
