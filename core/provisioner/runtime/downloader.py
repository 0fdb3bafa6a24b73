"""
Streaming file download with progress and cancellation.
Used for the Windows server installer.
"""

import asyncio
from pathlib import Path
from typing import Optional

import httpx

from provisioner.progress import ProgressReporter
from provisioner.utils.cancellation import CancellationToken, run_cancellable
from provisioner.utils.logging import logger

CHUNK_SIZE = 1024 * 1024


async def download_file(
    url: str,
    dest_path: Path,
    reporter: ProgressReporter,
    cancel_token: Optional[CancellationToken] = None,
    label: str = "Downloading",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """
    Download ``url`` to ``dest_path``.

    Progress starts with ``reporter.begin(label, content_length)``, then one
    update per chunk, then ``reporter.done()``.

    Raises:
        InterruptedError: cancelled; the partial file is removed
        httpx.HTTPError: network or HTTP failure; the partial file is removed
    """
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading {url} to {dest_path}")

    async def do_download() -> None:
        async with httpx.AsyncClient(
            transport=transport, follow_redirects=True, timeout=None
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("content-length", 0))
                reporter.begin(label, total_size)

                with open(dest_path, "wb") as f:
                    # Disk writes run off the event loop
                    async for chunk in response.aiter_bytes(chunk_size=CHUNK_SIZE):
                        if chunk:
                            await asyncio.to_thread(f.write, chunk)
                            reporter.update(len(chunk))

    try:
        await run_cancellable(do_download(), cancel_token)
    except InterruptedError:
        logger.info(f"Download cancelled: {url}")
        _remove_partial(dest_path)
        raise
    except Exception as e:
        logger.error(f"Download failed: {e}")
        _remove_partial(dest_path)
        raise

    if not dest_path.exists():
        raise FileNotFoundError(f"{dest_path} doesn't exist")
    reporter.done()
    logger.info(f"Downloaded to {dest_path}")
    return dest_path


def _remove_partial(path: Path) -> None:
    if path.exists():
        path.unlink()
