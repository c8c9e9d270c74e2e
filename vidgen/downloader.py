"""Download of finished videos from their result URLs."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from vidgen.errors import NetworkError, RemoteError

logger = logging.getLogger(__name__)

_DOWNLOAD_TIMEOUT = 300.0


async def download_video(
    url: str,
    output_path: str | Path,
    http_client: httpx.AsyncClient | None = None,
) -> Path:
    """Stream a video URL to a local file and return its path."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    logger.info("Downloading %s -> %s", url, output)
    client = http_client or httpx.AsyncClient(timeout=_DOWNLOAD_TIMEOUT)
    own_client = http_client is None
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            with open(output, "wb") as f:
                async for chunk in response.aiter_bytes(chunk_size=8192):
                    f.write(chunk)
    except httpx.HTTPStatusError as exc:
        output.unlink(missing_ok=True)
        raise RemoteError(
            f"Download failed for {url}: HTTP {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.TransportError as exc:
        output.unlink(missing_ok=True)
        raise NetworkError(f"Download failed for {url}: {exc}") from exc
    finally:
        if own_client:
            await client.aclose()

    logger.info("Downloaded: %s (%.1f KB)", output, output.stat().st_size / 1024)
    return output
