import httpx
import pytest

from vidgen.downloader import download_video
from vidgen.errors import NetworkError, RemoteError


@pytest.mark.asyncio
async def test_download_writes_file(tmp_path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"\x00video-bytes")))

    path = await download_video("https://cdn/video.mp4", tmp_path / "out" / "video.mp4", http_client=client)

    assert path.read_bytes() == b"\x00video-bytes"


@pytest.mark.asyncio
async def test_download_http_error(tmp_path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(403, text="expired")))

    with pytest.raises(RemoteError) as info:
        await download_video("https://cdn/video.mp4", tmp_path / "video.mp4", http_client=client)

    assert info.value.status_code == 403
    assert not (tmp_path / "video.mp4").exists()


class DroppedStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b"\x00partial"
        raise httpx.ReadError("connection reset")


@pytest.mark.asyncio
async def test_download_interrupted_removes_partial_file(tmp_path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, stream=DroppedStream())))

    with pytest.raises(NetworkError):
        await download_video("https://cdn/video.mp4", tmp_path / "video.mp4", http_client=client)

    assert not (tmp_path / "video.mp4").exists()
