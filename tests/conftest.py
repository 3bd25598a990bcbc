from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from mediabot.config.settings import Config
from mediabot.core.errors import ConversionError, DeliveryError
from mediabot.core.security import is_valid_source
from mediabot.core.state import BotContext
from mediabot.models.internal import FormatDescriptor, InboundCommand, MediaMetadata, MediaMode
from mediabot.services.stager import LocalStager

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class FakeSource:
    """In-memory MediaSource"""

    def __init__(
        self,
        metadata: Optional[MediaMetadata] = None,
        chunks: Tuple[bytes, ...] = (b"media-", b"bytes"),
        fetch_error: Optional[Exception] = None,
        stream_error: Optional[Exception] = None,
        accept_all: bool = False,
    ):
        self.metadata = metadata or MediaMetadata(
            title="Demo", formats=[FormatDescriptor(quality="high")]
        )
        self.chunks = chunks
        self.fetch_error = fetch_error
        self.stream_error = stream_error
        self.accept_all = accept_all
        self.fetched: List[str] = []
        self.streamed: List[Tuple[str, str]] = []

    def validate(self, url: str) -> bool:
        return self.accept_all or is_valid_source(url)

    async def fetch_metadata(self, url: str) -> MediaMetadata:
        self.fetched.append(url)
        if self.fetch_error:
            raise self.fetch_error
        return self.metadata

    async def open_stream(self, url: str, selector: str):
        self.streamed.append((url, selector))
        for chunk in self.chunks:
            yield chunk
        if self.stream_error:
            raise self.stream_error


class FakeDelivery:
    """Records outbound messages; can be told to fail uploads"""

    def __init__(self, fail_uploads: bool = False, fail_text: bool = False):
        self.fail_uploads = fail_uploads
        self.fail_text = fail_text
        self.texts: List[Tuple[object, str]] = []
        self.videos: List[Tuple[object, Path, str]] = []
        self.audios: List[Tuple[object, Path, str]] = []
        self.existed_at_upload: List[bool] = []

    async def send_text(self, conversation_id, text):
        if self.fail_text:
            raise DeliveryError("transport down")
        self.texts.append((conversation_id, text))

    async def _upload(self, bucket, conversation_id, path, caption):
        self.existed_at_upload.append(Path(path).exists())
        if self.fail_uploads:
            raise DeliveryError("file too large")
        bucket.append((conversation_id, Path(path), caption))

    async def send_video(self, conversation_id, path, caption):
        await self._upload(self.videos, conversation_id, path, caption)

    async def send_audio(self, conversation_id, path, caption):
        await self._upload(self.audios, conversation_id, path, caption)


class FakeConverter:
    """Converter that writes a small output file, or fails"""

    def __init__(self, target_format: str = "mp3", available: bool = True, fail: bool = False):
        self.target_format = target_format
        self.available = available
        self.fail = fail
        self.calls: List[Tuple[Path, Path]] = []

    def needs_conversion(self, ext: str) -> bool:
        return ext.lower() != self.target_format

    async def convert(self, source: Path, target: Path) -> Path:
        self.calls.append((source, target))
        if not self.available:
            raise ConversionError("ffmpeg is unavailable")
        target.write_bytes(b"partial")
        if self.fail:
            raise ConversionError("ffmpeg exited with 1")
        return target


@pytest.fixture
def config():
    return Config(bot_token="", environment="production")


@pytest.fixture
def staging_dir(tmp_path):
    return tmp_path / "temp"


@pytest.fixture
def make_context(config, staging_dir):
    def _make(source=None, delivery=None, converter=None, cfg=None):
        stager = LocalStager(staging_dir)
        stager.ensure_staging_dir()
        return BotContext(
            config=cfg or config,
            source=source or FakeSource(),
            stager=stager,
            converter=converter or FakeConverter(),
            delivery=delivery or FakeDelivery(),
        )
    return _make


def command(mode: MediaMode, text: str, conversation_id=42, locale="en") -> InboundCommand:
    return InboundCommand(mode=mode, text=text, conversation_id=conversation_id, locale=locale)


def staged_files(directory: Path) -> List[Path]:
    return sorted(p for p in directory.iterdir() if p.is_file())


class FullDiskFile:
    """aiofiles handle whose writes fail with ENOSPC after a partial write"""

    def __init__(self, path):
        self.path = Path(path)

    async def write(self, data):
        self.path.write_bytes(data[:1])
        raise OSError(28, "No space left on device")

    async def close(self):
        pass


@pytest.fixture
def full_disk(monkeypatch):
    async def _open(path, mode="r", *args, **kwargs):
        Path(path).touch(exist_ok=False)
        return FullDiskFile(path)
    monkeypatch.setattr("mediabot.services.stager.aiofiles.open", _open)
