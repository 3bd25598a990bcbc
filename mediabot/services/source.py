import asyncio
from collections import deque
from contextlib import suppress
from typing import AsyncIterator, Protocol

from mediabot.config.settings import DownloadConfig, YtDlpConfig
from mediabot.core.errors import SourceUnavailable
from mediabot.core.security import is_valid_source
from mediabot.models.internal import MediaMetadata
from mediabot.services.info import VideoInfoService
from mediabot.services.ytdlp import YTDLPCommandBuilder

CHUNK_SIZE = 1024 * 1024
STDERR_MAX_LINES = 50


class MediaSource(Protocol):
    """Resolves a remote video identifier into metadata and bytes."""

    def validate(self, url: str) -> bool:
        ...

    async def fetch_metadata(self, url: str) -> MediaMetadata:
        """Raises SourceUnavailable on any fetch failure."""
        ...

    def open_stream(self, url: str, selector: str) -> AsyncIterator[bytes]:
        """Raises SourceUnavailable if the stream cannot be read to the end."""
        ...


class YtDlpSource:
    """MediaSource backed by the yt-dlp command line"""

    def __init__(self, ytdlp: YtDlpConfig, download: DownloadConfig):
        self.builder = YTDLPCommandBuilder(ytdlp, download)
        self.info = VideoInfoService(ytdlp, download)
        self.timeout = download.timeout_seconds

    def validate(self, url: str) -> bool:
        return is_valid_source(url)

    async def fetch_metadata(self, url: str) -> MediaMetadata:
        return await self.info.fetch(url)

    async def open_stream(self, url: str, selector: str) -> AsyncIterator[bytes]:
        """
        Stream the selected format from yt-dlp stdout.
        The whole transfer is bounded by the download timeout.
        """
        cmd = self.builder.build_stream_command(url, selector)

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL
            )
        except FileNotFoundError:
            raise SourceUnavailable(f"{cmd[0]} is not installed")
        except OSError as e:
            raise SourceUnavailable(f"Cannot execute {cmd[0]}: {e}") from e

        stderr_lines = deque(maxlen=STDERR_MAX_LINES)

        async def drain_stderr():
            """Drain stderr to prevent buffer deadlock"""
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                stderr_lines.append(line.decode(errors="ignore").strip())

        stderr_task = asyncio.create_task(drain_stderr())
        deadline = asyncio.get_running_loop().time() + self.timeout
        finished = False

        try:
            while True:
                remaining = deadline - asyncio.get_running_loop().time()
                if remaining <= 0:
                    raise asyncio.TimeoutError()
                chunk = await asyncio.wait_for(process.stdout.read(CHUNK_SIZE), timeout=remaining)
                if not chunk:
                    break
                yield chunk

            returncode = await process.wait()
            await stderr_task
            if returncode != 0:
                error_summary = '\n'.join(stderr_lines)
                raise SourceUnavailable(f"yt-dlp stream failed ({returncode}): {error_summary[-200:]}")
            finished = True

        except asyncio.TimeoutError:
            raise SourceUnavailable(f"yt-dlp stream timed out after {self.timeout}s")
        finally:
            if not finished and process.returncode is None:
                process.kill()
                await process.wait()
            stderr_task.cancel()
            with suppress(asyncio.CancelledError):
                await stderr_task
