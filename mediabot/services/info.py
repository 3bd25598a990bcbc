import asyncio
import json
from typing import Any, Dict

from mediabot.config.settings import DownloadConfig, YtDlpConfig
from mediabot.core.errors import SourceUnavailable
from mediabot.models.internal import FormatDescriptor, MediaMetadata
from mediabot.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder


def parse_info(info: Dict[str, Any]) -> MediaMetadata:
    """Map a yt-dlp info dict onto MediaMetadata, keeping the format order"""
    formats = []
    for f in info.get("formats") or []:
        formats.append(
            FormatDescriptor(
                format_id=f.get("format_id"),
                ext=f.get("ext"),
                vcodec=f.get("vcodec"),
                acodec=f.get("acodec"),
                height=f.get("height"),
                tbr=f.get("tbr"),
                abr=f.get("abr"),
                filesize=f.get("filesize") or f.get("filesize_approx"),
                quality=f.get("quality"),
            )
        )

    return MediaMetadata(
        id=info.get("id"),
        title=info.get("title") or "Unknown",
        duration=info.get("duration"),
        uploader=info.get("uploader") or info.get("channel"),
        webpage_url=info.get("webpage_url"),
        formats=formats,
    )


class VideoInfoService:
    """Video info fetching service"""

    def __init__(self, ytdlp: YtDlpConfig, download: DownloadConfig):
        self.builder = YTDLPCommandBuilder(ytdlp, download)
        self.timeout = download.info_timeout

    async def fetch(self, url: str) -> MediaMetadata:
        """
        Resolve ``url`` into title and format list.
        Every failure, including a timeout, surfaces as SourceUnavailable.
        """
        cmd = self.builder.build_info_command(url)

        try:
            result = await SubprocessExecutor.run(cmd, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise SourceUnavailable(f"yt-dlp info timed out after {self.timeout}s")
        except FileNotFoundError:
            raise SourceUnavailable(f"{cmd[0]} is not installed")
        except OSError as e:
            raise SourceUnavailable(f"Cannot execute {cmd[0]}: {e}") from e

        if result.returncode != 0:
            raise SourceUnavailable(f"yt-dlp info failed: {result.stderr_text()}")

        try:
            info = json.loads(result.stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SourceUnavailable(f"Failed to parse yt-dlp output: {e}")

        return parse_info(info)
