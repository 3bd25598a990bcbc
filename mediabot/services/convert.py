"""
ffmpeg wrapper used to turn a staged audio stream into the target container.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from mediabot.config.settings import AudioConfig
from mediabot.core.errors import ConversionError
from mediabot.services.ytdlp import SubprocessExecutor

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 10.0


class FFmpegConverter:
    """Out-of-process audio conversion with a pass/fail contract."""

    def __init__(self, audio: AudioConfig):
        self.audio = audio
        self.available: Optional[bool] = None
        self.version = "unknown"

    async def probe(self) -> Tuple[bool, str]:
        """
        Check once whether ffmpeg can be executed.
        Absence only disables conversion; it is never raised.
        """
        try:
            result = await SubprocessExecutor.run(
                [self.audio.ffmpeg_binary, "-version"], timeout=PROBE_TIMEOUT
            )
            self.available = result.returncode == 0
            if self.available:
                first_line = result.stdout.decode(errors="ignore").splitlines()[:1]
                self.version = first_line[0] if first_line else "unknown"
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("ffmpeg probe failed: %s", e)
            self.available = False

        if not self.available:
            logger.warning(
                "ffmpeg is not installed or not in PATH; audio conversion is disabled"
            )
        return bool(self.available), self.version

    def needs_conversion(self, ext: str) -> bool:
        return ext.lstrip(".").lower() != self.audio.target_format

    def build_command(self, source: Path, target: Path) -> List[str]:
        cmd = [
            self.audio.ffmpeg_binary,
            "-y",
            "-loglevel", "error",
            "-i", str(source),
            "-vn",
        ]
        # Other containers use ffmpeg's default encoder
        if self.audio.target_format == "mp3":
            cmd.extend(["-codec:a", "libmp3lame", "-q:a", "2"])
        cmd.append(str(target))
        return cmd

    async def convert(self, source: Path, target: Path) -> Path:
        """
        Convert ``source`` into ``target``.
        Success means exit code zero and a non-empty output file.
        """
        if self.available is False:
            raise ConversionError("ffmpeg is unavailable")

        cmd = self.build_command(source, target)
        try:
            result = await SubprocessExecutor.run(cmd, timeout=self.audio.conversion_timeout)
        except FileNotFoundError:
            raise ConversionError(f"{cmd[0]} is not installed")
        except asyncio.TimeoutError:
            raise ConversionError(f"ffmpeg timed out after {self.audio.conversion_timeout}s")

        if result.returncode != 0:
            raise ConversionError(f"ffmpeg exited with {result.returncode}: {result.stderr_text()}")

        if not target.exists() or os.path.getsize(target) == 0:
            raise ConversionError("ffmpeg produced no output")

        return target
