import asyncio
from typing import List, NamedTuple, Optional

from mediabot.config.settings import DownloadConfig, YtDlpConfig


class CompletedProcess(NamedTuple):
    """Subprocess result"""
    returncode: int
    stdout: bytes
    stderr: bytes

    def stderr_text(self, limit: int = 200) -> str:
        return self.stderr.decode(errors="ignore").strip()[-limit:]


class SubprocessExecutor:
    """Execute subprocess with consistent error handling"""

    @staticmethod
    async def run(
        cmd: List[str],
        timeout: float,
        capture_stderr: bool = True
    ) -> CompletedProcess:
        """
        Run subprocess with timeout and proper cleanup.
        The child is killed if the timeout expires or the caller is cancelled.

        Raises FileNotFoundError when the executable does not exist.
        """
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            stdin=asyncio.subprocess.DEVNULL
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        except BaseException:
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise

        return CompletedProcess(
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr if capture_stderr else b""
        )


class YTDLPCommandBuilder:
    """Build yt-dlp commands"""

    def __init__(self, ytdlp: YtDlpConfig, download: DownloadConfig):
        self.ytdlp = ytdlp
        self.download = download

    def _common(self) -> List[str]:
        cmd = [
            '--no-playlist',
            '--socket-timeout', str(self.download.socket_timeout),
            '--retries', str(self.download.retries),
        ]

        if not self.ytdlp.enable_live_streams:
            cmd.extend(['--match-filter', '!is_live'])

        if self.ytdlp.js_runtime:
            cmd.extend(['--js-runtimes', self.ytdlp.js_runtime])

        return cmd

    def build_version_command(self) -> List[str]:
        return [self.ytdlp.binary, '--version']

    def build_info_command(self, url: str) -> List[str]:
        """Build command for fetching video info"""
        return [self.ytdlp.binary, '--dump-json', *self._common(), url]

    def build_stream_command(self, url: str, format_str: Optional[str]) -> List[str]:
        """Build command that writes the selected format to stdout"""
        cmd = [self.ytdlp.binary, url]
        if format_str:
            cmd.extend(['-f', format_str])
        cmd.extend(['-o', '-', *self._common()])

        # Keep stdout clean: it carries the media bytes
        cmd.extend(['--no-progress', '--quiet'])
        return cmd
