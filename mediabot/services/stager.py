import logging
import os
import uuid
from pathlib import Path
from typing import AsyncIterator, Awaitable, TypeVar, Union

import aiofiles

from mediabot.core.errors import SourceUnavailable, StagingIOError
from mediabot.models.internal import MediaKind, StagedFile

logger = logging.getLogger(__name__)
T = TypeVar("T")


class LocalStager:
    """
    Writes incoming media to uniquely named files in the staging directory.

    The directory is shared by all requests; uuid4 file names keep
    concurrent requests apart.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def ensure_staging_dir(self) -> Path:
        """Create the staging directory. Safe to call when it already exists."""
        os.makedirs(self.directory, exist_ok=True)
        return self.directory

    def allocate(self, kind: MediaKind, ext: str) -> StagedFile:
        """Reserve a fresh path without creating the file"""
        ext = ext.lstrip(".").lower() or "bin"
        return StagedFile(path=self.directory / f"{uuid.uuid4().hex}.{ext}", kind=kind)

    async def stage(self, stream: AsyncIterator[bytes], kind: MediaKind, ext: str) -> StagedFile:
        """
        Write ``stream`` to a new staged file.

        Failures creating, writing or closing the file raise StagingIOError;
        errors raised by ``stream`` propagate unchanged. Whatever the failure,
        a partially written file is removed before the error propagates.
        """
        staged = self.allocate(kind, ext)
        written = 0
        try:
            f = await self._io(staged, "Creating", aiofiles.open(staged.path, "xb"))
            try:
                async for chunk in stream:
                    await self._io(staged, "Writing", f.write(chunk))
                    written += len(chunk)
            finally:
                await self._io(staged, "Closing", f.close())
        except BaseException:
            self.discard(staged)
            raise
        finally:
            # Stops the producer (e.g. the yt-dlp process) when writing aborted early
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if written == 0:
            self.discard(staged)
            raise SourceUnavailable("Source produced no data")

        logger.debug("Staged %d bytes at %s", written, staged.path)
        return staged

    @staticmethod
    async def _io(staged: StagedFile, action: str, operation: Awaitable[T]) -> T:
        try:
            return await operation
        except OSError as e:
            raise StagingIOError(f"{action} {staged.path} failed: {e}") from e

    def discard(self, staged: StagedFile) -> bool:
        """
        Delete a staged file. A file that was never created is not an error.
        Returns True if a file was removed.
        """
        try:
            os.remove(staged.path)
        except FileNotFoundError:
            return False
        except OSError:
            logger.exception("Could not remove staged file %s", staged.path)
            return False
        return True
