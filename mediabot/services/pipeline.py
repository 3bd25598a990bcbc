r"""
Per-request pipeline.

    RECEIVED -> VALIDATED -> METADATA_FETCHED -> STAGED -> (CONVERTED) -> DELIVERED -> CLEANED
                    \______________\___________________\__________\___________> FAILED -> CLEANED

Each run owns its staged files. Every error is caught at ``run``, answered
with exactly one localized reply, logged, and followed by cleanup; nothing
escapes except task cancellation.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from mediabot.core.errors import (
    ConversionError,
    InvalidSource,
    MediaBotError,
    MissingArgument,
    SourceUnavailable,
    UnexpectedError,
)
from mediabot.core.logging import log_debug, log_error, log_exception, log_info, log_warning
from mediabot.core.security import extract_source_url
from mediabot.core.state import BotContext
from mediabot.i18n import i18n
from mediabot.models.internal import (
    InboundCommand,
    MediaKind,
    MediaMetadata,
    MediaMode,
    Request,
    StagedFile,
)
from mediabot.services.format import FormatDecision
from mediabot.utils.locale import safe_url_for_log


class PipelineState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    METADATA_FETCHED = "metadata_fetched"
    STAGED = "staged"
    CONVERTED = "converted"
    DELIVERED = "delivered"
    FAILED = "failed"
    CLEANED = "cleaned"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run"""
    request_id: str
    history: List[PipelineState] = field(default_factory=list)
    error: Optional[MediaBotError] = None
    delivered: Optional[MediaKind] = None
    replied: bool = False

    @property
    def state(self) -> PipelineState:
        return self.history[-1]

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def reached(self, state: PipelineState) -> bool:
        return state in self.history


def parse_command(text: str) -> Tuple[str, Optional[str]]:
    """
    Split "/cmd@BotName arg ..." into ("cmd", "arg").
    Only the first argument is used.
    """
    parts = (text or "").split()
    if not parts:
        return "", None
    command = parts[0].lstrip("/").split("@", 1)[0].lower()
    argument = parts[1] if len(parts) > 1 else None
    return command, argument


class RequestPipeline:
    """Runs one inbound command through fetch, stage, convert, deliver, cleanup."""

    def __init__(self, context: BotContext):
        self.context = context
        self.config = context.config
        self.formats = FormatDecision(context.config.selection)

    async def run(self, command: InboundCommand) -> PipelineResult:
        result = PipelineResult(request_id=command.request_id, history=[PipelineState.RECEIVED])
        staged: List[StagedFile] = []
        request: Optional[Request] = None

        try:
            request = self._validate(command)
            result.history.append(PipelineState.VALIDATED)

            metadata = await self._fetch_metadata(request)
            result.history.append(PipelineState.METADATA_FETCHED)

            if request.mode is MediaMode.LINK_DETECTED:
                await self._offer_actions(request, metadata)
                result.replied = True
                return result

            kind = MediaKind.AUDIO if request.mode is MediaMode.EXTRACT_AUDIO else MediaKind.VIDEO
            await self._reply(request, f"progress.{kind.value}", title=metadata.title)

            artifact = await self._stage(request, metadata, kind, staged)
            result.history.append(PipelineState.STAGED)

            if kind is MediaKind.AUDIO:
                artifact = await self._convert(request, artifact, staged)
                result.history.append(PipelineState.CONVERTED)

            await self._deliver(request, artifact, metadata.title)
            result.history.append(PipelineState.DELIVERED)
            result.delivered = kind
            log_info(request, f"Delivered {kind.value} '{metadata.title}'")

        except MediaBotError as e:
            result.history.append(PipelineState.FAILED)
            result.error = e
            result.replied = await self._fail(request or command, e)

        except Exception as e:
            error = UnexpectedError(f"{type(e).__name__}: {e}")
            error.__cause__ = e
            log_exception(request or command, f"Unexpected pipeline error: {e}")
            result.history.append(PipelineState.FAILED)
            result.error = error
            result.replied = await self._fail(request or command, error, logged=True)

        finally:
            self._cleanup(request or command, staged)
            result.history.append(PipelineState.CLEANED)

        return result

    def _validate(self, command: InboundCommand) -> Request:
        if command.mode is MediaMode.LINK_DETECTED:
            url = extract_source_url(command.text)
            if url is None:
                raise InvalidSource("No source URL in message")
        else:
            _, url = parse_command(command.text)
            if not url:
                raise MissingArgument(command.mode.command)

        return Request(
            mode=command.mode,
            source_url=url,
            conversation_id=command.conversation_id,
            locale=command.locale,
            request_id=command.request_id,
        )

    async def _fetch_metadata(self, request: Request) -> MediaMetadata:
        source = self.context.source
        if not source.validate(request.source_url):
            raise InvalidSource(f"Rejected source {safe_url_for_log(request.source_url)}")

        log_info(request, f"Fetching info for {safe_url_for_log(request.source_url)}")
        try:
            metadata = await asyncio.wait_for(
                source.fetch_metadata(request.source_url),
                timeout=self.config.download.info_timeout,
            )
        except asyncio.TimeoutError:
            raise SourceUnavailable(f"Metadata fetch timed out after {self.config.download.info_timeout}s")
        except SourceUnavailable:
            raise
        except Exception as e:
            raise SourceUnavailable(f"Metadata fetch failed: {e}") from e

        log_info(request, f"Info retrieved: {metadata.title} ({len(metadata.formats)} formats)")
        return metadata

    async def _offer_actions(self, request: Request, metadata: MediaMetadata) -> None:
        await self.context.delivery.send_text(
            request.conversation_id,
            i18n.get("link.detected", request.locale, title=metadata.title, url=request.source_url),
        )

    async def _stage(
        self,
        request: Request,
        metadata: MediaMetadata,
        kind: MediaKind,
        staged: List[StagedFile],
    ) -> StagedFile:
        selected = self.formats.select(metadata, kind)
        log_info(request, f"Format decided: {selected.selector} ({selected.ext})")

        stream = self.context.source.open_stream(request.source_url, selected.selector)
        artifact = await self.context.stager.stage(stream, kind, selected.ext)
        staged.append(artifact)
        log_debug(request, f"Staged {artifact.path.name} ({artifact.size()} bytes)")
        return artifact

    async def _convert(self, request: Request, artifact: StagedFile, staged: List[StagedFile]) -> StagedFile:
        converter = self.context.converter
        if not converter.needs_conversion(artifact.ext):
            return artifact

        target = self.context.stager.allocate(MediaKind.AUDIO, self.config.audio.target_format)
        staged.append(target)
        try:
            await converter.convert(artifact.path, target.path)
        except ConversionError as e:
            if not self.config.audio.fallback_to_original:
                raise
            log_warning(request, f"Conversion failed, sending original {artifact.ext}: {e}")
            return artifact

        return target

    async def _deliver(self, request: Request, artifact: StagedFile, title: str) -> None:
        delivery = self.context.delivery
        if artifact.kind is MediaKind.AUDIO:
            await delivery.send_audio(request.conversation_id, artifact.path, title)
        else:
            await delivery.send_video(request.conversation_id, artifact.path, title)

    async def _reply(self, request: Request, key: str, **kwargs) -> None:
        await self.context.delivery.send_text(
            request.conversation_id, i18n.get(key, request.locale, **kwargs)
        )

    async def _fail(self, request, error: MediaBotError, logged: bool = False) -> bool:
        """Send the single failure reply. Returns True if a reply went out."""
        # Failures on unsolicited chat text are only logged
        if request.mode is MediaMode.LINK_DETECTED:
            if isinstance(error, InvalidSource):
                log_debug(request, f"Link detection skipped: {error}")
            elif not logged:
                log_warning(request, f"Link detection skipped: {error.kind}: {error}")
            return False

        if not logged:
            cause = error.__cause__
            log_error(request, f"{error.kind}: {error}" + (f" (cause: {cause!r})" if cause else ""))

        kwargs = {}
        if isinstance(error, MissingArgument):
            kwargs["command"] = error.command

        try:
            await self.context.delivery.send_text(
                request.conversation_id,
                i18n.get(error.message_key, request.locale, **kwargs),
            )
        except Exception:
            log_exception(request, "Could not send failure reply")
            return False
        return True

    def _cleanup(self, request, staged: List[StagedFile]) -> None:
        for artifact in staged:
            if self.context.stager.discard(artifact):
                log_debug(request, f"Cleaned up {artifact.path.name}")
