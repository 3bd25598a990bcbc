"""
Error taxonomy for the request pipeline.

Every error raised inside one pipeline run is a MediaBotError by the time it
reaches the pipeline boundary. ``message_key`` names the localized text shown
to the user; ``str(error)`` is the operator-facing detail and may contain
paths or tool output, so it is only ever logged.
"""

from typing import Any, Dict, Optional


class MediaBotError(Exception):
    """Base exception for all pipeline errors."""

    kind = "unexpected"
    message_key = "error.unexpected"

    def __init__(self, detail: str = "", *, context: Optional[Dict[str, Any]] = None):
        super().__init__(detail or self.kind)
        self.detail = detail
        self.context = context or {}


class MissingArgument(MediaBotError):
    """A media command arrived without a URL."""

    kind = "missing_argument"
    message_key = "error.missing_argument"

    def __init__(self, command: str):
        super().__init__(f"/{command} called without an argument", context={"command": command})
        self.command = command


class InvalidSource(MediaBotError):
    kind = "invalid_source"
    message_key = "error.invalid_source"


class SourceUnavailable(MediaBotError):
    """Metadata or stream could not be fetched (network, removed video, timeout)."""

    kind = "source_unavailable"
    message_key = "error.source_unavailable"


class StagingIOError(MediaBotError):
    kind = "staging_io"
    message_key = "error.staging_failed"


class ConversionError(MediaBotError):
    kind = "conversion"
    message_key = "error.conversion_failed"


class DeliveryError(MediaBotError):
    kind = "delivery"
    message_key = "error.delivery_failed"


class UnexpectedError(MediaBotError):
    kind = "unexpected"
    message_key = "error.unexpected"
