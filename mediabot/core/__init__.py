from .errors import (
    ConversionError,
    DeliveryError,
    InvalidSource,
    MediaBotError,
    MissingArgument,
    SourceUnavailable,
    StagingIOError,
    UnexpectedError,
)

__all__ = [
    "ConversionError",
    "DeliveryError",
    "InvalidSource",
    "MediaBotError",
    "MissingArgument",
    "SourceUnavailable",
    "StagingIOError",
    "UnexpectedError",
]
