from .internal import (
    FormatDescriptor,
    InboundCommand,
    MediaKind,
    MediaMetadata,
    MediaMode,
    Request,
    SelectedFormat,
    StagedFile,
)

__all__ = [
    "FormatDescriptor",
    "InboundCommand",
    "MediaKind",
    "MediaMetadata",
    "MediaMode",
    "Request",
    "SelectedFormat",
    "StagedFile",
]
