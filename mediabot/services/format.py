from typing import List, Optional, Tuple

from mediabot.config.settings import SelectionConfig
from mediabot.models.internal import FormatDescriptor, MediaKind, MediaMetadata, SelectedFormat

DEFAULT_SELECTORS = {
    MediaKind.VIDEO: "best",
    MediaKind.AUDIO: "bestaudio/best",
}
DEFAULT_EXTS = {
    MediaKind.VIDEO: "mp4",
    MediaKind.AUDIO: "m4a",
}


def _rank(f: FormatDescriptor, kind: MediaKind) -> Tuple[float, float, float, float]:
    bitrate = f.abr if kind is MediaKind.AUDIO and f.abr is not None else f.tbr
    return (
        (f.height or 0) if kind is MediaKind.VIDEO else 0,
        bitrate or 0,
        f.quality or 0,
        f.filesize or 0,
    )


def _is_rankable(f: FormatDescriptor) -> bool:
    return any(v is not None for v in (f.height, f.tbr, f.abr, f.quality, f.filesize))


class FormatDecision:
    """Make format decisions"""

    def __init__(self, selection: SelectionConfig):
        self.selection = selection

    @staticmethod
    def candidates(formats: List[FormatDescriptor], kind: MediaKind) -> List[FormatDescriptor]:
        """
        Formats eligible for ``kind``, in source order.

        Video prefers single-file formats carrying both tracks, since the
        stream is piped without a merge step. Audio prefers audio-only formats.
        """
        if kind is MediaKind.AUDIO:
            tiers = (
                [f for f in formats if f.is_audio_only],
                [f for f in formats if f.has_audio],
            )
        else:
            tiers = (
                [f for f in formats if f.has_video and f.has_audio],
                [f for f in formats if f.has_video],
                list(formats),
            )
        for tier in tiers:
            if tier:
                return tier
        return []

    def pick(self, candidates: List[FormatDescriptor], kind: MediaKind) -> Optional[FormatDescriptor]:
        """
        Apply the configured policy.

        ``prefer="highest"`` ranks by quality attributes; when no candidate
        carries any, source order decides as with ``prefer="first"``.
        ``tie_break`` chooses among equally ranked candidates by source order.
        """
        if not candidates:
            return None

        if self.selection.prefer == "first" or not any(_is_rankable(f) for f in candidates):
            return candidates[0]

        best = max(_rank(f, kind) for f in candidates)
        tied = [f for f in candidates if _rank(f, kind) == best]
        return tied[-1] if self.selection.tie_break == "last" else tied[0]

    def select(self, metadata: MediaMetadata, kind: MediaKind) -> SelectedFormat:
        """Decide which stream to stage for ``kind``"""
        chosen = self.pick(self.candidates(metadata.formats, kind), kind)

        if chosen is None or not chosen.format_id:
            # Let the source apply its own best-format rule
            return SelectedFormat(
                selector=DEFAULT_SELECTORS[kind],
                ext=(chosen.ext if chosen and chosen.ext else DEFAULT_EXTS[kind]),
                format=chosen,
            )

        return SelectedFormat(
            selector=chosen.format_id,
            ext=chosen.ext or DEFAULT_EXTS[kind],
            format=chosen,
        )
