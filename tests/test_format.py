from mediabot.config.settings import SelectionConfig
from mediabot.models.internal import FormatDescriptor as F
from mediabot.models.internal import MediaKind, MediaMetadata
from mediabot.services.format import FormatDecision

# yt-dlp order: worst first
YT_FORMATS = [
    F(format_id="139", ext="m4a", vcodec="none", acodec="mp4a", abr=48),
    F(format_id="251", ext="webm", vcodec="none", acodec="opus", abr=130),
    F(format_id="140", ext="m4a", vcodec="none", acodec="mp4a", abr=129),
    F(format_id="160", ext="mp4", vcodec="avc1", acodec="none", height=144),
    F(format_id="18", ext="mp4", vcodec="avc1", acodec="mp4a", height=360, tbr=500),
    F(format_id="137", ext="mp4", vcodec="avc1", acodec="none", height=1080),
    F(format_id="22", ext="mp4", vcodec="avc1", acodec="mp4a", height=720, tbr=1000),
]


def decide(prefer="highest", tie_break="last"):
    return FormatDecision(SelectionConfig(prefer=prefer, tie_break=tie_break))


def test_video_prefers_highest_single_file_format():
    selected = decide().select(MediaMetadata(title="t", formats=YT_FORMATS), MediaKind.VIDEO)
    assert selected.selector == "22"
    assert selected.ext == "mp4"


def test_audio_prefers_highest_bitrate_audio_only():
    selected = decide().select(MediaMetadata(title="t", formats=YT_FORMATS), MediaKind.AUDIO)
    assert selected.selector == "251"
    assert selected.ext == "webm"


def test_first_policy_uses_source_order():
    meta = MediaMetadata(title="t", formats=YT_FORMATS)
    assert decide(prefer="first").select(meta, MediaKind.VIDEO).selector == "18"
    assert decide(prefer="first").select(meta, MediaKind.AUDIO).selector == "139"


def test_unranked_formats_fall_back_to_source_order():
    formats = [F(format_id="a", ext="mp4"), F(format_id="b", ext="webm")]
    selected = decide(tie_break="last").select(MediaMetadata(title="t", formats=formats), MediaKind.VIDEO)
    assert selected.selector == "a"


def test_tie_break_is_explicit():
    formats = [
        F(format_id="a", ext="mp4", height=720),
        F(format_id="b", ext="mp4", height=720),
        F(format_id="c", ext="mp4", height=480),
    ]
    meta = MediaMetadata(title="t", formats=formats)
    assert decide(tie_break="last").select(meta, MediaKind.VIDEO).selector == "b"
    assert decide(tie_break="first").select(meta, MediaKind.VIDEO).selector == "a"


def test_quality_labels_rank_formats():
    formats = [F(format_id="lo", quality="low"), F(format_id="hi", quality="high"), F(format_id="mid", quality="medium")]
    assert formats[1].quality == 2.0
    selected = decide().select(MediaMetadata(title="t", formats=formats), MediaKind.VIDEO)
    assert selected.selector == "hi"


def test_video_without_muxed_formats_uses_video_tracks():
    formats = [f for f in YT_FORMATS if f.format_id in ("160", "137", "140")]
    selected = decide().select(MediaMetadata(title="t", formats=formats), MediaKind.VIDEO)
    assert selected.selector == "137"


def test_no_formats_defers_to_source_selector():
    meta = MediaMetadata(title="t", formats=[])
    video = decide().select(meta, MediaKind.VIDEO)
    audio = decide().select(meta, MediaKind.AUDIO)
    assert (video.selector, video.ext, video.format) == ("best", "mp4", None)
    assert (audio.selector, audio.ext) == ("bestaudio/best", "m4a")


def test_audio_falls_back_to_formats_with_audio():
    formats = [F(format_id="160", vcodec="avc1", acodec="none"), F(format_id="18", ext="mp4", vcodec="avc1", acodec="mp4a")]
    selected = decide().select(MediaMetadata(title="t", formats=formats), MediaKind.AUDIO)
    assert selected.selector == "18"
