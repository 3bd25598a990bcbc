import re
from enum import Enum, auto
from typing import Optional
from urllib.parse import parse_qs, urlparse

PLACEHOLDER_TOKEN = "123456789:EXAMPLE_TOKEN_FOR_DEVELOPMENT_ONLY"
TOKEN_PATTERN = re.compile(r"^\d+:[A-Za-z0-9_-]+$")

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")
QUERY_HOSTS = frozenset({
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "gaming.youtube.com",
})
PATH_HOSTS = frozenset({"youtu.be", "youtube.com", "www.youtube.com"})
PATH_PREFIXES = ("embed", "v", "shorts", "live")


class TokenValidationResult(Enum):
    """Bot token validation result without throwing exceptions"""
    OK = auto()
    MISSING = auto()
    PLACEHOLDER_ALLOWED = auto()
    PLACEHOLDER_REJECTED = auto()
    INVALID_FORMAT = auto()

    @property
    def usable(self) -> bool:
        return self in (TokenValidationResult.OK, TokenValidationResult.PLACEHOLDER_ALLOWED)


def validate_bot_token(token: Optional[str], development: bool = False) -> TokenValidationResult:
    """
    Syntactic check of a Telegram bot token.
    The placeholder token is only accepted in development mode.
    """
    if not token or not token.strip():
        return TokenValidationResult.MISSING

    if token == PLACEHOLDER_TOKEN:
        if development:
            return TokenValidationResult.PLACEHOLDER_ALLOWED
        return TokenValidationResult.PLACEHOLDER_REJECTED

    if not TOKEN_PATTERN.match(token):
        return TokenValidationResult.INVALID_FORMAT

    return TokenValidationResult.OK


def extract_video_id(url: str) -> Optional[str]:
    """Return the YouTube video id of ``url``, or None if it is not a video link"""
    if not url or any(c.isspace() for c in url):
        return None

    try:
        parsed = urlparse(url)
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    host = (parsed.hostname or "").lower()
    video_id = None

    if host in QUERY_HOSTS:
        video_id = parse_qs(parsed.query).get("v", [None])[0]

    if video_id is None and host in PATH_HOSTS:
        parts = [p for p in parsed.path.split("/") if p]
        if host == "youtu.be" and parts:
            video_id = parts[0]
        elif len(parts) >= 2 and parts[0] in PATH_PREFIXES:
            video_id = parts[1]

    if video_id and VIDEO_ID_PATTERN.match(video_id):
        return video_id
    return None


def is_valid_source(url: str) -> bool:
    """Source-validity predicate for the supported media platform"""
    return extract_video_id(url) is not None


def extract_source_url(text: Optional[str]) -> Optional[str]:
    """First whitespace-separated token of ``text`` that is a valid source URL"""
    if not text:
        return None
    for token in text.split():
        candidate = token.strip("<>()[]\"'.,!?")
        if is_valid_source(candidate):
            return candidate
    return None
