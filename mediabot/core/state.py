from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from mediabot.config.settings import Config
from mediabot.services.convert import FFmpegConverter
from mediabot.services.delivery import Delivery
from mediabot.services.source import MediaSource
from mediabot.services.stager import LocalStager


@dataclass
class RuntimeState:
    """Results of the startup probes"""
    staging_dir: Optional[Path] = None
    ffmpeg_available: bool = False
    ffmpeg_version: str = "unknown"
    ytdlp_version: str = "unknown"


@dataclass
class BotContext:
    """
    Process-wide collaborators, built once at startup and handed to every
    pipeline. Nothing in here is mutated per request.
    """
    config: Config
    source: MediaSource
    stager: LocalStager
    converter: FFmpegConverter
    delivery: Delivery
    state: RuntimeState = field(default_factory=RuntimeState)
