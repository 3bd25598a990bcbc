import asyncio
import os
from pathlib import Path
from typing import Awaitable, Callable, Protocol, TypeVar, Union

from telegram import Bot
from telegram.error import TelegramError

from mediabot.config.settings import DeliveryConfig
from mediabot.core.errors import DeliveryError
from mediabot.utils.filename import sanitize_filename

ConversationId = Union[int, str]
T = TypeVar("T")


class Delivery(Protocol):
    """Outbound side of the chat transport."""

    async def send_text(self, conversation_id: ConversationId, text: str) -> None:
        ...

    async def send_video(self, conversation_id: ConversationId, path: Path, caption: str) -> None:
        """Raises DeliveryError if the upload fails."""
        ...

    async def send_audio(self, conversation_id: ConversationId, path: Path, caption: str) -> None:
        """Raises DeliveryError if the upload fails."""
        ...


def truncate_caption(caption: str, limit: int) -> str:
    if len(caption) <= limit:
        return caption
    return caption[: limit - 1].rstrip() + "…"


class TelegramDelivery:
    """Delivery over the Telegram Bot API"""

    def __init__(self, bot: Bot, config: DeliveryConfig):
        self.bot = bot
        self.config = config

    async def _bounded(self, call: Callable[[], Awaitable[T]], what: str) -> T:
        try:
            return await asyncio.wait_for(call(), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError:
            raise DeliveryError(f"{what} timed out after {self.config.timeout_seconds}s")
        except TelegramError as e:
            raise DeliveryError(f"{what} rejected by Telegram: {e}") from e
        except OSError as e:
            raise DeliveryError(f"{what} failed: {e}") from e

    def _check_size(self, path: Path) -> None:
        try:
            size = os.path.getsize(path)
        except OSError as e:
            raise DeliveryError(f"Cannot read {path}: {e}") from e
        if size > self.config.max_upload_bytes:
            raise DeliveryError(
                f"{size} bytes exceeds the upload limit of {self.config.max_upload_bytes}",
                context={"size": size},
            )

    def _filename(self, caption: str, path: Path) -> str:
        name = sanitize_filename(caption, max_length=100) or path.stem
        return f"{name}{path.suffix}"

    async def send_text(self, conversation_id: ConversationId, text: str) -> None:
        await self._bounded(
            lambda: self.bot.send_message(chat_id=conversation_id, text=text),
            "send_message",
        )

    async def send_video(self, conversation_id: ConversationId, path: Path, caption: str) -> None:
        self._check_size(path)
        await self._bounded(
            lambda: self.bot.send_video(
                chat_id=conversation_id,
                video=path,
                caption=truncate_caption(caption, self.config.caption_limit),
                filename=self._filename(caption, path),
                supports_streaming=True,
                read_timeout=self.config.timeout_seconds,
                write_timeout=self.config.timeout_seconds,
            ),
            "send_video",
        )

    async def send_audio(self, conversation_id: ConversationId, path: Path, caption: str) -> None:
        self._check_size(path)
        await self._bounded(
            lambda: self.bot.send_audio(
                chat_id=conversation_id,
                audio=path,
                caption=truncate_caption(caption, self.config.caption_limit),
                title=caption[:64],
                filename=self._filename(caption, path),
                read_timeout=self.config.timeout_seconds,
                write_timeout=self.config.timeout_seconds,
            ),
            "send_audio",
        )
