import asyncio
import logging
import sys
from typing import Optional

from rich.console import Console
from telegram import Update
from telegram.error import InvalidToken
from telegram.ext import Application, ApplicationBuilder

from mediabot.api import register
from mediabot.api.commands import CONTEXT_KEY
from mediabot.config.settings import Config, load_config
from mediabot.core.logging import setup_logging
from mediabot.core.security import TokenValidationResult, validate_bot_token
from mediabot.core.state import BotContext, RuntimeState
from mediabot.services.convert import FFmpegConverter
from mediabot.services.delivery import TelegramDelivery
from mediabot.services.source import YtDlpSource
from mediabot.services.stager import LocalStager
from mediabot.services.ytdlp import SubprocessExecutor, YTDLPCommandBuilder

logger = logging.getLogger(__name__)
console = Console(stderr=True)

TOKEN_ERRORS = {
    TokenValidationResult.MISSING: (
        "Telegram Bot Token is not set.",
        "Set BOT_TOKEN in the environment or in your .env file.",
    ),
    TokenValidationResult.PLACEHOLDER_REJECTED: (
        "Cannot use the example token outside development mode.",
        "Set BOT_TOKEN to your actual token from @BotFather.",
    ),
    TokenValidationResult.INVALID_FORMAT: (
        "Invalid Telegram Bot Token format.",
        "Token should look like: 1234567890:ABCDefGhIJKlmnOPQrsTUVwxyZ",
    ),
}


class StartupError(Exception):
    """The process cannot serve requests at all."""


def check_token(config: Config) -> str:
    """Validate the bot token or raise StartupError"""
    result = validate_bot_token(config.bot_token, development=config.is_development)

    if result is TokenValidationResult.PLACEHOLDER_ALLOWED:
        console.print("[yellow]⚠ Using the example token; continuing in development mode[/yellow]")
    elif not result.usable:
        message, hint = TOKEN_ERRORS[result]
        raise StartupError(f"{message} {hint}")

    return config.bot_token


async def probe_ytdlp(config: Config) -> Optional[str]:
    builder = YTDLPCommandBuilder(config.ytdlp, config.download)
    try:
        result = await SubprocessExecutor.run(builder.build_version_command(), timeout=10.0)
    except (OSError, asyncio.TimeoutError):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.decode(errors="ignore").strip() or None


def build_context(config: Config, application: Application) -> BotContext:
    """Create the process-wide collaborators and the staging directory"""
    stager = LocalStager(config.staging.directory)
    state = RuntimeState(staging_dir=stager.ensure_staging_dir())

    return BotContext(
        config=config,
        source=YtDlpSource(config.ytdlp, config.download),
        stager=stager,
        converter=FFmpegConverter(config.audio),
        delivery=TelegramDelivery(application.bot, config.delivery),
        state=state,
    )


async def on_startup(application: Application) -> None:
    bot_context: BotContext = application.bot_data[CONTEXT_KEY]
    state = bot_context.state

    state.ffmpeg_available, state.ffmpeg_version = await bot_context.converter.probe()
    if not state.ffmpeg_available:
        console.print("[yellow]⚠ FFmpeg is not installed or not in PATH. Audio extraction may not work properly.[/yellow]")
        console.print("[yellow]  Install FFmpeg to use the audio extraction feature.[/yellow]")

    version = await probe_ytdlp(bot_context.config)
    if version:
        state.ytdlp_version = version
    else:
        console.print("[yellow]⚠ yt-dlp could not be executed; media commands will fail[/yellow]")

    console.print(f"[green]✓ Media Streaming Bot is running[/green] [dim](yt-dlp {state.ytdlp_version})[/dim]")
    logger.info("Staging directory: %s", state.staging_dir)


async def on_shutdown(application: Application) -> None:
    console.print("[dim]✓ Bot stopped[/dim]")


def build_application(config: Config) -> Application:
    token = check_token(config)

    application = (
        ApplicationBuilder()
        .token(token)
        .concurrent_updates(config.bot.concurrent_updates)
        .connect_timeout(config.bot.connect_timeout)
        .read_timeout(config.bot.read_timeout)
        .post_init(on_startup)
        .post_shutdown(on_shutdown)
        .build()
    )
    register(application, build_context(config, application))
    return application


def main() -> None:
    config = load_config()
    setup_logging(config.logging)

    try:
        application = build_application(config)
    except StartupError as e:
        console.print(f"[red]ERROR: {e}[/red]")
        sys.exit(1)

    try:
        # SIGINT/SIGTERM stop polling and close the Bot API session
        application.run_polling(allowed_updates=Update.ALL_TYPES)
    except InvalidToken:
        console.print("[red]ERROR: Invalid Telegram Bot Token. Check BOT_TOKEN.[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
