import logging

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from mediabot.core.state import BotContext
from mediabot.i18n import i18n
from mediabot.models.internal import InboundCommand, MediaMode
from mediabot.services.pipeline import RequestPipeline
from mediabot.utils.locale import get_locale

logger = logging.getLogger(__name__)

CONTEXT_KEY = "mediabot"


def _locale(update: Update) -> str:
    user = update.effective_user
    return get_locale(user.language_code if user else None)


def _bot_context(context: ContextTypes.DEFAULT_TYPE) -> BotContext:
    return context.bot_data[CONTEXT_KEY]


def _inbound(update: Update, mode: MediaMode) -> InboundCommand:
    return InboundCommand(
        mode=mode,
        text=update.effective_message.text or "",
        conversation_id=update.effective_chat.id,
        locale=_locale(update),
    )


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/start"""
    await update.effective_message.reply_text(i18n.get("start.welcome", _locale(update)))


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/help"""
    await update.effective_message.reply_text(i18n.get("help.text", _locale(update)))


async def youtube(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/youtube <url>: stream the video back"""
    await RequestPipeline(_bot_context(context)).run(_inbound(update, MediaMode.STREAM_VIDEO))


async def audio(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """/audio <url>: extract and send the audio track"""
    await RequestPipeline(_bot_context(context)).run(_inbound(update, MediaMode.EXTRACT_AUDIO))


async def detect_link(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Plain text containing a video link: offer the follow-up commands"""
    if not update.effective_message:
        return
    # Text without a link stops at validation with no reply
    await RequestPipeline(_bot_context(context)).run(_inbound(update, MediaMode.LINK_DETECTED))


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Last-resort handler; keeps the process alive"""
    logger.error("Unhandled error while processing update", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(i18n.get("error.generic", _locale(update)))
        except Exception:
            logger.exception("Could not send error reply")


def register(application: Application, bot_context: BotContext) -> None:
    """Attach the command surface to ``application``"""
    application.bot_data[CONTEXT_KEY] = bot_context

    application.add_handler(CommandHandler("start", start))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("youtube", youtube))
    application.add_handler(CommandHandler("audio", audio))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, detect_link))
    application.add_error_handler(on_error)
