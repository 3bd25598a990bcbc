import logging
from typing import Any, Optional

from rich.logging import RichHandler

from mediabot.config.settings import LoggingConfig

logger = logging.getLogger("mediabot")


def setup_logging(settings: LoggingConfig) -> None:
    """Configure root logging once at process start."""
    if settings.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        fmt = settings.format
    else:
        handler = logging.StreamHandler()
        fmt = f"%(asctime)s %(levelname)s %(name)s: {settings.format}"

    handler.setFormatter(logging.Formatter(fmt))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.level)

    # httpx logs every Bot API call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def log_with_context(
    request: Optional[Any],
    level: int,
    message: str,
    exc_info: bool = False,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id and conversation_id for tracing.
    """
    extra = {
        "request_id": getattr(request, "request_id", "unknown"),
        "conversation_id": getattr(request, "conversation_id", "unknown"),
        **kwargs
    }
    logger.log(level, f"[{extra['request_id']}] {message}", extra=extra, exc_info=exc_info)


def log_info(request: Optional[Any], message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)


def log_error(request: Optional[Any], message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)


def log_exception(request: Optional[Any], message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, exc_info=True, **kwargs)


def log_warning(request: Optional[Any], message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)


def log_debug(request: Optional[Any], message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.DEBUG, message, **kwargs)
