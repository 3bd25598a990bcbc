from typing import Optional
from urllib.parse import urlparse

from mediabot.config.settings import config


def get_locale(language_code: Optional[str] = None) -> str:
    """Map a Telegram user language code (e.g. 'en-US') to a supported locale"""
    if not language_code:
        return config.i18n.default_locale

    locale = language_code.strip().replace("_", "-").split("-")[0].lower()
    if locale in config.i18n.supported_locales:
        return locale

    return config.i18n.default_locale


def safe_url_for_log(url: str) -> str:
    """Safe URL for logging"""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "invalid_url"

    if not parsed.scheme or not parsed.netloc:
        return "invalid_url"

    base_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
    if config.logging.level == "DEBUG" and parsed.query:
        return f"{base_url}?..."

    return base_url
