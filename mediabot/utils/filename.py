import re
import unicodedata


def sanitize_filename(name: str, max_length: int = 200) -> str:
    """Make a media title usable as an attachment file name"""
    name = unicodedata.normalize("NFKC", name)
    name = re.sub(r'[\\/:*?"<>|\x00-\x1f]', '_', name)
    name = re.sub(r'\s+', ' ', name).strip(' .')

    windows_reserved = {
        'CON', 'PRN', 'AUX', 'NUL',
        *(f'COM{i}' for i in range(1, 10)),
        *(f'LPT{i}' for i in range(1, 10)),
    }
    if name.upper() in windows_reserved:
        name = f"_{name}"

    return name[:max_length].strip()
