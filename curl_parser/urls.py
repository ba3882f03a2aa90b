from typing import Optional
from urllib.parse import urlsplit


def try_absolute_url(value: str) -> Optional[str]:
    """Вернёт value, если это абсолютный URL с непустым хостом, иначе None."""
    if not value or any(ch.isspace() for ch in value):
        return None
    try:
        parts = urlsplit(value)
        # порт парсится лениво, кривой порт всплывает только здесь
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.hostname:
        return None
    return value
