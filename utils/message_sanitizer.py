"""
Message sanitization for user-supplied text.
Strips HTML tags and control characters from message and comment content.
"""

import logging

import bleach

from core.config import MESSAGE_SANITIZE_ENABLED
from utils.graphemes import count_graphemes

logger = logging.getLogger(__name__)


def sanitize_message(message: str) -> str:
    """
    Sanitize text content before it is stored.

    Args:
        message: Raw text from the client

    Returns:
        Text with HTML tags removed and surrounding whitespace stripped
    """
    if not message:
        return ""

    cleaned = message.strip()

    if not MESSAGE_SANITIZE_ENABLED:
        return cleaned

    # Fewer than three characters cannot hold a tag
    if count_graphemes(cleaned) < 3:
        sanitized = cleaned
    else:
        # tags=[] allows no HTML at all; strip=True drops tags instead of escaping them
        sanitized = bleach.clean(cleaned, tags=[], strip=True)

    # Keep only printable characters, common whitespace, the emoji joiner and
    # the tag characters used by subdivision flags
    sanitized = "".join(
        char
        for char in sanitized
        if char.isprintable()
        or char in ["\n", "\r", "\t", "\u200d"]
        or "\U000E0020" <= char <= "\U000E007F"
    )
    if sanitized != cleaned:
        logger.debug("Sanitized message content")

    return sanitized.strip()
