"""Approximate user-perceived character counting.

Combining marks, variation selectors, emoji skin-tone modifiers and anything
glued on by a zero width joiner extend the previous cluster. Regional
indicator symbols pair into one flag.
"""

import unicodedata

ZERO_WIDTH_JOINER = "\u200d"


def _extends_cluster(char: str) -> bool:
    code = ord(char)
    if 0xFE00 <= code <= 0xFE0F:  # variation selectors
        return True
    if 0x1F3FB <= code <= 0x1F3FF:  # skin tones
        return True
    if 0xE0020 <= code <= 0xE007F:  # tag sequences
        return True
    return unicodedata.category(char) in ("Mn", "Me", "Mc")


def _is_regional_indicator(char: str) -> bool:
    return 0x1F1E6 <= ord(char) <= 0x1F1FF


def count_graphemes(text: str) -> int:
    count = 0
    joined = False
    open_flag = False
    for char in text:
        if char == ZERO_WIDTH_JOINER:
            joined = count > 0
            continue
        if joined:
            joined = False
            continue
        if count and _extends_cluster(char):
            continue
        if _is_regional_indicator(char):
            if open_flag:
                open_flag = False
                continue
            open_flag = True
        else:
            open_flag = False
        count += 1
    return count


def is_reaction(text: str, max_graphemes: int) -> bool:
    stripped = text.strip()
    return 0 < count_graphemes(stripped) <= max_graphemes
