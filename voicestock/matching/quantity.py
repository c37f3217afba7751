"""
Quantity extraction from spoken text.

Order of precedence:
1. Literal digits ("5个", "x 12"), skipping digits glued to letters,
   which are product codes ("C001")
2. Number words, earliest occurrence in the text wins:
   Chinese numerals including 两/俩 and composites (十五, 二十, 一百零五),
   an optional 打 (dozen) suffix, and English one..ten / "a dozen"
3. Nothing found: None (callers default to 1)
"""

from __future__ import annotations

import re
from typing import Optional

CHINESE_DIGITS: dict[str, int] = {
    "一": 1, "二": 2, "两": 2, "俩": 2, "三": 3, "四": 4, "五": 5,
    "六": 6, "七": 7, "八": 8, "九": 9,
}

CHINESE_UNITS: dict[str, int] = {"十": 10, "百": 100}

ENGLISH_NUMBERS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "a couple of": 2, "a dozen": 12,
}

DOZEN_SUFFIX = "打"
ZERO = "零"

_DIGIT_PATTERN = re.compile(r"(?<![a-z0-9])\d+(?![a-z0-9])")
_NUMERAL_CHARS = "".join(CHINESE_DIGITS) + "".join(CHINESE_UNITS)
# 零 only as a filler inside a run (一百零五), never on its own
_CHINESE_PATTERN = re.compile(
    f"[{_NUMERAL_CHARS}][{_NUMERAL_CHARS}{ZERO}]*{DOZEN_SUFFIX}?"
)
_ENGLISH_PATTERN = re.compile(
    r"\b(" + "|".join(sorted(ENGLISH_NUMBERS, key=len, reverse=True)) + r")\b"
)


def parse_chinese_numeral(run: str) -> int:
    """
    Value of a run of Chinese numeral characters.

    >>> parse_chinese_numeral("十五")
    15
    >>> parse_chinese_numeral("两百")
    200
    >>> parse_chinese_numeral("一打")
    12
    """
    dozen = run.endswith(DOZEN_SUFFIX)
    if dozen:
        run = run[:-1]

    total = 0
    current = 0
    for char in run:
        if char in CHINESE_DIGITS:
            current = CHINESE_DIGITS[char]
        elif char in CHINESE_UNITS:
            total += (current or 1) * CHINESE_UNITS[char]
            current = 0
    value = total + current
    if dozen:
        return (value or 1) * 12
    return value


def extract_quantity(text: str) -> Optional[int]:
    """Return the first positive quantity mentioned in `text`, or None."""
    if not text:
        return None
    normalized = text.casefold()

    for match in _DIGIT_PATTERN.finditer(normalized):
        value = int(match.group())
        if value > 0:
            return value

    best_pos: Optional[int] = None
    best_value: Optional[int] = None

    chinese = _CHINESE_PATTERN.search(normalized)
    if chinese:
        value = parse_chinese_numeral(chinese.group())
        if value > 0:
            best_pos, best_value = chinese.start(), value

    english = _ENGLISH_PATTERN.search(normalized)
    if english and (best_pos is None or english.start() < best_pos):
        best_pos, best_value = english.start(), ENGLISH_NUMBERS[english.group(1)]

    return best_value
