"""
Price text normalization.

The valuation page renders values as grouped numerals, optionally split into
Korean large-number units, e.g. ``"12,000"``, ``"3,450억"`` or
``"1조 2,345억 BP"``. ``parse_price_text`` turns such strings into numbers so
observations can be ranked; anything unparseable (including the failure
marker) becomes ``None`` and ranks below every real value.

Usage:
    >>> parse_price_text("12,000")
    12000
    >>> parse_price_text("1,234억 5,678만")
    123456780000
    >>> parse_price_text("Error") is None
    True
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

Number = Union[int, float]

# Separators that may appear between digit groups
GROUP_SEPARATORS = (
    ",",       # ASCII comma
    "\uff0c",  # full-width comma
    "\u066c",  # Arabic thousands separator
    "'",       # Swiss-style apostrophe
    "\u00a0",  # no-break space
    "\u202f",  # narrow no-break space
    "\u2009",  # thin space
    " ",       # plain space between unit groups
)

KOREAN_UNITS = {
    "조": 10 ** 12,
    "억": 10 ** 8,
    "만": 10 ** 4,
    "천": 10 ** 3,
}

# Trailing currency markers shown next to values
CURRENCY_SUFFIXES = ("BP", "원")

# \d matches any Unicode decimal digit; int()/Decimal() accept them as well
_SEGMENT_RE = re.compile(r"(\d+(?:\.\d+)?)(조|억|만|천)?")

LOWEST_RANK = float("-inf")


def strip_group_separators(text: str) -> str:
    """Remove every digit-grouping separator from ``text``."""
    for sep in GROUP_SEPARATORS:
        text = text.replace(sep, "")
    return text


def _to_number(value: Decimal) -> Number:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def parse_price_text(text: Optional[str]) -> Optional[Number]:
    """
    Parse a displayed price into a number.

    Returns:
        int for whole values, float otherwise, or None when the text is empty,
        the failure marker, or not a price at all. Never raises.
    """
    if not text or not isinstance(text, str):
        return None

    compact = strip_group_separators(text.strip())
    for suffix in CURRENCY_SUFFIXES:
        if compact.upper().endswith(suffix):
            compact = compact[: -len(suffix)]
            break

    if not compact:
        return None

    total = Decimal(0)
    position = 0
    last_unit_scale = None

    for match in _SEGMENT_RE.finditer(compact):
        if match.start() != position:
            return None
        position = match.end()

        digits, unit = match.groups()
        try:
            amount = Decimal(digits)
        except InvalidOperation:
            return None

        if unit is None:
            # A bare number is only allowed as the final segment
            if position != len(compact):
                return None
            total += amount
            continue

        scale = KOREAN_UNITS[unit]
        # Units must appear in strictly descending order (조 > 억 > 만 > 천)
        if last_unit_scale is not None and scale >= last_unit_scale:
            return None
        last_unit_scale = scale
        total += amount * scale

    if position != len(compact):
        return None

    return _to_number(total)


def price_sort_key(value: Optional[Number]) -> float:
    """Sort key that ranks missing values below every parsed price."""
    if value is None:
        return LOWEST_RANK
    return value
