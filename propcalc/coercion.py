"""
coercion.py - numeric coercion for loosely-typed form and file input

Every numeric field (rent, fees, percentages, expense amounts, journal
debits/credits) passes through to_number() before arithmetic. Bad input is
never an error: it silently becomes 0.0, so a malformed value and a deliberate
zero look the same downstream.
"""

import math
import re
from typing import Any

# longest numeric prefix, the way a browser's parseFloat reads "12.5abc"
_NUMBER_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def to_number(value: Any) -> float:
    """
    Convert a string or number to float, falling back to 0.0.

    Examples:
      to_number("1000")    -> 1000.0
      to_number(" 12.5kg") -> 12.5
      to_number("")        -> 0.0
      to_number(None)      -> 0.0
      to_number("abc")     -> 0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _NUMBER_PREFIX.match(str(value))
        if not match:
            return 0.0
        try:
            number = float(match.group(1))
        except (OverflowError, ValueError):
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


# Named policy used at the ingestion boundary (models.from_dict, form input).
coerce_or_zero = to_number
