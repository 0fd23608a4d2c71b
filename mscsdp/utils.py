"""Small string and number helpers."""

from __future__ import annotations

import math
import random
import re
import string
from typing import Iterable

_CHARS = string.digits + string.ascii_lowercase + string.ascii_uppercase

_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_FLOAT32_MAX = 3.4028234663852886e38

_rng = random.Random()


def get_random_integer(minimum: int, maximum: int) -> int:
    """Return a random integer in the half-open range [minimum, maximum)."""
    if maximum <= minimum:
        raise ValueError("maximum must be greater than minimum")
    return _rng.randrange(minimum, maximum)


def get_random_string(length: int) -> str:
    """Return a random string of ASCII letters and digits."""
    return "".join(_rng.choice(_CHARS) for _ in range(length))


def split(text: str, delimiter: str) -> list[str]:
    """Split text on delimiter, dropping one trailing empty token.

    An empty string yields no tokens, and a trailing delimiter does not
    produce an empty last token.
    """
    tokens = text.split(delimiter)
    if tokens and tokens[-1] == "":
        tokens.pop()
    return tokens


def join(values: Iterable[object], delimiter: str) -> str:
    """Join the string forms of values with delimiter."""
    return delimiter.join(str(value) for value in values)


def _parse_int64(text: str) -> int | None:
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        return None
    return value


def _parse_double(text: str) -> float | None:
    if not _FLOAT_RE.fullmatch(text):
        return None
    value = float(text)
    if math.isinf(value):
        return None
    return value


def is_int(text: str) -> bool:
    """Whether the whole text is a signed 64-bit decimal integer."""
    return _parse_int64(text) is not None


def is_float(text: str) -> bool:
    """Whether the whole text is a decimal number within float32 range."""
    value = _parse_double(text)
    return value is not None and abs(value) <= _FLOAT32_MAX


def to_int(text: str) -> int:
    """Parse text as an integer narrowed to 32 bits, or return 0."""
    value = _parse_int64(text)
    if value is None:
        return 0
    return ((value + 2**31) % 2**32) - 2**31


def to_float(text: str) -> float:
    """Parse text as a number, or return 0.0 if it is not one."""
    value = _parse_double(text)
    if value is None:
        return 0.0
    if abs(value) > _FLOAT32_MAX:
        return math.copysign(math.inf, value)
    return value