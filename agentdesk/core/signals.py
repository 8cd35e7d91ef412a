"""Numeric signal extraction for free-text model replies.

Language models answer "rate this from 0 to 1" prompts with text such as
``"0.8"``, ``"Relevance: 0.75."`` or ``"billing|0.92"``. Every call site that
needs a number goes through :func:`extract_score` so the fallback policy lives
in one place.
"""
from __future__ import annotations

import math
import re
from typing import Optional, Sequence, Tuple

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.\d*|\.\d+|\d+)")

DEFAULT_RELEVANCE = 0.5
DEFAULT_CLASSIFICATION_CONFIDENCE = 0.0


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp ``value`` into ``[low, high]``; NaN collapses to ``low``."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return low
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def extract_score(
    text: Optional[str],
    default: float,
    *,
    low: float = 0.0,
    high: float = 1.0,
) -> float:
    """Return the first number found in ``text`` clamped to ``[low, high]``.

    ``default`` is returned unchanged when the text is empty or holds no
    parseable number.
    """
    if not text:
        return default
    match = _NUMBER_RE.search(text)
    if match is None:
        return default
    try:
        value = float(match.group())
    except ValueError:
        return default
    if math.isnan(value) or math.isinf(value):
        return default
    return clamp(value, low, high)


def parse_classification(
    text: Optional[str],
    categories: Sequence[str],
    *,
    default_confidence: float = DEFAULT_CLASSIFICATION_CONFIDENCE,
) -> Tuple[str, float]:
    """Split a ``category|confidence`` reply into its parts.

    A reply without a usable confidence gets ``default_confidence`` so that it
    falls below any sensible threshold. An empty category name falls back to
    the first configured category.
    """
    raw = (text or "").strip().strip('"').strip()
    name, _, score = raw.partition("|")
    name = name.strip().strip('"').strip()
    if not name and categories:
        name = categories[0]
    confidence = extract_score(score, default_confidence) if score else default_confidence
    return name, confidence
