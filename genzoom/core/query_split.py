from __future__ import annotations

import re
from dataclasses import dataclass


IMAGE_TRIGGERS = (
    "imagine",
    "visualize",
    "picture",
    "envision",
    "show",
    "create an image",
    "what would it look like",
)

MIN_INFORMATION_LENGTH = 10

_TRAILING_CONJUNCTION_RE = re.compile(r"(?:\b(?:and|then|also|plus)\s*)+$", re.IGNORECASE)
_QUESTION_RE = re.compile(
    r"\?|\b(?:who|what|when|where|why|how|tell|explain|describe)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class HybridQuery:
    information: str
    image: str


def split_hybrid_query(query: str) -> HybridQuery:
    """Split a hybrid request into the part to search for and the part to draw.

    The information part is the text before the earliest image trigger, with
    trailing conjunctions trimmed. It falls back to the whole query when that
    prefix is too short or does not read like a question.
    """
    lowered = query.lower()
    positions = [i for i in (lowered.find(t) for t in IMAGE_TRIGGERS) if i != -1]
    if not positions:
        return HybridQuery(information=query, image=query)

    prefix = query[: min(positions)].rstrip(" ,;:-")
    prefix = _TRAILING_CONJUNCTION_RE.sub("", prefix).rstrip(" ,;:-")
    if len(prefix) < MIN_INFORMATION_LENGTH or not _QUESTION_RE.search(prefix):
        prefix = query
    return HybridQuery(information=prefix, image=query)
