"""Intent classification: one backend call plus deterministic override rules.

The backend under-detects visual requests, so lexical rules evaluated in a
fixed precedence order win over its answer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from genzoom.core.memory import ContextStore
from genzoom.dates import utc_today


logger = logging.getLogger(__name__)


class ResponseType(str, Enum):
    TEXT = "text_response"
    IMAGE = "image_request"
    SEARCH = "exa_response"
    HYBRID = "hybrid_response"


@dataclass(frozen=True)
class ClassificationResult:
    extracted_context: str
    response_type: ResponseType


_IMAGE_NOUN = r"(?:image|picture|photo|visualization|drawing)"

IMAGE_PATTERNS: Tuple[re.Pattern, ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bshow me\b",
        rf"\b(?:show|display|see|view|create|generate|make) an? {_IMAGE_NOUN}",
        rf"\b{_IMAGE_NOUN} of\b",
        r"\b(?:draw|sketch|illustrate|visuali[sz]e|picture|photo|visual|render|depict)",
    )
)

_INTERROGATIVE_RE = re.compile(r"\?|\b(?:who|what|when|where|why|how)\b", re.IGNORECASE)
_CURRENCY_RE = re.compile(r"\b(?:current\w*|now|today|latest|recent\w*)\b", re.IGNORECASE)
_DOMAIN_RE = re.compile(
    r"\b(?:weather|information|data|richest|poorest|biggest|smallest|tallest|shortest)\b",
    re.IGNORECASE,
)


def is_image_request(query: str) -> bool:
    return any(p.search(query) for p in IMAGE_PATTERNS)


def is_information_request(query: str) -> bool:
    return bool(
        _INTERROGATIVE_RE.search(query)
        or _CURRENCY_RE.search(query)
        or _DOMAIN_RE.search(query)
    )


def is_time_sensitive(query: str) -> bool:
    return bool(_CURRENCY_RE.search(query))


@dataclass(frozen=True)
class OverrideRule:
    name: str
    target: ResponseType
    applies: Callable[[str, ResponseType], bool]


OVERRIDE_RULES: Tuple[OverrideRule, ...] = (
    OverrideRule(
        "image_with_information",
        ResponseType.HYBRID,
        lambda q, _: is_image_request(q) and is_information_request(q),
    ),
    OverrideRule(
        "image_only",
        ResponseType.IMAGE,
        lambda q, _: is_image_request(q),
    ),
    OverrideRule(
        "time_sensitive_text",
        ResponseType.SEARCH,
        lambda q, chosen: chosen is ResponseType.TEXT and is_time_sensitive(q),
    ),
)


def apply_overrides(
    query: str,
    chosen: ResponseType,
    rules: Sequence[OverrideRule] = OVERRIDE_RULES,
) -> Tuple[ResponseType, Optional[str]]:
    """Return the final response type and the name of the rule that decided it."""
    for rule in rules:
        if rule.applies(query, chosen):
            return rule.target, rule.name
    return chosen, None


_CONTEXT_LINE_RE = re.compile(r"extracted context:[ \t]*(.*)", re.IGNORECASE)
_TYPE_LINE_RE = re.compile(r"response type:[ \t]*(.*)", re.IGNORECASE)


def parse_classification(raw: Optional[str]) -> ClassificationResult:
    """Parse the two-line backend answer; anything unreadable means text_response."""
    if not raw:
        return ClassificationResult("", ResponseType.TEXT)

    context_match = _CONTEXT_LINE_RE.search(raw)
    type_match = _TYPE_LINE_RE.search(raw)
    extracted = context_match.group(1).strip() if context_match else ""

    response_type = ResponseType.TEXT
    if type_match:
        value = type_match.group(1).strip().strip("`'\"*.").lower()
        try:
            response_type = ResponseType(value)
        except ValueError:
            logger.warning("Unknown response type from classifier: %r", value)
    return ClassificationResult(extracted, response_type)


class Classifier(Protocol):
    async def classify(self, query: str, conversation: str, today: date) -> Optional[str]: ...


class IntentClassifier:
    def __init__(
        self,
        backend: Classifier,
        store: ContextStore,
        today: Callable[[], date] = utc_today,
        rules: Sequence[OverrideRule] = OVERRIDE_RULES,
    ):
        self._backend = backend
        self._store = store
        self._today = today
        self.rules: List[OverrideRule] = list(rules)

    async def classify(self, query: str, user_id: str) -> ClassificationResult:
        raw = await self._backend.classify(query, self._store.conversation(user_id), self._today())
        parsed = parse_classification(raw)
        final, rule = apply_overrides(query, parsed.response_type, self.rules)
        if rule:
            logger.info(
                "Overriding %s to %s (rule=%s)",
                parsed.response_type.value,
                final.value,
                rule,
            )
        return ClassificationResult(parsed.extracted_context, final)
