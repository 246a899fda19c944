"""Search verification and refinement.

Search answers are unverified free text, so each one is checked for relevance
and currency. A failed check triggers exactly one retry with a rewritten query;
if that also fails the retried answer is still returned, with a disclaimer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Protocol

from genzoom.core import prompt
from genzoom.core.intents import is_image_request, is_time_sensitive
from genzoom.dates import formatted_date, process_query, utc_today


logger = logging.getLogger(__name__)

MIN_ANSWER_LENGTH = 20
VERIFY_EXCERPT_LENGTH = 500

_UNCERTAINTY_RE = re.compile(r"I don't know|I'm not sure|I cannot|I can't provide", re.IGNORECASE)
_VERDICT_RE = re.compile(r"^\W*(INVALID|VALID|YES|NO)\b[\s:.,*-]*", re.IGNORECASE)
_PRONOUN_RE = re.compile(
    r"\b(?:they|them|their|these|those|it|its|he|she|his|her)\b", re.IGNORECASE
)
_SUPERLATIVE_RE = re.compile(
    r"richest|poorest|biggest|smallest|tallest|shortest|fastest|slowest|oldest|youngest|best|worst",
    re.IGNORECASE,
)
_VISUAL_VERBS = (
    r"draw|show|display|see|view|create|generate|make|picture|photo|image|visualization"
    r"|drawing|sketch|illustrate|visualize|render|depict"
)
_SUBJECT_OF_RE = re.compile(rf"(?:{_VISUAL_VERBS})(?:\s+\w+)?\s+(?:of|about)\s+([^?.,]+)", re.IGNORECASE)
_SUBJECT_DIRECT_RE = re.compile(rf"(?:{_VISUAL_VERBS})\s+(?:(?:a|an|the|me)\s+)*([^?.,]+)", re.IGNORECASE)


@dataclass(frozen=True)
class VerificationOutcome:
    is_valid: bool
    reason: str


class TextBackend(Protocol):
    async def generate(
        self, prompt: str, mode: str = "generic", system_prompt: Optional[str] = None
    ) -> Optional[str]: ...


class SearchBackend(Protocol):
    async def search(self, query: str) -> Optional[str]: ...


def precheck(answer: Optional[str]) -> Optional[VerificationOutcome]:
    """Reject obviously unusable answers without calling the backend."""
    if not answer or len(answer) < MIN_ANSWER_LENGTH:
        return VerificationOutcome(False, "Response is too short or empty")
    if _UNCERTAINTY_RE.search(answer):
        return VerificationOutcome(False, "Response contains uncertainty phrases")
    return None


def parse_verdict(raw: Optional[str]) -> VerificationOutcome:
    """Read the leading VALID/INVALID (or YES/NO) token; unreadable means valid."""
    if not raw:
        return VerificationOutcome(True, "Verification unavailable, assuming response is valid")
    match = _VERDICT_RE.match(raw)
    if not match:
        logger.warning("Unparseable verification verdict: %r", raw[:100])
        return VerificationOutcome(True, "Verification unparseable, assuming response is valid")
    token = match.group(1).upper()
    if token in ("INVALID", "NO"):
        reason = raw[match.end():].strip() or "Response judged irrelevant or outdated"
        return VerificationOutcome(False, reason)
    return VerificationOutcome(True, "Response is relevant and accurate")


def extract_visual_subject(query: str) -> str:
    match = _SUBJECT_OF_RE.search(query) or _SUBJECT_DIRECT_RE.search(query)
    return match.group(1).strip() if match else ""


def disclaimer(today: date) -> str:
    return (
        f"Note: I couldn't confirm that this information is current as of "
        f"{formatted_date(today)}, so it may not be current.\n\n"
    )


class SearchVerifier:
    def __init__(
        self,
        text: TextBackend,
        search: SearchBackend,
        today: Callable[[], date] = utc_today,
    ):
        self._text = text
        self._search = search
        self._today = today

    async def verify(self, answer: Optional[str], query: str) -> VerificationOutcome:
        rejected = precheck(answer)
        if rejected is not None:
            return rejected

        today = formatted_date(self._today())
        excerpt = answer[:VERIFY_EXCERPT_LENGTH]
        if len(answer) > VERIFY_EXCERPT_LENGTH:
            excerpt += "..."
        currency_clause = prompt.CURRENCY_CLAUSE.format(today=today) if is_time_sensitive(query) else ""
        raw = await self._text.generate(
            prompt.VERIFY_TEMPLATE.format(
                query=query,
                response=excerpt,
                today=today,
                currency_clause=currency_clause,
            ),
            system_prompt=prompt.VERIFY_SYSTEM_PROMPT.format(today=today),
        )
        return parse_verdict(raw)

    async def refine_query(self, query: str, feedback: str) -> str:
        today = self._today()
        refined = await self._text.generate(
            prompt.REFINE_TEMPLATE.format(
                query=query,
                feedback=feedback,
                today=formatted_date(today),
                year=today.year,
            ),
            system_prompt=prompt.REFINE_SYSTEM_PROMPT.format(
                today=formatted_date(today), year=today.year
            ),
        )
        return process_query(refined or query, today)

    def as_information_query(self, query: str) -> str:
        """Turn an image-phrased request into a plain information question."""
        if not is_image_request(query):
            return query
        subject = extract_visual_subject(query)
        if not subject:
            return query
        today = formatted_date(self._today())
        if _SUPERLATIVE_RE.search(subject):
            reformulated = f"What is the most current information about {subject} as of {today}?"
        elif is_time_sensitive(subject):
            reformulated = f"What is the most up-to-date information about {subject} as of {today}?"
        else:
            reformulated = f"Who or what is {subject} as of {today}?"
        logger.info("Reformulated image query to information query: %r", reformulated)
        return reformulated

    async def resolve_references(self, query: str, conversation: str) -> str:
        if not conversation or not _PRONOUN_RE.search(query):
            return query
        today = formatted_date(self._today())
        resolved = await self._text.generate(
            prompt.RESOLVE_TEMPLATE.format(query=query, conversation=conversation, today=today),
            system_prompt=prompt.RESOLVE_SYSTEM_PROMPT.format(today=today),
        )
        if resolved:
            logger.info("Resolved query references: %r", resolved)
        return resolved or query

    async def search_with_verification(self, query: str, conversation: str = "") -> Optional[str]:
        """Search, verify, and retry once with a refined query.

        Returns None when the search backend yields nothing at either attempt.
        """
        query = self.as_information_query(query)
        query = await self.resolve_references(query, conversation)

        answer = await self._search.search(query)
        if not answer:
            logger.info("No response from search API")
            return None

        outcome = await self.verify(answer, query)
        logger.info(
            "Search response verified as %s: %s",
            "valid" if outcome.is_valid else "invalid",
            outcome.reason,
        )
        if outcome.is_valid:
            return answer

        refined = await self.refine_query(query, outcome.reason)
        logger.info("Retrying search with refined query: %r", refined)
        retried = await self._search.search(refined)
        if not retried:
            logger.info("No response from search API on retry")
            return None

        second = await self.verify(retried, refined)
        if second.is_valid:
            return retried
        logger.warning("Retried search answer also failed verification: %s", second.reason)
        return disclaimer(self._today()) + retried
