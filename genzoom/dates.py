"""Date helpers used to anchor prompts and search queries to the real current date.

Generative backends have a stale knowledge cutoff, so every prompt that depends
on "now" states today's date explicitly and search queries have relative date
words replaced with absolute ones.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Optional


_TODAY_RE = re.compile(r"\btoday\b", re.IGNORECASE)
_CURRENT_DATE_RE = re.compile(r"\bcurrent date\b", re.IGNORECASE)
_CURRENT_YEAR_RE = re.compile(r"\b(?:current|this) year\b", re.IGNORECASE)
_AS_OF_RE = re.compile(r"as of\s+[A-Za-z]+\s+\d{1,2},\s+\d{4}", re.IGNORECASE)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def formatted_date(today: Optional[date] = None) -> str:
    """Return e.g. 'October 19, 2026'."""
    d = today or utc_today()
    return f"{d:%B} {d.day}, {d.year}"


def substitute_today(query: str, today: Optional[date] = None) -> str:
    d = today or utc_today()
    text = formatted_date(d)
    query = _TODAY_RE.sub(text, query)
    query = _CURRENT_DATE_RE.sub(text, query)
    return _CURRENT_YEAR_RE.sub(str(d.year), query)


def override_stale_dates(query: str, today: Optional[date] = None) -> str:
    """Rewrite 'as of <Month D, YYYY>' so it points at today."""
    return _AS_OF_RE.sub(f"as of {formatted_date(today)}", query)


def process_query(query: str, today: Optional[date] = None) -> str:
    d = today or utc_today()
    return override_stale_dates(substitute_today(query, d), d)
