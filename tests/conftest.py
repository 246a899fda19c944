from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

import pytest

from genzoom.agent import ResponseOrchestrator
from genzoom.core.intents import IntentClassifier
from genzoom.core.memory import ContextStore
from genzoom.core.polling import ImagePoller
from genzoom.core.verification import SearchVerifier


TODAY = date(2026, 10, 19)


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeSleep:
    def __init__(self):
        self.waits: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


class ScriptedText:
    """Text backend replaying queued answers for `generate`, recording prompts."""

    def __init__(
        self,
        generated: Sequence[Optional[str]] = (),
        classification: Optional[str] = None,
        answer: Optional[str] = "A helpful answer.",
    ):
        self.generated = list(generated)
        self.classification = classification
        self.answer_text = answer
        self.prompts: List[str] = []
        self.classify_calls: List[tuple] = []
        self.improved: List[tuple] = []
        self.answered: List[tuple] = []

    async def generate(self, prompt, mode="generic", system_prompt=None):
        self.prompts.append(prompt)
        return self.generated.pop(0) if self.generated else None

    async def classify(self, query, conversation, today):
        self.classify_calls.append((query, conversation, today))
        return self.classification

    async def answer(self, query, conversation, user_name=None):
        self.answered.append((query, conversation, user_name))
        return self.answer_text

    async def improve_prompt(self, original, kind="image"):
        self.improved.append((original, kind))
        return f"enhanced {original}"


class FakeSearch:
    def __init__(self, answers: Sequence[Optional[str]] = ()):
        self.answers = list(answers)
        self.queries: List[str] = []

    async def search(self, query):
        self.queries.append(query)
        return self.answers.pop(0) if self.answers else None


class FakeImages:
    def __init__(self, handle: Optional[str] = "https://flux.test/poll/1", results: Sequence = ()):
        self.handle = handle
        self.results = list(results)
        self.prompts: List[str] = []
        self.checks = 0

    async def submit(self, prompt, width=1024, height=768):
        self.prompts.append(prompt)
        return self.handle

    async def check(self, handle):
        self.checks += 1
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result


class RecordingDeliverer:
    def __init__(self, outcomes: Sequence[bool] = ()):
        self.outcomes = list(outcomes)
        self.sent: List[tuple] = []

    async def deliver(self, target, reply):
        self.sent.append((target, reply))
        return self.outcomes.pop(0) if self.outcomes else True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> ContextStore:
    return ContextStore(clock=clock)


def build_orchestrator(
    store: ContextStore,
    text: ScriptedText,
    search: FakeSearch,
    images: FakeImages,
    deliverer: RecordingDeliverer,
) -> ResponseOrchestrator:
    sleep = FakeSleep()
    return ResponseOrchestrator(
        store=store,
        classifier=IntentClassifier(text, store, today=lambda: TODAY),
        text=text,
        search=search,
        verifier=SearchVerifier(text, search, today=lambda: TODAY),
        images=images,
        poller=ImagePoller(images, sleep=sleep),
        deliverer=deliverer,
        today=lambda: TODAY,
    )


def classification(response_type: str, context: str = "") -> str:
    return f"Extracted context: {context}\nResponse type: {response_type}"
