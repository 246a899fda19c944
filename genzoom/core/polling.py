"""Bounded polling for asynchronous image jobs.

The poller is an explicit state machine (attempt counter, current delay,
accumulated wait) instead of recursive delayed calls, so tests drive it with
a fake sleep rather than wall-clock time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from genzoom.errors import BackendError


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class PollState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    TIMED_OUT = "timed_out"


class JobChecker(Protocol):
    async def check(self, handle: str) -> Optional[str]: ...


@dataclass(frozen=True)
class Backoff:
    max_attempts: int = 10
    initial_delay: float = 2.0
    factor: float = 1.5
    max_delay: float = 15.0

    def delays(self):
        """Waits taken between attempts; there is no wait after the last attempt."""
        delay = self.initial_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay = min(delay * self.factor, self.max_delay)

    @property
    def worst_case_wait(self) -> float:
        return sum(self.delays())


@dataclass
class ImageJob:
    polling_handle: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: PollState = PollState.PENDING
    attempts: int = 0
    delay: float = 0.0
    waited: float = 0.0
    image_url: Optional[str] = None


class ImagePoller:
    def __init__(self, checker: JobChecker, backoff: Optional[Backoff] = None, sleep: Sleep = asyncio.sleep):
        self._checker = checker
        self.backoff = backoff or Backoff()
        self._sleep = sleep

    async def run(self, job: ImageJob) -> ImageJob:
        job.delay = self.backoff.initial_delay
        while job.state is PollState.PENDING:
            job.attempts += 1
            try:
                url = await self._checker.check(job.polling_handle)
            except BackendError as exc:
                # network errors are assumed transient
                logger.warning("Polling attempt %s failed: %s", job.attempts, exc)
                url = None

            if url:
                job.image_url = url
                job.state = PollState.READY
                logger.info("Final image URL: %s (found on attempt %s)", url, job.attempts)
            elif job.attempts >= self.backoff.max_attempts:
                job.state = PollState.TIMED_OUT
                logger.warning("Image polling timeout after %s attempts", job.attempts)
            else:
                logger.info(
                    "Attempt %s: image not ready yet, waiting %.1f seconds",
                    job.attempts,
                    job.delay,
                )
                await self._sleep(job.delay)
                job.waited += job.delay
                job.delay = min(job.delay * self.backoff.factor, self.backoff.max_delay)
        return job

    async def poll(self, polling_handle: str) -> Optional[str]:
        """Return the image URL, or None when the job never became ready."""
        job = await self.run(ImageJob(polling_handle=polling_handle))
        return job.image_url
