"""Per-user conversation memory.

Server-side memory lives in the process only: each user keeps the last N
messages (role prefixes are added by the caller) plus an optional display
name, and idle users are swept out after the expiration window.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Deque, Dict, List, Optional


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[None]]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserContext:
    user_id: str
    messages: Deque[str]
    last_activity: datetime
    display_name: Optional[str] = None


@dataclass
class ContextStore:
    max_history: int = 10
    expiration: timedelta = timedelta(hours=24)
    sweep_interval: float = 3600.0
    clock: Clock = _utc_now
    sleep: Sleep = asyncio.sleep
    _contexts: Dict[str, UserContext] = field(default_factory=dict, init=False, repr=False)
    _sweeper: Optional[asyncio.Task] = field(default=None, init=False, repr=False)

    def get(self, user_id: str) -> UserContext:
        now = self.clock()
        context = self._contexts.get(user_id)
        if context is None:
            context = UserContext(
                user_id=user_id,
                messages=deque(maxlen=self.max_history),
                last_activity=now,
            )
            self._contexts[user_id] = context
        else:
            context.last_activity = now
        return context

    def append(self, user_id: str, message: str) -> None:
        # deque(maxlen=...) drops the oldest entry on overflow
        self.get(user_id).messages.append(message)

    def history(self, user_id: str) -> List[str]:
        return list(self.get(user_id).messages)

    def conversation(self, user_id: str) -> str:
        return " | ".join(self.get(user_id).messages)

    def set_name(self, user_id: str, name: str) -> None:
        self.get(user_id).display_name = name

    def display_name(self, user_id: str) -> Optional[str]:
        return self.get(user_id).display_name

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._contexts

    def __len__(self) -> int:
        return len(self._contexts)

    def sweep(self) -> int:
        """Remove contexts idle for longer than the expiration window."""
        now = self.clock()
        expired = [
            user_id
            for user_id, context in self._contexts.items()
            if now - context.last_activity > self.expiration
        ]
        for user_id in expired:
            del self._contexts[user_id]
        if expired:
            logger.info("Cleaned up %s expired user contexts", len(expired))
        return len(expired)

    async def _sweep_forever(self) -> None:
        while True:
            await self.sleep(self.sweep_interval)
            self.sweep()

    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever())

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
