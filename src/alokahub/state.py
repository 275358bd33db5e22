"""Request lifecycle state machine with lock-protected transitions."""

from __future__ import annotations

import asyncio
from enum import Enum


class RequestState(str, Enum):
    """At most one chat request may be awaiting a response."""

    IDLE = "IDLE"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"


class RequestStateManager:
    """Manage state transitions with async lock semantics."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._state = RequestState.IDLE

    async def transition_to(self, new_state: RequestState) -> RequestState:
        """Transition to a new state and return it."""
        async with self._lock:
            self._state = new_state
            return self._state

    async def transition_if(
        self,
        expected_state: RequestState,
        new_state: RequestState,
    ) -> bool:
        """Transition only when current state matches expected state."""
        async with self._lock:
            if self._state != expected_state:
                return False
            self._state = new_state
            return True

    async def can_send_message(self) -> bool:
        """Return True when message submission is allowed."""
        async with self._lock:
            return self._state == RequestState.IDLE
