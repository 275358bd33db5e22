"""Tests for the single-flight request state machine."""

from __future__ import annotations

import asyncio
import unittest

from alokahub.state import RequestState, RequestStateManager


class RequestStateManagerTests(unittest.IsolatedAsyncioTestCase):
    """Validate lock-protected transitions."""

    async def test_can_send_only_when_idle(self) -> None:
        manager = RequestStateManager()
        self.assertTrue(await manager.can_send_message())
        await manager.transition_to(RequestState.AWAITING_RESPONSE)
        self.assertFalse(await manager.can_send_message())
        await manager.transition_to(RequestState.IDLE)
        self.assertTrue(await manager.can_send_message())

    async def test_transition_if_enforces_expected_state(self) -> None:
        manager = RequestStateManager()
        changed = await manager.transition_if(
            RequestState.AWAITING_RESPONSE, RequestState.IDLE
        )
        self.assertFalse(changed)
        self.assertTrue(await manager.can_send_message())

        changed = await manager.transition_if(
            RequestState.IDLE, RequestState.AWAITING_RESPONSE
        )
        self.assertTrue(changed)
        self.assertFalse(await manager.can_send_message())

    async def test_lock_prevents_double_entry(self) -> None:
        manager = RequestStateManager()

        async def try_enter() -> bool:
            await asyncio.sleep(0)
            return await manager.transition_if(
                RequestState.IDLE, RequestState.AWAITING_RESPONSE
            )

        results = await asyncio.gather(*(try_enter() for _ in range(10)))
        self.assertEqual(sum(1 for result in results if result), 1)


if __name__ == "__main__":
    unittest.main()
