"""
Ritual Session
==============

Cooperative, single-threaded driver for one RitualEngine.

CLOCK DOMAINS:
==============
1. Feed clock: pulls ServiceEvents and is the only writer of engine state
2. Presentation clock (optional ticker): reads snapshots, never writes

CONFIRMATION CHANNEL:
=====================
When the gate arms, the session publishes a ConfirmationRequest on the
`requests` queue and awaits a ConfirmationReply for that arming on the
`replies` queue for the remaining window. Replies tagged with another
arming are dropped. No reply in time -> engine.expire_gate().
Progress keeps folding while the request is outstanding.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

from .contracts.state import ConfirmationGateState, EngineSnapshot
from .engine import RitualEngine
from .ingestion.feed import EventFeed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationRequest:
    """Message sent to the human-facing collaborator when the gate arms."""
    armings: int
    prompt: str
    timeout_seconds: Optional[float]


@dataclass(frozen=True)
class ConfirmationReply:
    """Answer to the ConfirmationRequest with the same armings."""
    armings: int
    text: str


class RitualSession:
    """
    GUARANTEES:
    ===========
    1. At most one outstanding ConfirmationRequest per arming window
    2. A reply for a window that already closed is never applied
    3. Cancelling run() releases the feed iterator and the gate watcher
    """

    def __init__(
        self,
        engine: RitualEngine,
        feed: EventFeed,
        ticker=None,
        requests: Optional[asyncio.Queue] = None,
        replies: Optional[asyncio.Queue] = None
    ):
        self._engine = engine
        self._feed = feed
        self._ticker = ticker
        self._requests: asyncio.Queue = requests or asyncio.Queue()
        self._replies: asyncio.Queue = replies or asyncio.Queue()
        self._gate_task: Optional[asyncio.Task] = None
        self._watched_arming = 0

    @property
    def engine(self) -> RitualEngine:
        return self._engine

    @property
    def requests(self) -> asyncio.Queue:
        return self._requests

    @property
    def replies(self) -> asyncio.Queue:
        return self._replies

    async def reply(self, request: ConfirmationRequest, text: str):
        """Human-facing side: answer one request."""
        await self._replies.put(ConfirmationReply(armings=request.armings, text=text))

    async def run(self) -> EngineSnapshot:
        """
        Drive the feed to exhaustion or completion, then wait for any
        open arming window to resolve. Returns the final snapshot.
        """
        ticker_task = None
        if self._ticker is not None:
            ticker_task = asyncio.create_task(self._ticker.run(lambda: self._engine.snapshot))
        try:
            await self._consume_feed()
            if self._gate_task is not None and not self._gate_task.done():
                await asyncio.wait({self._gate_task})
        finally:
            for task in (self._gate_task, ticker_task):
                if task is not None and not task.done():
                    task.cancel()
                    await asyncio.wait({task})
        return self._engine.snapshot

    async def _consume_feed(self):
        iterator = self._feed.__aiter__()
        try:
            async for event in iterator:
                if self._engine.snapshot.is_complete:
                    break
                snapshot = self._engine.on_event(event)
                self._sync_gate(snapshot.gate)
                if snapshot.is_complete:
                    break
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    def _sync_gate(self, gate: ConfirmationGateState):
        watching = self._gate_task is not None and not self._gate_task.done()
        if watching and (not gate.armed or gate.armings != self._watched_arming):
            logger.debug("[session] arming #%d closed by the feed", self._watched_arming)
            self._gate_task.cancel()
        if gate.armed and gate.armings != self._watched_arming:
            self._watched_arming = gate.armings
            self._gate_task = asyncio.create_task(self._await_confirmation(gate.armings))

    async def _await_confirmation(self, armings: int):
        request = ConfirmationRequest(
            armings=armings,
            prompt=f'Affirm the first principle: "{self._engine.snapshot.gate.expected_token}"',
            timeout_seconds=self._engine.gate_remaining()
        )
        await self._requests.put(request)
        logger.info("[session] confirmation requested (arming #%d)", armings)

        loop = asyncio.get_running_loop()
        deadline = None if request.timeout_seconds is None else loop.time() + request.timeout_seconds
        while True:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            try:
                reply = await asyncio.wait_for(self._replies.get(), timeout=remaining)
            except asyncio.TimeoutError:
                if self._still_armed(armings):
                    self._engine.expire_gate()
                return
            if reply.armings == armings:
                break
            logger.debug("[session] dropped reply for closed arming #%d", reply.armings)

        if self._still_armed(armings):
            accepted = self._engine.submit_confirmation(reply.text)
            logger.info("[session] confirmation %s", "accepted" if accepted else "refused")

    def _still_armed(self, armings: int) -> bool:
        gate = self._engine.snapshot.gate
        return gate.armed and gate.armings == armings
