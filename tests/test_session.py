"""
Ritual Session Tests
====================

Drives the async session end to end with a real event loop.

INVARIANTS:
===========
- The feed is the only writer; the ticker only reads snapshots
- One ConfirmationRequest per arming window
- An unanswered window expires and recalibrates
- A reply tagged with a closed arming never resolves a later one
"""

import asyncio

import pytest

from backend.contracts.base import ErrorCode
from backend.contracts.state import GateResult, RitualPhase
from backend.engine import RitualEngine
from backend.ingestion.feed import MockEventFeed, scripted_run
from backend.session import ConfirmationRequest, RitualSession
from frontend.presentation.ticker import PresentationTicker
from tests.integration.fixtures import CONFIRMATION_TEXT, EVENTS_TO_HARMONY, make_config


def run_session(reply_text=None, events=None, interval=0.0, timeout_seconds=30.0, ticker=None):
    """Run one session; answer the first request with reply_text if given."""
    engine = RitualEngine(make_config(timeout_seconds=timeout_seconds))
    events = events if events is not None else scripted_run(total_events=EVENTS_TO_HARMONY)
    feed = MockEventFeed(events, interval_seconds=interval)
    received = []

    async def main():
        session = RitualSession(engine, feed, ticker=ticker)

        async def responder():
            request = await session.requests.get()
            received.append(request)
            if reply_text is not None:
                await session.reply(request, reply_text)

        responder_task = asyncio.create_task(responder())
        snapshot = await session.run()
        if not responder_task.done():
            responder_task.cancel()
        return snapshot

    snapshot = asyncio.run(main())
    return engine, feed, snapshot, received


class TestMockEventFeed:

    def test_yields_in_order(self):
        events = scripted_run(total_events=12)
        feed = MockEventFeed(events, interval_seconds=0)

        async def collect():
            return [event async for event in feed]

        assert asyncio.run(collect()) == events
        assert feed.delivered == 12
        assert len(feed) == 12

    def test_scripted_run_validates_every_principle_first(self):
        events = scripted_run(total_events=60)

        assert [e.check_id for e in events[:42]] == list(range(1, 43))
        assert all(e.check_id is None for e in events[42:])
        assert [i for i, e in enumerate(events) if e.aux_gate_id is not None] == [6, 13, 20, 27, 34, 41, 48, 55]


class TestRitualSession:

    def test_confirmed_session_completes(self):
        engine, feed, snapshot, received = run_session(
            reply_text=CONFIRMATION_TEXT,
            events=scripted_run(total_events=100),
            interval=0.005
        )

        assert snapshot.phase == RitualPhase.COMPLETION
        assert snapshot.progress.events_consumed == EVENTS_TO_HARMONY
        assert engine.completion_fired
        assert len(received) == 1
        assert isinstance(received[0], ConfirmationRequest)
        assert received[0].armings == 1
        assert CONFIRMATION_TEXT in received[0].prompt

    def test_rejected_session_recalibrates(self):
        engine, feed, snapshot, received = run_session(reply_text="not today")

        assert snapshot.phase == RitualPhase.RECALIBRATION
        assert snapshot.gate.result == GateResult.REJECTED
        assert snapshot.last_condition.code == ErrorCode.GATE_REJECTED
        assert not engine.completion_fired

    def test_unanswered_session_times_out(self):
        engine, feed, snapshot, received = run_session(timeout_seconds=0.05)

        assert snapshot.phase == RitualPhase.RECALIBRATION
        assert snapshot.gate.result == GateResult.TIMED_OUT
        assert snapshot.last_condition.code == ErrorCode.GATE_TIMEOUT
        assert received[0].timeout_seconds == pytest.approx(0.05, abs=0.05)

    def test_ticker_reads_while_feed_writes(self):
        ticker = PresentationTicker(interval_seconds=0.005)
        engine, feed, snapshot, received = run_session(timeout_seconds=0.05, ticker=ticker)

        frames = ticker.frames
        assert frames
        sequences = [frame.sequence for frame in frames]
        assert sequences == sorted(sequences)
        assert engine.snapshot is snapshot

    def test_reply_for_a_closed_window_is_dropped(self):
        engine = RitualEngine(make_config(timeout_seconds=0.05))
        feed = MockEventFeed(scripted_run(total_events=200), interval_seconds=0.005)
        received = []

        async def main():
            session = RitualSession(engine, feed)

            async def responder():
                first = await session.requests.get()
                second = await session.requests.get()
                received.extend([first, second])
                # Window #1 already timed out; its answer arrives too late.
                await session.reply(first, "nope")
                await session.reply(second, CONFIRMATION_TEXT)

            responder_task = asyncio.create_task(responder())
            snapshot = await session.run()
            if not responder_task.done():
                responder_task.cancel()
            return snapshot

        snapshot = asyncio.run(main())

        assert [request.armings for request in received] == [1, 2]
        assert snapshot.phase == RitualPhase.COMPLETION
        assert snapshot.gate.result == GateResult.CONFIRMED
        assert snapshot.gate.armings == 2
        assert snapshot.progress.recalibrations == 1
        assert engine.completion_fired

    def test_window_stays_open_while_the_feed_keeps_folding(self):
        engine, feed, snapshot, received = run_session(
            events=scripted_run(total_events=150),
            interval=0.0,
            timeout_seconds=0.05
        )

        # Events 100..150 arrive while armed; only the timeout closes the window.
        assert feed.delivered == 150
        assert snapshot.gate.result == GateResult.TIMED_OUT
        assert snapshot.last_condition.code == ErrorCode.GATE_TIMEOUT
        assert snapshot.progress.recalibrations == 1
        assert len(received) == 1
