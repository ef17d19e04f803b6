"""
Collector orchestration against a SQLite database with stub scanners.

Covers:
- Windows advance by chunk and the cursor follows the last persisted window
- Rescanning a window leaves the rows unchanged
- A failing chain does not stop the other chain's cycle; the error propagates
- Backfill mode exits once caught up; stop_event ends the polling loop
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from bridge_indexer.app.application.services.collector_orchestrator import (
    ChainScanConfig,
    CollectorConfig,
    CollectorOrchestrator,
)
from bridge_indexer.app.domain.models import AllowListStatus, TokenUpdate
from bridge_indexer.app.infrastructure.adapters.block_progress_store import SqlAlchemyBlockProgressStore
from bridge_indexer.app.infrastructure.adapters.tokens_repository import SqlAlchemyTokensRepository
from bridge_indexer.app.infrastructure.db.models.tokens import TokensDB

TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
L2_TOKEN = "0x" + "0b" * 32


def make_l1(head: int, allow_list=None, registrations=None):
    scanner = MagicMock()
    scanner.get_block_number = AsyncMock(return_value=head)
    scanner.get_allow_list_events = AsyncMock(return_value=allow_list or [])
    scanner.get_registration_events = AsyncMock(return_value=registrations or [])
    return scanner


def make_l2(head: int, registrations=None):
    scanner = MagicMock()
    scanner.get_block_number = AsyncMock(return_value=head)
    scanner.get_registration_events = AsyncMock(return_value=registrations or [])
    return scanner


def make_orchestrator(engine, l1, l2, *, l1_force=None, l2_force=None, interval=0.01):
    return CollectorOrchestrator(
        l1_scanner=l1,
        l2_scanner=l2,
        progress_store=SqlAlchemyBlockProgressStore(engine),
        tokens_repository=SqlAlchemyTokensRepository(engine),
        config=CollectorConfig(
            l1=ChainScanConfig(start_block=0, chunk_size=1000, force_start_block=l1_force),
            l2=ChainScanConfig(start_block=1, chunk_size=100, force_start_block=l2_force),
            polling_interval_seconds=interval,
        ),
    )


async def token_rows(engine):
    async with engine.connect() as conn:
        result = await conn.execute(select(TokensDB.__table__))
        return [dict(r) for r in result.mappings().all()]


class TestPollOnce:
    """Single cycles over both chains."""

    @pytest.mark.asyncio
    async def test_windows_advance_by_chunk(self, engine):
        l1, l2 = make_l1(2500), make_l2(50)
        orchestrator = make_orchestrator(engine, l1, l2)
        store = SqlAlchemyBlockProgressStore(engine)

        assert await orchestrator.poll_once() is False
        l1.get_allow_list_events.assert_awaited_with(1, 1000)
        l2.get_registration_events.assert_awaited_with(1, 50)
        assert await store.get_last_scanned_block("L1") == 1000
        assert await store.get_last_scanned_block("L2") == 50

        await orchestrator.poll_once()
        await orchestrator.poll_once()
        l1.get_allow_list_events.assert_awaited_with(2001, 2500)
        assert await store.get_last_scanned_block("L1") == 2500

        l1.get_allow_list_events.reset_mock()
        assert await orchestrator.poll_once() is True
        l1.get_allow_list_events.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_are_persisted(self, engine):
        l1 = make_l1(
            10,
            allow_list=[TokenUpdate(l1_address=TOKEN, l1_allow_list_status=AllowListStatus.ACCEPTED)],
            registrations=[TokenUpdate(l1_address=TOKEN, l1_registration_block=7)],
        )
        l2 = make_l2(
            10,
            registrations=[TokenUpdate(l1_address=TOKEN, l2_address=L2_TOKEN, l2_registration_block=3)],
        )

        await make_orchestrator(engine, l1, l2).poll_once()

        (row,) = await token_rows(engine)
        assert row["l1_allow_list_status"] is AllowListStatus.ACCEPTED
        assert row["l1_registration_block"] == 7
        assert row["l2_address"] == L2_TOKEN

    @pytest.mark.asyncio
    async def test_allow_list_updates_written_before_registrations(self, engine):
        allow_list = [TokenUpdate(l1_address=TOKEN, l1_allow_list_status=AllowListStatus.PROPOSED)]
        registrations = [TokenUpdate(l1_address=TOKEN, l1_registration_block=7)]
        tokens = MagicMock()
        tokens.upsert_token_updates = AsyncMock(return_value=1)

        orchestrator = CollectorOrchestrator(
            l1_scanner=make_l1(10, allow_list=allow_list, registrations=registrations),
            l2_scanner=make_l2(0),
            progress_store=SqlAlchemyBlockProgressStore(engine),
            tokens_repository=tokens,
            config=CollectorConfig(l1=ChainScanConfig(0, 1000), l2=ChainScanConfig(1, 100)),
        )
        await orchestrator.poll_once()

        calls = [c.args[0] for c in tokens.upsert_token_updates.await_args_list]
        assert calls == [allow_list, registrations]

    @pytest.mark.asyncio
    async def test_rescan_is_idempotent(self, engine):
        update = TokenUpdate(l1_address=TOKEN, l1_registration_block=7, l1_to_l2_message_index=3)
        l1 = make_l1(10, registrations=[update])

        await make_orchestrator(engine, l1, make_l2(0), l1_force=1).poll_once()
        first = await token_rows(engine)
        await make_orchestrator(engine, l1, make_l2(0), l1_force=1).poll_once()
        second = await token_rows(engine)

        assert len(second) == 1
        assert second[0]["l1_registration_block"] == first[0]["l1_registration_block"]
        assert second[0]["l1_to_l2_message_index"] == 3

    @pytest.mark.asyncio
    async def test_failing_chain_does_not_block_other_chain(self, engine):
        l1 = make_l1(10)
        l2 = make_l2(10)
        l2.get_registration_events.side_effect = RuntimeError("node down")
        store = SqlAlchemyBlockProgressStore(engine)

        with pytest.raises(RuntimeError, match="node down"):
            await make_orchestrator(engine, l1, l2).poll_once()

        assert await store.get_last_scanned_block("L1") == 10
        assert await store.get_last_scanned_block("L2") == 0

    @pytest.mark.asyncio
    async def test_failing_l1_scan_cancels_sibling_scan(self, engine):
        """A failed allow-list scan does not leave the registration scan running."""
        started, cancelled = asyncio.Event(), asyncio.Event()

        async def slow_registrations(from_block, to_block):
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return []

        async def failing_allow_list(from_block, to_block):
            await started.wait()
            raise RuntimeError("allow list rpc down")

        l1 = make_l1(10)
        l1.get_allow_list_events = AsyncMock(side_effect=failing_allow_list)
        l1.get_registration_events = AsyncMock(side_effect=slow_registrations)

        with pytest.raises(RuntimeError, match="allow list rpc down"):
            await asyncio.wait_for(make_orchestrator(engine, l1, make_l2(0)).poll_once(), timeout=5)

        assert cancelled.is_set()
        assert await SqlAlchemyBlockProgressStore(engine).get_last_scanned_block("L1") == 0

    @pytest.mark.asyncio
    async def test_forced_start_used_once(self, engine):
        l1 = make_l1(5000)
        orchestrator = make_orchestrator(engine, l1, make_l2(0), l1_force=3000)

        await orchestrator.poll_once()
        l1.get_allow_list_events.assert_awaited_with(3000, 3999)

        await orchestrator.poll_once()
        l1.get_allow_list_events.assert_awaited_with(4000, 4999)


class TestRun:
    """Polling loop termination."""

    @pytest.mark.asyncio
    async def test_backfill_exits_when_caught_up(self, engine):
        l1 = make_l1(1500)
        orchestrator = make_orchestrator(engine, l1, make_l2(0), l1_force=1, interval=60)

        assert orchestrator.backfill_mode is True
        await asyncio.wait_for(orchestrator.run(asyncio.Event()), timeout=5)

        assert await SqlAlchemyBlockProgressStore(engine).get_last_scanned_block("L1") == 1500
        assert l1.get_allow_list_events.await_count == 2

    @pytest.mark.asyncio
    async def test_stop_event_ends_loop(self, engine):
        orchestrator = make_orchestrator(engine, make_l1(0), make_l2(0), interval=60)
        stop_event = asyncio.Event()

        assert orchestrator.backfill_mode is False
        asyncio.get_running_loop().call_later(0.05, stop_event.set)
        await asyncio.wait_for(orchestrator.run(stop_event), timeout=5)

    @pytest.mark.asyncio
    async def test_error_propagates_from_run(self, engine):
        l1 = make_l1(10)
        l1.get_block_number.side_effect = RuntimeError("rpc down")

        with pytest.raises(RuntimeError, match="rpc down"):
            await make_orchestrator(engine, l1, make_l2(0)).run(asyncio.Event())
