"""
Integration tests for batched event creation: retries, pacing, isolation
"""

import asyncio

import httpx
import pytest
from unittest.mock import AsyncMock

from conftest import InMemorySource, make_record, make_remote_event
from core.exceptions import ConfigurationError, RemoteApiError, TransportError
from ingestion.clients.universe_client import UniverseClient
from ingestion.orchestrator import BatchOrchestrator, create_batches
from ingestion.status_sink import StatusSink


def build_orchestrator(universe, source, sleep, **kwargs) -> BatchOrchestrator:
    options = {
        "batch_size": 3,
        "delay_between_batches": 2000,
        "max_retries": 2,
        "retry_delay_ms": 1000,
    }
    options.update(kwargs)
    return BatchOrchestrator(universe, StatusSink(source), sleep=sleep, **options)


class TestCreateBatches:

    def test_partition_sizes(self):
        records = [make_record(f"rec{i}") for i in range(7)]

        batches = create_batches(records, 3)

        assert [len(b) for b in batches] == [3, 3, 1]
        assert [r for batch in batches for r in batch] == records

    def test_empty_input(self):
        assert create_batches([], 5) == []

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            create_batches([make_record()], 0)


class TestRetry:

    @pytest.mark.asyncio
    async def test_exhausted_retries_mark_error(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.create_event = AsyncMock(side_effect=TransportError("Network error talking to Universe"))
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, max_retries=2)

        outcome = await orchestrator.process_record(make_record("rec1"))

        assert outcome.success is False
        assert outcome.attempts == 3
        assert mock_universe.create_event.await_count == 3
        assert recorded_sleep.delays == [1.0, 2.0]
        assert source.updates["rec1"]["status"] == "Error"
        assert source.updates["rec1"]["errorMessage"] == "Network error talking to Universe"

    @pytest.mark.asyncio
    async def test_fail_twice_then_succeed(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.create_event = AsyncMock(side_effect=[
            RemoteApiError("Universe API errors: try again"),
            TransportError("timeout"),
            make_remote_event("evt-9"),
        ])
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, max_retries=3)

        outcome = await orchestrator.process_record(make_record("rec1"))

        assert outcome.success is True
        assert outcome.attempts == 3
        assert recorded_sleep.delays == [1.0, 2.0]
        assert source.updates["rec1"]["status"] == "Created"
        assert source.updates["rec1"]["universeEventId"] == "evt-9"
        assert source.updates["rec1"]["universeUrl"] == "https://www.universe.com/summer-jazz-night-evt-9"

    @pytest.mark.asyncio
    async def test_zero_retries_means_one_attempt(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.create_event = AsyncMock(side_effect=TransportError("down"))
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, max_retries=0)

        outcome = await orchestrator.process_record(make_record("rec1"))

        assert outcome.attempts == 1
        assert recorded_sleep.delays == []

    @pytest.mark.asyncio
    async def test_missing_configuration_stops_immediately(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.create_event = AsyncMock(side_effect=ConfigurationError("Universe client credentials are not configured"))
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, max_retries=3)

        outcome = await orchestrator.process_record(make_record("rec1"))

        assert outcome.success is False
        assert mock_universe.create_event.await_count == 1
        assert source.status_of("rec1") == "Error"

    @pytest.mark.asyncio
    async def test_rejected_credentials_are_retried(self, recorded_sleep):
        calls = {"token": 0, "graphql": 0}

        def handler(request):
            if request.url.path == "/oauth/token":
                calls["token"] += 1
                return httpx.Response(401, json={"error": "invalid_client"})
            calls["graphql"] += 1
            return httpx.Response(500)

        universe = UniverseClient(
            client_id="client",
            client_secret="wrong",
            token_url="https://universe.test/oauth/token",
            graphql_url="https://universe.test/graphql",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        source = InMemorySource()
        orchestrator = build_orchestrator(universe, source, recorded_sleep, max_retries=2)

        outcome = await orchestrator.process_record(make_record("rec1"))

        assert outcome.success is False
        assert outcome.attempts == 3
        assert calls == {"token": 3, "graphql": 0}
        assert recorded_sleep.delays == [1.0, 2.0]
        assert source.updates["rec1"]["errorMessage"] == "Universe rejected the client credentials"


class TestPublish:

    @pytest.mark.asyncio
    async def test_publish_requested(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep)

        outcome = await orchestrator.process_record(make_record("rec1", publish=True))

        mock_universe.publish_event.assert_awaited_once_with("evt-rec1")
        assert outcome.published is True

    @pytest.mark.asyncio
    async def test_publish_failure_is_not_fatal(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.publish_event = AsyncMock(side_effect=RemoteApiError("Publish errors: not allowed"))
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep)

        outcome = await orchestrator.process_record(make_record("rec1", publish=True))

        assert outcome.success is True
        assert outcome.published is False
        assert mock_universe.publish_event.await_count == 1
        assert source.status_of("rec1") == "Created"

    @pytest.mark.asyncio
    async def test_already_posted_is_not_published_again(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        mock_universe.create_event = AsyncMock(return_value=make_remote_event("evt-1", state="POSTED"))
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep)

        outcome = await orchestrator.process_record(make_record("rec1", publish=True))

        mock_universe.publish_event.assert_not_awaited()
        assert outcome.published is True

    @pytest.mark.asyncio
    async def test_no_publish_when_not_requested(self, mock_universe, recorded_sleep):
        orchestrator = build_orchestrator(mock_universe, InMemorySource(), recorded_sleep)

        await orchestrator.process_record(make_record("rec1"))

        mock_universe.publish_event.assert_not_awaited()


class TestBatches:

    @pytest.mark.asyncio
    async def test_pacing_between_batches(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, batch_size=3)
        records = [make_record(f"rec{i}") for i in range(7)]

        summary = await orchestrator.process_batches(records)

        assert summary.batches == 3
        assert [len(b.outcomes) for b in summary.batch_results] == [3, 3, 1]
        assert recorded_sleep.delays == [2.0, 2.0]
        assert summary.created == 7
        assert summary.errors == 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_affect_batch_mates(self, mock_universe, recorded_sleep):
        source = InMemorySource()

        async def create(record):
            if record.source_id == "rec1":
                raise RemoteApiError("Universe API errors: Title is invalid")
            return make_remote_event(f"evt-{record.source_id}")

        mock_universe.create_event = AsyncMock(side_effect=create)
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, max_retries=1)
        records = [make_record(f"rec{i}") for i in range(3)]

        summary = await orchestrator.process_batches(records)

        assert summary.created == 2
        assert summary.errors == 1
        assert source.status_of("rec0") == "Created"
        assert source.status_of("rec1") == "Error"
        assert source.status_of("rec2") == "Created"

    @pytest.mark.asyncio
    async def test_every_record_reaches_a_terminal_status(self, mock_universe, recorded_sleep):
        source = InMemorySource()

        async def create(record):
            if int(record.source_id[3:]) % 3 == 0:
                raise TransportError("flaky")
            return make_remote_event(f"evt-{record.source_id}")

        mock_universe.create_event = AsyncMock(side_effect=create)
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, batch_size=4, max_retries=0)
        records = [make_record(f"rec{i}") for i in range(10)]

        summary = await orchestrator.process_batches(records)

        assert summary.created + summary.errors == len(records)
        created = {r for r in source.updates if source.status_of(r) == "Created"}
        errored = {r for r in source.updates if source.status_of(r) == "Error"}
        assert created.isdisjoint(errored)
        assert created | errored == {r.source_id for r in records}

    @pytest.mark.asyncio
    async def test_records_in_a_batch_run_concurrently(self, mock_universe, recorded_sleep):
        in_flight = {"now": 0, "peak": 0}

        async def create(record):
            in_flight["now"] += 1
            in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
            await asyncio.sleep(0)
            in_flight["now"] -= 1
            return make_remote_event(f"evt-{record.source_id}")

        mock_universe.create_event = AsyncMock(side_effect=create)
        orchestrator = build_orchestrator(mock_universe, InMemorySource(), recorded_sleep, batch_size=3)

        await orchestrator.process_batches([make_record(f"rec{i}") for i in range(7)])

        assert in_flight["peak"] == 3

    @pytest.mark.asyncio
    async def test_dispatch_failure_marks_whole_batch(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, batch_size=2)
        original_launch = orchestrator._launch

        def launch(record):
            if record.source_id == "rec0":
                raise RuntimeError("event loop unavailable")
            return original_launch(record)

        orchestrator._launch = launch
        records = [make_record(f"rec{i}") for i in range(3)]

        summary = await orchestrator.process_batches(records)

        assert summary.batch_results[0].failed_to_dispatch is True
        assert source.updates["rec0"]["errorMessage"] == "Batch processing failed: event loop unavailable"
        assert source.status_of("rec1") == "Error"
        assert source.status_of("rec2") == "Created"
        assert summary.errors == 2
        assert summary.created == 1
        assert recorded_sleep.delays == [2.0]

    @pytest.mark.asyncio
    async def test_partial_dispatch_failure_cancels_launched_records(self, mock_universe, recorded_sleep):
        source = InMemorySource()
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep, batch_size=3)
        original_launch = orchestrator._launch
        launched = []

        def launch(record):
            if record.source_id == "rec2":
                raise RuntimeError("event loop unavailable")
            task = original_launch(record)
            launched.append(task)
            return task

        orchestrator._launch = launch
        records = [make_record(f"rec{i}") for i in range(3)]

        summary = await orchestrator.process_batches(records)

        assert len(launched) == 2
        assert all(task.cancelled() for task in launched)
        mock_universe.create_event.assert_not_awaited()
        assert source.write_calls == ["rec0", "rec1", "rec2"]
        assert {source.status_of(r.source_id) for r in records} == {"Error"}
        assert summary.errors == 3
        assert summary.created == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_keeps_created_outcome(self, mock_universe, recorded_sleep):
        source = InMemorySource(failing_ids={"rec1"})
        orchestrator = build_orchestrator(mock_universe, source, recorded_sleep)

        summary = await orchestrator.process_batches([make_record("rec1")])

        outcome = summary.batch_results[0].outcomes[0]
        assert outcome.success is True
        assert outcome.persisted is False
        assert summary.created == 1
        assert source.write_calls == ["rec1"]
