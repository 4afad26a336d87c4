# ============================================================================
# File: ingestion/orchestrator.py
# Description: Batch orchestrator driving record creation against Universe
# ============================================================================
"""
Batch Orchestrator - turns validated records into paced, bounded-concurrency
batches and drives each record through the create protocol.

Per record:
    1. create the event (retried with linear backoff on failure)
    2. publish it if the record asks for it and it is not already posted
       (one attempt, failure is only logged)
    3. derive the public URL
    4. persist Created (or Error once retries are exhausted)

Per batch:
    - every record is launched concurrently; batch size is the concurrency bound
    - the batch is done only when every record reached a terminal outcome
    - a failure in the dispatch itself marks the whole batch as errors

Across batches:
    - strictly sequential, with a pacing delay between batches (not after the last)
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from core.config import Settings, settings as default_settings
from core.exceptions import (
    BatchCatastrophicError,
    NonRetryableError,
    PublishError,
    SyncException,
)
from ingestion.clients.universe_client import UniverseClient
from ingestion.status_sink import StatusSink
from models.event_record import EventRecord
from models.remote_event import RemoteEvent
from schemas.results import BatchResult, RecordOutcome, SyncSummary
import logging

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def create_batches(records: Sequence[EventRecord], batch_size: int) -> List[List[EventRecord]]:
    """
    Split records into consecutive batches of at most ``batch_size``.

    Order is preserved; concatenating the batches gives back the input.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [list(records[i:i + batch_size]) for i in range(0, len(records), batch_size)]


def error_message(error: BaseException) -> str:
    """Message persisted on the source record for a failure"""
    if isinstance(error, SyncException):
        return error.message
    return str(error) or type(error).__name__


class BatchOrchestrator:
    """
    Drives validated records through Universe creation in paced batches.

    Responsibilities:
    - Partition records into fixed-size batches
    - Run each batch concurrently and join every record before moving on
    - Retry failed creates with linear backoff (retry_delay_ms x attempt)
    - Persist a terminal status for every record it is given
    - Aggregate created / errored counts

    Attributes:
        batch_size: Records per batch, also the concurrency bound (default: 5)
        delay_between_batches: Pause between batches in ms (default: 2000)
        max_retries: Create retries after the first attempt (default: 3)
        retry_delay_ms: Backoff unit in ms (default: 1000)
    """

    def __init__(
        self,
        universe: UniverseClient,
        sink: StatusSink,
        batch_size: int = 5,
        delay_between_batches: int = 2000,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
        sleep: Sleep = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if max_retries < 0:
            raise ValueError(f"max_retries cannot be negative, got {max_retries}")

        self.universe = universe
        self.sink = sink
        self.batch_size = batch_size
        self.delay_between_batches = delay_between_batches
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        universe: UniverseClient,
        sink: StatusSink,
        settings: Optional[Settings] = None,
        **kwargs
    ) -> "BatchOrchestrator":
        settings = settings or default_settings
        return cls(
            universe=universe,
            sink=sink,
            batch_size=settings.BATCH_SIZE,
            delay_between_batches=settings.DELAY_BETWEEN_BATCHES,
            max_retries=settings.MAX_RETRIES,
            retry_delay_ms=settings.RETRY_DELAY_MS,
            **kwargs
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    # ------------------------------------------------------------------
    # Run level
    # ------------------------------------------------------------------

    async def process_batches(self, records: Sequence[EventRecord]) -> SyncSummary:
        """
        Process all records batch by batch.

        Returns:
            SyncSummary with created/errors counts and per-batch results
        """
        batches = create_batches(records, self.batch_size)
        summary = SyncSummary(total_candidates=len(records), batches=len(batches))

        logger.info(f"Processing {len(records)} events in {len(batches)} batches")

        for index, batch in enumerate(batches):
            logger.info(f"Processing batch {index + 1}/{len(batches)} ({len(batch)} events)")

            try:
                result = await self.process_batch(batch, index)
                logger.info(
                    f"Batch {index + 1} complete: {result.success} created, {result.errors} errors"
                )
            except BatchCatastrophicError as e:
                logger.error(f"Batch {index + 1} failed: {e.message}", extra={"error_context": e.to_dict()})
                result = await self._fail_batch(batch, index, e)

            summary.created += result.success
            summary.errors += result.errors
            summary.batch_results.append(result)

            # Pace against remote rate limits; nothing to wait for after the last batch
            if index < len(batches) - 1:
                await self._sleep(self.delay_between_batches / 1000)

        logger.info(f"Processing complete: {summary.created} events created, {summary.errors} failed")
        return summary

    # ------------------------------------------------------------------
    # Batch level
    # ------------------------------------------------------------------

    def _launch(self, record: EventRecord) -> "asyncio.Task[RecordOutcome]":
        return asyncio.ensure_future(self.process_record(record))

    async def process_batch(self, batch: Sequence[EventRecord], index: int = 0) -> BatchResult:
        """
        Run every record of the batch concurrently and join them all.

        A single record's failure never cancels its batch-mates. If launching
        fails partway, the records already launched are cancelled and awaited
        before the batch is failed, so none of them writes a status afterwards.

        Raises:
            BatchCatastrophicError: If the records could not be dispatched
        """
        tasks: List["asyncio.Task[RecordOutcome]"] = []
        try:
            for record in batch:
                tasks.append(self._launch(record))
        except Exception as e:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise BatchCatastrophicError(
                f"Batch processing failed: {error_message(e)}",
                context={"batch_index": index, "batch_size": len(batch)},
                original_exception=e
            )

        results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: List[RecordOutcome] = []
        for record, result in zip(batch, results):
            if isinstance(result, RecordOutcome):
                outcomes.append(result)
                continue

            # process_record contains its own failures; anything here escaped it
            logger.error(f"Event {record.display_title} failed: {error_message(result)}")
            persisted = await self.sink.mark_as_error(record.source_id, error_message(result))
            outcomes.append(RecordOutcome(
                source_id=record.source_id,
                title=record.title,
                success=False,
                error=error_message(result),
                persisted=persisted
            ))

        return BatchResult(index=index, outcomes=outcomes)

    async def _fail_batch(
        self,
        batch: Sequence[EventRecord],
        index: int,
        error: BatchCatastrophicError
    ) -> BatchResult:
        outcomes = []
        for record in batch:
            persisted = await self.sink.mark_as_error(record.source_id, error.message)
            outcomes.append(RecordOutcome(
                source_id=record.source_id,
                title=record.title,
                success=False,
                error=error.message,
                persisted=persisted
            ))
        return BatchResult(index=index, outcomes=outcomes, failed_to_dispatch=True)

    # ------------------------------------------------------------------
    # Record level
    # ------------------------------------------------------------------

    async def _create_with_retry(self, record: EventRecord) -> "tuple[Optional[RemoteEvent], int, Optional[BaseException]]":
        """
        Attempt the create up to ``max_attempts`` times.

        Each attempt goes out with a new client mutation id.

        Returns:
            (event, attempts, None) on success, (None, attempts, last_error) otherwise
        """
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                event = await self.universe.create_event(record)
                return event, attempt, None
            except NonRetryableError as e:
                logger.error(f"Create failed for {record.display_title} and cannot be retried: {e.message}")
                return None, attempt, e
            except Exception as e:
                last_error = e
                if attempt >= self.max_attempts:
                    break

                delay_ms = self.retry_delay_ms * attempt
                logger.warning(
                    f"Retrying event {record.display_title} "
                    f"(attempt {attempt + 1}/{self.max_attempts}) in {delay_ms}ms: {error_message(e)}"
                )
                await self._sleep(delay_ms / 1000)

        return None, self.max_attempts, last_error

    async def _publish(self, record: EventRecord, event: RemoteEvent) -> bool:
        """Single publish attempt; a failure leaves the event in draft."""
        try:
            await self.universe.publish_event(event.id)
            logger.info(f"Event published: {record.display_title}")
            return True
        except Exception as e:
            warning = PublishError(
                f"Event created but failed to publish: {record.display_title}",
                context={"record_id": record.source_id, "event_id": event.id},
                original_exception=e
            )
            logger.warning(str(warning))
            return False

    async def process_record(self, record: EventRecord) -> RecordOutcome:
        """
        Create one record's event and persist its terminal status.

        Never raises for per-record failures; the outcome says what happened.
        """
        event, attempts, failure = await self._create_with_retry(record)

        if event is None:
            message = error_message(failure) if failure else "Event creation failed"
            logger.error(f"Event {record.display_title} failed after {attempts} attempt(s): {message}")
            persisted = await self.sink.mark_as_error(record.source_id, message)
            return RecordOutcome(
                source_id=record.source_id,
                title=record.title,
                success=False,
                attempts=attempts,
                error=message,
                persisted=persisted
            )

        published = event.is_posted
        if record.publish and not event.is_posted:
            published = await self._publish(record, event)

        event_url = self.universe.event_url(event.slug or event.id)

        persisted = await self.sink.mark_as_created(
            record.source_id,
            event.id,
            event_url,
            event.client_mutation_id
        )
        if not persisted:
            # Still counted as created; the row stays a candidate for the next run
            logger.error(
                f"Event {record.display_title} was created ({event.id}) "
                f"but its status could not be saved"
            )

        logger.info(f"Event created: {record.display_title} -> {event_url}")
        return RecordOutcome(
            source_id=record.source_id,
            title=record.title,
            success=True,
            attempts=attempts,
            event_id=event.id,
            event_url=event_url,
            client_mutation_id=event.client_mutation_id,
            published=published,
            persisted=persisted
        )
