# ============================================================================
# File: ingestion/runner.py
# Description: End-to-end sync run from the source of truth to Universe
# ============================================================================
"""
Sync Runner - Orchestrates Fetch, Validate, Create, Write-back.

Pipeline phases:
1. Fetch - Read candidate records from the source of truth
2. Validate - Partition into valid and invalid; invalid ones are marked Error
3. Create - Hand valid records to the batch orchestrator
4. Report - Return aggregate counts for the run

Only a failed fetch aborts a run. Everything after it is contained per record.
"""

from typing import List, Optional

from core.config import Settings, settings as default_settings
from core.exceptions import SourceFetchError, SyncException, ValidationError
from ingestion.clients.universe_client import UniverseClient
from ingestion.orchestrator import BatchOrchestrator
from ingestion.sources.base import SourceOfTruth
from ingestion.status_sink import StatusSink
from ingestion.validator import EventValidator
from models.event_record import EventRecord
from schemas.results import SyncSummary
import logging

logger = logging.getLogger(__name__)


class SyncRunner:
    """
    One sync run over the current candidate set.

    Responsibilities:
    - Fetch unprocessed records
    - Persist validation failures without contacting Universe
    - Drive valid records through batched creation
    - Report the run summary
    """

    def __init__(
        self,
        source: SourceOfTruth,
        orchestrator: BatchOrchestrator,
        validator: Optional[EventValidator] = None,
        sink: Optional[StatusSink] = None,
    ):
        self.source = source
        self.orchestrator = orchestrator
        self.validator = validator or EventValidator()
        self.sink = sink or orchestrator.sink

    @classmethod
    def from_settings(
        cls,
        source: SourceOfTruth,
        universe: UniverseClient,
        settings: Optional[Settings] = None,
        **orchestrator_kwargs
    ) -> "SyncRunner":
        settings = settings or default_settings
        sink = StatusSink(source)
        orchestrator = BatchOrchestrator.from_settings(universe, sink, settings, **orchestrator_kwargs)
        return cls(source=source, orchestrator=orchestrator, sink=sink)

    async def run(self) -> SyncSummary:
        """
        Run the full sync.

        Returns:
            SyncSummary with total_candidates, invalid, created, errors and batches

        Raises:
            SourceFetchError: If the candidate records could not be fetched
            SyncException: For unexpected run-level errors
        """
        try:
            # --------------------------------------------------
            # PHASE 1: FETCH
            # --------------------------------------------------
            logger.info(f"Fetching unprocessed events from {self.source.source_name}")
            records = await self.source.fetch_candidates()

            if not records:
                logger.info("No events to process")
                return SyncSummary()

            # --------------------------------------------------
            # PHASE 2: VALIDATE
            # --------------------------------------------------
            report = self.validator.validate_batch(records)
            summary_invalid = len(report.invalid)

            for entry in report.invalid:
                failure = ValidationError(
                    f"Event {entry.title or entry.source_id} failed validation",
                    errors=entry.validation.errors,
                    context={"record_id": entry.source_id}
                )
                logger.warning(failure.message, extra={"error_context": failure.to_dict()})
                await self.sink.mark_as_error(entry.source_id, entry.validation.error_message)

            for entry in report.valid:
                for warning in entry.validation.warnings:
                    logger.warning(f"{entry.title}: {warning}")

            if not report.valid:
                logger.warning("No valid events to process")
                return SyncSummary(total_candidates=len(records), invalid=summary_invalid)

            # By position: two rows may share an id and must both be processed
            valid_records: List[EventRecord] = [records[entry.position] for entry in report.valid]

            # --------------------------------------------------
            # PHASE 3: CREATE
            # --------------------------------------------------
            summary = await self.orchestrator.process_batches(valid_records)
            summary.total_candidates = len(records)
            summary.invalid = summary_invalid

            logger.info(
                f"Sync run completed - Candidates: {summary.total_candidates}, "
                f"Invalid: {summary.invalid}, Created: {summary.created}, Errors: {summary.errors}"
            )
            return summary

        except SourceFetchError as e:
            logger.error(f"Sync run aborted: {e.message}", extra={"error_context": e.to_dict()})
            raise

        except SyncException:
            raise

        except Exception as e:
            logger.exception("Unexpected error in sync run")
            raise SyncException(
                "Unexpected error in sync run",
                context={"source_name": self.source.source_name},
                original_exception=e
            )
