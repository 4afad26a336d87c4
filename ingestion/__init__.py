"""
Sync pipeline components for bulk Universe event creation.

This package contains everything between the source of truth and the
Universe API:

Modules:
    validator: Field-level validation checklist for event records
    orchestrator: Batched, paced, retrying creation of events
    status_sink: Status write-back onto source records
    runner: End-to-end run (fetch, validate, create, report)

Subpackages:
    sources: Source-of-truth backends (Airtable, CSV)
    transformers: Record to Universe mutation input mapping
    clients: Universe GraphQL client with token caching

Architecture:
    1. Fetch - Candidate records (status neither Created nor Error)
    2. Validate - Invalid records are marked Error and go no further
    3. Create - Valid records go through create, publish, write-back in batches

    Every record handed to a run ends with a terminal status unless the
    write-back itself fails.

Usage:
    from ingestion.sources import build_source
    from ingestion.clients.universe_client import UniverseClient
    from ingestion.runner import SyncRunner

Example:
    source = build_source(settings)
    async with UniverseClient.from_settings(settings) as universe:
        runner = SyncRunner.from_settings(source, universe, settings)
        summary = await runner.run()

    print(f"Created {summary.created} events")

Error Handling:
    All components raise exceptions from core.exceptions. Only a failed
    fetch aborts a run; per-record failures become Error statuses.
"""

__all__ = [
    "validator",
    "orchestrator",
    "status_sink",
    "runner",
    "sources",
    "transformers",
    "clients",
]
