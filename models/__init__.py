"""
Domain models for the event sync.

This package defines the typed records exchanged between the source of
truth, the validator and the Universe client:

Models:
    base: Shared enums (RecordStatus, EventState, Privacy, DateDisplayOption, SourceBackend)
    event_record: EventRecord, one typed row from the events table
    remote_event: RemoteEvent, the transient reference returned by Universe

Usage:
    from models.event_record import EventRecord
    from models.remote_event import RemoteEvent
    from models.base import RecordStatus

Example:
    # Build a record from an Airtable row
    record = EventRecord.from_fields(
        "rec123",
        {"title": "Jazz Night", "startDate": "2025-07-31", "startTime": "19:30"}
    )
    assert record.start_time == "19:30"
    assert record.is_candidate
"""

__all__ = [
    "base",
    "event_record",
    "remote_event",
]
