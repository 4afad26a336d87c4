"""
Pytest configuration and fixtures
"""

import pytest
from datetime import date
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

from core.exceptions import PersistenceError
from ingestion.sources.base import SourceOfTruth
from models.event_record import EventRecord
from models.remote_event import RemoteEvent

FIXED_TODAY = date(2025, 6, 1)


def valid_fields(**overrides) -> Dict[str, Any]:
    """Column values of a record that passes validation"""
    fields = {
        "title": "Summer Jazz Night",
        "description": "Live jazz by the lake.\n\nDoors open at 7.",
        "startDate": "2025-07-15",
        "startTime": "19:30",
        "endDate": "2025-07-15",
        "endTime": "23:00",
        "address": "100 Queens Quay W, Toronto, ON",
        "venueName": "Harbourfront Centre",
        "cityName": "Toronto",
        "countryCode": "CA",
        "rateName": "General Admission",
        "ratePrice": 25,
        "rateCapacity": 100,
    }
    fields.update(overrides)
    return fields


def make_record(source_id: str = "rec001", **overrides) -> EventRecord:
    return EventRecord.from_fields(source_id, valid_fields(**overrides))


def make_remote_event(event_id: str = "evt-1", **overrides) -> RemoteEvent:
    data = {
        "id": event_id,
        "title": "Summer Jazz Night",
        "slug": f"summer-jazz-night-{event_id}",
        "state": "DRAFT",
        "clientMutationId": f"event-create-1700000000000-abc123-{event_id}",
    }
    data.update(overrides)
    return RemoteEvent.model_validate(data)


class InMemorySource(SourceOfTruth):
    """Source of truth backed by a dict; records every write"""

    def __init__(self, records: Optional[List[EventRecord]] = None, failing_ids=()):
        super().__init__(source_name="memory")
        self.records = list(records or [])
        self.updates: Dict[str, Dict[str, Any]] = {}
        self.write_calls: List[str] = []
        self.failing_ids = set(failing_ids)
        self.fetch_error: Optional[Exception] = None

    async def fetch_candidates(self) -> List[EventRecord]:
        if self.fetch_error:
            raise self.fetch_error
        return [record for record in self.records if record.is_candidate]

    async def update_record(self, source_id: str, fields: Dict[str, Any]) -> None:
        self.write_calls.append(source_id)
        if source_id in self.failing_ids:
            raise PersistenceError(f"write rejected for {source_id}", context={"record_id": source_id})
        self.updates.setdefault(source_id, {}).update(fields)

    def status_of(self, source_id: str) -> Optional[str]:
        return self.updates.get(source_id, {}).get("status")


@pytest.fixture
def fixed_today():
    return lambda: FIXED_TODAY


@pytest.fixture
def memory_source():
    return InMemorySource()


@pytest.fixture
def mock_universe():
    """Universe client double; every create succeeds unless reconfigured"""
    universe = Mock()

    async def create(record):
        return make_remote_event(f"evt-{record.source_id}")

    universe.create_event = AsyncMock(side_effect=create)
    universe.publish_event = AsyncMock(return_value=None)
    universe.event_url = Mock(side_effect=lambda slug: f"https://www.universe.com/{slug}")
    return universe


@pytest.fixture
def recorded_sleep():
    """Sleep replacement that records requested delays and returns at once"""
    delays: List[float] = []

    async def sleep(seconds: float):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
