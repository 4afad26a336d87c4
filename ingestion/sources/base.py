"""
Abstract base class for the source of truth holding event rows
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from models.event_record import EventRecord
import logging

logger = logging.getLogger(__name__)

# Airtable formula selecting candidate rows; other backends mirror it in memory
CANDIDATE_FILTER = "AND({status} != 'Created', {status} != 'Error', {title} != '')"


class SourceOfTruth(ABC):
    """
    Abstract base class for all record sources.

    Responsibilities:
    - Fetch the candidate snapshot once per run
    - Upsert named fields on a single record (status write-back)
    """

    def __init__(self, source_name: str):
        self.source_name = source_name

    @abstractmethod
    async def fetch_candidates(self) -> List[EventRecord]:
        """
        Fetch records whose status is neither Created nor Error and whose
        title is non-empty.

        Raises:
            SourceFetchError: If the source cannot be read
        """
        pass

    @abstractmethod
    async def update_record(self, source_id: str, fields: Dict[str, Any]) -> None:
        """
        Idempotently set the given fields on one record.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    async def aclose(self):
        """Release any held resources."""
        pass
