"""
Persist per-record terminal status back into the source of truth
"""

from datetime import date
from typing import Any, Callable, Dict, Optional

from core.exceptions import PersistenceError
from ingestion.sources.base import SourceOfTruth
from models.base import RecordStatus
import logging

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 1000


class StatusSink:
    """
    Write Created / Error status onto source records.

    Writes are attempted once. A failed write is logged and reported as
    False; it never changes the outcome the caller already decided.
    """

    def __init__(self, source: SourceOfTruth, today: Callable[[], date] = date.today):
        self.source = source
        self._today = today

    async def _write(self, source_id: str, fields: Dict[str, Any], action: str) -> bool:
        try:
            await self.source.update_record(source_id, fields)
            return True
        except PersistenceError as e:
            logger.error(f"Failed to mark record {source_id} as {action}: {e.message}",
                         extra={"error_context": e.to_dict()})
            return False

    async def mark_as_created(
        self,
        source_id: str,
        event_id: str,
        event_url: str,
        client_mutation_id: Optional[str] = None
    ) -> bool:
        today = self._today().isoformat()
        fields: Dict[str, Any] = {
            "status": RecordStatus.CREATED.value,
            "universeEventId": event_id,
            "universeUrl": event_url,
            "createdAt": today,
            "lastUpdated": today,
        }
        if client_mutation_id:
            fields["clientMutationId"] = client_mutation_id

        return await self._write(source_id, fields, "created")

    async def mark_as_error(self, source_id: str, error_message: str) -> bool:
        fields = {
            "status": RecordStatus.ERROR.value,
            "errorMessage": (error_message or "Unknown error")[:MAX_ERROR_MESSAGE_LENGTH],
            "lastUpdated": self._today().isoformat(),
        }
        return await self._write(source_id, fields, "error")
