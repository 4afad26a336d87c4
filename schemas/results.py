"""
Pydantic schemas for per-record, per-batch and per-run sync outcomes
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class RecordOutcome(BaseModel):
    """
    Terminal outcome of one record's create protocol.

    ``success`` reflects the decided outcome; ``persisted`` records whether
    the status write-back to the source of truth went through.
    """
    source_id: str
    title: Optional[str] = None
    success: bool
    attempts: int = 0
    event_id: Optional[str] = None
    event_url: Optional[str] = None
    client_mutation_id: Optional[str] = None
    published: bool = False
    error: Optional[str] = None
    persisted: bool = True


class BatchResult(BaseModel):
    """Outcomes of one batch, in the batch's input order"""
    index: int
    outcomes: List[RecordOutcome] = Field(default_factory=list)
    failed_to_dispatch: bool = False

    @property
    def success(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def errors(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.success)


class SyncSummary(BaseModel):
    """Aggregate counts reported at the end of a run"""
    total_candidates: int = 0
    invalid: int = 0
    created: int = 0
    errors: int = 0
    batches: int = 0
    batch_results: List[BatchResult] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.created + self.errors
