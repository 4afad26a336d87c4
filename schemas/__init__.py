"""
Pydantic schemas for ephemeral sync results.

Schemas:
    validation: ValidationResult, ValidatedRecord, BatchValidationReport
    results: RecordOutcome, BatchResult, SyncSummary

None of these are persisted; they are produced and consumed within a run.

Usage:
    from schemas.validation import ValidationResult
    from schemas.results import SyncSummary
"""

__all__ = [
    "validation",
    "results",
]
