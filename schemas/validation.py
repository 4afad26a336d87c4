"""
Pydantic schemas for validation results
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ValidationResult(BaseModel):
    """Outcome of running the validation checklist on one record"""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def error_message(self) -> str:
        """Errors joined the way they are written back to the source record"""
        return "; ".join(self.errors)


class ValidatedRecord(BaseModel):
    """A record id and title paired with its validation result"""
    position: int = Field(..., ge=0, description="Index of the record in the validated input")
    source_id: str
    title: Optional[str] = None
    validation: ValidationResult


class BatchValidationReport(BaseModel):
    """Valid/invalid partition of a record list, input order preserved in each"""
    valid: List[ValidatedRecord] = Field(default_factory=list)
    invalid: List[ValidatedRecord] = Field(default_factory=list)
    total_count: int = 0
