"""
Field-level validation for event records.

Every rule is evaluated independently and all errors are collected; there
is no short-circuit. Errors make a record invalid, warnings never do.
"""

import math
import re
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence

from models.base import DateDisplayOption
from models.event_record import EventRecord
from schemas.validation import BatchValidationReport, ValidatedRecord, ValidationResult
import logging

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")
COUNTRY_CODE_PATTERN = re.compile(r"^[A-Za-z]{2}$")

PRIVACY_VALUES = {"public", "private", "unlisted"}
DATE_DISPLAY_VALUES = {option.value for option in DateDisplayOption}
MAX_DURATION = timedelta(hours=168)

REQUIRED_FIELDS = [
    ("title", "Title is required"),
    ("start_date", "Start date is required"),
    ("start_time", "Start time is required"),
    ("end_date", "End date is required"),
    ("end_time", "End time is required"),
    ("address", "Address is required"),
    ("venue_name", "Venue name is required"),
    ("city_name", "City name is required"),
]


def is_valid_time(value: Optional[str]) -> bool:
    """True for 24-hour HH:MM with a leading zero, e.g. 09:30 or 23:59."""
    return bool(value) and TIME_PATTERN.match(value) is not None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse YYYY-MM-DD (an ISO datetime suffix is ignored). None if malformed."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip().split("T")[0])
    except ValueError:
        return None


def combine(day: date, time_value: str) -> datetime:
    hour, minute = (int(part) for part in time_value.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)


def _parse_number(value) -> Optional[float]:
    """Finite float, or None for booleans, garbage, NaN and infinities."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class EventValidator:
    """
    Runs the validation checklist over event records.

    Checks:
    - Required fields (non-empty after trimming)
    - 24-hour HH:MM start/end times
    - End instant strictly after start instant (multi-day spans allowed)
    - Duration and past-date warnings
    - Numeric ranges, enumerations and list-field hygiene
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today

    def validate(self, record: EventRecord) -> ValidationResult:
        errors: List[str] = list(record.read_errors)
        warnings: List[str] = []

        self._check_required(record, errors)
        self._check_schedule(record, errors, warnings)
        self._check_numbers(record, errors)
        self._check_enumerations(record, errors)
        self._check_lists(record, warnings)

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings
        )

    def _check_required(self, record: EventRecord, errors: List[str]):
        for field_name, message in REQUIRED_FIELDS:
            value = getattr(record, field_name)
            if value is None or not str(value).strip():
                errors.append(message)

    def _check_schedule(self, record: EventRecord, errors: List[str], warnings: List[str]):
        start_day = parse_date(record.start_date)
        end_day = parse_date(record.end_date)

        if record.start_date and start_day is None:
            errors.append("Start date must be a valid date (YYYY-MM-DD)")
        if record.end_date and end_day is None:
            errors.append("End date must be a valid date (YYYY-MM-DD)")

        times_ok = True
        if record.start_time and not is_valid_time(record.start_time):
            errors.append("Start time must be in HH:MM format (e.g., 19:30)")
            times_ok = False
        if record.end_time and not is_valid_time(record.end_time):
            errors.append("End time must be in HH:MM format (e.g., 22:00)")
            times_ok = False

        # Ordering needs all four parts well-formed; malformed times skip it
        if times_ok and start_day and end_day and record.start_time and record.end_time:
            start_at = combine(start_day, record.start_time)
            end_at = combine(end_day, record.end_time)

            if end_at <= start_at:
                errors.append("Event end must be after event start (supports multi-day events)")
            elif end_at - start_at > MAX_DURATION:
                warnings.append("Event duration is longer than 7 days")

        # Calendar day only; time of day is ignored
        if start_day and start_day < self._today():
            warnings.append("Event start date is in the past")

    def _check_numbers(self, record: EventRecord, errors: List[str]):
        if record.rate_price is not None:
            price = _parse_number(record.rate_price)
            if price is None:
                errors.append("Rate price must be a number")
            elif price < 0:
                errors.append("Rate price cannot be negative")

        for label, value in (("Capacity", record.capacity), ("Rate capacity", record.rate_capacity)):
            if value is None:
                continue
            number = _parse_number(value)
            if number is None:
                errors.append(f"{label} must be a number")
            elif number < 1:
                errors.append(f"{label} must be at least 1")

        if record.max_quantity is not None:
            number = _parse_number(record.max_quantity)
            if number is None or number < 1:
                errors.append("Max quantity must be a number of at least 1")

    def _check_enumerations(self, record: EventRecord, errors: List[str]):
        if record.country_code and not COUNTRY_CODE_PATTERN.match(record.country_code.strip()):
            errors.append("Country code must be 2 characters (e.g., CA, US)")

        if record.date_display_option and record.date_display_option not in DATE_DISPLAY_VALUES:
            errors.append("Date display option must be FULL, SHORT, or HIDDEN")

        if record.privacy and record.privacy.strip().lower() not in PRIVACY_VALUES:
            errors.append("Privacy must be PUBLIC, PRIVATE, or UNLISTED (case insensitive)")

    def _check_lists(self, record: EventRecord, warnings: List[str]):
        for label, value in (
            ("TikTok pixel codes", record.tiktok_pixel_codes),
            ("Facebook pixel codes", record.facebook_pixel_codes),
        ):
            if value and any(not code.strip() for code in value.split(",")):
                warnings.append(f"{label} should not contain empty values")

    def validate_batch(self, records: Sequence[EventRecord]) -> BatchValidationReport:
        """
        Validate every record and partition by validity.

        Returns:
            BatchValidationReport with valid and invalid entries, each in input order
        """
        results = [
            ValidatedRecord(
                position=position,
                source_id=record.source_id,
                title=record.title,
                validation=self.validate(record)
            )
            for position, record in enumerate(records)
        ]

        valid = [r for r in results if r.validation.is_valid]
        invalid = [r for r in results if not r.validation.is_valid]

        logger.info(f"Validation complete: {len(valid)} valid, {len(invalid)} invalid events")

        if invalid:
            logger.warning("Invalid events found:")
            for entry in invalid:
                logger.warning(f"- {entry.title}: {', '.join(entry.validation.errors)}")

        return BatchValidationReport(
            valid=valid,
            invalid=invalid,
            total_count=len(records)
        )
