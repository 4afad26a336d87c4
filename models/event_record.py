"""
Typed source record for one event row.

Each recognised column of the events table gets a nullable slot. Values
are kept close to what the table returns (dates and numbers are not
parsed here) so that malformed data reaches the validator and produces
a readable error instead of failing model construction.
"""

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from models.base import RecordStatus, TERMINAL_STATUSES

Number = Union[int, float, str]

_TRUE_STRINGS = {"true", "1", "yes", "y", "checked", "x"}


def _is_blank(value: Any) -> bool:
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


class EventRecord(BaseModel):
    """One candidate row from the source of truth."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source_id: str = Field(..., min_length=1)

    # Core fields
    title: Optional[str] = None
    description: Optional[str] = None

    # Schedule
    start_date: Optional[str] = Field(None, alias="startDate")
    start_time: Optional[str] = Field(None, alias="startTime")
    end_date: Optional[str] = Field(None, alias="endDate")
    end_time: Optional[str] = Field(None, alias="endTime")

    # Location
    address: Optional[str] = None
    venue_name: Optional[str] = Field(None, alias="venueName")
    city_name: Optional[str] = Field(None, alias="cityName")
    region: Optional[str] = None
    country_code: Optional[str] = Field(None, alias="countryCode")
    latitude: Optional[Number] = None
    longitude: Optional[Number] = None

    # Listing options
    category_id: Optional[str] = Field(None, alias="categoryId")
    privacy: Optional[str] = None
    publish: bool = False
    virtual: bool = False
    allow_waitlist: bool = Field(False, alias="allowWaitlist")
    social_buttons: bool = Field(False, alias="socialButtons")
    hidden_date: bool = Field(False, alias="hiddenDate")
    timed_entry: bool = Field(False, alias="timedEntry")
    max_quantity: Optional[Number] = Field(None, alias="maxQuantity")
    transaction_currency: Optional[str] = Field(None, alias="transactionCurrency")
    available_countries: Optional[str] = Field(None, alias="availableCountries")
    date_display_option: Optional[str] = Field(None, alias="dateDisplayOption")
    capacity: Optional[Number] = None

    # Ticket rate
    rate_name: Optional[str] = Field(None, alias="rateName")
    rate_price: Optional[Number] = Field(None, alias="ratePrice")
    rate_capacity: Optional[Number] = Field(None, alias="rateCapacity")
    rate_description: Optional[str] = Field(None, alias="rateDescription")

    # Analytics
    tiktok_pixel_codes: Optional[str] = Field(None, alias="tiktokPixelCodes")
    facebook_pixel_codes: Optional[str] = Field(None, alias="facebookPixelCodes")
    google_analytics4_id: Optional[str] = Field(None, alias="googleAnalytics4Id")

    # Sync bookkeeping
    status: Optional[str] = None

    # Cells dropped because they could not be read into their slot
    read_errors: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def blank_to_none(cls, data):
        """Empty cells and NaN mean "not set"."""
        if not isinstance(data, dict):
            return data
        return {key: None if _is_blank(value) else value for key, value in data.items()}

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def date_to_string(cls, v):
        if isinstance(v, datetime):
            return v.date().isoformat()
        if isinstance(v, date):
            return v.isoformat()
        return v

    @field_validator(
        "title", "description", "start_time", "end_time", "address", "venue_name",
        "city_name", "region", "country_code", "category_id", "privacy",
        "transaction_currency", "available_countries", "date_display_option",
        "rate_name", "rate_description", "tiktok_pixel_codes", "facebook_pixel_codes",
        "google_analytics4_id", "status",
        mode="before",
    )
    @classmethod
    def scalar_to_string(cls, v):
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, list):
            # Multi-select columns
            return ", ".join(str(item) for item in v)
        return str(v)

    @field_validator(
        "publish", "virtual", "allow_waitlist", "social_buttons", "hidden_date", "timed_entry",
        mode="before",
    )
    @classmethod
    def loose_bool(cls, v):
        """Checkbox columns arrive as True/absent; CSV exports as strings."""
        if v is None:
            return False
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return v != 0
        return str(v).strip().lower() in _TRUE_STRINGS

    @classmethod
    def from_fields(cls, source_id: str, fields: Dict[str, Any]) -> "EventRecord":
        """Build a record from a row id and its column -> value mapping."""
        return cls.model_validate({**fields, "source_id": source_id})

    @classmethod
    def from_source_row(cls, source_id: str, fields: Dict[str, Any]) -> "EventRecord":
        """
        Build a record from a source row, keeping rows that do not fit the model.

        Cells that fail to parse are left unset and described in
        ``read_errors``. The validator reports those as errors, so the row is
        marked Error like any other invalid record instead of going missing.
        """
        try:
            return cls.from_fields(source_id, fields)
        except PydanticValidationError as e:
            unreadable: Dict[str, str] = {}
            for error in e.errors():
                column = str(error["loc"][0]) if error["loc"] else "row"
                unreadable.setdefault(column, error["msg"])

        readable = {key: value for key, value in fields.items() if key not in unreadable}
        read_errors = [f"{column} could not be read: {message}" for column, message in unreadable.items()]
        return cls.model_validate({**readable, "source_id": source_id, "read_errors": read_errors})

    @property
    def display_title(self) -> str:
        return self.title or f"<untitled {self.source_id}>"

    @property
    def is_candidate(self) -> bool:
        """Not yet Created/Error and carrying a non-empty title."""
        if self.status in TERMINAL_STATUSES:
            return False
        return bool(self.title and self.title.strip())

    @property
    def record_status(self) -> RecordStatus:
        if self.status in TERMINAL_STATUSES:
            return RecordStatus(self.status)
        return RecordStatus.PENDING
