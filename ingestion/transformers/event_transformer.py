"""
Transform event records into Universe ``EventCreateInput`` payloads
"""

import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Union

from core.exceptions import DataFormatError
from core.idempotency import generate_client_mutation_id
from models.base import Privacy
from models.event_record import EventRecord

DEFAULT_LATITUDE = 43.653226
DEFAULT_LONGITUDE = -79.3831843
DEFAULT_CATEGORY_ID = "52cc8f6154c5317943000003"
RATE_STATE = "ACTIVE"

# Source privacy value -> Universe privacy value
PRIVACY_MAP = {
    "public": Privacy.PUBLIC.value,
    "private": Privacy.UNLISTED.value,
    "unlisted": Privacy.UNLISTED.value,
}

TIME_FORMAT = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


def format_description(description: Optional[str]) -> str:
    """
    Convert plain text to Universe description HTML.

    Blank-line separated paragraphs become <p> blocks and single line
    breaks inside a paragraph become <br>.
    """
    if not description:
        return ""

    paragraphs = [p.strip() for p in description.replace("\r\n", "\n").split("\n\n")]
    html = [p.replace("\n", "<br>") for p in paragraphs if p]
    return "".join(f"<p>{p}</p>" for p in html)


def combine_date_and_time(day: Union[str, date, datetime], time_value: str) -> str:
    """
    Combine YYYY-MM-DD and HH:MM into a Universe local timestamp.

    Returns:
        "YYYY-MM-DDTHH:MM:00"

    Raises:
        DataFormatError: If the time is not 24-hour HH:MM
    """
    if isinstance(day, datetime):
        date_str = day.date().isoformat()
    elif isinstance(day, date):
        date_str = day.isoformat()
    else:
        date_str = str(day).strip().split("T")[0]

    time_str = (time_value or "").strip()
    if not TIME_FORMAT.match(time_str):
        raise DataFormatError(
            f"Invalid time '{time_value}', expected HH:MM",
            context={"date": date_str, "time": time_value}
        )

    return f"{date_str}T{time_str}:00"


def split_list(value: Optional[str]) -> List[str]:
    """Comma-separated cell -> trimmed, non-empty items"""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class EventTransformer:
    """
    Map flat event records onto the nested Universe create input.

    Handles:
    - Client mutation id generation
    - Defaults (coordinates, category)
    - Type coercion (strings -> numbers)
    - Conditional inclusion of optional attributes; absent values are
      left out of the payload entirely, never sent as null
    """

    def __init__(self, id_generator: Callable[..., str] = generate_client_mutation_id):
        self.id_generator = id_generator

    def to_create_input(self, record: EventRecord) -> Dict[str, Any]:
        """
        Build the ``EventCreateInput`` for a validated record.

        Returns:
            {"clientMutationId": ..., "publish": bool, "event": {...}}
        """
        event: Dict[str, Any] = {
            "title": record.title,
            "descriptionHtml": format_description(record.description),
            "address": record.address,
            "latitude": self._parse_float(record.latitude, DEFAULT_LATITUDE),
            "longitude": self._parse_float(record.longitude, DEFAULT_LONGITUDE),
            "category": {"id": record.category_id or DEFAULT_CATEGORY_ID},
            "timeSlots": [],
            "rates": [],
        }

        if record.start_date and record.start_time and record.end_date and record.end_time:
            event["timeSlots"].append({
                "startAt": combine_date_and_time(record.start_date, record.start_time),
                "endAt": combine_date_and_time(record.end_date, record.end_time),
            })

        if record.rate_name and record.rate_price is not None:
            event["rates"].append({"attributes": self._build_rate(record)})

        if record.privacy:
            privacy = record.privacy.strip().lower()
            event["privacy"] = PRIVACY_MAP.get(privacy, privacy)

        self._add_optional_fields(record, event)

        return {
            "clientMutationId": self.id_generator("event-create", record.source_id),
            "publish": record.publish is True,
            "event": event,
        }

    def _build_rate(self, record: EventRecord) -> Dict[str, Any]:
        # Price stays in currency units, not cents
        try:
            price = float(record.rate_price)
        except (ValueError, TypeError) as e:
            raise DataFormatError(
                f"Invalid rate price '{record.rate_price}'",
                context={"record_id": record.source_id},
                original_exception=e
            )
        if not math.isfinite(price):
            raise DataFormatError(
                f"Invalid rate price '{record.rate_price}'",
                context={"record_id": record.source_id}
            )

        rate: Dict[str, Any] = {
            "name": record.rate_name,
            "price": price,
            "state": RATE_STATE,
        }
        capacity = self._parse_int(record.rate_capacity)
        if capacity is not None:
            rate["capacity"] = capacity
        if record.rate_description:
            rate["description"] = record.rate_description
        return rate

    def _add_optional_fields(self, record: EventRecord, event: Dict[str, Any]):
        if record.virtual:
            event["virtual"] = True
        if record.venue_name:
            event["venueName"] = record.venue_name
        if record.region:
            event["region"] = record.region
        if record.allow_waitlist:
            event["allowWaitlist"] = True
        if record.social_buttons:
            event["socialButtons"] = True
        if record.hidden_date:
            event["hiddenDate"] = True
        if record.timed_entry:
            event["timedEntry"] = True

        max_quantity = self._parse_int(record.max_quantity)
        if max_quantity is not None:
            event["maxQuantity"] = max_quantity

        if record.transaction_currency:
            event["transactionCurrency"] = record.transaction_currency

        for key, value in (
            ("availableCountries", record.available_countries),
            ("tiktokPixelCodes", record.tiktok_pixel_codes),
            ("facebookPixelCodes", record.facebook_pixel_codes),
        ):
            items = split_list(value)
            if items:
                event[key] = items

        if record.google_analytics4_id:
            event["googleAnalytics4Id"] = record.google_analytics4_id

    @staticmethod
    def _parse_float(value: Any, default: float) -> float:
        """Parse float value, falling back to the default"""
        if value is None or value == "":
            return default
        try:
            number = float(value)
        except (ValueError, TypeError):
            return default
        return number if math.isfinite(number) else default

    @staticmethod
    def _parse_int(value: Any) -> Optional[int]:
        """Safely parse int value"""
        if value is None or value == "":
            return None
        try:
            return int(float(value))  # Handle "10.0" strings
        except (ValueError, TypeError, OverflowError):
            return None
