import enum


# ============================================================================
# ENUMS
# ============================================================================

class RecordStatus(str, enum.Enum):
    """Sync status stored on each source record"""
    PENDING = "Pending"
    CREATED = "Created"
    ERROR = "Error"


class SourceBackend(str, enum.Enum):
    """Source-of-truth backends"""
    AIRTABLE = "airtable"
    CSV = "csv"


class EventState(str, enum.Enum):
    """Universe event states"""
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class Privacy(str, enum.Enum):
    """Universe privacy values"""
    PUBLIC = "public"
    UNLISTED = "unlisted"


class DateDisplayOption(str, enum.Enum):
    """Accepted values for the date display column"""
    FULL = "FULL"
    SHORT = "SHORT"
    HIDDEN = "HIDDEN"


TERMINAL_STATUSES = {RecordStatus.CREATED.value, RecordStatus.ERROR.value}
