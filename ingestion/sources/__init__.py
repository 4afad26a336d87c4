"""
Source-of-truth backends.

build_source() picks the backend named by SOURCE_BACKEND.
"""

from typing import Optional

from core.config import Settings, settings as default_settings
from core.exceptions import ConfigurationError
from ingestion.sources.airtable_source import AirtableSource
from ingestion.sources.base import SourceOfTruth
from ingestion.sources.csv_source import CSVSource
from models.base import SourceBackend


def build_source(settings: Optional[Settings] = None) -> SourceOfTruth:
    settings = settings or default_settings
    backend = settings.SOURCE_BACKEND.strip().lower()

    if backend == SourceBackend.AIRTABLE.value:
        return AirtableSource.from_settings(settings)
    if backend == SourceBackend.CSV.value:
        return CSVSource(settings.CSV_SOURCE_PATH)

    raise ConfigurationError(
        f"Unknown source backend: {settings.SOURCE_BACKEND}",
        context={"allowed": [b.value for b in SourceBackend]}
    )


__all__ = [
    "SourceOfTruth",
    "AirtableSource",
    "CSVSource",
    "build_source",
]
