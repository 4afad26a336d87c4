"""
CSV file source of truth for local and offline runs
"""

import pandas as pd
from typing import Any, Dict, List
from pathlib import Path

from core.exceptions import PersistenceError, SourceFetchError
from ingestion.sources.base import SourceOfTruth
from models.event_record import EventRecord
import logging

logger = logging.getLogger(__name__)


class CSVSource(SourceOfTruth):
    """
    Use a CSV file as the events table.

    Supports:
    - Column headers matching the Airtable column names (startDate, venueName, ...)
    - The same candidate filter as the Airtable backend, applied in memory
    - Status write-back into the same file, adding columns on first use

    All cells are read as text; blank cells are treated as missing.
    """

    def __init__(self, file_path: str, id_column: str = "id"):
        super().__init__(source_name=f"csv:{Path(file_path).name}")
        self.file_path = Path(file_path)
        self.id_column = id_column

    def _read(self) -> pd.DataFrame:
        df = pd.read_csv(self.file_path, dtype=str, keep_default_na=False)
        # Normalize headers (strip whitespace only; column names are camelCase)
        df.columns = df.columns.str.strip()
        return df

    async def fetch_candidates(self) -> List[EventRecord]:
        if not self.file_path.exists():
            raise SourceFetchError(
                f"CSV file not found: {self.file_path}",
                context={"backend": "csv", "file_path": str(self.file_path)}
            )

        logger.info(f"Reading CSV from {self.file_path}")

        try:
            df = self._read()
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise SourceFetchError(
                "Failed to read CSV source",
                context={"backend": "csv", "file_path": str(self.file_path)},
                original_exception=e
            )

        if self.id_column not in df.columns:
            raise SourceFetchError(
                f"CSV source has no '{self.id_column}' column",
                context={"backend": "csv", "file_path": str(self.file_path)}
            )

        records: List[EventRecord] = []
        for row in df.to_dict(orient="records"):
            source_id = str(row.pop(self.id_column, "")).strip()
            if not source_id:
                logger.warning("Skipping CSV row without an id")
                continue
            record = EventRecord.from_source_row(source_id, row)
            if record.read_errors:
                logger.warning(f"CSV row {source_id} has unreadable cells: {record.read_errors}")
            if record.is_candidate:
                records.append(record)

        logger.info(f"Found {len(records)} unprocessed events in {self.file_path}")
        return records

    async def update_record(self, source_id: str, fields: Dict[str, Any]) -> None:
        # Read-modify-write; callers run on one event loop so writes never interleave
        try:
            df = self._read()
            mask = df[self.id_column] == source_id
            if not mask.any():
                raise KeyError(source_id)

            for column, value in fields.items():
                if column not in df.columns:
                    df[column] = ""
                df.loc[mask, column] = "" if value is None else str(value)

            df.to_csv(self.file_path, index=False)
        except (OSError, KeyError, pd.errors.ParserError) as e:
            raise PersistenceError(
                f"Failed to update CSV record {source_id}",
                context={"record_id": source_id, "fields": sorted(fields), "file_path": str(self.file_path)},
                original_exception=e
            )

        logger.info(f"Updated CSV record {source_id} with status: {fields.get('status')}")
