"""
Airtable-backed source of truth using the Airtable REST API
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from core.config import Settings, settings as default_settings
from core.exceptions import ConfigurationError, PersistenceError, SourceFetchError
from ingestion.sources.base import CANDIDATE_FILTER, SourceOfTruth
from models.event_record import EventRecord
import logging

logger = logging.getLogger(__name__)


class AirtableSource(SourceOfTruth):
    """
    Read candidate events from an Airtable table and write status back.

    Features:
    - Bearer token authentication
    - Pagination via Airtable's ``offset`` cursor
    - Server-side candidate filtering with ``filterByFormula``

    Attributes:
        base_id: Airtable base id (app...)
        table_name: Table name or id
        page_size: Records per page, at most 100
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_id: Optional[str],
        table_name: Optional[str],
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 30.0,
        page_size: int = 100,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(source_name=f"airtable:{table_name}")
        if not api_key or not base_id or not table_name:
            raise ConfigurationError(
                "Airtable credentials are not configured",
                context={"missing": "AIRTABLE_API_KEY / AIRTABLE_BASE_ID / AIRTABLE_TABLE_NAME"}
            )
        self.api_key = api_key
        self.base_id = base_id
        self.table_name = table_name
        self.table_url = f"{api_url.rstrip('/')}/{base_id}/{quote(table_name, safe='')}"
        self.timeout = timeout
        self.page_size = page_size

        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http_client is None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "AirtableSource":
        settings = settings or default_settings
        return cls(
            api_key=settings.AIRTABLE_API_KEY,
            base_id=settings.AIRTABLE_BASE_ID,
            table_name=settings.AIRTABLE_TABLE_NAME,
            api_url=settings.AIRTABLE_API_URL,
            timeout=settings.HTTP_TIMEOUT,
            **kwargs
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    async def aclose(self):
        if self._owns_http:
            await self._http.aclose()

    async def fetch_candidates(self) -> List[EventRecord]:
        params: Dict[str, Any] = {
            "filterByFormula": CANDIDATE_FILTER,
            "pageSize": self.page_size,
        }
        records: List[EventRecord] = []
        page = 1

        while True:
            try:
                response = await self._http.get(self.table_url, headers=self._headers, params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                logger.error(f"Failed to fetch events from Airtable: HTTP {e.response.status_code}")
                raise SourceFetchError(
                    "Failed to fetch events from Airtable",
                    context={
                        "backend": "airtable",
                        "table_name": self.table_name,
                        "status_code": e.response.status_code,
                        "response_body": e.response.text[:500],
                        "page": page
                    },
                    original_exception=e
                )
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch events from Airtable: {e}")
                raise SourceFetchError(
                    "Failed to fetch events from Airtable",
                    context={"backend": "airtable", "table_name": self.table_name, "page": page},
                    original_exception=e
                )

            for row in data.get("records", []):
                record = EventRecord.from_source_row(row["id"], row.get("fields", {}))
                if record.read_errors:
                    logger.warning(f"Airtable record {record.source_id} has unreadable cells: {record.read_errors}")
                records.append(record)

            offset = data.get("offset")
            if not offset:
                break
            params["offset"] = offset
            page += 1

        logger.info(f"Found {len(records)} unprocessed events in Airtable ({page} pages)")
        return records

    async def update_record(self, source_id: str, fields: Dict[str, Any]) -> None:
        try:
            response = await self._http.patch(
                f"{self.table_url}/{source_id}",
                headers=self._headers,
                json={"fields": fields, "typecast": True}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            status_code = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
            raise PersistenceError(
                f"Failed to update Airtable record {source_id}",
                context={
                    "record_id": source_id,
                    "fields": sorted(fields),
                    "status_code": status_code
                },
                original_exception=e
            )

        logger.info(f"Updated Airtable record {source_id} with status: {fields.get('status')}")
