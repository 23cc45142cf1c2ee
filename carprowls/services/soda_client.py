"""SODA client for the Seattle open data incident API."""

import logging
from datetime import date, datetime
from typing import Any

import httpx

from carprowls.config import get_settings
from carprowls.exceptions import NetworkError, PaginationError, ParseError
from carprowls.schemas.incident import IncidentRecord

logger = logging.getLogger(__name__)
settings = get_settings()

DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
]


class SODAClient:
    """
    Client for the Seattle Socrata Open Data API (SODA).

    Features:
    - App token support for higher rate limits
    - Offset pagination until a short page signals end of data
    - Hard request timeout and page limit; no retries
    """

    def __init__(
        self,
        base_url: str = settings.soda_base_url,
        dataset_id: str = settings.incidents_dataset_id,
        app_token: str | None = settings.soda_app_token,
        offense_field: str = settings.offense_field,
        max_pages: int = settings.max_pages,
        timeout: float = settings.request_timeout_seconds,
    ):
        self.base_url = base_url.rstrip("/")
        self.dataset_id = dataset_id
        self.app_token = app_token
        self.offense_field = offense_field
        self.max_pages = max_pages
        self.timeout = timeout

        # Build headers
        self.headers: dict[str, str] = {
            "Accept": "application/json",
        }
        if app_token:
            self.headers["X-App-Token"] = app_token

    @property
    def resource_url(self) -> str:
        return f"{self.base_url}/{self.dataset_id}.json"

    def _request(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Make a single HTTP GET and decode the JSON array body."""
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(url, headers=self.headers, params=params)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"HTTP error: {e}") from e
        except httpx.RequestError as e:
            raise NetworkError(f"Request error: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ParseError(f"Response from {url} is not valid JSON: {e}") from e

        if not isinstance(body, list):
            raise ParseError(f"Expected a JSON array from {url}, got {type(body).__name__}")
        return body

    def where_clause(self, offense_type: str) -> str:
        """Build the SoQL equality filter for an offense type."""
        escaped = offense_type.replace("'", "''")
        return f"{self.offense_field} = '{escaped}'"

    def fetch_incidents_page(
        self,
        offense_type: str,
        limit: int,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """
        Fetch one page of raw incident rows.

        Args:
            offense_type: Value the offense field must equal
            limit: Maximum number of records to fetch
            offset: Pagination offset

        Returns:
            List of raw incident rows
        """
        params: dict[str, Any] = {
            "$where": self.where_clause(offense_type),
            "$limit": limit,
            "$offset": offset,
            "$order": ":id",
        }

        logger.info(
            f"Downloading crime data from {self.resource_url}: "
            f"offense={offense_type!r}, limit={limit}, offset={offset}"
        )
        return self._request(self.resource_url, params)

    def fetch_all_incidents(
        self,
        offense_type: str = settings.offense_type,
        page_size: int = settings.page_size,
    ) -> list[IncidentRecord]:
        """
        Fetch every incident of one offense type with pagination.

        Stops at the first page shorter than page_size. When the total is an
        exact multiple of page_size that page is empty.

        Args:
            offense_type: Value the offense field must equal
            page_size: Number of records per request

        Returns:
            All matching incidents, normalized

        Raises:
            NetworkError: A request failed
            ParseError: A response or row could not be parsed
            PaginationError: More than max_pages full pages were returned
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")

        all_records: list[IncidentRecord] = []
        offset = 0
        pages = 0

        while True:
            if pages >= self.max_pages:
                raise PaginationError(
                    f"Still receiving full pages after {self.max_pages} requests "
                    f"({len(all_records)} records); aborting"
                )

            batch = self.fetch_incidents_page(offense_type, limit=page_size, offset=offset)
            pages += 1
            all_records.extend(self._parse_record(row) for row in batch)

            if len(batch) < page_size:
                break
            offset += page_size

        logger.info(f"Downloaded {len(all_records)} rows of crime data in {pages} pages")
        return all_records

    def _parse_record(self, row: dict[str, Any]) -> IncidentRecord:
        """Flatten coordinates and derive month/year from the report date."""
        longitude, latitude = self._parse_coordinates(row)
        reported = self._parse_date(row.get("date_reported"))

        return IncidentRecord(
            id=self._first_present(row, "id", "rms_cdw_id", "general_offense_number"),
            offense_description=self._first_present(
                row, self.offense_field, "offense_type"
            ),
            date_reported=reported,
            longitude=longitude,
            latitude=latitude,
            month=reported.month if reported else None,
            year=reported.year if reported else None,
        )

    @staticmethod
    def _first_present(row: dict[str, Any], *keys: str) -> str | None:
        for key in keys:
            value = row.get(key)
            if value not in (None, ""):
                return str(value)
        return None

    @staticmethod
    def _parse_date(value: str | None) -> date | None:
        """Parse a SODA floating timestamp into a calendar date."""
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise ParseError(f"date_reported must be a string, got {value!r}")
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue
        raise ParseError(f"Unrecognized date_reported value: {value!r}")

    @staticmethod
    def _parse_coordinates(row: dict[str, Any]) -> tuple[float | None, float | None]:
        """Extract (longitude, latitude) from the nested location field."""
        location = row.get("location") or {}
        if not isinstance(location, dict):
            raise ParseError(f"Expected location object, got {location!r}")

        # GeoJSON point
        if "coordinates" in location:
            coords = location["coordinates"]
            if not coords:
                return None, None
            if not isinstance(coords, (list, tuple)) or len(coords) < 2:
                raise ParseError(f"Invalid location coordinates: {coords!r}")
            lng, lat = coords[0], coords[1]
        else:
            lng = location.get("longitude", row.get("longitude"))
            lat = location.get("latitude", row.get("latitude"))

        if lng in (None, "") or lat in (None, ""):
            return None, None
        try:
            return float(lng), float(lat)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Invalid coordinates longitude={lng!r}, latitude={lat!r}") from e
