"""Pydantic schemas for incident records."""

from datetime import date

from pydantic import BaseModel, ConfigDict


class IncidentRecord(BaseModel):
    """Normalized incident row from the Seattle incidents dataset."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    offense_description: str | None = None
    date_reported: date | None = None

    longitude: float | None = None
    latitude: float | None = None

    # Derived from date_reported
    month: int | None = None
    year: int | None = None

    @property
    def has_coordinates(self) -> bool:
        return self.longitude is not None and self.latitude is not None


class JoinedRecord(IncidentRecord):
    """Incident record with the neighborhood its point falls in."""

    neighborhood_id: int | str | None = None
    neighborhood_name: str | None = None
