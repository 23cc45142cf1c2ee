"""Pydantic schemas for incident data."""

from carprowls.schemas.incident import IncidentRecord, JoinedRecord

__all__ = [
    "IncidentRecord",
    "JoinedRecord",
]
