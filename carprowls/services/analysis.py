"""Year filtering and count aggregation over incident records."""

import calendar
import logging
from collections.abc import Iterable, Sequence

import pandas as pd

from carprowls.schemas.incident import IncidentRecord, JoinedRecord

logger = logging.getLogger(__name__)

RECORD_COLUMNS = list(JoinedRecord.model_fields)


def filter_years(
    records: Iterable[IncidentRecord], start_year: int, end_year: int
) -> list[IncidentRecord]:
    """Keep records reported within [start_year, end_year]; undated records are dropped."""
    if start_year > end_year:
        raise ValueError(f"start_year {start_year} is after end_year {end_year}")

    kept = [r for r in records if r.year is not None and start_year <= r.year <= end_year]
    logger.info(f"Kept {len(kept)} incidents reported {start_year}-{end_year}")
    return kept


def records_to_frame(records: Sequence[IncidentRecord]) -> pd.DataFrame:
    """DataFrame with one row per record and a stable column set."""
    frame = pd.DataFrame([r.model_dump() for r in records], columns=RECORD_COLUMNS)
    for column in ("longitude", "latitude"):
        frame[column] = pd.to_numeric(frame[column], errors="coerce")
    return frame


def counts_by_neighborhood(
    records: Sequence[JoinedRecord], top: int | None = None
) -> pd.DataFrame:
    """
    Incident counts per neighborhood, most incidents first.

    Records without a neighborhood are excluded from the tally.
    """
    names = pd.Series([r.neighborhood_name for r in records], dtype="object").dropna()
    counts = (
        names.value_counts()
        .rename_axis("neighborhood")
        .reset_index(name="count")
        .sort_values(["count", "neighborhood"], ascending=[False, True], ignore_index=True)
    )
    if top is not None:
        counts = counts.head(top)
    return counts


def counts_by_month(records: Sequence[IncidentRecord]) -> pd.DataFrame:
    """Incident counts for months 1-12, including months with none."""
    months = pd.Series([r.month for r in records], dtype="object").dropna().astype(int)
    counts = months.value_counts().reindex(range(1, 13), fill_value=0)
    frame = counts.rename_axis("month").reset_index(name="count")
    frame["month_name"] = frame["month"].map(lambda m: calendar.month_abbr[m])
    return frame


def counts_by_year(records: Sequence[IncidentRecord]) -> pd.DataFrame:
    """Incident counts per observed year, ascending."""
    years = pd.Series([r.year for r in records], dtype="object").dropna().astype(int)
    counts = years.value_counts().sort_index()
    return counts.rename_axis("year").reset_index(name="count")
