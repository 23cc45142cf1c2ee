"""Point-in-polygon join of incidents to neighborhoods."""

import logging
from collections.abc import Iterable
from typing import Any

import geopandas as gpd
import numpy as np

from carprowls.schemas.incident import IncidentRecord, JoinedRecord

logger = logging.getLogger(__name__)

WGS84 = "EPSG:4326"


def _native(value: Any) -> Any:
    """Unwrap numpy scalars so pydantic sees plain Python values."""
    if isinstance(value, np.generic):
        return value.item()
    return value


def _match_neighborhoods(
    records: list[IncidentRecord], polygons: gpd.GeoDataFrame
) -> dict[int, tuple[Any, Any]]:
    """Map record position -> (neighborhood_id, neighborhood_name)."""
    located = [i for i, record in enumerate(records) if record.has_coordinates]
    if not located or polygons.empty:
        return {}

    shapes = polygons[["neighborhood_id", "neighborhood_name", "geometry"]].reset_index(drop=True)
    shapes = shapes.set_crs(WGS84) if shapes.crs is None else shapes.to_crs(WGS84)

    points = gpd.GeoDataFrame(
        {"position": located},
        geometry=gpd.points_from_xy(
            [records[i].longitude for i in located],
            [records[i].latitude for i in located],
        ),
        crs=WGS84,
    )

    joined = gpd.sjoin(points, shapes, how="inner", predicate="within")
    # Overlapping polygons: first polygon in iteration order wins
    joined = joined.sort_values(["position", "index_right"]).drop_duplicates(
        "position", keep="first"
    )

    return {
        int(row.position): (_native(row.neighborhood_id), _native(row.neighborhood_name))
        for row in joined.itertuples(index=False)
    }


def join_neighborhoods(
    records: Iterable[IncidentRecord], polygons: gpd.GeoDataFrame
) -> list[JoinedRecord]:
    """
    Attach the containing neighborhood to each incident.

    Output is one-to-one with records and keeps their order. Records with
    missing coordinates or outside every polygon get None neighborhood fields.
    """
    records = list(records)
    matches = _match_neighborhoods(records, polygons)

    joined = []
    for i, record in enumerate(records):
        neighborhood_id, neighborhood_name = matches.get(i, (None, None))
        joined.append(
            JoinedRecord(
                **record.model_dump(),
                neighborhood_id=neighborhood_id,
                neighborhood_name=neighborhood_name,
            )
        )

    unmatched = len(records) - len(matches)
    logger.info(
        f"Joined {len(matches)} of {len(records)} incidents to neighborhoods "
        f"({unmatched} without a neighborhood)"
    )
    return joined
