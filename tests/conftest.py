"""Pytest fixtures for carprowls tests."""

import zipfile
from datetime import date
from pathlib import Path
from typing import Any

import geopandas as gpd
import numpy as np
import pytest
from shapely.geometry import box

from carprowls.config import Settings
from carprowls.schemas.incident import IncidentRecord


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Test settings with safe defaults."""
    return Settings(
        soda_app_token="test_token",
        output_dir=str(tmp_path / "output"),
        log_file="",
        start_year=2008,
        end_year=2014,
        predict_through_year=2016,
    )


@pytest.fixture
def sample_incident_rows() -> list[dict[str, Any]]:
    """Sample incident rows as returned by the Seattle SODA API."""
    return [
        {
            "rms_cdw_id": "1001",
            "general_offense_number": "2014123456",
            "summarized_offense_description": "CAR PROWL",
            "date_reported": "2014-05-12T08:21:00.000",
            "location": {
                "latitude": "47.6097",
                "longitude": "-122.3331",
                "needs_recoding": False,
            },
        },
        {
            "rms_cdw_id": "1002",
            "general_offense_number": "2013654321",
            "summarized_offense_description": "CAR PROWL",
            "date_reported": "2013-11-02T23:45:00.000",
            "location": {
                "type": "Point",
                "coordinates": [-122.3123, 47.6612],
            },
        },
        {
            "rms_cdw_id": "1003",
            "general_offense_number": "2012000001",
            "summarized_offense_description": "CAR PROWL",
            "date_reported": "2012-01-30T10:00:00.000",
            # No location
        },
    ]


@pytest.fixture
def unit_square_neighborhoods() -> gpd.GeoDataFrame:
    """Neighborhood A: unit square centred at the origin; B: far away."""
    return gpd.GeoDataFrame(
        {
            "neighborhood_id": [1, 2],
            "neighborhood_name": ["A", "B"],
        },
        geometry=[box(-0.5, -0.5, 0.5, 0.5), box(10, 10, 11, 11)],
        crs="EPSG:4326",
    )


@pytest.fixture
def located_incidents() -> list[IncidentRecord]:
    """Incidents spread over neighborhood A across 2008-2014."""
    rng = np.random.default_rng(42)
    yearly = {2008: 12, 2009: 15, 2010: 14, 2011: 19, 2012: 22, 2013: 21, 2014: 26}

    records = []
    for year, count in yearly.items():
        for i in range(count):
            lng, lat = rng.uniform(-0.4, 0.4, size=2)
            reported = date(year, (i % 12) + 1, 15)
            records.append(
                IncidentRecord(
                    id=f"{year}-{i}",
                    offense_description="CAR PROWL",
                    date_reported=reported,
                    longitude=float(lng),
                    latitude=float(lat),
                    month=reported.month,
                    year=reported.year,
                )
            )
    return records


def _write_shapes_zip(
    shapes: gpd.GeoDataFrame,
    zip_path: Path,
    shapefile: str = "Neighborhoods/WGS84/Neighborhoods.shp",
) -> Path:
    """Write shapes as a shapefile at the given relative path and zip the tree."""
    src = zip_path.parent / f"{zip_path.stem}_src"
    shp_path = src / shapefile
    shp_path.parent.mkdir(parents=True, exist_ok=True)
    shapes.to_file(shp_path)

    with zipfile.ZipFile(zip_path, "w") as zf:
        for file in src.rglob("*"):
            if file.is_file():
                zf.write(file, file.relative_to(src).as_posix())
    return zip_path


@pytest.fixture
def write_shapes_zip():
    """Helper that zips a shapefile written from a GeoDataFrame."""
    return _write_shapes_zip


@pytest.fixture
def neighborhoods_zip(tmp_path, unit_square_neighborhoods) -> Path:
    """Zipped shapefile with Seattle-style OBJECTID/S_HOOD fields."""
    shapes = unit_square_neighborhoods.rename(
        columns={"neighborhood_id": "OBJECTID", "neighborhood_name": "S_HOOD"}
    )
    return _write_shapes_zip(shapes, tmp_path / "neighborhoods.zip")
