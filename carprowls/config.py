"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Seattle SODA API
    soda_app_token: str | None = None  # Optional but recommended for higher rate limits
    soda_base_url: str = "https://data.seattle.gov/resource"
    incidents_dataset_id: str = "i6vm-ucwh"
    offense_field: str = "summarized_offense_description"
    offense_type: str = "CAR PROWL"

    # Fetch settings
    page_size: int = 5000
    max_pages: int = 1000
    request_timeout_seconds: float = 60.0

    # Neighborhood shapes
    neighborhoods_zip_url: str = "https://data.seattle.gov/download/2mbt-aqqx/application/zip"
    neighborhoods_shapefile: str = "Neighborhoods/WGS84/Neighborhoods.shp"
    neighborhood_id_field: str = "OBJECTID"
    neighborhood_name_field: str = "S_HOOD"

    # Analysis
    start_year: int = 2008
    end_year: int = 2014
    predict_through_year: int = 2020
    top_neighborhoods: int = 5

    # Heat maps (downtown Seattle)
    map_center_longitude: float = -122.335167
    map_center_latitude: float = 47.608013
    zoom_span_degrees: float = 0.02

    # Output
    output_dir: str = "output"
    log_file: str = "carprowls.log"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
