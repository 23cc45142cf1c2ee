"""Command-line pipeline for Seattle incident hot spots and yearly trends."""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
import pandas as pd

from carprowls.config import Settings, get_settings
from carprowls.exceptions import CarProwlsError
from carprowls.schemas.incident import JoinedRecord
from carprowls.services import plots
from carprowls.services.analysis import (
    counts_by_month,
    counts_by_neighborhood,
    counts_by_year,
    filter_years,
    records_to_frame,
)
from carprowls.services.shape_loader import ShapeLoader
from carprowls.services.soda_client import SODAClient
from carprowls.services.spatial_join import join_neighborhoods
from carprowls.services.trends import TrendFit, fit_trend, predict_counts

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class PipelineResult:
    """Everything one pipeline run produces."""

    incidents: list[JoinedRecord]
    neighborhoods: gpd.GeoDataFrame
    by_neighborhood: pd.DataFrame
    by_month: pd.DataFrame
    by_year: pd.DataFrame
    trend: TrendFit | None
    predictions: pd.DataFrame | None
    figures: list[Path]


def configure_logging(settings: Settings) -> None:
    """Log to stderr and to the configured log file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def run_pipeline(
    settings: Settings,
    soda_client: SODAClient | None = None,
    shape_loader: ShapeLoader | None = None,
) -> PipelineResult:
    """Fetch, filter, join, aggregate, fit and plot."""
    soda_client = soda_client or SODAClient(
        base_url=settings.soda_base_url,
        dataset_id=settings.incidents_dataset_id,
        app_token=settings.soda_app_token,
        offense_field=settings.offense_field,
        max_pages=settings.max_pages,
        timeout=settings.request_timeout_seconds,
    )
    shape_loader = shape_loader or ShapeLoader(
        url=settings.neighborhoods_zip_url,
        shapefile=settings.neighborhoods_shapefile,
        id_field=settings.neighborhood_id_field,
        name_field=settings.neighborhood_name_field,
        timeout=settings.request_timeout_seconds,
    )

    logger.info(f"Starting {settings.offense_type} analysis")
    incidents = soda_client.fetch_all_incidents(
        offense_type=settings.offense_type, page_size=settings.page_size
    )
    neighborhoods = shape_loader.load()

    incidents = filter_years(incidents, settings.start_year, settings.end_year)
    joined = join_neighborhoods(incidents, neighborhoods)

    by_neighborhood = counts_by_neighborhood(joined, top=settings.top_neighborhoods)
    by_month = counts_by_month(joined)
    by_year = counts_by_year(joined)
    logger.info(f"Neighborhoods with most incidents:\n{by_neighborhood.to_string(index=False)}")
    logger.info(
        "Months by incidents:\n"
        f"{by_month.sort_values('count', ascending=False).to_string(index=False)}"
    )
    logger.info(
        "Years by incidents:\n"
        f"{by_year.sort_values('count', ascending=False).to_string(index=False)}"
    )

    output_dir = Path(settings.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    label = settings.offense_type.title()
    figures: list[Path | None] = []

    frame = records_to_frame(joined)
    figures.append(
        plots.plot_heat_map(
            frame, neighborhoods, output_dir / "heat_map.png", title=f"Seattle {label}s"
        )
    )
    figures.append(
        plots.plot_heat_map(
            frame,
            neighborhoods,
            output_dir / "heat_map_downtown.png",
            bounds=plots.zoom_bounds(
                settings.map_center_longitude,
                settings.map_center_latitude,
                settings.zoom_span_degrees,
            ),
            title=f"Downtown Seattle {label}s",
        )
    )
    figures.append(
        plots.plot_monthly_counts(
            by_month, output_dir / "by_month.png", title=f"Seattle {label}s by Month"
        )
    )

    trend = predictions = None
    if len(by_year) >= 2:
        trend = fit_trend(by_year)
        logger.info(f"Trend model summary:\n{trend.summary()}")
        future_years = range(settings.end_year + 1, settings.predict_through_year + 1)
        predictions = predict_counts(trend, future_years)
        logger.info(f"Predicted incidents:\n{predictions.to_string(index=False)}")
        figures.append(
            plots.plot_yearly_trend(
                by_year,
                trend,
                predictions,
                output_dir / "yearly_trend.png",
                title=f"Seattle {label}s",
                ylabel=f"{label} Incident Reports",
            )
        )
    else:
        logger.warning(f"Not enough years of data to fit a trend ({len(by_year)} found)")

    return PipelineResult(
        incidents=joined,
        neighborhoods=neighborhoods,
        by_neighborhood=by_neighborhood,
        by_month=by_month,
        by_year=by_year,
        trend=trend,
        predictions=predictions,
        figures=[f for f in figures if f is not None],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="carprowls",
        description="Map Seattle incidents by neighborhood and project yearly counts.",
    )
    parser.add_argument("--offense-type", help="Summarized offense description to fetch")
    parser.add_argument("--page-size", type=int, help="Records per API request")
    parser.add_argument("--start-year", type=int, help="First year to analyse (inclusive)")
    parser.add_argument("--end-year", type=int, help="Last year to analyse (inclusive)")
    parser.add_argument("--predict-through", type=int, help="Last year to predict")
    parser.add_argument("--top", type=int, help="Number of neighborhoods to report")
    parser.add_argument("--output-dir", help="Directory for generated charts")
    parser.add_argument("--log-file", help="Log file path ('' to disable)")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings | None = None) -> Settings:
    """Overlay command-line values on the environment settings."""
    base = base or get_settings()
    overrides = {
        "offense_type": args.offense_type,
        "page_size": args.page_size,
        "start_year": args.start_year,
        "end_year": args.end_year,
        "predict_through_year": args.predict_through,
        "top_neighborhoods": args.top,
        "output_dir": args.output_dir,
        "log_file": args.log_file,
    }
    return base.model_copy(update={k: v for k, v in overrides.items() if v is not None})


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)
    configure_logging(settings)

    if settings.page_size <= 0:
        logger.error(f"--page-size must be positive, got {settings.page_size}")
        return 2
    if settings.start_year > settings.end_year:
        logger.error(f"--start-year {settings.start_year} is after --end-year {settings.end_year}")
        return 2

    try:
        result = run_pipeline(settings)
    except CarProwlsError as e:
        logger.error(f"Pipeline aborted: {e}", exc_info=True)
        return 1

    logger.info(
        f"Done: {len(result.incidents)} incidents, {len(result.figures)} figures "
        f"in {settings.output_dir}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
