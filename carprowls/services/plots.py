"""Heat maps and summary charts rendered to image files."""

import logging
from pathlib import Path

import geopandas as gpd
import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.figure import Figure
from matplotlib.ticker import MaxNLocator, StrMethodFormatter

from carprowls.services.trends import TrendFit, predict_counts

logger = logging.getLogger(__name__)

Bounds = tuple[float, float, float, float]

MIN_HEAT_MAP_POINTS = 3


def zoom_bounds(longitude: float, latitude: float, span: float) -> Bounds:
    """Square (minx, miny, maxx, maxy) box of half-width span around a point."""
    return (longitude - span, latitude - span, longitude + span, latitude + span)


def _is_degenerate(points: pd.DataFrame) -> bool:
    """True when the point cloud has no 2-D spread, so a KDE is singular."""
    coords = points[["longitude", "latitude"]].to_numpy(dtype=float)
    cov = np.cov(coords, rowvar=False)
    return np.linalg.matrix_rank(cov) < 2


def plot_heat_map(
    frame: pd.DataFrame,
    polygons: gpd.GeoDataFrame,
    path: str | Path,
    bounds: Bounds | None = None,
    levels: int = 20,
    title: str | None = None,
) -> Path | None:
    """
    Render a 2-D density of incident points over neighborhood outlines.

    Returns:
        The written path, or None when there are too few points, or points
        with no 2-D spread, to estimate a density
    """
    points = frame.dropna(subset=["longitude", "latitude"])
    if bounds is not None:
        minx, miny, maxx, maxy = bounds
        points = points[
            points["longitude"].between(minx, maxx) & points["latitude"].between(miny, maxy)
        ]

    if len(points) < MIN_HEAT_MAP_POINTS:
        logger.warning(f"Skipping heat map {path}: only {len(points)} located incidents")
        return None

    if _is_degenerate(points):
        logger.warning(f"Skipping heat map {path}: located incidents are identical or collinear")
        return None

    path = Path(path)
    logger.info(f"Generating heat map from {len(points)} incidents into {path}...")

    fig = Figure(figsize=(10, 10))
    ax = fig.subplots()
    polygons.boundary.plot(ax=ax, color="grey", linewidth=0.4)
    sns.kdeplot(
        x=points["longitude"],
        y=points["latitude"],
        fill=True,
        cmap="YlOrRd",
        levels=levels,
        thresh=0.05,
        alpha=0.6,
        ax=ax,
    )
    sns.kdeplot(
        x=points["longitude"],
        y=points["latitude"],
        levels=levels // 2 or 1,
        color="black",
        linewidths=0.3,
        ax=ax,
    )

    if bounds is not None:
        ax.set_xlim(bounds[0], bounds[2])
        ax.set_ylim(bounds[1], bounds[3])
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    if title:
        ax.set_title(title)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    return path


def plot_monthly_counts(counts: pd.DataFrame, path: str | Path, title: str | None = None) -> Path:
    """Line chart of incidents per calendar month."""
    path = Path(path)
    logger.info(f"Plotting monthly counts into {path}...")

    fig = Figure(figsize=(9, 5))
    ax = fig.subplots()
    ax.plot(counts["month"], counts["count"], linewidth=1.2, marker="o")
    ax.set_xticks(range(1, 13))
    ax.set_xticklabels(counts["month_name"])
    ax.set_xlabel("Month")
    ax.set_ylabel("Count")
    ax.yaxis.set_major_formatter(StrMethodFormatter("{x:,.0f}"))
    if title:
        ax.set_title(title)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    return path


def plot_yearly_trend(
    counts: pd.DataFrame,
    fit: TrendFit,
    predictions: pd.DataFrame,
    path: str | Path,
    title: str | None = None,
    ylabel: str = "Incident Reports",
) -> Path:
    """Observed yearly counts, fitted line with confidence band, and predictions in red."""
    path = Path(path)
    logger.info(f"Plotting yearly trend into {path}...")

    all_years = sorted(set(counts["year"]) | set(predictions["year"]))
    line = predict_counts(fit, range(min(all_years), max(all_years) + 1))

    fig = Figure(figsize=(9, 6))
    ax = fig.subplots()
    ax.fill_between(line["year"], line["ci_lower"], line["ci_upper"], color="grey", alpha=0.3)
    ax.plot(line["year"], line["count"], color="tab:blue")
    ax.scatter(counts["year"], counts["count"], s=40, color="black", zorder=3)
    ax.scatter(predictions["year"], predictions["count"], s=40, color="red", zorder=3)

    ax.xaxis.set_major_locator(MaxNLocator(integer=True))
    ax.yaxis.set_major_formatter(StrMethodFormatter("{x:,.0f}"))
    ax.set_xlabel("Year")
    ax.set_ylabel(ylabel)
    if title:
        ax.set_title(title)

    fig.tight_layout()
    fig.savefig(path, dpi=150)
    return path
