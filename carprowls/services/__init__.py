"""Services for fetching, joining and analysing incident data."""

from carprowls.services.shape_loader import ShapeLoader
from carprowls.services.soda_client import SODAClient
from carprowls.services.spatial_join import join_neighborhoods
from carprowls.services.trends import TrendFit, fit_trend, predict_counts

__all__ = [
    "SODAClient",
    "ShapeLoader",
    "TrendFit",
    "fit_trend",
    "join_neighborhoods",
    "predict_counts",
]
