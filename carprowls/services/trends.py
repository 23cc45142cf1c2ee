"""Linear trend of yearly incident counts."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.regression.linear_model import RegressionResultsWrapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendFit:
    """Ordinary least squares fit of count ~ year."""

    results: RegressionResultsWrapper

    @property
    def intercept(self) -> float:
        return float(self.results.params[0])

    @property
    def slope(self) -> float:
        return float(self.results.params[1])

    @property
    def r_squared(self) -> float:
        return float(self.results.rsquared)

    def summary(self) -> str:
        return str(self.results.summary())


def _design(years: Iterable[int]) -> np.ndarray:
    years = np.asarray(list(years), dtype=float)
    return np.column_stack([np.ones(len(years)), years])


def fit_trend(yearly_counts: Mapping[int, int] | pd.DataFrame) -> TrendFit:
    """
    Fit count as a linear function of year, intercept included.

    Args:
        yearly_counts: {year: count} or a frame with year and count columns

    Raises:
        ValueError: fewer than two distinct years
    """
    if isinstance(yearly_counts, pd.DataFrame):
        years = yearly_counts["year"].astype(int).tolist()
        counts = yearly_counts["count"].astype(float).tolist()
    else:
        years = [int(y) for y in yearly_counts]
        counts = [float(c) for c in yearly_counts.values()]

    if len(set(years)) < 2:
        raise ValueError("At least two distinct years are needed to fit a trend")

    results = sm.OLS(np.asarray(counts), _design(years)).fit()
    fit = TrendFit(results=results)
    logger.info(
        f"Fitted yearly trend: count = {fit.intercept:.2f} + {fit.slope:.2f} * year "
        f"(R^2={fit.r_squared:.3f})"
    )
    return fit


def predict_counts(fit: TrendFit, years: Iterable[int], alpha: float = 0.05) -> pd.DataFrame:
    """
    Evaluate the fitted line at arbitrary years.

    Returns:
        Frame with year, count and the ci_lower/ci_upper bounds of the mean
        prediction at confidence 1 - alpha
    """
    years = [int(y) for y in years]
    if not years:
        return pd.DataFrame(columns=["year", "count", "ci_lower", "ci_upper"])

    frame = fit.results.get_prediction(_design(years)).summary_frame(alpha=alpha)
    return pd.DataFrame(
        {
            "year": years,
            "count": frame["mean"].to_numpy(),
            "ci_lower": frame["mean_ci_lower"].to_numpy(),
            "ci_upper": frame["mean_ci_upper"].to_numpy(),
        }
    )
