import math
from datetime import date
from typing import List, Optional

import pandas as pd
import structlog

from liftlab.config import get_settings
from liftlab.core.exceptions import ValidationError
from liftlab.models.schemas import ForecastBaseline, ForecastPoint

FORECAST_FACTORS = (
    "seasonal trends",
    "market growth",
    "campaign performance",
    "competitor activity",
)


def _floor(value: float) -> int:
    # Absorb float noise such as 11499.999999999998 before flooring
    return math.floor(round(value, 6))


class ForecastGenerator:
    """
    Projects campaign metrics forward in monthly periods.

    Period ``i`` (1-indexed) scales the baseline by ``1 + i * growth_rate``
    (linear in ``i``, not compounded) and carries a confidence of
    ``max(floor, 1 - i * decay)``.
    """

    def __init__(
        self,
        growth_rate: Optional[float] = None,
        confidence_decay: Optional[float] = None,
        confidence_floor: Optional[float] = None,
    ):
        settings = get_settings()
        self.growth_rate = settings.FORECAST_GROWTH_RATE if growth_rate is None else growth_rate
        self.confidence_decay = (
            settings.FORECAST_CONFIDENCE_DECAY if confidence_decay is None else confidence_decay
        )
        self.confidence_floor = (
            settings.FORECAST_CONFIDENCE_FLOOR if confidence_floor is None else confidence_floor
        )
        if not 0 < self.confidence_floor <= 1:
            raise ValidationError("Forecast confidence floor must be in (0, 1]")
        self.logger = structlog.get_logger("forecast")

    def growth_factor(self, period: int) -> float:
        return 1 + period * self.growth_rate

    def confidence(self, period: int) -> float:
        return round(max(self.confidence_floor, 1 - period * self.confidence_decay), 6)

    def generate(
        self,
        baseline: Optional[ForecastBaseline] = None,
        horizon: int = 12,
        reference_date: Optional[date] = None,
    ) -> List[ForecastPoint]:
        if horizon < 1:
            raise ValidationError(f"Forecast horizon must be at least 1 period, got {horizon}")

        baseline = baseline or ForecastBaseline()
        reference = pd.Timestamp(reference_date or date.today())

        forecasts = []
        for i in range(1, horizon + 1):
            growth = self.growth_factor(i)
            period = (reference + pd.DateOffset(months=i)).date()

            forecasts.append(
                ForecastPoint(
                    period=period,
                    predicted_impressions=_floor(baseline.impressions * growth),
                    predicted_clicks=_floor(baseline.clicks * growth),
                    predicted_conversions=_floor(baseline.conversions * growth),
                    predicted_revenue=float(_floor(baseline.revenue * growth)),
                    predicted_cost=float(_floor(baseline.cost * growth)),
                    confidence=self.confidence(i),
                    factors=list(FORECAST_FACTORS),
                )
            )

        self.logger.info(
            "forecast_generated",
            horizon=horizon,
            reference_date=reference.date().isoformat(),
            final_confidence=forecasts[-1].confidence,
        )
        return forecasts


def generate_forecast(
    baseline: Optional[ForecastBaseline] = None,
    horizon: int = 12,
    reference_date: Optional[date] = None,
) -> List[ForecastPoint]:
    return ForecastGenerator().generate(baseline, horizon, reference_date)
