from datetime import date

import pytest

from liftlab.core.exceptions import ValidationError
from liftlab.models.schemas import ForecastBaseline
from liftlab.services.marketing.forecast import (
    FORECAST_FACTORS,
    ForecastGenerator,
    generate_forecast,
)

REFERENCE = date(2026, 1, 31)


class TestForecastGenerator:
    def test_first_period(self):
        first = generate_forecast(horizon=1, reference_date=REFERENCE)[0]

        assert first.predicted_impressions == 10500
        assert first.predicted_clicks == 525
        assert first.predicted_conversions == 52
        assert first.predicted_revenue == 5250.0
        assert first.predicted_cost == 1050.0
        assert first.confidence == pytest.approx(0.98)

    def test_growth_is_linear(self):
        third = generate_forecast(horizon=3, reference_date=REFERENCE)[2]

        assert third.predicted_impressions == 11500
        assert third.predicted_revenue == 5750.0
        assert third.confidence == pytest.approx(0.94)

    def test_confidence_floor(self):
        points = generate_forecast(horizon=24, reference_date=REFERENCE)

        assert points[14].confidence == pytest.approx(0.7)
        assert points[-1].confidence == pytest.approx(0.7)
        assert all(p.confidence >= 0.7 for p in points)

    def test_monthly_periods(self):
        points = generate_forecast(horizon=3, reference_date=REFERENCE)

        assert [p.period for p in points] == [
            date(2026, 2, 28),
            date(2026, 3, 31),
            date(2026, 4, 30),
        ]

    def test_reproducible(self):
        assert generate_forecast(reference_date=REFERENCE) == generate_forecast(
            reference_date=REFERENCE
        )

    def test_default_horizon(self):
        points = generate_forecast(reference_date=REFERENCE)

        assert len(points) == 12
        assert all(p.factors == list(FORECAST_FACTORS) for p in points)

    def test_custom_baseline(self):
        baseline = ForecastBaseline(impressions=2000, clicks=100, conversions=10, revenue=800, cost=400)

        first = generate_forecast(baseline, horizon=1, reference_date=REFERENCE)[0]

        assert first.predicted_impressions == 2100
        assert first.predicted_cost == 420.0

    def test_custom_rates(self):
        generator = ForecastGenerator(growth_rate=0.1, confidence_decay=0.1, confidence_floor=0.5)

        points = generator.generate(horizon=8, reference_date=REFERENCE)

        assert points[0].predicted_impressions == 11000
        assert points[3].confidence == pytest.approx(0.6)
        assert points[7].confidence == pytest.approx(0.5)

    @pytest.mark.parametrize("horizon", [0, -3])
    def test_invalid_horizon(self, horizon):
        with pytest.raises(ValidationError):
            generate_forecast(horizon=horizon, reference_date=REFERENCE)

    def test_invalid_floor(self):
        with pytest.raises(ValidationError):
            ForecastGenerator(confidence_floor=0)
