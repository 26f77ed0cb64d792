from liftlab.services.marketing.forecast import ForecastGenerator, generate_forecast
from liftlab.services.marketing.roi import (
    aggregate_campaigns,
    calculate_marketing_roi,
    compute_performance_metrics,
    compute_roi,
    top_performing,
)

__all__ = [
    "ForecastGenerator",
    "generate_forecast",
    "aggregate_campaigns",
    "calculate_marketing_roi",
    "compute_performance_metrics",
    "compute_roi",
    "top_performing",
]
