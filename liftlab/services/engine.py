from datetime import date, datetime
from typing import Dict, List, Optional

from liftlab.config import get_settings
from liftlab.models.experiment import EventType, Test, TestAction, TestStatus, Variant
from liftlab.models.schemas import (
    AttributedTouchpoint,
    CampaignAggregate,
    ChannelAttribution,
    CreateTestRequest,
    ForecastBaseline,
    ForecastPoint,
    Recommendation,
    ROIRecord,
    SignificanceResult,
    TestAnalysis,
    TestTemplate,
    Touchpoint,
)
from liftlab.services.attribution.engine import AttributionEngine
from liftlab.services.experiments.lifecycle import ExperimentManager
from liftlab.services.experiments.recommendations import RecommendationEngine
from liftlab.services.experiments.significance import analyze_test, compute_significance
from liftlab.services.experiments.templates import list_templates
from liftlab.services.marketing.forecast import ForecastGenerator
from liftlab.services.marketing.roi import compute_roi


class ExperimentEngine:
    """
    Entry point for collaborators: significance, lifecycle, attribution,
    ROI, forecasting and recommendations behind one object.

    Collaborators are injected so callers can share or replace them; the only
    mutable state lives in the experiment manager and the attribution totals.
    """

    def __init__(
        self,
        experiments: Optional[ExperimentManager] = None,
        attribution: Optional[AttributionEngine] = None,
        forecaster: Optional[ForecastGenerator] = None,
        recommender: Optional[RecommendationEngine] = None,
        default_confidence_level: Optional[float] = None,
    ):
        self.experiments = experiments or ExperimentManager()
        self.attribution = attribution or AttributionEngine()
        self.forecaster = forecaster or ForecastGenerator()
        self.recommender = recommender or RecommendationEngine()
        self.default_confidence_level = (
            default_confidence_level or get_settings().DEFAULT_CONFIDENCE_LEVEL
        )

    # Significance

    def compute_significance(
        self, variant_a, variant_b, confidence_level: Optional[float] = None
    ) -> SignificanceResult:
        return compute_significance(
            variant_a, variant_b, confidence_level or self.default_confidence_level
        )

    def analyze_test(self, test_id: str, as_of: Optional[datetime] = None) -> TestAnalysis:
        return analyze_test(self.experiments.get_test(test_id), as_of)

    # Lifecycle

    def create_test(self, request: CreateTestRequest) -> Test:
        return self.experiments.create_test(request)

    def get_test(self, test_id: str) -> Test:
        return self.experiments.get_test(test_id)

    def list_tests(self, status: Optional[TestStatus] = None) -> List[Test]:
        return self.experiments.list_tests(status)

    def record_event(
        self,
        test_id: str,
        variant_id: str,
        event_type: EventType,
        amount: Optional[float] = None,
    ) -> Variant:
        return self.experiments.record_event(test_id, variant_id, event_type, amount)

    def transition(self, test_id: str, action: TestAction) -> Test:
        return self.experiments.transition(test_id, action)

    def assign_variant(self, test_id: str, user_id: str) -> Variant:
        return self.experiments.assign_variant(test_id, user_id)

    def list_templates(self) -> List[TestTemplate]:
        return list_templates()

    # Attribution

    def attribute_journey(
        self, touchpoints: List[Touchpoint], conversion_value: float = 1.0
    ) -> List[AttributedTouchpoint]:
        return self.attribution.record_journey(touchpoints, conversion_value)

    def aggregate_attribution(self, channel: str) -> ChannelAttribution:
        return self.attribution.aggregate_attribution(channel)

    def attribution_breakdown(self) -> List[ChannelAttribution]:
        return self.attribution.attribution_breakdown()

    # Marketing

    def compute_roi(self, aggregate: CampaignAggregate) -> ROIRecord:
        return compute_roi(aggregate)

    def generate_forecast(
        self,
        baseline: Optional[ForecastBaseline] = None,
        horizon: int = 12,
        reference_date: Optional[date] = None,
    ) -> List[ForecastPoint]:
        return self.forecaster.generate(baseline, horizon, reference_date)

    # Recommendations

    def recommend(
        self,
        test: Test,
        significance: Optional[SignificanceResult],
        roi_by_variant: Optional[Dict[str, ROIRecord]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[Recommendation]:
        return self.recommender.recommend(test, significance, roi_by_variant, as_of)

    def recommend_for_test(
        self,
        test_id: str,
        roi_by_variant: Optional[Dict[str, ROIRecord]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[Recommendation]:
        test = self.experiments.get_test(test_id)

        # No comparison is possible until every variant has impressions
        significance = None
        if all(v.impressions > 0 for v in test.variants):
            significance = analyze_test(test, as_of).significance

        return self.recommend(test, significance, roi_by_variant, as_of)
