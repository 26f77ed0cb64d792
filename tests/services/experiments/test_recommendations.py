from datetime import datetime, timedelta, timezone

import pytest

from liftlab.models.experiment import Test, TestStatus, TestType, Variant
from liftlab.models.schemas import (
    CampaignAggregate,
    Priority,
    RecommendationTrigger,
    RecommendationType,
)
from liftlab.services.experiments.recommendations import (
    DEFAULT_SCORES,
    RecommendationEngine,
    RecommendationPolicy,
)
from liftlab.services.experiments.significance import compute_significance
from liftlab.services.marketing.roi import compute_roi

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def build_test(control, treatment, minimum_sample_size=500, days_running=5, max_duration_days=None):
    return Test(
        id="rec-test",
        name="Signup form",
        type=TestType.CONTENT,
        primary_metric="conversion_rate",
        minimum_sample_size=minimum_sample_size,
        confidence_level=0.95,
        status=TestStatus.ACTIVE,
        max_duration_days=max_duration_days,
        start_date=NOW - timedelta(days=days_running),
        variants=[
            Variant(id="control", name="Control", traffic_allocation=50, is_control=True,
                    impressions=control[0], conversions=control[1]),
            Variant(id="treatment", name="Short Form", traffic_allocation=50,
                    impressions=treatment[0], conversions=treatment[1]),
        ],
    )


def recommend(test, engine=None, roi_by_variant=None):
    engine = engine or RecommendationEngine(RecommendationPolicy())
    significance = compute_significance(test.control, test.treatments[0], test.confidence_level)
    return engine.recommend(test, significance, roi_by_variant, as_of=NOW)


class TestRecommendationRules:
    def test_significant_result_ends_test(self):
        recs = recommend(build_test((1000, 200), (1000, 280)))

        assert len(recs) == 1
        rec = recs[0]
        assert rec.trigger == RecommendationTrigger.SIGNIFICANT_RESULT
        assert rec.type == RecommendationType.TEST_TERMINATION
        assert rec.priority == Priority.HIGH
        assert rec.variant_id == "treatment"
        assert "Short Form" in rec.description
        assert (rec.impact, rec.effort) == DEFAULT_SCORES[RecommendationTrigger.SIGNIFICANT_RESULT]

    def test_insufficient_sample_extends_test(self):
        recs = recommend(build_test((100, 10), (100, 12)))

        assert [r.trigger for r in recs] == [RecommendationTrigger.INSUFFICIENT_SAMPLE]
        assert recs[0].type == RecommendationType.TEST_EXTENSION
        assert recs[0].priority == Priority.MEDIUM
        assert "100 impressions" in recs[0].reasoning

    def test_sample_size_uses_smallest_variant(self):
        recs = recommend(build_test((5000, 500), (400, 42)))

        assert recs[0].trigger == RecommendationTrigger.INSUFFICIENT_SAMPLE

    def test_duration_exceeded_ends_inconclusive_test(self):
        recs = recommend(build_test((1000, 100), (1000, 105), days_running=40))

        assert [r.trigger for r in recs] == [RecommendationTrigger.DURATION_EXCEEDED]
        assert recs[0].type == RecommendationType.TEST_TERMINATION
        assert recs[0].priority == Priority.MEDIUM

    def test_test_duration_overrides_policy(self):
        test = build_test((1000, 100), (1000, 105), days_running=40, max_duration_days=60)

        recs = recommend(test)

        assert [r.trigger for r in recs] == [RecommendationTrigger.LOW_POWER]
        assert recs[0].type == RecommendationType.SAMPLE_SIZE_INCREASE

    def test_low_power_increases_sample(self):
        recs = recommend(build_test((1000, 100), (1000, 105)))

        assert [r.trigger for r in recs] == [RecommendationTrigger.LOW_POWER]

    def test_without_comparison_asks_for_more_traffic(self):
        test = build_test((1, 0), (0, 0))

        recs = RecommendationEngine(RecommendationPolicy()).recommend(test, None, as_of=NOW)

        assert [r.trigger for r in recs] == [RecommendationTrigger.INSUFFICIENT_SAMPLE]
        assert "0 impressions" in recs[0].reasoning

    def test_without_comparison_past_duration(self):
        test = build_test((900, 90), (0, 0), minimum_sample_size=0, days_running=40)

        recs = RecommendationEngine(RecommendationPolicy()).recommend(test, None, as_of=NOW)

        assert [r.trigger for r in recs] == [RecommendationTrigger.DURATION_EXCEEDED]
        assert "before every variant had traffic" in recs[0].reasoning

    def test_without_comparison_skips_power_rule(self):
        test = build_test((900, 90), (0, 0), minimum_sample_size=0)

        assert RecommendationEngine(RecommendationPolicy()).recommend(test, None, as_of=NOW) == []

    def test_no_rule_fires(self):
        engine = RecommendationEngine(RecommendationPolicy(minimum_power=0.0))

        assert recommend(build_test((1000, 100), (1000, 105)), engine) == []


class TestUnderperformingVariants:
    def roi(self, spent, revenue, campaign_id):
        return compute_roi(
            CampaignAggregate(campaign_id=campaign_id, total_spent=spent, total_revenue=revenue)
        )

    def test_flags_variant_below_half_of_best(self):
        roi_by_variant = {
            "control": self.roi(1000, 3000, "control"),  # 200%
            "treatment": self.roi(1000, 1500, "treatment"),  # 50%
        }

        recs = recommend(build_test((1000, 200), (1000, 280)), roi_by_variant=roi_by_variant)

        assert [r.trigger for r in recs] == [
            RecommendationTrigger.SIGNIFICANT_RESULT,
            RecommendationTrigger.UNDERPERFORMING_VARIANT,
        ]
        flagged = recs[1]
        assert flagged.variant_id == "treatment"
        assert flagged.type == RecommendationType.VARIANT_OPTIMIZATION
        assert flagged.priority == Priority.LOW

    def test_close_variants_not_flagged(self):
        roi_by_variant = {
            "control": self.roi(1000, 3000, "control"),
            "treatment": self.roi(1000, 2600, "treatment"),
        }

        recs = recommend(build_test((1000, 200), (1000, 280)), roi_by_variant=roi_by_variant)

        assert RecommendationTrigger.UNDERPERFORMING_VARIANT not in [r.trigger for r in recs]

    def test_needs_positive_best_roi(self):
        roi_by_variant = {
            "control": self.roi(1000, 500, "control"),
            "treatment": self.roi(1000, 100, "treatment"),
        }

        recs = recommend(build_test((1000, 200), (1000, 280)), roi_by_variant=roi_by_variant)

        assert len(recs) == 1

    def test_single_entry_not_compared(self):
        recs = recommend(
            build_test((1000, 200), (1000, 280)),
            roi_by_variant={"control": self.roi(1000, 3000, "control")},
        )

        assert len(recs) == 1


class TestRecommendationPolicy:
    def test_custom_scores(self):
        scores = dict(DEFAULT_SCORES)
        scores[RecommendationTrigger.LOW_POWER] = (10, 90)
        engine = RecommendationEngine(RecommendationPolicy(scores=scores))

        recs = recommend(build_test((1000, 100), (1000, 105)), engine)

        assert (recs[0].impact, recs[0].effort) == (10, 90)

    def test_custom_duration_ceiling(self):
        engine = RecommendationEngine(RecommendationPolicy(max_duration_days=3))

        recs = recommend(build_test((1000, 100), (1000, 105), days_running=5), engine)

        assert recs[0].trigger == RecommendationTrigger.DURATION_EXCEEDED

    def test_from_settings(self):
        policy = RecommendationPolicy.from_settings()

        assert policy.max_duration_days == 30
        assert policy.underperformance_ratio == pytest.approx(0.5)
        assert policy.minimum_power == pytest.approx(0.8)
