from datetime import date

import pandas as pd
import pytest

from liftlab.core.exceptions import ValidationError
from liftlab.models.schemas import CampaignAggregate
from liftlab.services.marketing.roi import (
    aggregate_campaigns,
    calculate_marketing_roi,
    compute_performance_metrics,
    compute_roi,
    safe_divide,
    top_performing,
)


class TestSafeDivide:
    def test_regular_division(self):
        assert safe_divide(10, 4) == 2.5

    def test_zero_denominator(self):
        assert safe_divide(10, 0) == 0.0


class TestComputeROI:
    def test_metrics(self):
        record = compute_roi(
            CampaignAggregate(
                campaign_id="spring",
                total_spent=1000,
                total_revenue=3000,
                total_conversions=20,
                total_leads=50,
            )
        )

        assert record.roi == pytest.approx(200.0)
        assert record.roas == pytest.approx(3.0)
        assert record.cpa == pytest.approx(50.0)
        assert record.cpl == pytest.approx(20.0)
        assert record.ltv == pytest.approx(150.0)
        assert record.payback_period == pytest.approx(1000 / 3000)

    def test_zero_spend(self):
        record = compute_roi(
            CampaignAggregate(campaign_id="organic", total_revenue=500, total_conversions=5)
        )

        assert record.roi == 0.0
        assert record.roas == 0.0
        assert record.cpa == 0.0

    def test_everything_zero(self):
        record = compute_roi(CampaignAggregate(campaign_id="empty"))

        for value in (record.roi, record.roas, record.cpa, record.cpl, record.ltv):
            assert value == 0.0
        assert record.payback_period == 0.0

    def test_losing_campaign(self):
        record = compute_roi(
            CampaignAggregate(campaign_id="loss", total_spent=2000, total_revenue=500)
        )

        assert record.roi == pytest.approx(-75.0)


class TestPerformanceMetrics:
    def test_metrics(self):
        metrics = compute_performance_metrics(
            impressions=10000, clicks=500, conversions=50, revenue=5000, cost=1000
        )

        assert metrics.ctr == pytest.approx(5.0)
        assert metrics.conversion_rate == pytest.approx(10.0)
        assert metrics.cpa == pytest.approx(20.0)
        assert metrics.roas == pytest.approx(5.0)
        assert metrics.roi == pytest.approx(400.0)

    def test_zero_traffic(self):
        metrics = compute_performance_metrics(0, 0, 0, 0, 0)

        assert metrics.ctr == 0.0
        assert metrics.conversion_rate == 0.0
        assert metrics.roi == 0.0


class TestAggregateCampaigns:
    @pytest.fixture
    def spend(self):
        return pd.DataFrame(
            {
                "campaign_id": ["c2", "c1", "c2", "c1"],
                "campaign_name": ["Search", "Social", "Search", "Social"],
                "amount": [100.0, 50.0, 150.0, 25.0],
                "date": ["2026-01-03", "2026-01-05", "2026-02-10", "2026-03-01"],
            }
        )

    @pytest.fixture
    def revenue(self):
        return [
            {"campaign_id": "c1", "amount": 300.0, "date": "2026-01-06"},
            {"campaign_id": "c2", "amount": 120.0, "date": "2026-01-08"},
            {"campaign_id": "c1", "amount": 80.0, "date": "2026-02-15"},
            {"campaign_id": "c3", "amount": 40.0, "date": "2026-02-20"},
        ]

    def test_totals_in_first_seen_order(self, spend, revenue):
        leads = [
            {"campaign_id": "c1", "date": "2026-01-05"},
            {"campaign_id": "c1", "date": "2026-01-07"},
            {"campaign_id": "c2", "date": "2026-01-09"},
        ]

        aggregates = aggregate_campaigns(spend, revenue, leads)

        assert [a.campaign_id for a in aggregates] == ["c2", "c1", "c3"]
        by_id = {a.campaign_id: a for a in aggregates}
        assert by_id["c2"].total_spent == pytest.approx(250.0)
        assert by_id["c1"].total_revenue == pytest.approx(380.0)
        assert by_id["c1"].total_conversions == 2
        assert by_id["c1"].total_leads == 2
        assert by_id["c1"].campaign_name == "Social"
        assert by_id["c3"].total_spent == 0.0
        assert by_id["c3"].campaign_name is None

    def test_date_filter_is_inclusive(self, spend, revenue):
        aggregates = aggregate_campaigns(
            spend, revenue, start=date(2026, 1, 5), end=date(2026, 2, 15)
        )

        by_id = {a.campaign_id: a for a in aggregates}
        assert by_id["c2"].total_spent == pytest.approx(150.0)
        assert by_id["c1"].total_spent == pytest.approx(50.0)
        assert by_id["c1"].total_revenue == pytest.approx(380.0)
        assert "c3" not in by_id

    def test_explicit_conversion_counts(self):
        revenue = [
            {"campaign_id": "c1", "amount": 100.0, "conversions": 3, "date": "2026-01-01"},
            {"campaign_id": "c1", "amount": 50.0, "conversions": 2, "date": "2026-01-02"},
        ]

        (aggregate,) = aggregate_campaigns(None, revenue)

        assert aggregate.total_conversions == 5
        assert aggregate.total_spent == 0.0

    def test_no_events(self):
        assert aggregate_campaigns(None, None) == []


class TestRanking:
    def test_ranked_by_roi(self):
        records = calculate_marketing_roi(
            [
                CampaignAggregate(campaign_id="low", total_spent=100, total_revenue=110),
                CampaignAggregate(campaign_id="high", total_spent=100, total_revenue=400),
                CampaignAggregate(campaign_id="mid", total_spent=100, total_revenue=200),
            ]
        )

        assert [r.campaign_id for r in records] == ["high", "mid", "low"]

    def test_top_performing_limit(self):
        records = calculate_marketing_roi(
            CampaignAggregate(campaign_id=f"c{i}", total_spent=100, total_revenue=100 + i)
            for i in range(15)
        )

        top = top_performing(records)

        assert len(top) == 10
        assert top[0].campaign_id == "c14"
        assert [r.campaign_id for r in top_performing(records, limit=2)] == ["c14", "c13"]


class TestDateWindow:
    def test_window_without_date_column_is_rejected(self):
        spend = [{"campaign_id": "c1", "amount": 100.0}]
        revenue = [{"campaign_id": "c1", "amount": 250.0}]

        with pytest.raises(ValidationError):
            aggregate_campaigns(spend, revenue, start=date(2026, 1, 1))

    def test_no_window_needs_no_dates(self):
        spend = [{"campaign_id": "c1", "amount": 100.0}]
        revenue = [{"campaign_id": "c1", "amount": 250.0}]

        (aggregate,) = aggregate_campaigns(spend, revenue)

        assert aggregate.total_spent == pytest.approx(100.0)
        assert aggregate.total_revenue == pytest.approx(250.0)

    def test_window_ignores_missing_event_sources(self):
        revenue = [{"campaign_id": "c1", "amount": 250.0, "date": "2026-01-04"}]

        (aggregate,) = aggregate_campaigns(None, revenue, end=date(2026, 1, 31))

        assert aggregate.total_revenue == pytest.approx(250.0)
