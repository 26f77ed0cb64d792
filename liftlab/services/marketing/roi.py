from datetime import date
from typing import Iterable, List, Optional, Union

import pandas as pd
import structlog

from liftlab.core.exceptions import ValidationError
from liftlab.models.schemas import CampaignAggregate, PerformanceMetrics, ROIRecord

logger = structlog.get_logger("roi")

EventFrame = Union[pd.DataFrame, Iterable[dict]]


def safe_divide(numerator: float, denominator: float) -> float:
    # Zero denominators resolve to 0, never NaN or inf
    if not denominator:
        return 0.0
    return numerator / denominator


def compute_roi(aggregate: CampaignAggregate) -> ROIRecord:
    spent = aggregate.total_spent
    revenue = aggregate.total_revenue
    conversions = aggregate.total_conversions
    leads = aggregate.total_leads

    return ROIRecord(
        campaign_id=aggregate.campaign_id,
        campaign_name=aggregate.campaign_name,
        total_spent=spent,
        total_revenue=revenue,
        total_conversions=conversions,
        total_leads=leads,
        roi=safe_divide(revenue - spent, spent) * 100,
        roas=safe_divide(revenue, spent),
        cpa=safe_divide(spent, conversions),
        cpl=safe_divide(spent, leads),
        ltv=safe_divide(revenue, conversions),
        # A spend/revenue ratio, kept under the historical name
        payback_period=safe_divide(spent, revenue),
    )


def compute_performance_metrics(
    impressions: int, clicks: int, conversions: int, revenue: float, cost: float
) -> PerformanceMetrics:
    return PerformanceMetrics(
        impressions=impressions,
        clicks=clicks,
        conversions=conversions,
        revenue=revenue,
        cost=cost,
        ctr=safe_divide(clicks, impressions) * 100,
        conversion_rate=safe_divide(conversions, clicks) * 100,
        cpa=safe_divide(cost, conversions),
        roas=safe_divide(revenue, cost),
        roi=safe_divide(revenue - cost, cost) * 100,
    )


def _to_frame(events: Optional[EventFrame], columns: List[str]) -> pd.DataFrame:
    if events is None:
        return pd.DataFrame(columns=columns)
    df = events.copy() if isinstance(events, pd.DataFrame) else pd.DataFrame(list(events))
    for col in columns:
        if col not in df.columns:
            df[col] = pd.Series(dtype="object")
    return df


def _filter_dates(
    df: pd.DataFrame, start: Optional[date], end: Optional[date], kind: str
) -> pd.DataFrame:
    if df.empty or (start is None and end is None):
        return df
    if "date" not in df.columns:
        raise ValidationError(f"{kind} events need a date column to filter by date")
    dates = pd.to_datetime(df["date"]).dt.normalize()
    mask = pd.Series(True, index=df.index)
    if start is not None:
        mask &= dates >= pd.Timestamp(start)
    if end is not None:
        mask &= dates <= pd.Timestamp(end)
    return df[mask]


def aggregate_campaigns(
    spend_events: Optional[EventFrame],
    revenue_events: Optional[EventFrame],
    lead_events: Optional[EventFrame] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[CampaignAggregate]:
    """
    Roll spend, revenue and lead events up to one aggregate per campaign.

    Args:
        spend_events: rows with campaign_id, amount, date and optional campaign_name
        revenue_events: rows with campaign_id, amount, date and optional
            conversions (each row counts as one conversion when absent)
        lead_events: rows with campaign_id and date, one row per lead
        start: inclusive lower date bound
        end: inclusive upper date bound

    Returns:
        Aggregates in first-seen campaign order

    Raises:
        ValidationError: a date window is given but some events carry no date column
    """
    spend = _filter_dates(_to_frame(spend_events, ["campaign_id", "amount"]), start, end, "Spend")
    revenue = _filter_dates(
        _to_frame(revenue_events, ["campaign_id", "amount"]), start, end, "Revenue"
    )
    leads = _filter_dates(_to_frame(lead_events, ["campaign_id"]), start, end, "Lead")

    if "conversions" not in revenue.columns:
        revenue = revenue.assign(conversions=1)
    revenue = revenue.assign(conversions=revenue["conversions"].fillna(1))

    spent_by_campaign = spend.groupby("campaign_id", sort=False)["amount"].sum()
    revenue_by_campaign = revenue.groupby("campaign_id", sort=False)["amount"].sum()
    conversions_by_campaign = revenue.groupby("campaign_id", sort=False)["conversions"].sum()
    leads_by_campaign = leads.groupby("campaign_id", sort=False).size()

    names = {}
    for frame in (spend, revenue):
        if "campaign_name" in frame.columns:
            for campaign_id, name in zip(frame["campaign_id"], frame["campaign_name"]):
                if pd.notna(name):
                    names.setdefault(campaign_id, name)

    seen = list(spend["campaign_id"]) + list(revenue["campaign_id"]) + list(leads["campaign_id"])
    campaign_ids = list(dict.fromkeys(seen))

    aggregates = [
        CampaignAggregate(
            campaign_id=str(campaign_id),
            campaign_name=names.get(campaign_id),
            total_spent=float(spent_by_campaign.get(campaign_id, 0.0)),
            total_revenue=float(revenue_by_campaign.get(campaign_id, 0.0)),
            total_conversions=int(conversions_by_campaign.get(campaign_id, 0)),
            total_leads=int(leads_by_campaign.get(campaign_id, 0)),
        )
        for campaign_id in campaign_ids
        if pd.notna(campaign_id)
    ]

    logger.info(
        "campaigns_aggregated",
        campaigns=len(aggregates),
        spend_events=len(spend),
        revenue_events=len(revenue),
        lead_events=len(leads),
    )
    return aggregates


def rank_by_roi(records: Iterable[ROIRecord]) -> List[ROIRecord]:
    return sorted(records, key=lambda r: r.roi, reverse=True)


def calculate_marketing_roi(aggregates: Iterable[CampaignAggregate]) -> List[ROIRecord]:
    return rank_by_roi(compute_roi(a) for a in aggregates)


def top_performing(records: Iterable[ROIRecord], limit: int = 10) -> List[ROIRecord]:
    return rank_by_roi(records)[:limit]
