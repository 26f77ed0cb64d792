from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from liftlab.models.experiment import EventType, TestAction, TestStatus, TestType

# Experiments


class VariantConfig(BaseModel):
    id: Optional[str] = Field(None, description="Caller-supplied id; generated when omitted")
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    traffic_allocation: float = Field(..., description="Share of test traffic in percent")
    is_control: bool = False


class CreateTestRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    type: TestType
    variants: List[VariantConfig]
    minimum_sample_size: int = Field(..., description="Impressions required per variant")
    confidence_level: float = Field(0.95, description="One of 0.90, 0.95, 0.99")
    primary_metric: str = "conversion_rate"
    secondary_metrics: List[str] = Field(default_factory=list)
    max_duration_days: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class RecordEventRequest(BaseModel):
    variant_id: str
    event_type: EventType
    amount: Optional[float] = Field(None, description="Revenue attached to a conversion")


class TransitionRequest(BaseModel):
    action: TestAction


class VariantCounts(BaseModel):
    """Snapshot of one variant's counters, the input to a significance check."""

    id: str
    name: Optional[str] = None
    impressions: int = Field(..., ge=0)
    conversions: int = Field(..., ge=0)


class VariantResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_control: bool
    traffic_allocation: float
    impressions: int
    conversions: int
    conversion_rate: float
    revenue: float
    average_order_value: float

    model_config = ConfigDict(from_attributes=True)


class TestResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    type: TestType
    status: TestStatus
    primary_metric: str
    secondary_metrics: List[str]
    minimum_sample_size: int
    confidence_level: float
    max_duration_days: Optional[int]
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: datetime
    variants: List[VariantResponse]

    model_config = ConfigDict(from_attributes=True)


class TestListResponse(BaseModel):
    tests: List[TestResponse]
    total: int


class SignificanceResult(BaseModel):
    variant_a_id: str
    variant_b_id: str
    rate_a: float  # Percent, 0-100
    rate_b: float
    pooled_variance: float  # Percent-squared scale
    standard_error: float  # Percentage points
    test_statistic: float
    p_value: float
    confidence: float  # 1 - p_value
    confidence_label: str  # "high" when significant, otherwise "low"
    confidence_level: float
    confidence_interval_low: float  # Percentage points, rate_b - rate_a
    confidence_interval_high: float
    effect_size: float  # Cohen's h
    statistical_power: float
    is_significant: bool
    winner: Optional[str] = None


class VariantSummary(BaseModel):
    variant_id: str
    variant_name: str
    is_control: bool
    impressions: int
    conversions: int
    conversion_rate: float
    revenue: float
    average_order_value: float
    p_value: Optional[float] = None  # Against the control; None for the control itself


class TestAnalysis(BaseModel):
    test_id: str
    variants: List[VariantSummary]
    total_impressions: int
    total_conversions: int
    overall_conversion_rate: float
    total_revenue: float
    duration_days: float
    significance: SignificanceResult
    comparisons: List[SignificanceResult]
    is_significant: bool
    winner: Optional[str]
    recommendation: str


class SampleSizeRequest(BaseModel):
    baseline_rate: float = Field(..., gt=0, lt=1, description="Baseline conversion proportion")
    minimum_detectable_effect: float = Field(..., gt=0, description="MDE in percentage points")
    alpha: float = Field(0.05, gt=0, lt=1)
    power: float = Field(0.80, gt=0, lt=1)


class AssignmentResponse(BaseModel):
    test_id: str
    user_id: str
    variant_id: str
    variant_name: str


class TestTemplate(BaseModel):
    id: str
    name: str
    description: str
    type: TestType
    minimum_sample_size: int
    confidence_level: float
    duration_days: int
    primary_metric: str
    secondary_metrics: List[str]
    best_practices: List[str]
    common_metrics: List[str]
    success_criteria: List[str]


class CreateFromTemplateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    variants: List[VariantConfig]
    description: Optional[str] = None


# Recommendations


class RecommendationType(str, Enum):
    TEST_EXTENSION = "test_extension"
    SAMPLE_SIZE_INCREASE = "sample_size_increase"
    VARIANT_OPTIMIZATION = "variant_optimization"
    TEST_TERMINATION = "test_termination"


class RecommendationTrigger(str, Enum):
    SIGNIFICANT_RESULT = "significant_result"
    INSUFFICIENT_SAMPLE = "insufficient_sample"
    DURATION_EXCEEDED = "duration_exceeded"
    LOW_POWER = "low_power"
    UNDERPERFORMING_VARIANT = "underperforming_variant"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Recommendation(BaseModel):
    type: RecommendationType
    trigger: RecommendationTrigger
    priority: Priority
    title: str
    description: str
    impact: int = Field(..., ge=0, le=100)
    effort: int = Field(..., ge=0, le=100)
    reasoning: str
    variant_id: Optional[str] = None


# Attribution


class Touchpoint(BaseModel):
    channel: str
    campaign: str
    touchpoint: Optional[str] = None  # Source label, e.g. "google_ads"
    timestamp: Optional[datetime] = None


class AttributedTouchpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel: str
    campaign: str
    touchpoint: Optional[str] = None
    timestamp: Optional[datetime] = None
    position: int
    weight: float
    contribution: float
    first_touch: bool
    last_touch: bool
    assisted: bool


class JourneyRequest(BaseModel):
    touchpoints: List[Touchpoint] = Field(..., min_length=1)
    conversion_value: float = Field(1.0, ge=0)


class ChannelAttribution(BaseModel):
    channel: str
    first_touch: int = 0
    last_touch: int = 0
    assisted: int = 0
    total_conversions: float = 0.0


# Marketing


class CampaignAggregate(BaseModel):
    campaign_id: str
    campaign_name: Optional[str] = None
    total_spent: float = Field(0.0, ge=0)
    total_revenue: float = Field(0.0, ge=0)
    total_conversions: int = Field(0, ge=0)
    total_leads: int = Field(0, ge=0)


class ROIRecord(BaseModel):
    campaign_id: str
    campaign_name: Optional[str] = None
    total_spent: float
    total_revenue: float
    total_conversions: int
    total_leads: int
    roi: float  # Percent
    roas: float
    cpa: float
    cpl: float
    ltv: float
    payback_period: float  # Spend/revenue ratio, not a duration


class PerformanceMetrics(BaseModel):
    impressions: int
    clicks: int
    conversions: int
    revenue: float
    cost: float
    ctr: float  # Percent
    conversion_rate: float  # Percent of clicks
    cpa: float
    roas: float
    roi: float


class PerformanceRequest(BaseModel):
    impressions: int = Field(..., ge=0)
    clicks: int = Field(..., ge=0)
    conversions: int = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    cost: float = Field(..., ge=0)


class ForecastBaseline(BaseModel):
    impressions: int = Field(10000, ge=0)
    clicks: int = Field(500, ge=0)
    conversions: int = Field(50, ge=0)
    revenue: float = Field(5000, ge=0)
    cost: float = Field(1000, ge=0)


class ForecastPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: date
    predicted_impressions: int
    predicted_clicks: int
    predicted_conversions: int
    predicted_revenue: float
    predicted_cost: float
    confidence: float
    factors: List[str]


class ForecastRequest(BaseModel):
    baseline: ForecastBaseline = Field(default_factory=ForecastBaseline)
    horizon: int = Field(12, description="Number of monthly periods")
    reference_date: Optional[date] = None


class ROIRequest(BaseModel):
    campaigns: List[CampaignAggregate]
    limit: Optional[int] = Field(None, ge=1)


class RecommendationsQuery(BaseModel):
    variant_roi: Dict[str, CampaignAggregate] = Field(
        default_factory=dict, description="Spend/revenue aggregates keyed by variant id"
    )
