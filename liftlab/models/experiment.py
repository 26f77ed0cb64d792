import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


class TestStatus(str, enum.Enum):
    """Status of an A/B test lifecycle."""

    __test__ = False

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class TestAction(str, enum.Enum):
    """Lifecycle actions a caller can request."""

    __test__ = False

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    COMPLETE = "complete"


class TestType(str, enum.Enum):
    __test__ = False

    EMAIL = "email"
    CONTENT = "content"
    SOCIAL = "social"
    PAID = "paid"
    LANDING_PAGE = "landing_page"
    CTA = "cta"


class EventType(str, enum.Enum):
    IMPRESSION = "impression"
    CONVERSION = "conversion"


# (current status, action) -> next status
TRANSITIONS = {
    (TestStatus.DRAFT, TestAction.START): TestStatus.ACTIVE,
    (TestStatus.ACTIVE, TestAction.PAUSE): TestStatus.PAUSED,
    (TestStatus.PAUSED, TestAction.RESUME): TestStatus.ACTIVE,
    (TestStatus.ACTIVE, TestAction.COMPLETE): TestStatus.COMPLETED,
    (TestStatus.PAUSED, TestAction.COMPLETE): TestStatus.COMPLETED,
}


@dataclass
class Variant:
    """
    One arm of an A/B test.

    Counters are cumulative and only grow while the owning test is active.
    """

    id: str
    name: str
    traffic_allocation: float  # Percentage of test traffic, 0-100
    is_control: bool = False
    description: Optional[str] = None
    impressions: int = 0
    conversions: int = 0
    revenue: float = 0.0

    @property
    def conversion_rate(self) -> float:
        # Percentage, 0-100
        if self.impressions == 0:
            return 0.0
        return (self.conversions / self.impressions) * 100

    @property
    def average_order_value(self) -> float:
        if self.conversions == 0:
            return 0.0
        return self.revenue / self.conversions


@dataclass
class Test:
    """
    A/B test aggregate: definition, lifecycle status and owned variants.

    Exactly one variant is the control and allocations sum to 100.
    """

    __test__ = False

    id: str
    name: str
    type: TestType
    primary_metric: str
    minimum_sample_size: int
    confidence_level: float
    variants: List[Variant]
    status: TestStatus = TestStatus.DRAFT
    description: Optional[str] = None
    secondary_metrics: List[str] = field(default_factory=list)
    max_duration_days: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def control(self) -> Variant:
        return next(v for v in self.variants if v.is_control)

    @property
    def treatments(self) -> List[Variant]:
        return [v for v in self.variants if not v.is_control]

    @property
    def is_terminal(self) -> bool:
        return self.status == TestStatus.COMPLETED

    def get_variant(self, variant_id: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def duration_days(self, as_of: Optional[datetime] = None) -> float:
        if self.start_date is None:
            return 0.0
        end = self.end_date or as_of or datetime.now(timezone.utc)
        return max((end - self.start_date).total_seconds() / 86400, 0.0)
