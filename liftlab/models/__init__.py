from liftlab.models.experiment import (  # noqa: F401
    EventType,
    Test,
    TestAction,
    TestStatus,
    TestType,
    Variant,
)
from liftlab.models.schemas import (  # noqa: F401
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
    Touchpoint,
    VariantConfig,
    VariantCounts,
)
