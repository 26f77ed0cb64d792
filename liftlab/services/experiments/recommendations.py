from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import structlog

from liftlab.config import get_settings
from liftlab.models.experiment import Test
from liftlab.models.schemas import (
    Priority,
    Recommendation,
    RecommendationTrigger,
    RecommendationType,
    ROIRecord,
    SignificanceResult,
)

# trigger -> (impact, effort)
DEFAULT_SCORES: Dict[RecommendationTrigger, Tuple[int, int]] = {
    RecommendationTrigger.SIGNIFICANT_RESULT: (90, 20),
    RecommendationTrigger.INSUFFICIENT_SAMPLE: (85, 30),
    RecommendationTrigger.DURATION_EXCEEDED: (75, 20),
    RecommendationTrigger.LOW_POWER: (70, 50),
    RecommendationTrigger.UNDERPERFORMING_VARIANT: (60, 70),
}


@dataclass
class RecommendationPolicy:
    """
    Thresholds and scoring heuristics for the recommendation rules.

    Attributes:
        max_duration_days: Ceiling after which an inconclusive test is stopped
        underperformance_ratio: Variant ROI below this share of the best ROI is flagged
        minimum_power: Power under which more traffic is suggested
        scores: Impact/effort per trigger, 0-100
    """

    max_duration_days: int = 30
    underperformance_ratio: float = 0.5
    minimum_power: float = 0.8
    scores: Dict[RecommendationTrigger, Tuple[int, int]] = field(
        default_factory=lambda: dict(DEFAULT_SCORES)
    )

    @classmethod
    def from_settings(cls) -> "RecommendationPolicy":
        settings = get_settings()
        return cls(
            max_duration_days=settings.MAX_TEST_DURATION_DAYS,
            underperformance_ratio=settings.UNDERPERFORMANCE_RATIO,
            minimum_power=settings.MINIMUM_POWER,
        )


class RecommendationEngine:
    def __init__(self, policy: Optional[RecommendationPolicy] = None):
        self.policy = policy or RecommendationPolicy.from_settings()
        self.logger = structlog.get_logger("recommendations")

    def _build(
        self,
        trigger: RecommendationTrigger,
        type_: RecommendationType,
        priority: Priority,
        title: str,
        description: str,
        reasoning: str,
        variant_id: Optional[str] = None,
    ) -> Recommendation:
        impact, effort = self.policy.scores.get(trigger, DEFAULT_SCORES[trigger])
        return Recommendation(
            type=type_,
            trigger=trigger,
            priority=priority,
            title=title,
            description=description,
            impact=impact,
            effort=effort,
            reasoning=reasoning,
            variant_id=variant_id,
        )

    def recommend(
        self,
        test: Test,
        significance: Optional[SignificanceResult],
        roi_by_variant: Optional[Dict[str, ROIRecord]] = None,
        as_of: Optional[datetime] = None,
    ) -> List[Recommendation]:
        """
        Apply the rule chain to one test.

        ``significance`` is None while some variant has no impressions yet; the
        test then counts as not significant and only the sample and duration
        rules can fire.
        """
        recommendations = []
        compared = significance is not None

        sample_size = min(v.impressions for v in test.variants)
        duration_days = test.duration_days(as_of)
        max_duration = test.max_duration_days or self.policy.max_duration_days

        if (
            compared
            and significance.is_significant
            and significance.confidence >= test.confidence_level
        ):
            winner = test.get_variant(significance.winner)
            winner_name = winner.name if winner else significance.winner
            recommendations.append(
                self._build(
                    RecommendationTrigger.SIGNIFICANT_RESULT,
                    RecommendationType.TEST_TERMINATION,
                    Priority.HIGH,
                    title="Declare Winner and End Test",
                    description=f"Declare {winner_name} the winner and end the test",
                    reasoning=(
                        f"p={significance.p_value:.4f} is below "
                        f"{1 - test.confidence_level:.2f}, so {winner_name} wins at "
                        f"{test.confidence_level:.0%} confidence"
                    ),
                    variant_id=significance.winner,
                )
            )
        elif sample_size < test.minimum_sample_size:
            recommendations.append(
                self._build(
                    RecommendationTrigger.INSUFFICIENT_SAMPLE,
                    RecommendationType.TEST_EXTENSION,
                    Priority.MEDIUM,
                    title="Extend Test Duration",
                    description="Keep the test running to reach the minimum sample size",
                    reasoning=(
                        f"Smallest variant has {sample_size} impressions, "
                        f"below the minimum of {test.minimum_sample_size}"
                    ),
                )
            )
        elif duration_days > max_duration:
            if compared:
                outcome = f"with p={significance.p_value:.4f}"
            else:
                outcome = "before every variant had traffic"
            recommendations.append(
                self._build(
                    RecommendationTrigger.DURATION_EXCEEDED,
                    RecommendationType.TEST_TERMINATION,
                    Priority.MEDIUM,
                    title="End Inconclusive Test",
                    description="Stop the test; no variant reached significance",
                    reasoning=(
                        f"Test ran {duration_days:.1f} days, past the {max_duration} day "
                        f"ceiling, {outcome}"
                    ),
                )
            )
        elif compared and significance.statistical_power < self.policy.minimum_power:
            recommendations.append(
                self._build(
                    RecommendationTrigger.LOW_POWER,
                    RecommendationType.SAMPLE_SIZE_INCREASE,
                    Priority.MEDIUM,
                    title="Increase Sample Size",
                    description="Increase traffic allocation to improve statistical power",
                    reasoning=(
                        f"Statistical power is {significance.statistical_power:.0%}, "
                        f"below the {self.policy.minimum_power:.0%} target"
                    ),
                )
            )

        recommendations.extend(self._underperforming_variants(test, roi_by_variant or {}))

        recommendations.sort(key=lambda r: r.impact, reverse=True)

        self.logger.info(
            "recommendations_generated",
            test_id=test.id,
            count=len(recommendations),
            triggers=[r.trigger.value for r in recommendations],
        )
        return recommendations

    def _underperforming_variants(
        self, test: Test, roi_by_variant: Dict[str, ROIRecord]
    ) -> List[Recommendation]:
        if len(roi_by_variant) < 2:
            return []

        best_id, best = max(roi_by_variant.items(), key=lambda item: item[1].roi)
        if best.roi <= 0:
            return []

        threshold = best.roi * self.policy.underperformance_ratio
        results = []
        for variant_id, record in roi_by_variant.items():
            if variant_id == best_id or record.roi >= threshold:
                continue

            variant = test.get_variant(variant_id)
            name = variant.name if variant else variant_id
            results.append(
                self._build(
                    RecommendationTrigger.UNDERPERFORMING_VARIANT,
                    RecommendationType.VARIANT_OPTIMIZATION,
                    Priority.LOW,
                    title=f"Optimize or Drop {name}",
                    description=f"Rework {name} or shift its traffic to better variants",
                    reasoning=(
                        f"ROI of {record.roi:.1f}% is below "
                        f"{self.policy.underperformance_ratio:.0%} of the best variant's "
                        f"{best.roi:.1f}%"
                    ),
                    variant_id=variant_id,
                )
            )
        return results
