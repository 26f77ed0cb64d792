import math
from datetime import datetime
from typing import List, Optional, Tuple

from scipy import stats as scipy_stats

from liftlab.core.exceptions import DivisionByZeroError, InvariantViolationError, ValidationError
from liftlab.models.experiment import Test, Variant
from liftlab.models.schemas import SignificanceResult, TestAnalysis, VariantSummary
from liftlab.services.stats.normal import critical_value, normal_cdf

MINIMUM_POWER = 0.8


def calculate_conversion_rate(conversions: int, impressions: int) -> float:
    # Percentage, 0-100
    if impressions == 0:
        raise DivisionByZeroError("Conversion rate is undefined for zero impressions")
    if conversions > impressions:
        raise InvariantViolationError(
            f"Conversions ({conversions}) exceed impressions ({impressions})"
        )
    return (conversions / impressions) * 100


def calculate_pooled_variance(rate_a: float, n_a: int, rate_b: float, n_b: int) -> float:
    # Rates are percentages, so the result is on the percent-squared scale
    degrees_of_freedom = n_a + n_b - 2
    if degrees_of_freedom <= 0:
        return 0.0

    return (
        (n_a - 1) * rate_a * (100 - rate_a) + (n_b - 1) * rate_b * (100 - rate_b)
    ) / degrees_of_freedom


def calculate_standard_error(pooled_variance: float, n_a: int, n_b: int) -> float:
    return math.sqrt(pooled_variance * (1 / n_a + 1 / n_b))


def calculate_p_value(statistic: float) -> float:
    # Two-tailed
    p_value = 2 * (1 - normal_cdf(abs(statistic)))
    return min(max(p_value, 0.0), 1.0)


def calculate_effect_size(rate_a: float, rate_b: float) -> float:
    # Cohen's h on proportions
    p_a = rate_a / 100
    p_b = rate_b / 100
    return 2 * math.asin(math.sqrt(p_b)) - 2 * math.asin(math.sqrt(p_a))


def calculate_confidence_interval(
    rate_a: float, rate_b: float, standard_error: float, confidence_level: float = 0.95
) -> Tuple[float, float]:
    diff = rate_b - rate_a
    margin_of_error = critical_value(confidence_level) * standard_error

    # Percentage points
    return diff - margin_of_error, diff + margin_of_error


def calculate_statistical_power(
    rate_a: float, n_a: int, rate_b: float, n_b: int, confidence_level: float = 0.95
) -> float:
    alpha = 1 - confidence_level
    p1 = rate_a / 100
    p2 = rate_b / 100

    if p1 == p2:
        return alpha  # Power equals alpha when there's no effect

    pooled = (p1 * n_a + p2 * n_b) / (n_a + n_b)
    se = math.sqrt(pooled * (1 - pooled) * (1 / n_a + 1 / n_b))
    if se == 0:
        return 1.0

    z_beta = abs(p2 - p1) / se - critical_value(confidence_level)
    power = normal_cdf(z_beta)

    return min(max(power, 0.0), 1.0)


def calculate_sample_size_requirement(
    baseline_rate: float, minimum_detectable_effect: float, alpha: float = 0.05, power: float = 0.80
) -> int:
    if baseline_rate <= 0 or baseline_rate >= 1:
        return 0

    # Convert MDE from percentage points to proportion
    mde = minimum_detectable_effect / 100
    p1 = baseline_rate
    p2 = min(baseline_rate + mde, 0.9999)

    z_alpha = scipy_stats.norm.ppf(1 - alpha / 2)
    z_beta = scipy_stats.norm.ppf(power)

    p_pooled = (p1 + p2) / 2

    numerator = (
        z_alpha * math.sqrt(2 * p_pooled * (1 - p_pooled))
        + z_beta * math.sqrt(p1 * (1 - p1) + p2 * (1 - p2))
    ) ** 2

    denominator = (p2 - p1) ** 2

    if denominator == 0:
        return 0

    return math.ceil(numerator / denominator)


def compute_significance(variant_a, variant_b, confidence_level: float = 0.95) -> SignificanceResult:
    """
    Compare two variants' conversion rates.

    Both arguments only need ``id``, ``impressions`` and ``conversions``
    attributes, so live ``Variant`` records and ``VariantCounts`` snapshots
    both work.

    Rates are handled on the percentage scale (0-100): the pooled variance is
    ``((nA-1)*rA*(100-rA) + (nB-1)*rB*(100-rB)) / (nA+nB-2)`` and the test
    statistic is ``|rA - rB| / sqrt(pooled * (1/nA + 1/nB))``. A zero standard
    error yields ``p_value = 1.0`` rather than an error.

    Raises:
        DivisionByZeroError: either variant has no impressions
        InvariantViolationError: conversions exceed impressions
        ValidationError: confidence level outside (0, 1)
    """
    if not 0 < confidence_level < 1:
        raise ValidationError(f"Confidence level must be between 0 and 1, got {confidence_level}")

    n_a = variant_a.impressions
    n_b = variant_b.impressions
    rate_a = calculate_conversion_rate(variant_a.conversions, n_a)
    rate_b = calculate_conversion_rate(variant_b.conversions, n_b)

    pooled_variance = calculate_pooled_variance(rate_a, n_a, rate_b, n_b)
    standard_error = calculate_standard_error(pooled_variance, n_a, n_b)

    if standard_error == 0:
        statistic = 0.0
        p_value = 1.0
    else:
        statistic = abs(rate_a - rate_b) / standard_error
        p_value = calculate_p_value(statistic)

    is_significant = p_value < (1 - confidence_level)

    winner = None
    if is_significant:
        winner = variant_b.id if rate_b > rate_a else variant_a.id

    ci_low, ci_high = calculate_confidence_interval(
        rate_a, rate_b, standard_error, confidence_level
    )

    return SignificanceResult(
        variant_a_id=variant_a.id,
        variant_b_id=variant_b.id,
        rate_a=rate_a,
        rate_b=rate_b,
        pooled_variance=pooled_variance,
        standard_error=standard_error,
        test_statistic=statistic,
        p_value=p_value,
        confidence=1 - p_value,
        confidence_label="high" if is_significant else "low",
        confidence_level=confidence_level,
        confidence_interval_low=ci_low,
        confidence_interval_high=ci_high,
        effect_size=calculate_effect_size(rate_a, rate_b),
        statistical_power=calculate_statistical_power(rate_a, n_a, rate_b, n_b, confidence_level),
        is_significant=is_significant,
        winner=winner,
    )


def make_recommendation(significance: SignificanceResult, variants: List[Variant]) -> str:
    if significance.is_significant:
        best = max(variants, key=lambda v: v.conversion_rate)
        return f"Declare {best.name} as winner with {significance.confidence * 100:.1f}% confidence"

    if significance.statistical_power < MINIMUM_POWER:
        return "Continue test to increase statistical power and sample size"

    return "No significant difference found. Consider testing different variations"


def analyze_test(test: Test, as_of: Optional[datetime] = None) -> TestAnalysis:
    """
    Compare the control against every treatment of a test.

    The treatment with the highest conversion rate supplies the headline
    significance result.
    """
    control = test.control
    treatments = test.treatments

    comparisons = [
        compute_significance(control, treatment, test.confidence_level) for treatment in treatments
    ]
    p_values = {c.variant_b_id: c.p_value for c in comparisons}

    headline = max(comparisons, key=lambda c: c.rate_b)

    summaries = [
        VariantSummary(
            variant_id=v.id,
            variant_name=v.name,
            is_control=v.is_control,
            impressions=v.impressions,
            conversions=v.conversions,
            conversion_rate=v.conversion_rate,
            revenue=v.revenue,
            average_order_value=v.average_order_value,
            p_value=p_values.get(v.id),
        )
        for v in test.variants
    ]

    total_impressions = sum(v.impressions for v in test.variants)
    total_conversions = sum(v.conversions for v in test.variants)

    return TestAnalysis(
        test_id=test.id,
        variants=summaries,
        total_impressions=total_impressions,
        total_conversions=total_conversions,
        overall_conversion_rate=(total_conversions / total_impressions) * 100
        if total_impressions > 0
        else 0.0,
        total_revenue=sum(v.revenue for v in test.variants),
        duration_days=test.duration_days(as_of),
        significance=headline,
        comparisons=comparisons,
        is_significant=headline.is_significant,
        winner=headline.winner,
        recommendation=make_recommendation(headline, test.variants),
    )
