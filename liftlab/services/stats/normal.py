import math

from scipy import stats as scipy_stats

# Abramowitz & Stegun 7.1.26, max absolute error ~1.5e-7
A1 = 0.254829592
A2 = -0.284496736
A3 = 1.421413741
A4 = -1.453152027
A5 = 1.061405429
P = 0.3275911


def erf(x: float) -> float:
    if x == 0:
        return 0.0

    sign = 1.0 if x >= 0 else -1.0
    x = abs(x)

    t = 1.0 / (1.0 + P * x)
    y = 1.0 - (((((A5 * t + A4) * t) + A3) * t + A2) * t + A1) * t * math.exp(-x * x)

    return sign * y


def normal_cdf(z: float) -> float:
    return 0.5 * (1 + erf(z / math.sqrt(2)))


def critical_value(confidence_level: float) -> float:
    """Two-sided z critical value, e.g. 1.96 for 0.95."""
    alpha = 1 - confidence_level
    return float(scipy_stats.norm.ppf(1 - alpha / 2))
