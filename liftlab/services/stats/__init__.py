from liftlab.services.stats.normal import critical_value, erf, normal_cdf

__all__ = ["erf", "normal_cdf", "critical_value"]
