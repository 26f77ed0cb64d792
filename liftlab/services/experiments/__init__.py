"""
Experimentation service module for A/B testing functionality.

This module provides:
- Statistical significance for conversion-rate tests (pooled variance, z approximation)
- Test lifecycle management and sticky traffic allocation
- Rule-based recommendations for running tests
"""

from liftlab.services.experiments.allocation import TrafficAllocator
from liftlab.services.experiments.lifecycle import ExperimentManager
from liftlab.services.experiments.recommendations import RecommendationEngine, RecommendationPolicy
from liftlab.services.experiments.significance import (
    analyze_test,
    calculate_conversion_rate,
    calculate_sample_size_requirement,
    calculate_statistical_power,
    compute_significance,
)
from liftlab.services.experiments.templates import get_template, list_templates

__all__ = [
    "TrafficAllocator",
    "ExperimentManager",
    "RecommendationEngine",
    "RecommendationPolicy",
    "analyze_test",
    "calculate_conversion_rate",
    "calculate_sample_size_requirement",
    "calculate_statistical_power",
    "compute_significance",
    "get_template",
    "list_templates",
]
