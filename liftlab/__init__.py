"""Experiment statistics, attribution and campaign performance engine."""

__version__ = "0.1.0"
