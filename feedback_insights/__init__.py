"""Feedback Insights Engine: relationship-weighted competency aggregation for 360 feedback."""

__version__ = "1.0.0"
