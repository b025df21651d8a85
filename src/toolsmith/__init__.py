"""Cutting-parameter calculation and CAM tool library export."""

__version__ = "0.1.0"
