"""Loom: narrative-thread prioritization engine."""

__version__ = "0.1.0"
