"""Analytics built on classified commits and review activity."""

from .benchmarks import BenchmarkCalculator
from .collaboration import CollaborationAnalyzer
from .velocity import VelocityEngine

__all__ = [
    "BenchmarkCalculator",
    "CollaborationAnalyzer",
    "VelocityEngine",
]
