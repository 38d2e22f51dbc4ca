"""Dependency graph solving for registered services.

``solve_dependencies`` converts services with dependency edges into a
deterministic initialization order and per-event-type subscriber lists,
rejecting unknown dependencies and cycles.
"""

from .models import SolvedGraph
from .solver import solve_dependencies

__all__ = [
    "SolvedGraph",
    "solve_dependencies",
]
