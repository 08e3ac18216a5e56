"""
Domain Services Package

Architectural Intent:
- Contains domain services implementing business logic
"""

from sfx_janitor.domain.services.staleness import (
    StalenessPolicy,
    DEFAULT_MAX_AGE,
)

__all__ = [
    "StalenessPolicy",
    "DEFAULT_MAX_AGE",
]
