"""Common utility functions."""

from .geo import calculate_distance, is_within

__all__ = [
    "calculate_distance",
    "is_within",
]
