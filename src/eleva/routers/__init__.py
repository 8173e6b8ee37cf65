"""HTTP routers."""

from . import errors, health, reviews, rotation

__all__ = [
    "errors",
    "health",
    "reviews",
    "rotation",
]
