# src/garagehub/core/ratings/__init__.py
"""Отзывы и рейтинг гаражей."""

from garagehub.core.ratings.service import RatingAggregator, next_ratings

__all__ = ["RatingAggregator", "next_ratings"]
