"""Utilities for geo-writeback."""

from geo_writeback.utils.diff_generator import generate_unified_diff, truncate_at_line

__all__ = [
    "generate_unified_diff",
    "truncate_at_line",
]
