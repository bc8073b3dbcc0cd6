"""Order statistics."""

from .percentile_tree import PercentileTree, coerce_percent

__all__ = ["PercentileTree", "coerce_percent"]
