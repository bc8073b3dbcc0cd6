"""Tests for the order-statistic AVL tree."""

import random

import numpy as np
import pytest

from flashguard.core.exceptions import InvariantViolationError
from flashguard.stats.percentile_tree import PercentileTree, coerce_percent


@pytest.fixture
def dup_values():
    rng = random.Random(7)
    return [round(rng.uniform(0, 20)) for _ in range(201)]


class TestQueries:
    def test_empty_tree(self):
        tree = PercentileTree()
        assert tree.size() == 0
        assert tree.quantile(50) is None
        assert tree.median() is None
        assert tree.min() is None
        assert tree.max() is None
        assert tree.at(0) is None
        assert tree.to_list() == []

    def test_extremes(self, dup_values):
        tree = PercentileTree.from_values(dup_values)
        assert tree.quantile(0) == min(dup_values)
        assert tree.quantile(100) == max(dup_values)

    @pytest.mark.parametrize(
        "values, expected",
        [
            ([5, 1, 3, 3, 9, 7, 3], 3.0),
            ([4, 1, 2, 2, 8, 6], 3.0),
            ([2.5], 2.5),
        ],
    )
    def test_median_odd_even_duplicates(self, values, expected):
        assert PercentileTree.from_values(values).median() == pytest.approx(expected)

    @pytest.mark.parametrize("p", [5, 10, 25, 50, 75, 90, 95, 99])
    def test_matches_linear_interpolation(self, dup_values, p):
        tree = PercentileTree.from_values(dup_values)
        assert tree.quantile(p) == pytest.approx(np.percentile(dup_values, p))

    def test_shortcuts(self, dup_values):
        tree = PercentileTree.from_values(dup_values)
        assert tree.p90() == pytest.approx(np.percentile(dup_values, 90))
        assert tree.p95() == tree.quantile("p95")

    def test_at_with_multiplicity(self):
        tree = PercentileTree()
        tree.insert(5.0, count=3)
        tree.insert(1.0)
        assert [tree.at(k) for k in range(4)] == [1.0, 5.0, 5.0, 5.0]
        assert tree.at(4) is None
        assert tree.at(-1) is None

    def test_to_list_limit_and_stats(self):
        tree = PercentileTree.from_values([3, 1, 2, 2, 5])
        assert tree.to_list() == [1, 2, 2, 3, 5]
        assert tree.to_list(limit=3) == [1, 2, 2]
        stats = tree.stats()
        assert stats["size"] == 5
        assert stats["unique_values"] == 4
        assert not stats["is_empty"]


class TestMutation:
    def test_non_finite_and_bad_counts_ignored(self):
        tree = PercentileTree()
        tree.insert(float("nan"))
        tree.insert(float("inf"))
        tree.insert(1.0, count=0)
        tree.insert(1.0, count=-2)
        assert tree.size() == 0

    def test_incremental_equals_bulk(self, dup_values):
        tree = PercentileTree()
        for v in dup_values:
            tree.insert(v)
        bulk = PercentileTree.from_values(dup_values)
        assert tree.to_list() == bulk.to_list()
        assert tree.size() == len(dup_values)

    def test_sorted_inserts_stay_balanced(self):
        tree = PercentileTree()
        for v in range(1000):
            tree.insert(v)
        tree.check_invariants()
        assert tree.stats()["tree_height"] <= 15

    def test_extend_with_pairs(self):
        tree = PercentileTree()
        tree.extend([1.0, (2.0, 3), [4.0]])
        assert tree.to_list() == [1.0, 2.0, 2.0, 2.0, 4.0]

    def test_clear(self):
        tree = PercentileTree.from_values([1, 2, 3])
        tree.clear()
        assert len(tree) == 0

    def test_corruption_detected(self):
        tree = PercentileTree.from_values([1, 2, 3, 4, 5])
        tree.root.size += 1
        with pytest.raises(InvariantViolationError):
            tree.check_invariants()


class TestCoercePercent:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (0.95, 95.0),
            (95, 95.0),
            ("95", 95.0),
            ("95%", 95.0),
            ("p95", 95.0),
            ("P90", 90.0),
            (150, 100.0),
            (-5, 0.0),
        ],
    )
    def test_accepted_forms(self, raw, expected):
        assert coerce_percent(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [None, True, "abc", float("nan"), [50]])
    def test_rejected_forms(self, raw):
        assert coerce_percent(raw) is None

    def test_unparseable_quantile_is_none(self):
        assert PercentileTree.from_values([1, 2]).quantile("median") is None
