"""
Order-statistic AVL tree for numeric percentiles.

Values are stored with integer multiplicities; each node also carries the
size of its subtree (counting multiplicities) and its height, so k-th
selection and quantiles run in O(log n). Quantiles interpolate linearly
between neighbouring order statistics.

Usage:
    tree = PercentileTree.from_values(delta_es)
    median = tree.quantile(50)
    p95 = tree.quantile("p95")
"""

import math
import numbers
import re
from collections.abc import Iterable
from dataclasses import dataclass

from ..core.exceptions import InvariantViolationError

_PERCENT_PATTERN = re.compile(r"^p?\s*([0-9]*\.?[0-9]+)\s*$")


@dataclass(eq=False)
class _Node:
    value: float
    count: int = 1
    left: "_Node | None" = None
    right: "_Node | None" = None
    height: int = 1
    size: int = 1


def _height(node: _Node | None) -> int:
    return node.height if node else 0


def _size(node: _Node | None) -> int:
    return node.size if node else 0


def _update(node: _Node) -> None:
    node.height = 1 + max(_height(node.left), _height(node.right))
    node.size = node.count + _size(node.left) + _size(node.right)


def _rotate_right(pivot: _Node) -> _Node:
    child = pivot.left
    pivot.left = child.right
    child.right = pivot
    _update(pivot)
    _update(child)
    return child


def _rotate_left(pivot: _Node) -> _Node:
    child = pivot.right
    pivot.right = child.left
    child.left = pivot
    _update(pivot)
    _update(child)
    return child


def _rebalance(node: _Node) -> _Node:
    _update(node)
    balance = _height(node.left) - _height(node.right)

    # Left-heavy
    if balance > 1:
        if _height(node.left.right) > _height(node.left.left):
            node.left = _rotate_left(node.left)
        return _rotate_right(node)

    # Right-heavy
    if balance < -1:
        if _height(node.right.left) > _height(node.right.right):
            node.right = _rotate_right(node.right)
        return _rotate_left(node)

    return node


def coerce_percent(p) -> float | None:
    """
    Normalize a percentile argument to [0, 100].

    Accepts fractions (0.95), percents (95), and strings ("95", "95%", "p95").
    Numbers outside [0, 100] are clamped; unparseable input gives None.
    """
    if p is None or isinstance(p, bool):
        return None
    if isinstance(p, numbers.Real):
        if not math.isfinite(p):
            return None
        if 0 <= p <= 1:
            return float(p) * 100.0
        return float(max(0.0, min(100.0, p)))
    if isinstance(p, str):
        s = p.strip().lower()
        if s.endswith("%"):
            s = s[:-1]
        match = _PERCENT_PATTERN.match(s)
        if not match:
            return None
        return max(0.0, min(100.0, float(match.group(1))))
    return None


class PercentileTree:
    """Balanced multiset with rank queries."""

    def __init__(self) -> None:
        self.root: _Node | None = None

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_values(cls, values: Iterable[float]) -> "PercentileTree":
        """
        Build a balanced tree in O(n log n) from unsorted values.

        Non-finite values are skipped. Duplicates are run-length compacted
        before the tree is built from the midpoints.
        """
        tree = cls()
        finite = sorted(float(v) for v in values if _is_finite_number(v))
        if not finite:
            return tree

        compacted: list[tuple[float, int]] = []
        last, count = finite[0], 1
        for v in finite[1:]:
            if v == last:
                count += 1
            else:
                compacted.append((last, count))
                last, count = v, 1
        compacted.append((last, count))

        def build(lo: int, hi: int) -> _Node | None:
            if lo > hi:
                return None
            mid = (lo + hi) // 2
            value, cnt = compacted[mid]
            node = _Node(value, cnt)
            node.left = build(lo, mid - 1)
            node.right = build(mid + 1, hi)
            _update(node)
            return node

        tree.root = build(0, len(compacted) - 1)
        return tree

    bulk_build = from_values

    def insert(self, value: float, count: int = 1) -> None:
        """
        Insert ``value`` with multiplicity ``count``.

        Non-finite values and counts below 1 are ignored.
        """
        if not _is_finite_number(value) or not _is_finite_number(count):
            return
        c = int(count)
        if c <= 0:
            return
        self.root = self._insert(self.root, float(value), c)

    add = insert

    def extend(self, items: Iterable) -> None:
        """Insert plain values or ``(value, count)`` pairs."""
        for item in items:
            if isinstance(item, (tuple, list)):
                value, *rest = item
                self.insert(value, rest[0] if rest else 1)
            else:
                self.insert(item)

    def _insert(self, node: _Node | None, value: float, count: int) -> _Node:
        if node is None:
            return _Node(value, count, size=count)
        if value == node.value:
            node.count += count
        elif value < node.value:
            node.left = self._insert(node.left, value, count)
        else:
            node.right = self._insert(node.right, value, count)
        return _rebalance(node)

    def clear(self) -> None:
        self.root = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def size(self) -> int:
        """Total number of items, counting multiplicities."""
        return _size(self.root)

    def __len__(self) -> int:
        return self.size()

    def at(self, k: int) -> float | None:
        """0-based k-th smallest value, or None when out of range."""
        if isinstance(k, bool) or not isinstance(k, numbers.Integral) or k < 0 or k >= self.size():
            return None
        node = self.root
        idx = k
        while node:
            left_size = _size(node.left)
            if idx < left_size:
                node = node.left
            elif idx < left_size + node.count:
                return node.value
            else:
                idx -= left_size + node.count
                node = node.right
        return None

    kth_smallest = at

    def quantile(self, p) -> float | None:
        """
        Linear-interpolated percentile.

        Args:
            p: 0..1, 0..100, "95", "95%" or "p95"

        Returns:
            Interpolated value, or None for an empty tree or unparseable p
        """
        n = self.size()
        if n == 0:
            return None
        pct = coerce_percent(p)
        if pct is None:
            return None
        if pct <= 0:
            return self.min()
        if pct >= 100:
            return self.max()

        idx = (pct / 100.0) * (n - 1)
        lower = math.floor(idx)
        upper = math.ceil(idx)
        lower_val = self.at(lower)
        if lower == upper:
            return lower_val
        upper_val = self.at(upper)
        return lower_val + (upper_val - lower_val) * (idx - lower)

    percentile = quantile

    def median(self) -> float | None:
        return self.quantile(50)

    def p90(self) -> float | None:
        return self.quantile(90)

    def p95(self) -> float | None:
        return self.quantile(95)

    def min(self) -> float | None:
        node = self.root
        if node is None:
            return None
        while node.left:
            node = node.left
        return node.value

    def max(self) -> float | None:
        node = self.root
        if node is None:
            return None
        while node.right:
            node = node.right
        return node.value

    def to_list(self, limit: int | None = None) -> list[float]:
        """Values in ascending order, duplicates repeated."""
        if limit is not None and limit <= 0:
            return []
        out: list[float] = []
        stack: list[_Node] = []
        node = self.root
        while (node or stack) and (limit is None or len(out) < limit):
            while node:
                stack.append(node)
                node = node.left
            current = stack.pop()
            take = current.count if limit is None else min(current.count, limit - len(out))
            out.extend([current.value] * take)
            node = current.right
        return out

    def stats(self) -> dict:
        return {
            "size": self.size(),
            "unique_values": self._count_unique(self.root),
            "tree_height": _height(self.root),
            "is_empty": self.root is None,
        }

    def _count_unique(self, node: _Node | None) -> int:
        if node is None:
            return 0
        return 1 + self._count_unique(node.left) + self._count_unique(node.right)

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """
        Verify ordering, size, height and AVL balance of every node.

        Raises:
            InvariantViolationError: On the first corrupt node found
        """
        self._check(self.root, None, None)

    def _check(self, node: _Node | None, lo: float | None, hi: float | None) -> tuple[int, int]:
        if node is None:
            return 0, 0
        if (lo is not None and node.value <= lo) or (hi is not None and node.value >= hi):
            raise InvariantViolationError(
                "Percentile tree ordering violated", details={"value": node.value}
            )
        left_h, left_s = self._check(node.left, lo, node.value)
        right_h, right_s = self._check(node.right, node.value, hi)
        if node.count < 1:
            raise InvariantViolationError(
                "Node with non-positive count", details={"value": node.value, "count": node.count}
            )
        if node.size != node.count + left_s + right_s:
            raise InvariantViolationError(
                "Subtree size mismatch", details={"value": node.value, "size": node.size}
            )
        if node.height != 1 + max(left_h, right_h):
            raise InvariantViolationError(
                "Height mismatch", details={"value": node.value, "height": node.height}
            )
        if abs(left_h - right_h) > 1:
            raise InvariantViolationError(
                "AVL balance violated", details={"value": node.value, "balance": left_h - right_h}
            )
        return node.height, node.size

    def __repr__(self) -> str:
        return f"PercentileTree(size={self.size()}, height={_height(self.root)})"


def _is_finite_number(v) -> bool:
    return isinstance(v, numbers.Real) and not isinstance(v, bool) and math.isfinite(v)
