import numbers
import numpy as np
import numba

import segtree.combine as combine
from segtree.errors import IndexOutOfRange
from segtree.errors import InvalidQueryRange
from segtree.errors import InvalidRange


NULL = -1


def num_levels(n):
    # levels from the root down to the deepest leaf for a tree over n indices
    return (n - 1).bit_length() + 1


@numba.njit(cache=True)
def build_nodes(lo, hi, nodes_lo, nodes_hi, nodes_mid, nodes_left, nodes_right, stack):
    """
    Lays out the tree over [lo, hi) in the node arrays, splitting every
    interval at lo + (hi - lo) // 2 until each leaf covers a single index.
    Children are always allocated after their parent, so a child id is
    larger than its parent's id. Returns the number of nodes allocated.
    """
    nodes_lo[0] = lo
    nodes_hi[0] = hi
    num_nodes = 1
    stack[0] = 0
    top = 1

    while top > 0:
        top -= 1
        u = stack[top]
        a = nodes_lo[u]
        b = nodes_hi[u]
        if b - a == 1:
            # leaf, mid is never read
            nodes_mid[u] = a
            nodes_left[u] = NULL
            nodes_right[u] = NULL
            continue
        m = a + (b - a) // 2
        nodes_mid[u] = m
        left = num_nodes
        right = num_nodes + 1
        num_nodes += 2
        nodes_lo[left] = a
        nodes_hi[left] = m
        nodes_lo[right] = m
        nodes_hi[right] = b
        nodes_left[u] = left
        nodes_right[u] = right
        stack[top] = right
        stack[top + 1] = left
        top += 2

    return num_nodes


@numba.njit(cache=True)
def update_nodes(
    op, target, value, nodes_lo, nodes_mid, nodes_left, nodes_right, nodes_value, path
):
    depth = 0
    u = 0
    while nodes_left[u] != NULL:
        path[depth] = u
        depth += 1
        if target < nodes_mid[u]:
            u = nodes_left[u]
        else:
            u = nodes_right[u]
    assert nodes_lo[u] == target
    nodes_value[u] = value

    # recombine every ancestor of the leaf, deepest first
    while depth > 0:
        depth -= 1
        u = path[depth]
        nodes_value[u] = combine.combine(
            op, nodes_value[nodes_left[u]], nodes_value[nodes_right[u]]
        )


@numba.njit(cache=True)
def query_nodes(
    op,
    neutral,
    lo_q,
    hi_q,
    nodes_lo,
    nodes_hi,
    nodes_mid,
    nodes_left,
    nodes_right,
    nodes_value,
    stack,
):
    """
    Combines the values of the canonical decomposition of [lo_q, hi_q).
    Each stack row holds (node, lo, hi) of a pending sub-query. A straddling
    sub-query is split at the node's mid and the left half is pushed last,
    so partial results are combined in index order.
    """
    ret = neutral
    stack[0, 0] = 0
    stack[0, 1] = lo_q
    stack[0, 2] = hi_q
    top = 1

    while top > 0:
        top -= 1
        u = stack[top, 0]
        a = stack[top, 1]
        b = stack[top, 2]
        m = nodes_mid[u]
        if a == nodes_lo[u] and b == nodes_hi[u]:
            ret = combine.combine(op, ret, nodes_value[u])
        elif b <= m:
            stack[top, 0] = nodes_left[u]
            top += 1
        elif a >= m:
            stack[top, 0] = nodes_right[u]
            top += 1
        else:
            stack[top, 0] = nodes_right[u]
            stack[top, 1] = m
            stack[top, 2] = b
            stack[top + 1, 0] = nodes_left[u]
            stack[top + 1, 1] = a
            stack[top + 1, 2] = m
            top += 2

    return ret


@numba.njit(cache=True)
def load_nodes(op, values, lo, nodes_lo, nodes_left, nodes_right, nodes_value):
    # children have larger ids than their parents, so a reverse sweep
    # sees both children of a node before the node itself
    for u in range(nodes_lo.size - 1, -1, -1):
        if nodes_left[u] == NULL:
            nodes_value[u] = values[nodes_lo[u] - lo]
        else:
            nodes_value[u] = combine.combine(
                op, nodes_value[nodes_left[u]], nodes_value[nodes_right[u]]
            )


@numba.njit(cache=True)
def check_nodes(op, nodes_lo, nodes_hi, nodes_mid, nodes_left, nodes_right, nodes_value):
    for u in range(nodes_lo.size):
        left = nodes_left[u]
        right = nodes_right[u]
        if left == NULL:
            if right != NULL or nodes_hi[u] - nodes_lo[u] != 1:
                return False
            continue
        if nodes_lo[left] != nodes_lo[u] or nodes_hi[left] != nodes_mid[u]:
            return False
        if nodes_lo[right] != nodes_mid[u] or nodes_hi[right] != nodes_hi[u]:
            return False
        if nodes_value[u] != combine.combine(op, nodes_value[left], nodes_value[right]):
            return False
    return True


def check_integer(x, name):
    if isinstance(x, (bool, np.bool_)) or not isinstance(x, (int, np.integer)):
        raise TypeError(f"{name} must be an integer, got {type(x).__name__}")
    return int(x)


def check_values(values, dtype):
    """
    Casts an array of leaf values to the tree dtype. For an integer tree,
    values the cast would change (non-finite, fractional or out of range)
    are rejected.
    """
    if values.dtype.kind not in "biuf":
        raise TypeError(f"values must be real numbers, got {values.dtype}")
    if dtype.kind == "f":
        return values.astype(dtype)
    if values.dtype.kind == "f":
        if not np.all(np.isfinite(values)):
            raise ValueError("Cannot store non-finite values in an integer tree")
        if not np.all(values == np.trunc(values)):
            raise ValueError("Cannot store fractional values in an integer tree")
        # 2**63 is exactly representable, every float below it fits in int64
        info = np.iinfo(dtype)
        if np.any(values < info.min) or np.any(values >= 2.0 ** (info.bits - 1)):
            raise ValueError(f"Values do not fit in {dtype.name}")
    elif values.dtype.kind == "u":
        if np.any(values > np.uint64(np.iinfo(dtype).max)):
            raise ValueError(f"Values do not fit in {dtype.name}")
    return values.astype(dtype)


class SegmentTree:
    """
    Segment tree over the half-open index interval [lo, hi). Every leaf
    starts at the neutral element of the chosen operator; internal nodes
    always hold the combination of their two children.

    The nodes are stored in parallel arrays indexed by node id with the
    root at id 0. ``nodes_left`` and ``nodes_right`` hold child ids, or -1
    for a leaf.
    """

    def __init__(self, lo, hi, op="sum", dtype=np.int64):
        lo = check_integer(lo, "lo")
        hi = check_integer(hi, "hi")
        if lo >= hi:
            raise InvalidRange(lo, hi)
        self.op = op
        self._code, self.dtype, self.neutral = combine.resolve(op, dtype)
        self.lo = lo
        self.hi = hi

        n = hi - lo
        levels = num_levels(n)
        num_nodes = 2 * n - 1
        self.nodes_lo = np.zeros(num_nodes, dtype=np.int64)
        self.nodes_hi = np.zeros(num_nodes, dtype=np.int64)
        self.nodes_mid = np.zeros(num_nodes, dtype=np.int64)
        self.nodes_left = np.full(num_nodes, NULL, dtype=np.int64)
        self.nodes_right = np.full(num_nodes, NULL, dtype=np.int64)
        self.nodes_value = np.full(num_nodes, self.neutral, dtype=self.dtype)
        # scratch space for the kernels, one entry per level is enough for
        # the update path and each stack holds at most one pending sibling
        # per level
        self._path = np.zeros(levels, dtype=np.int64)
        self._stack = np.zeros((levels + 1, 3), dtype=np.int64)

        allocated = build_nodes(
            lo,
            hi,
            self.nodes_lo,
            self.nodes_hi,
            self.nodes_mid,
            self.nodes_left,
            self.nodes_right,
            self._stack[:, 0],
        )
        assert allocated == num_nodes

    @classmethod
    def from_values(cls, values, lo=0, op="sum", dtype=None):
        """
        Builds a tree over [lo, lo + len(values)) with leaf i - lo set to
        values[i - lo], recombining all internal nodes in a single pass.
        """
        values = np.asarray(values)
        if values.ndim != 1:
            raise ValueError("values must be one dimensional")
        if dtype is None:
            dtype = np.float64 if values.dtype.kind == "f" else np.int64
        lo = check_integer(lo, "lo")
        tree = cls(lo, lo + values.size, op=op, dtype=dtype)
        load_nodes(
            tree._code,
            check_values(values, tree.dtype),
            lo,
            tree.nodes_lo,
            tree.nodes_left,
            tree.nodes_right,
            tree.nodes_value,
        )
        return tree

    @property
    def interval(self):
        return self.lo, self.hi

    @property
    def num_nodes(self):
        return self.nodes_value.size

    def __len__(self):
        return self.hi - self.lo

    def __repr__(self):
        return (
            f"SegmentTree(lo={self.lo}, hi={self.hi}, op={self.op!r}, "
            f"dtype={self.dtype.name})"
        )

    def _coerce_value(self, value):
        if not isinstance(value, numbers.Real):
            raise TypeError(f"value must be a real number, got {type(value).__name__}")
        if self.dtype.kind == "f":
            try:
                return self.dtype.type(value)
            except OverflowError:
                raise ValueError(f"Value {value} does not fit in {self.dtype.name}")
        if not isinstance(value, numbers.Integral):
            value = float(value)
            if not value.is_integer():
                raise ValueError(f"Cannot store {value} in an integer tree")
        value = int(value)
        info = np.iinfo(self.dtype)
        if value < info.min or value > info.max:
            raise ValueError(f"Value {value} does not fit in {self.dtype.name}")
        return self.dtype.type(value)

    def update(self, index, value):
        """
        Replaces the value at ``index`` and recombines all of its ancestors.
        """
        index = check_integer(index, "index")
        if index < self.lo or index >= self.hi:
            raise IndexOutOfRange(index, self.lo, self.hi)
        value = self._coerce_value(value)
        update_nodes(
            self._code,
            index,
            value,
            self.nodes_lo,
            self.nodes_mid,
            self.nodes_left,
            self.nodes_right,
            self.nodes_value,
            self._path,
        )

    def query(self, lo_q, hi_q):
        """
        Returns the combination of all values with index in [lo_q, hi_q).
        Empty and inverted ranges are rejected, as are ranges reaching
        outside the tree.
        """
        lo_q = check_integer(lo_q, "lo_q")
        hi_q = check_integer(hi_q, "hi_q")
        if lo_q >= hi_q or lo_q < self.lo or hi_q > self.hi:
            raise InvalidQueryRange(lo_q, hi_q, self.lo, self.hi)
        if lo_q == self.lo and hi_q == self.hi:
            return self.total()
        return query_nodes(
            self._code,
            self.neutral,
            lo_q,
            hi_q,
            self.nodes_lo,
            self.nodes_hi,
            self.nodes_mid,
            self.nodes_left,
            self.nodes_right,
            self.nodes_value,
            self._stack,
        )

    def total(self):
        # passing the root through the operator keeps a single-leaf gcd
        # tree non-negative like every other gcd result
        return combine.combine(self._code, self.neutral, self.nodes_value[0])

    def __getitem__(self, index):
        index = check_integer(index, "index")
        if index < self.lo or index >= self.hi:
            raise IndexOutOfRange(index, self.lo, self.hi)
        return self.query(index, index + 1)

    def __setitem__(self, index, value):
        self.update(index, value)

    def values(self):
        leaves = self.nodes_left == NULL
        ret = np.empty(len(self), dtype=self.dtype)
        ret[self.nodes_lo[leaves] - self.lo] = self.nodes_value[leaves]
        return ret

    def check_invariant(self):
        return check_nodes(
            self._code,
            self.nodes_lo,
            self.nodes_hi,
            self.nodes_mid,
            self.nodes_left,
            self.nodes_right,
            self.nodes_value,
        )


# Helper functions mirroring the plain call surface
def build(lo, hi, op="sum", dtype=np.int64):
    return SegmentTree(lo, hi, op=op, dtype=dtype)


def update(tree, index, value):
    tree.update(index, value)


def query(tree, lo_q, hi_q):
    return tree.query(lo_q, hi_q)
