class SegmentTreeError(Exception):
    """Base class for contract violations on a segment tree."""


class InvalidRange(SegmentTreeError, ValueError):
    """Construction was requested over an empty or inverted interval."""

    def __init__(self, lo, hi):
        self.lo = lo
        self.hi = hi
        super().__init__(
            f"Invalid range [{lo}, {hi}): left bound must be less than right bound"
        )


class IndexOutOfRange(SegmentTreeError, IndexError):
    """A point access fell outside the interval covered by the tree."""

    def __init__(self, index, lo, hi):
        self.index = index
        self.lo = lo
        self.hi = hi
        super().__init__(f"Target index {index} out of range [{lo}, {hi})")


class InvalidQueryRange(SegmentTreeError, ValueError):
    """A query range was empty, inverted or not contained in the tree."""

    def __init__(self, lo_q, hi_q, lo, hi):
        self.lo_q = lo_q
        self.hi_q = hi_q
        self.lo = lo
        self.hi = hi
        super().__init__(
            f"Invalid query range [{lo_q}, {hi_q}) for tree over [{lo}, {hi})"
        )
