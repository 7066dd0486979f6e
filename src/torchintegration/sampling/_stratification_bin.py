"""Stratification bins over a one-dimensional domain."""

import functools
from dataclasses import dataclass


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class StratificationBin:
    """
    An immutable ``(lower_bound, upper_bound, weight)`` triple.

    Parameters
    ----------
    lower_bound, upper_bound : float
        Bin limits, ``lower_bound <= upper_bound``.
    weight : float
        Bin weight. A negative value (the default) means the bin width.

    Notes
    -----
    Bins order by position. Comparing two overlapping bins raises
    ``ValueError``.
    """

    lower_bound: float
    upper_bound: float
    weight: float = -1.0

    def __post_init__(self):
        if self.lower_bound > self.upper_bound:
            raise ValueError(
                "The upper bound must be greater than or equal to the lower "
                f"bound, got [{self.lower_bound}, {self.upper_bound}]"
            )
        if self.weight < 0.0:
            object.__setattr__(
                self, "weight", self.upper_bound - self.lower_bound
            )

    @property
    def midpoint(self) -> float:
        return (self.lower_bound + self.upper_bound) / 2.0

    @property
    def width(self) -> float:
        return self.upper_bound - self.lower_bound

    def overlaps(self, other: "StratificationBin") -> bool:
        return (
            self.lower_bound < other.upper_bound
            and other.lower_bound < self.upper_bound
            and not self._same_limits(other)
        )

    def _same_limits(self, other: "StratificationBin") -> bool:
        return (
            self.lower_bound == other.lower_bound
            and self.upper_bound == other.upper_bound
        )

    def __eq__(self, other):
        if not isinstance(other, StratificationBin):
            return NotImplemented
        return self._same_limits(other)

    def __hash__(self):
        return hash((self.lower_bound, self.upper_bound))

    def __lt__(self, other):
        if not isinstance(other, StratificationBin):
            return NotImplemented
        if self.overlaps(other):
            raise ValueError(f"The bins {self} and {other} overlap")
        return self.upper_bound <= other.lower_bound
