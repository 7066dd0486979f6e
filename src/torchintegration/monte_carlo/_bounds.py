"""Validated integration bounds for a D-dimensional box."""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import torch
from torch import Tensor

Limits = Union[Sequence[float], Tensor]


def _to_tuple(values: Limits, name: str) -> Tuple[float, ...]:
    if values is None:
        raise ValueError(f"{name} cannot be None")
    flat = torch.as_tensor(values, dtype=torch.float64).reshape(-1)
    return tuple(flat.tolist())


@dataclass(frozen=True)
class Bounds:
    """
    Per-dimension ``(lower, upper)`` limits of an integration box.

    Use :meth:`from_limits` to build validated bounds.

    Attributes
    ----------
    lower, upper : tuple of float
        Lower and upper corner, ``upper[i] > lower[i]`` for every ``i``.
    """

    lower: Tuple[float, ...]
    upper: Tuple[float, ...]

    @classmethod
    def from_limits(
        cls,
        lower: Limits,
        upper: Limits,
        *,
        dimensions: Optional[int] = None,
        max_dimensions: Optional[int] = None,
    ) -> "Bounds":
        """
        Validate and build bounds.

        Parameters
        ----------
        lower, upper : sequence of float or Tensor
            Lower and upper limits, one per dimension.
        dimensions : int, optional
            Expected number of dimensions.
        max_dimensions : int, optional
            Largest number of dimensions allowed.

        Raises
        ------
        ValueError
            If there are no dimensions, the limits disagree in length (or
            with ``dimensions``), exceed ``max_dimensions``, are not finite,
            or any ``upper[i] <= lower[i]``.
        """
        lo = _to_tuple(lower, "lower")
        hi = _to_tuple(upper, "upper")
        n = len(lo) if dimensions is None else dimensions

        if n < 1:
            raise ValueError(
                f"There must be at least 1 dimension to evaluate, got {n}"
            )
        if len(lo) != n or len(hi) != n:
            raise ValueError(
                "The lower and upper limits must have the same length as the "
                f"number of dimensions ({n}), got {len(lo)} and {len(hi)}"
            )
        if max_dimensions is not None and n > max_dimensions:
            raise ValueError(
                f"The maximum number of dimensions is {max_dimensions}, got {n}"
            )
        for i, (a, b) in enumerate(zip(lo, hi)):
            if not (math.isfinite(a) and math.isfinite(b)):
                raise ValueError(
                    f"The limits must be finite, got [{a}, {b}] in dimension {i}"
                )
            if b <= a:
                raise ValueError(
                    "The upper limit cannot be less than or equal to the lower "
                    f"limit, got [{a}, {b}] in dimension {i}"
                )
        return cls(lo, hi)

    @property
    def dimensions(self) -> int:
        return len(self.lower)

    @property
    def volume(self) -> float:
        return math.prod(b - a for a, b in zip(self.lower, self.upper))

    def lower_tensor(self) -> Tensor:
        return torch.tensor(self.lower, dtype=torch.float64)

    def upper_tensor(self) -> Tensor:
        return torch.tensor(self.upper, dtype=torch.float64)

    def width(self) -> Tensor:
        return self.upper_tensor() - self.lower_tensor()

    def region(self) -> Tensor:
        """The ``2 * D`` vector of lower corner followed by upper corner."""
        return torch.tensor(self.lower + self.upper, dtype=torch.float64)
