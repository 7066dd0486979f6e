"""MISER recursive stratified sampling."""

import logging
import math
from typing import Tuple

import torch
from torch import Tensor

from torchintegration._integrator import IntegrationStatus
from torchintegration.monte_carlo._multivariate import MultivariateIntegrator

logger = logging.getLogger(__name__)

_TINY = 1.0e-30
_BIG = 1.0e30


def _dither_sequence(iran: int) -> int:
    return (iran * 2661 + 36979) % 175000


class Miser(MultivariateIntegrator):
    """
    MISER Monte Carlo integration by recursive stratified sampling.

    A fraction of each region's points is spent on a preliminary uniform
    sample. For every axis the region is split at its midpoint and the
    spread of the integrand on each side is measured; the region is bisected
    along the axis with the smallest combined spread and the remaining
    points are divided between the halves in proportion to their spread.
    Regions with fewer than ``min_bisection_points`` points are integrated
    with plain Monte Carlo.

    The total number of points is ``max_function_evaluations``.

    Parameters
    ----------
    function : callable
        Integrand. Receives points of shape ``(n, D)``, returns ``(n,)``.
    lower, upper : sequence of float or Tensor
        Box limits, one per dimension.
    fraction : float
        Fraction of a region's points used for the preliminary sample.
    min_subregion_points : int
        Least number of points spent in any terminal region.
    min_bisection_points : int
        Least number of points a region needs to be bisected. At least
        ``4 * min_subregion_points``. A region is also sampled directly when
        its preliminary sample leaves fewer than ``2 * min_subregion_points``
        points for the halves.
    dither : float
        Offset of the bisection point from the midpoint, in ``[0, 0.5)``.
        Set to about 0.1 when the active region of the integrand falls on a
        power-of-two subdivision of the box.
    max_depth : int
        Deepest bisection level; deeper regions use plain Monte Carlo.
    use_sobol_sequence : bool
        Sample with the Sobol sequence (default) instead of the pseudo-random
        source.
    **kwargs
        ``dimensions``, ``seed``, ``generator`` and any field of
        :class:`~torchintegration.IntegrationConfig`.

    Attributes
    ----------
    standard_error : float
        Estimated standard error of :attr:`result`.

    References
    ----------
    Press, W. H., & Farrar, G. R. (1990). Recursive stratified sampling for
    multidimensional Monte Carlo integration. Computers in Physics, 4(2),
    190-195.
    """

    def __init__(
        self,
        function,
        lower,
        upper,
        *,
        fraction: float = 0.1,
        min_subregion_points: int = 15,
        min_bisection_points: int = 60,
        dither: float = 0.0,
        max_depth: int = 100,
        use_sobol_sequence: bool = True,
        **kwargs,
    ):
        super().__init__(
            function,
            lower,
            upper,
            use_sobol_sequence=use_sobol_sequence,
            **kwargs,
        )
        self.fraction = fraction
        self.min_subregion_points = min_subregion_points
        self.min_bisection_points = min_bisection_points
        self.dither = dither
        self.max_depth = max_depth
        self.standard_error = math.nan

    def validate(self) -> None:
        super().validate()
        if not 0.0 < self.fraction < 1.0:
            raise ValueError(f"fraction must be in (0, 1), got {self.fraction}")
        if self.min_subregion_points < 1:
            raise ValueError(
                "min_subregion_points must be at least 1, "
                f"got {self.min_subregion_points}"
            )
        if self.min_bisection_points < 4 * self.min_subregion_points:
            raise ValueError(
                "min_bisection_points must be at least 4 * "
                f"min_subregion_points ({4 * self.min_subregion_points}), "
                f"got {self.min_bisection_points}"
            )
        if not 0.0 <= self.dither < 0.5:
            raise ValueError(f"dither must be in [0, 0.5), got {self.dither}")
        if self.max_depth < 0:
            raise ValueError(
                f"max_depth must be non-negative, got {self.max_depth}"
            )

    def clear_results(self) -> None:
        super().clear_results()
        self.standard_error = math.nan

    def _integrate(self) -> None:
        volume = self.volume
        average, variance = self._miser(
            self.lower,
            self.upper,
            self.config.max_function_evaluations,
            self.max_depth,
        )
        self.outcome.result = average * volume
        self.standard_error = math.sqrt(variance) * volume
        self.update_status(IntegrationStatus.SUCCESS)

    def _sample(self, lower: Tensor, upper: Tensor, n: int) -> Tensor:
        return self._evaluate(lower + (upper - lower) * self._uniform(n))

    def _miser(
        self, lower: Tensor, upper: Tensor, npts: int, depth: int
    ) -> Tuple[float, float]:
        """Mean and variance of the mean of the integrand over a region."""
        self.outcome.iterations += 1

        mnpt = self.min_subregion_points
        npre = max(int(npts * self.fraction), mnpt)

        if (
            npts < self.min_bisection_points
            or depth <= 0
            or npts - npre < 2 * mnpt
        ):
            n = max(npts, 1)
            values = self._sample(lower, upper, n)
            total = float(values.sum())
            total_squares = float((values * values).sum())
            average = total / n
            variance = max(_TINY, (total_squares - total * total / n) / (n * n))
            return average, variance

        ndim = self.dimensions

        iran = 0
        midpoints = torch.empty(ndim, dtype=torch.float64)
        for j in range(ndim):
            iran = _dither_sequence(iran)
            s = self.dither if iran - 87500 >= 0 else -self.dither
            midpoints[j] = (0.5 + s) * lower[j] + (0.5 - s) * upper[j]

        # Preliminary uniform sample
        points = lower + (upper - lower) * self._uniform(npre)
        values = self._evaluate(points).unsqueeze(1).expand(-1, ndim)
        left = points <= midpoints
        big = torch.full_like(values, _BIG)
        fmin_left = torch.where(left, values, big).amin(dim=0).tolist()
        fmax_left = torch.where(left, values, -big).amax(dim=0).tolist()
        fmin_right = torch.where(left, big, values).amin(dim=0).tolist()
        fmax_right = torch.where(left, -big, values).amax(dim=0).tolist()

        # Bisect the axis with the smallest combined spread
        best = _BIG
        axis = -1
        sigma_left = sigma_right = 1.0
        for j in range(ndim):
            if fmax_left[j] > fmin_left[j] and fmax_right[j] > fmin_right[j]:
                sl = max(_TINY, (fmax_left[j] - fmin_left[j]) ** (2.0 / 3.0))
                sr = max(_TINY, (fmax_right[j] - fmin_right[j]) ** (2.0 / 3.0))
                if sl + sr < best:
                    best = sl + sr
                    axis = j
                    sigma_left = sl
                    sigma_right = sr
        if axis == -1:
            axis = (ndim * iran) // 175000

        low = float(lower[axis])
        mid = float(midpoints[axis])
        high = float(upper[axis])
        fraction_left = abs((mid - low) / (high - low))
        npts_left = int(
            mnpt
            + (npts - npre - 2 * mnpt)
            * fraction_left
            * sigma_left
            / (fraction_left * sigma_left + (1.0 - fraction_left) * sigma_right)
        )
        npts_right = npts - npre - npts_left

        logger.debug(
            "Bisecting axis %d at %g with %d/%d points", axis, mid, npts_left,
            npts_right,
        )

        upper_left = upper.clone()
        upper_left[axis] = mid
        lower_right = lower.clone()
        lower_right[axis] = mid
        average_left, variance_left = self._miser(
            lower, upper_left, npts_left, depth - 1
        )
        average_right, variance_right = self._miser(
            lower_right, upper, npts_right, depth - 1
        )
        average = (
            fraction_left * average_left + (1.0 - fraction_left) * average_right
        )
        variance = (
            fraction_left * fraction_left * variance_left
            + (1.0 - fraction_left) ** 2 * variance_right
        )
        return average, variance
