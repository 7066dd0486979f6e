"""VEGAS adaptive importance sampling."""

import enum
import logging
import math
from typing import Optional

import torch
from torch import Tensor

from torchintegration._exceptions import IntegrationError
from torchintegration._integrator import IntegrationStatus
from torchintegration.monte_carlo._multivariate import MultivariateIntegrator

logger = logging.getLogger(__name__)

_TINY = 1.0e-30


class VegasStart(enum.IntEnum):
    """How a VEGAS run reuses the state of the previous run."""

    #: Fresh uniform grid and fresh accumulated results.
    COLD = 0
    #: Keep the grid, discard the accumulated results.
    INHERIT_GRID = 1
    #: Keep the grid and the accumulated results.
    INHERIT_RESULTS = 2
    #: Keep everything, including the sampling set-up, and run more
    #: iterations.
    CONTINUE = 3


def _rebin(edges: Tensor, weights: Tensor, bins: int) -> Tensor:
    """
    Redistribute bin edges so each new bin holds an equal share of weight.

    Parameters
    ----------
    edges : Tensor
        Upper edges of the current bins in ``(0, 1]``, shape ``(m,)``. The
        lower edge of the first bin is 0.
    weights : Tensor
        Weight of each current bin, shape ``(m,)``.
    bins : int
        Number of new bins.

    Returns
    -------
    Tensor
        Upper edges of the new bins, shape ``(bins,)``, ending at 1.
    """
    step = weights.sum() / bins
    cumulative = torch.cumsum(weights, dim=0)
    targets = step * torch.arange(1, bins, dtype=torch.float64)
    k = torch.searchsorted(cumulative, targets).clamp(max=edges.numel() - 1)
    residual = cumulative[k] - targets
    upper = edges[k]
    lower = torch.cat([edges.new_zeros(1), edges])[k]
    inner = upper - (upper - lower) * residual / weights[k]
    return torch.cat([inner, edges.new_ones(1)])


def _smooth(d: Tensor) -> Tensor:
    """Average each bin with its neighbours along the last axis."""
    if d.shape[-1] < 2:
        return d.clone()
    smoothed = torch.empty_like(d)
    smoothed[:, 0] = (d[:, 0] + d[:, 1]) / 2.0
    smoothed[:, -1] = (d[:, -2] + d[:, -1]) / 2.0
    smoothed[:, 1:-1] = (d[:, :-2] + d[:, 1:-1] + d[:, 2:]) / 3.0
    return smoothed


class Vegas(MultivariateIntegrator):
    """
    VEGAS adaptive Monte Carlo integration.

    Each axis carries a grid of bins in the unit interval whose widths are
    adapted between iterations so that more points land where ``|f|`` is
    large. Every iteration samples about ``function_calls`` points and the
    per-iteration estimates are combined with inverse-variance weights. When
    enough points are available the box is also stratified into equal cells.

    The integrand receives the points and their sampling weights:
    ``f(x, weight)`` with ``x`` of shape ``(n, D)`` and ``weight`` of shape
    ``(n,)``, and returns ``(n,)``.

    State is kept between runs; ``start`` selects how much of it is reused
    (see :class:`VegasStart`).

    Parameters
    ----------
    function : callable
        Integrand ``f(x, weight)``.
    lower, upper : sequence of float or Tensor
        Box limits, one per dimension, at most 20 dimensions. In the
        probability domain these are standard normal quantiles.
    function_calls : int
        Approximate number of points per iteration.
    independent_evaluations : int
        Number of iterations per run.
    bins : int
        Number of grid bins per axis.
    alpha : float
        Damping exponent of the grid refinement.
    start : VegasStart
        How the next run reuses previous state.
    stratified : bool
        Stratify the box into cells when enough points are available. If
        False only importance sampling is used. Takes effect on a cold start.
    probability_domain : bool
        Integrate in the probability domain: points are drawn uniformly in
        ``[Phi(lower), Phi(upper)]`` and ``f`` receives their standard normal
        quantiles, so the result is ``E[f(Z)]`` restricted to the box for
        standard normal ``Z``. The points handed to ``f`` are the quantiles,
        never points drawn uniformly between ``lower`` and ``upper``; only
        the Jacobian uses the probability widths ``Phi(upper) - Phi(lower)``.
    check_convergence : bool
        Stop before ``independent_evaluations`` iterations once more than one
        iteration has run and ``|standard_error / result|`` is below
        ``relative_tolerance``.
    use_sobol_sequence : bool
        Sample with the Sobol sequence (default) instead of the pseudo-random
        source.
    **kwargs
        ``dimensions``, ``seed``, ``generator`` and any field of
        :class:`~torchintegration.IntegrationConfig`.

    Attributes
    ----------
    standard_error : float
        Standard error of the combined estimate.
    chi_squared : float
        Chi-squared per degree of freedom of the per-iteration estimates.
        Values well above 1 signal inconsistent iterations.

    References
    ----------
    Lepage, G. P. (1978). A new algorithm for adaptive multidimensional
    integration. Journal of Computational Physics, 27(2), 192-203.
    """

    max_dimensions = 20

    def __init__(
        self,
        function,
        lower,
        upper,
        *,
        function_calls: int = 1000,
        independent_evaluations: int = 10,
        bins: int = 50,
        alpha: float = 1.5,
        start: VegasStart = VegasStart.COLD,
        stratified: bool = True,
        probability_domain: bool = False,
        check_convergence: bool = False,
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
        self.function_calls = function_calls
        self.independent_evaluations = independent_evaluations
        self.bins = bins
        self.alpha = alpha
        self.start = VegasStart(start)
        self.stratified = stratified
        self.probability_domain = probability_domain
        self.check_convergence = check_convergence

        self.standard_error = math.nan
        self.chi_squared = math.nan

        # Persistent state
        self._grid: Optional[Tensor] = None
        self._mds = 1
        self._sum_weighted = 0.0
        self._sum_weights = 0.0
        self._sum_chi = 0.0
        self._setup: Optional[dict] = None

    @property
    def grid(self) -> Optional[Tensor]:
        """Upper bin edges per axis in the unit interval, shape ``(D, nd)``."""
        return None if self._grid is None else self._grid.clone()

    def validate(self) -> None:
        super().validate()
        if self.function_calls < 2:
            raise ValueError(
                f"function_calls must be at least 2, got {self.function_calls}"
            )
        if self.independent_evaluations < 1:
            raise ValueError(
                "independent_evaluations must be at least 1, "
                f"got {self.independent_evaluations}"
            )
        if self.bins < 2:
            raise ValueError(f"bins must be at least 2, got {self.bins}")
        if not self.alpha > 0.0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")

    def clear_results(self) -> None:
        super().clear_results()
        self.standard_error = math.nan
        self.chi_squared = math.nan

    def _integrate(self) -> None:
        start = self.start
        if start > VegasStart.COLD and self._grid is None:
            logger.debug("No previous grid, starting cold")
            start = VegasStart.COLD
        if start == VegasStart.CONTINUE and self._setup is None:
            start = VegasStart.INHERIT_RESULTS

        if start <= VegasStart.COLD:
            self._mds = 1 if self.stratified else 0
            self._grid = torch.ones(self.dimensions, 1, dtype=torch.float64)
        if start <= VegasStart.INHERIT_GRID:
            self._sum_weighted = 0.0
            self._sum_weights = 0.0
            self._sum_chi = 0.0
        if start <= VegasStart.INHERIT_RESULTS:
            self._setup = self._set_up()

        setup = self._setup
        for it in range(self.independent_evaluations):
            integral, variance, d = self._sweep(setup)

            weight = 1.0 / variance
            self._sum_weighted += weight * integral
            self._sum_chi += weight * integral * integral
            self._sum_weights += weight
            result = self._sum_weighted / self._sum_weights
            self.chi_squared = max(
                0.0,
                (self._sum_chi - self._sum_weighted * result) / (it + 0.0001),
            )
            self.standard_error = math.sqrt(1.0 / self._sum_weights)
            self.outcome.result = result
            self.outcome.iterations += 1

            logger.debug(
                "Iteration %d: integral=%g +/- %g, result=%g +/- %g, chi2=%g",
                it + 1,
                integral,
                math.sqrt(variance),
                result,
                self.standard_error,
                self.chi_squared,
            )

            self._refine(d, setup["bins"])

            if self._budget_exhausted():
                break
            if (
                self.check_convergence
                and it > 0
                and abs(self.standard_error / result)
                < self.config.relative_tolerance
            ):
                break

        if self._budget_exhausted():
            self.update_status(
                IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
            )
        else:
            self.update_status(IntegrationStatus.SUCCESS)

    def _set_up(self) -> dict:
        """Stratification, per-cell point count and Jacobian for a run."""
        ndim = self.dimensions
        ncall = self.function_calls
        nd = self.bins
        ng = 1
        npg = 0
        if self._mds != 0:
            ng = int((ncall / 2.0 + 0.25) ** (1.0 / ndim))
            self._mds = 1
            if 2 * ng - self.bins >= 0:
                self._mds = -1
                npg = ng // self.bins + 1
                nd = ng // npg
                ng = npg * nd

        cells = ng**ndim
        npg = max(ncall // cells, 2)
        calls = float(npg) * float(cells)
        dxg = 1.0 / ng
        dv2g = (calls * dxg**ndim) ** 2 / npg / npg / (npg - 1.0)
        dxg *= nd

        if self.probability_domain:
            lower = torch.special.ndtr(self.lower)
            width = torch.special.ndtr(self.upper) - lower
        else:
            lower = self.lower
            width = self.bounds.width()
        jacobian = float(torch.prod(width)) / calls

        if self._grid.shape[1] != nd:
            ones = torch.ones(self._grid.shape[1], dtype=torch.float64)
            self._grid = torch.stack(
                [_rebin(row, ones, nd) for row in self._grid]
            )

        logger.debug(
            "Set up %d cells of %d points, %d bins, stratification mode %d",
            cells,
            npg,
            nd,
            self._mds,
        )
        return {
            "bins": nd,
            "strata": ng,
            "points_per_cell": npg,
            "dxg": dxg,
            "dv2g": dv2g,
            "jacobian": jacobian,
            "lower": lower,
            "width": width,
        }

    def _sweep(self, setup: dict):
        """One pass over every cell. Returns the estimate, its variance and
        the per-bin importance ``(D, nd)``."""
        ndim = self.dimensions
        nd = setup["bins"]
        ng = setup["strata"]
        npg = setup["points_per_cell"]

        # Cells in odometer order, last axis fastest
        axes = [torch.arange(1, ng + 1, dtype=torch.float64)] * ndim
        cells = torch.cartesian_prod(*axes).reshape(-1, ndim)
        n_cells = cells.shape[0]

        u = self._uniform(n_cells * npg).reshape(n_cells, npg, ndim)
        xn = (cells.unsqueeze(1) - u) * setup["dxg"] + 1.0
        ia = torch.clamp(xn.long(), 1, nd).reshape(-1, ndim)
        xn = xn.reshape(-1, ndim)

        padded = torch.cat(
            [torch.zeros(ndim, 1, dtype=torch.float64), self._grid], dim=1
        )
        index = ia.T
        upper_edge = torch.gather(padded, 1, index).T
        lower_edge = torch.gather(padded, 1, index - 1).T
        xo = upper_edge - lower_edge
        rc = lower_edge + (xn - ia) * xo
        x = setup["lower"] + rc * setup["width"]
        if self.probability_domain:
            x = torch.special.ndtri(x)
        weight = setup["jacobian"] * torch.prod(xo * nd, dim=1)

        f = weight * self._evaluate(x, weight)

        per_cell = f.reshape(n_cells, npg)
        fb = per_cell.sum(dim=1)
        f2b = torch.sqrt((per_cell * per_cell).sum(dim=1) * npg)
        f2b = (f2b - fb) * (f2b + fb)
        f2b = torch.where(f2b <= 0.0, torch.full_like(f2b, _TINY), f2b)

        d = torch.zeros(ndim, nd, dtype=torch.float64)
        if self._mds >= 0:
            d.scatter_add_(1, index - 1, (f * f).expand(ndim, -1))
        else:
            last = ia.reshape(n_cells, npg, ndim)[:, -1, :].T
            d.scatter_add_(1, last - 1, f2b.expand(ndim, -1))

        integral = float(fb.sum())
        variance = float(f2b.sum()) * setup["dv2g"]
        return integral, variance, d

    def _refine(self, d: Tensor, nd: int) -> None:
        """Move bin edges towards the bins with the largest contribution."""
        d = _smooth(d)
        dt = d.sum(dim=1)
        d = torch.clamp(d, min=_TINY)
        rows = []
        for j in range(self.dimensions):
            if dt[j] < _TINY:
                rows.append(self._grid[j])
                continue
            r = (
                (1.0 - d[j] / dt[j]) / (torch.log(dt[j]) - torch.log(d[j]))
            ) ** self.alpha
            rows.append(_rebin(self._grid[j], r, nd))
        grid = torch.stack(rows)
        if not torch.all(torch.isfinite(grid)):
            raise IntegrationError("The VEGAS grid became non-finite")
        self._grid = grid
