"""Plain Monte Carlo integration."""

import math

import torch

from torchintegration._integrator import IntegrationStatus
from torchintegration.monte_carlo._multivariate import MultivariateIntegrator

_TINY = 1.0e-30

_STOPPING_RULES = ("relative", "confidence")


class MonteCarloIntegrator(MultivariateIntegrator):
    """
    Plain Monte Carlo integration over a box.

    Points are drawn uniformly in the box; the running mean ``<f>`` and mean
    square ``<f**2>`` give the estimate ``V * <f>`` and the standard error
    ``V * sqrt((<f**2> - <f>**2) / N)``. Sampling stops as soon as more than
    ``min_iterations`` points were used and the stopping rule holds:

    - ``"relative"``: ``|standard_error / result| < relative_tolerance``.
    - ``"confidence"``: ``z * standard_error <= absolute_tolerance +
      relative_tolerance * |result|``, with ``z`` the standard normal quantile
      of the two-sided ``confidence`` level (1.96 at 0.95).

    The integrand is called on batches of at most ``batch_size`` points, but
    the stopping rule is applied after every single point. Points evaluated
    past the stopping point count as function evaluations but do not enter
    the estimate.

    Parameters
    ----------
    function : callable
        Integrand. Receives points of shape ``(n, D)``, returns ``(n,)``.
    lower, upper : sequence of float or Tensor
        Box limits, one per dimension.
    stopping_rule : str
        ``"relative"`` (default) or ``"confidence"``.
    confidence : float
        Two-sided confidence level for the ``"confidence"`` rule.
    batch_size : int
        Largest number of points per integrand call.
    **kwargs
        ``dimensions``, ``use_sobol_sequence``, ``seed``, ``generator`` and any
        field of :class:`~torchintegration.IntegrationConfig`.

    Attributes
    ----------
    standard_error : float
        Estimated standard error of :attr:`result`.

    Examples
    --------
    >>> mc = MonteCarloIntegrator(
    ...     lambda x: (x.square().sum(-1) < 1).double(),
    ...     [-1, -1], [1, 1], seed=12345, relative_tolerance=1e-3,
    ... )
    >>> mc.integrate()  # approximately pi
    """

    def __init__(
        self,
        function,
        lower,
        upper,
        *,
        stopping_rule: str = "relative",
        confidence: float = 0.95,
        batch_size: int = 4096,
        **kwargs,
    ):
        super().__init__(function, lower, upper, **kwargs)
        if stopping_rule not in _STOPPING_RULES:
            raise ValueError(
                "stopping_rule must be 'relative' or 'confidence', "
                f"got '{stopping_rule}'"
            )
        if not 0.0 < confidence < 1.0:
            raise ValueError(
                f"confidence must be in (0, 1), got {confidence}"
            )
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.stopping_rule = stopping_rule
        self.confidence = confidence
        self.batch_size = batch_size
        self.standard_error = math.nan

    def clear_results(self) -> None:
        super().clear_results()
        self.standard_error = math.nan

    def _integrate(self) -> None:
        config = self.config
        volume = self.volume
        lower = self.lower
        width = self.bounds.width()
        z = torch.special.ndtri(
            torch.tensor(0.5 + self.confidence / 2.0, dtype=torch.float64)
        )
        limit = min(config.max_iterations, config.max_function_evaluations)

        total = 0.0
        total_squares = 0.0
        count = 0
        while count < limit:
            n = min(self.batch_size, limit - count)
            values = self._evaluate(lower + width * self._uniform(n))

            sums = total + torch.cumsum(values, dim=0)
            sums_squares = total_squares + torch.cumsum(values * values, dim=0)
            counts = torch.arange(
                count + 1, count + n + 1, dtype=torch.float64
            )
            average = sums / counts
            average_squares = sums_squares / counts
            variance = torch.clamp(
                (average_squares - average * average) / counts, min=_TINY
            )
            result = average * volume
            standard_error = torch.sqrt(variance) * volume

            if self.stopping_rule == "relative":
                converged = torch.abs(standard_error / result) < (
                    config.relative_tolerance
                )
            else:
                converged = z * standard_error <= (
                    config.absolute_tolerance
                    + config.relative_tolerance * torch.abs(result)
                )
            converged = converged & (counts > config.min_iterations)

            hits = torch.nonzero(converged)
            stop = int(hits[0, 0]) if hits.numel() > 0 else n - 1

            self.outcome.iterations = count + stop + 1
            self.outcome.result = float(result[stop])
            self.standard_error = float(standard_error[stop])

            if hits.numel() > 0:
                self.update_status(IntegrationStatus.SUCCESS)
                return

            total = float(sums[-1])
            total_squares = float(sums_squares[-1])
            count += n

        if self._budget_exhausted():
            self.update_status(
                IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
            )
        else:
            self.update_status(IntegrationStatus.MAX_ITERATIONS_REACHED)
