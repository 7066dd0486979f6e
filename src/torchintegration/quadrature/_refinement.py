"""Iterative refinement quadrature: trapezoidal rule and Simpson's rule."""

import abc

import torch

from torchintegration._integrator import IntegrationStatus
from torchintegration.quadrature._univariate import UnivariateIntegrator

# Convergence is not tested before this many refinement steps.
_MIN_STEPS_BEFORE_CONVERGENCE = 3


class _RefinementRule(UnivariateIntegrator):
    """
    Repeatedly doubles the number of trapezoid panels until successive
    estimates converge.

    Step 1 evaluates both endpoints. Step ``n > 1`` evaluates only the
    ``2**(n - 2)`` midpoints of the current panels and folds their sum into
    the running trapezoid estimate, so no abscissa is evaluated twice.
    """

    def __init__(self, function, a, b, **config):
        super().__init__(function, a, b, **config)
        self._trapezoid = 0.0

    def _refine(self) -> float:
        """Advance the trapezoid estimate by one refinement level."""
        self.outcome.iterations += 1
        a, b = self.a, self.b
        level = self.outcome.iterations
        if level == 1:
            fa, fb = self._evaluate_at([a, b])
            self._trapezoid = 0.5 * (b - a) * (fa + fb)
        else:
            count = 1 << (level - 2)
            spacing = (b - a) / count
            x = a + spacing * (
                torch.arange(count, dtype=torch.float64) + 0.5
            )
            total = self._evaluate(x).sum().item()
            self._trapezoid = 0.5 * (self._trapezoid + (b - a) * total / count)
        return self._trapezoid

    @abc.abstractmethod
    def _combine(self, fine: float, coarse: float) -> float:
        """Estimate from the current and previous trapezoid sums."""

    def _integrate(self) -> None:
        self._trapezoid = 0.0
        previous = 0.0
        coarse = 0.0
        for step in range(self.config.max_iterations):
            fine = self._refine()
            estimate = self._combine(fine, coarse)
            self.outcome.result = estimate

            if self._budget_exhausted():
                self.update_status(
                    IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
                )
                return

            if step >= _MIN_STEPS_BEFORE_CONVERGENCE:
                if self.evaluate_convergence(previous, estimate) or (
                    estimate == 0.0 and previous == 0.0
                ):
                    self.update_status(IntegrationStatus.SUCCESS)
                    return

            previous = estimate
            coarse = fine

        self.update_status(IntegrationStatus.MAX_ITERATIONS_REACHED)


class TrapezoidalRule(_RefinementRule):
    """
    Trapezoidal rule refined to convergence.

    Parameters
    ----------
    function : callable
        Integrand, elementwise over a 1-D float64 tensor.
    a, b : float
        Integration bounds, ``b > a``.
    **config
        Any field of :class:`~torchintegration.IntegrationConfig`.

    Examples
    --------
    >>> rule = TrapezoidalRule(torch.sin, 0, torch.pi)
    >>> rule.integrate()  # approximately 2.0
    """

    def _combine(self, fine: float, coarse: float) -> float:
        return fine


class SimpsonsRule(_RefinementRule):
    """
    Simpson's rule refined to convergence.

    Each estimate Richardson-combines two consecutive trapezoid levels,
    ``S = (4 * T_fine - T_coarse) / 3``, cancelling the leading ``h**2``
    error term. Exact for cubic polynomials once two levels are available.

    Parameters
    ----------
    function : callable
        Integrand, elementwise over a 1-D float64 tensor.
    a, b : float
        Integration bounds, ``b > a``.
    **config
        Any field of :class:`~torchintegration.IntegrationConfig`.
    """

    def _combine(self, fine: float, coarse: float) -> float:
        return (4.0 * fine - coarse) / 3.0
