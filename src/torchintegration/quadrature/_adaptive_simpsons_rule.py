"""Recursive adaptive Simpson's rule."""

import sys
from typing import Iterable, Tuple

from torchintegration._integrator import IntegrationStatus
from torchintegration.quadrature._univariate import UnivariateIntegrator
from torchintegration.sampling import StratificationBin

_MACHINE_EPSILON = sys.float_info.epsilon

_ERROR_NORMS = ("absolute", "squared")


class AdaptiveSimpsonsRule(UnivariateIntegrator):
    """
    Adaptive Simpson's rule.

    The interval is bisected recursively. On each panel ``[a, b]`` with
    midpoint ``m`` the local error is estimated from
    ``delta = (S(a, m) + S(m, b) - S(a, b)) / 15`` and the panel is accepted
    with the Richardson-corrected value ``S(a, m) + S(m, b) + delta`` when any
    of the following holds, checked in this order:

    - the remaining recursion depth is exhausted,
    - the panel is narrower than machine epsilon,
    - the evaluation budget is spent,
    - at least ``min_function_evaluations`` were made, the panel is at least
      ``min_depth`` levels deep, and ``|delta| <= eps + eps * |S(a, b)|``
      with ``eps = relative_tolerance``.

    Parameters
    ----------
    function : callable
        Integrand, elementwise over a 1-D float64 tensor.
    a, b : float
        Integration bounds, ``b > a``.
    min_depth : int
        Minimum recursion depth before the tolerance test may accept a panel.
    max_depth : int
        Maximum recursion depth. A hard stop independent of convergence.
    error_norm : str
        How accepted panels contribute to :attr:`standard_error`:
        ``"absolute"`` sums ``|delta|``, ``"squared"`` sums
        ``delta**2 / (b - a)``.
    **config
        Any field of :class:`~torchintegration.IntegrationConfig`.

    Attributes
    ----------
    standard_error : float
        Accumulated local error estimate over the accepted panels.

    Examples
    --------
    >>> rule = AdaptiveSimpsonsRule(lambda x: 4 / (1 + x**2), 0, 1)
    >>> rule.integrate()  # approximately pi
    """

    def __init__(
        self,
        function,
        a,
        b,
        *,
        min_depth: int = 0,
        max_depth: int = 100,
        error_norm: str = "absolute",
        **config,
    ):
        super().__init__(function, a, b, **config)
        if error_norm not in _ERROR_NORMS:
            raise ValueError(
                f"error_norm must be 'absolute' or 'squared', got '{error_norm}'"
            )
        self.min_depth = min_depth
        self.max_depth = max_depth
        self.error_norm = error_norm
        self.standard_error = 0.0

    def validate(self) -> None:
        super().validate()
        if self.min_depth < 0:
            raise ValueError(
                f"min_depth must be non-negative, got {self.min_depth}"
            )
        if self.max_depth < 1:
            raise ValueError(
                f"max_depth must be at least 1, got {self.max_depth}"
            )
        if self.min_depth > self.max_depth:
            raise ValueError(
                f"min_depth ({self.min_depth}) cannot exceed "
                f"max_depth ({self.max_depth})"
            )

    def clear_results(self) -> None:
        super().clear_results()
        self.standard_error = 0.0

    def _integrate(self) -> None:
        self.outcome.result = self._integrate_interval(self.a, self.b)
        self._update_budget_status()

    def integrate_bins(self, bins: Iterable[StratificationBin]) -> float:
        """
        Integrate piecewise over stratification bins and sum the results.

        Each bin is integrated independently with the configured depth and
        tolerance. Standard errors are summed across bins.

        Parameters
        ----------
        bins : iterable of StratificationBin
            Bins to integrate over. Zero-width bins contribute nothing.

        Returns
        -------
        float
            Sum of the bin integrals, also available as :attr:`result`.
        """
        bins = list(bins)
        self.clear_results()
        self.validate()
        try:
            total = 0.0
            for stratum in bins:
                if stratum.upper_bound > stratum.lower_bound:
                    total += self._integrate_interval(
                        stratum.lower_bound, stratum.upper_bound
                    )
            self.outcome.result = total
            self._update_budget_status()
        except Exception as exc:
            self.update_status(IntegrationStatus.FAILURE, exc)
        finally:
            self._finish()
        return self.outcome.result

    def _update_budget_status(self) -> None:
        if self._budget_exhausted():
            self.update_status(
                IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
            )
        else:
            self.update_status(IntegrationStatus.SUCCESS)

    def _integrate_interval(self, a: float, b: float) -> float:
        fa, fb = self._evaluate_at([a, b])
        whole, m, fm = self._simpson(a, fa, b, fb)
        return self._adapt(
            a,
            fa,
            b,
            fb,
            self.config.relative_tolerance,
            self.max_depth,
            whole,
            m,
            fm,
        )

    def _simpson(
        self, a: float, fa: float, b: float, fb: float
    ) -> Tuple[float, float, float]:
        """Simpson estimate on [a, b]; returns (estimate, m, f(m))."""
        m = (a + b) / 2.0
        (fm,) = self._evaluate_at([m])
        return abs(b - a) / 6.0 * (fa + 4.0 * fm + fb), m, fm

    def _adapt(
        self,
        a: float,
        fa: float,
        b: float,
        fb: float,
        epsilon: float,
        depth: int,
        whole: float,
        m: float,
        fm: float,
    ) -> float:
        lm = (a + m) / 2.0
        rm = (m + b) / 2.0
        flm, frm = self._evaluate_at([lm, rm])
        left = abs(m - a) / 6.0 * (fa + 4.0 * flm + fm)
        right = abs(b - m) / 6.0 * (fm + 4.0 * frm + fb)
        delta = (left + right - whole) / 15.0

        if (
            depth <= 0
            or abs(a - b) <= _MACHINE_EPSILON
            or self._budget_exhausted()
            or (
                self.outcome.function_evaluations
                >= self.config.min_function_evaluations
                and depth <= self.max_depth - self.min_depth
                and abs(delta) <= epsilon + epsilon * abs(whole)
            )
        ):
            self.outcome.iterations += 1
            if self.error_norm == "squared":
                self.standard_error += delta * delta / (b - a)
            else:
                self.standard_error += abs(delta)
            return left + right + delta

        return self._adapt(
            a, fa, m, fm, epsilon, depth - 1, left, lm, flm
        ) + self._adapt(m, fm, b, fb, epsilon, depth - 1, right, rm, frm)
