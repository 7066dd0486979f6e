"""Base class for integrators over a finite interval."""

import math
from typing import Callable, List, Sequence

import torch
from torch import Tensor

from torchintegration._integrator import Integrator


class UnivariateIntegrator(Integrator):
    """
    Integrator of ``f`` over ``[a, b]``.

    Parameters
    ----------
    function : callable
        Integrand, elementwise over a 1-D float64 tensor.
    a, b : float
        Integration bounds, ``b > a``.
    **config
        Any field of :class:`~torchintegration.IntegrationConfig`.
    """

    def __init__(
        self,
        function: Callable[[Tensor], Tensor],
        a: float,
        b: float,
        **config,
    ):
        super().__init__(function, **config)
        a = float(a)
        b = float(b)
        if not (math.isfinite(a) and math.isfinite(b)):
            raise ValueError(f"The bounds must be finite, got [{a}, {b}]")
        if b <= a:
            raise ValueError(
                "The maximum value cannot be less than or equal to the "
                f"minimum value, got [{a}, {b}]"
            )
        self._a = a
        self._b = b

    @property
    def a(self) -> float:
        return self._a

    @property
    def b(self) -> float:
        return self._b

    def _evaluate_at(self, points: Sequence[float]) -> List[float]:
        values = self._evaluate(torch.tensor(points, dtype=torch.float64))
        return values.tolist()
