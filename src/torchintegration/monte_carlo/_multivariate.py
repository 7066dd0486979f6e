"""Base class for Monte Carlo integrators over a D-dimensional box."""

from typing import Callable, Optional

from torch import Generator, Tensor

from torchintegration._integrator import Integrator
from torchintegration.monte_carlo._bounds import Bounds, Limits
from torchintegration.sampling import (
    PseudoRandomSource,
    SobolSource,
    UniformSource,
)


class MultivariateIntegrator(Integrator):
    """
    Integrator of ``f`` over the box ``[lower, upper]``.

    Parameters
    ----------
    function : callable
        Integrand. Receives points of shape ``(n, D)``, returns ``(n,)``.
    lower, upper : sequence of float or Tensor
        Box limits, one per dimension.
    dimensions : int, optional
        Expected number of dimensions; checked against the limits.
    use_sobol_sequence : bool
        Sample with the Sobol sequence instead of the pseudo-random source.
    seed : int, optional
        Seed of the pseudo-random source.
    generator : torch.Generator, optional
        Generator for the pseudo-random source. Takes precedence over ``seed``.
    **config
        Any field of :class:`~torchintegration.IntegrationConfig`.

    Attributes
    ----------
    random : UniformSource
        Pseudo-random source. May be replaced between runs.
    sobol : SobolSource
        Quasi-random source, advanced across runs.
    """

    max_dimensions: Optional[int] = None

    def __init__(
        self,
        function: Callable[..., Tensor],
        lower: Limits,
        upper: Limits,
        *,
        dimensions: Optional[int] = None,
        use_sobol_sequence: bool = False,
        seed: Optional[int] = None,
        generator: Optional[Generator] = None,
        **config,
    ):
        super().__init__(function, **config)
        self.bounds = Bounds.from_limits(
            lower,
            upper,
            dimensions=dimensions,
            max_dimensions=self.max_dimensions,
        )
        self.use_sobol_sequence = use_sobol_sequence
        self.random: UniformSource = PseudoRandomSource(
            seed=seed, generator=generator
        )
        self.sobol = SobolSource(self.bounds.dimensions)

    @property
    def dimensions(self) -> int:
        return self.bounds.dimensions

    @property
    def lower(self) -> Tensor:
        return self.bounds.lower_tensor()

    @property
    def upper(self) -> Tensor:
        return self.bounds.upper_tensor()

    @property
    def volume(self) -> float:
        return self.bounds.volume

    @property
    def source(self) -> UniformSource:
        """The uniform source used by the next run."""
        return self.sobol if self.use_sobol_sequence else self.random

    def _uniform(self, n: int) -> Tensor:
        """Draw ``n`` points in the unit hypercube, shape ``(n, D)``."""
        return self.source.sample(n, self.dimensions)
