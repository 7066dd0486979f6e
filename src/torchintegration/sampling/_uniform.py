"""Uniform deviate sources: pseudo-random and Sobol quasi-random."""

import abc
from typing import Optional

import torch
from torch import Generator, Tensor
from torch.quasirandom import SobolEngine


class UniformSource(abc.ABC):
    """
    A source of uniform deviates in [0, 1).

    Integrators depend only on this interface, so pseudo-random and
    quasi-random sampling are interchangeable per run.
    """

    dtype: torch.dtype = torch.float64

    @abc.abstractmethod
    def sample(self, n: int, d: int) -> Tensor:
        """
        Draw ``n`` points in the ``d``-dimensional unit hypercube.

        Returns
        -------
        Tensor
            Shape ``(n, d)``, advancing the source by ``n`` points.
        """

    def next(self) -> float:
        """Next scalar deviate."""
        return self.sample(1, 1).item()

    def next_vector(self, d: int) -> Tensor:
        """Next ``d``-dimensional deviate, shape ``(d,)``."""
        return self.sample(1, d)[0]


class PseudoRandomSource(UniformSource):
    """
    Seeded pseudo-random uniform deviates backed by ``torch.Generator``.

    Parameters
    ----------
    seed : int, optional
        Seed for a private generator. Ignored if ``generator`` is given.
    generator : torch.Generator, optional
        Generator to draw from. If neither argument is given, a private
        generator is seeded nondeterministically.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        generator: Optional[Generator] = None,
    ):
        if generator is None:
            generator = torch.Generator()
            if seed is None:
                generator.seed()
            else:
                generator.manual_seed(seed)
        self.generator = generator

    def sample(self, n: int, d: int) -> Tensor:
        return torch.rand(n, d, generator=self.generator, dtype=self.dtype)


class SobolSource(UniformSource):
    """
    Sobol low-discrepancy sequence backed by ``torch.quasirandom.SobolEngine``.

    The sequence is deterministic by index; ``skip_to`` jumps to any index.

    Parameters
    ----------
    dimensions : int
        Dimension of every drawn vector.
    scramble : bool
        Apply Owen scrambling. Scrambled sequences are reproducible via ``seed``.
    seed : int, optional
        Scrambling seed.
    """

    def __init__(
        self,
        dimensions: int,
        *,
        scramble: bool = False,
        seed: Optional[int] = None,
    ):
        if dimensions < 1:
            raise ValueError(
                f"dimensions must be at least 1, got {dimensions}"
            )
        self.dimensions = dimensions
        self.scramble = scramble
        self.seed = seed
        self._engine = SobolEngine(dimensions, scramble=scramble, seed=seed)

    @property
    def index(self) -> int:
        """Index of the next point in the sequence."""
        return int(self._engine.num_generated)

    def sample(self, n: int, d: int) -> Tensor:
        if d != self.dimensions:
            raise ValueError(
                f"SobolSource was built for {self.dimensions} dimensions, "
                f"got a request for {d}"
            )
        return self._engine.draw(n, dtype=self.dtype)

    def skip_to(self, index: int) -> None:
        """Position the sequence so the next point drawn is ``index``."""
        if index < 0:
            raise ValueError(f"index must be non-negative, got {index}")
        current = self.index
        if index < current:
            self.reset()
            current = 0
        if index > current:
            self._engine.fast_forward(index - current)

    def reset(self) -> None:
        """Return to the start of the sequence."""
        self._engine.reset()
