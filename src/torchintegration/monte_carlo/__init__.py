"""
Monte Carlo integration over a D-dimensional box.

Integrators:
    MonteCarloIntegrator, Miser, Vegas

VEGAS restart modes:
    VegasStart

Bounds and base class:
    Bounds, MultivariateIntegrator
"""

from torchintegration.monte_carlo._bounds import Bounds
from torchintegration.monte_carlo._miser import Miser
from torchintegration.monte_carlo._multivariate import MultivariateIntegrator
from torchintegration.monte_carlo._plain import MonteCarloIntegrator
from torchintegration.monte_carlo._vegas import Vegas, VegasStart

__all__ = [
    # Integrators
    "MonteCarloIntegrator",
    "Miser",
    "Vegas",
    # VEGAS restart modes
    "VegasStart",
    # Bounds and base class
    "Bounds",
    "MultivariateIntegrator",
]
