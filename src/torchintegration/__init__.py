"""torchintegration: numerical integration in PyTorch."""

import logging

from . import monte_carlo, quadrature, sampling
from ._exceptions import IntegrationError, QuadratureWarning
from ._integrator import (
    IntegrationConfig,
    IntegrationOutcome,
    IntegrationStatus,
    Integrator,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "IntegrationConfig",
    "IntegrationError",
    "IntegrationOutcome",
    "IntegrationStatus",
    "Integrator",
    "QuadratureWarning",
    "monte_carlo",
    "quadrature",
    "sampling",
]

__version__ = "0.1.0"
