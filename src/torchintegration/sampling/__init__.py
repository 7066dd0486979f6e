"""
Sampling collaborators for Monte Carlo integration.

Uniform deviate sources:
    UniformSource, PseudoRandomSource, SobolSource

Stratification:
    StratificationBin
"""

from torchintegration.sampling._stratification_bin import StratificationBin
from torchintegration.sampling._uniform import (
    PseudoRandomSource,
    SobolSource,
    UniformSource,
)

__all__ = [
    # Uniform sources
    "UniformSource",
    "PseudoRandomSource",
    "SobolSource",
    # Stratification
    "StratificationBin",
]
