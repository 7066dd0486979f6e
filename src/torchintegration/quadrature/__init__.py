"""
One-dimensional numerical integration (quadrature).

Fixed rules (one-shot estimators):
    gauss_legendre, trapezoidal_rule, simpsons_rule, midpoint_rule

Refinement rules (iterate to convergence):
    TrapezoidalRule, SimpsonsRule

Adaptive rules:
    AdaptiveSimpsonsRule, AdaptiveGaussLobatto

Quadrature rule classes and nodes:
    GaussLegendre, gauss_legendre_nodes_weights, gauss_lobatto_kronrod_nodes
"""

from torchintegration.quadrature._adaptive_gauss_lobatto import (
    AdaptiveGaussLobatto,
)
from torchintegration.quadrature._adaptive_simpsons_rule import (
    AdaptiveSimpsonsRule,
)
from torchintegration.quadrature._nodes import (
    gauss_legendre_nodes_weights,
    gauss_lobatto_kronrod_nodes,
)
from torchintegration.quadrature._refinement import (
    SimpsonsRule,
    TrapezoidalRule,
)
from torchintegration.quadrature._rules import (
    GaussLegendre,
    gauss_legendre,
    midpoint_rule,
    simpsons_rule,
    trapezoidal_rule,
)
from torchintegration.quadrature._univariate import UnivariateIntegrator

__all__ = [
    # Fixed rules
    "gauss_legendre",
    "trapezoidal_rule",
    "simpsons_rule",
    "midpoint_rule",
    # Refinement rules
    "TrapezoidalRule",
    "SimpsonsRule",
    # Adaptive rules
    "AdaptiveSimpsonsRule",
    "AdaptiveGaussLobatto",
    # Rule classes and nodes
    "GaussLegendre",
    "gauss_legendre_nodes_weights",
    "gauss_lobatto_kronrod_nodes",
    # Base class
    "UnivariateIntegrator",
]
