"""Node and weight computation for Gaussian quadrature rules."""

from typing import Optional, Tuple

import torch
from torch import Tensor


def gauss_legendre_nodes_weights(
    n: int,
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> Tuple[Tensor, Tensor]:
    """
    Compute Gauss-Legendre nodes and weights on [-1, 1].

    Uses the Golub-Welsch algorithm (eigenvalues of symmetric tridiagonal matrix).

    Parameters
    ----------
    n : int
        Number of quadrature points.
    dtype : torch.dtype
        Data type for output tensors.
    device : torch.device, optional
        Device for output tensors.

    Returns
    -------
    nodes : Tensor
        Quadrature nodes, shape (n,), sorted ascending.
    weights : Tensor
        Quadrature weights, shape (n,).

    Raises
    ------
    ValueError
        If n < 1.

    Notes
    -----
    Gauss-Legendre quadrature is exact for polynomials of degree <= 2n-1.

    References
    ----------
    Golub, G. H., & Welsch, J. H. (1969). Calculation of Gauss quadrature rules.
    Mathematics of Computation, 23(106), 221-230.
    """
    if n < 1:
        raise ValueError(f"n must be at least 1, got {n}")

    if n == 1:
        return (
            torch.tensor([0.0], dtype=dtype, device=device),
            torch.tensor([2.0], dtype=dtype, device=device),
        )

    # Legendre recurrence: diagonal = 0, off-diagonal[k] = k / sqrt(4k^2 - 1)
    k = torch.arange(1, n, dtype=dtype, device=device)
    off_diag = k / torch.sqrt(4 * k**2 - 1)

    T = torch.diag(off_diag, diagonal=1) + torch.diag(off_diag, diagonal=-1)

    eigenvalues, eigenvectors = torch.linalg.eigh(T)

    sorted_idx = torch.argsort(eigenvalues)
    nodes = eigenvalues[sorted_idx]
    weights = (2 * eigenvectors[0, :] ** 2)[sorted_idx]

    return nodes, weights


# Gauss-Lobatto-Kronrod abscissae on [-1, 1] (Gander & Gautschi, 2000).
_LOBATTO_ALPHA = (2.0 / 3.0) ** 0.5
_LOBATTO_BETA = 1.0 / 5.0**0.5
_KRONROD_X1 = 0.942882415695480
_KRONROD_X2 = 0.641853342345781
_KRONROD_X3 = 0.236383199662150

# 13-point Kronrod weights for slots (0/12, 1/11, 2/10, 3/9, 4/8, 5/7, 6).
_KRONROD_13_WEIGHTS = (
    0.0158271919734802,
    0.0942738402188500,
    0.155071987336585,
    0.188821573960182,
    0.199773405226859,
    0.224926465333340,
    0.242611071901408,
)


def gauss_lobatto_kronrod_nodes(
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> Tensor:
    """
    The 13 Gauss-Lobatto-Kronrod abscissae on [-1, 1], ascending.

    Slots 0 and 12 are the endpoints, slots 2/10 the Lobatto points
    ``±sqrt(2/3)``, slots 4/8 the Lobatto points ``±1/sqrt(5)``, slot 6 the
    center.
    """
    half = [
        _KRONROD_X1,
        _LOBATTO_ALPHA,
        _KRONROD_X2,
        _LOBATTO_BETA,
        _KRONROD_X3,
    ]
    values = [-1.0] + [-x for x in half] + [0.0] + half[::-1] + [1.0]
    return torch.tensor(values, dtype=dtype, device=device)
