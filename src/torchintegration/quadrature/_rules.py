"""Fixed (non-adaptive) quadrature rules."""

from typing import Callable, Optional, Tuple, Union

import torch
from torch import Tensor

from torchintegration.quadrature._nodes import gauss_legendre_nodes_weights


def _as_tensor(
    value: Union[float, Tensor],
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> Tensor:
    if isinstance(value, Tensor):
        return value.to(dtype=dtype)
    return torch.tensor(value, dtype=dtype, device=device)


def _check_steps(steps: int) -> None:
    if steps < 1:
        raise ValueError(f"steps must be at least 1, got {steps}")


class GaussLegendre:
    """
    Gauss-Legendre quadrature rule.

    Exact for polynomials of degree <= 2n-1.

    Parameters
    ----------
    n : int
        Number of quadrature points.

    Examples
    --------
    >>> rule = GaussLegendre(32)
    >>> nodes, weights = rule.nodes_and_weights(a=0, b=1)
    >>> result = rule.integrate(torch.sin, 0, torch.pi)  # approximately 2.0

    Attributes
    ----------
    n : int
        Number of points.
    """

    def __init__(self, n: int):
        if n < 1:
            raise ValueError(f"n must be at least 1, got {n}")
        self.n = n
        self._cache: dict = {}

    def _get_base_nodes_weights(
        self,
        dtype: torch.dtype,
        device: torch.device,
    ) -> Tuple[Tensor, Tensor]:
        """Get cached base nodes/weights on [-1, 1]."""
        key = (str(dtype), str(device))
        if key not in self._cache:
            self._cache[key] = gauss_legendre_nodes_weights(
                self.n, dtype=dtype, device=device
            )
        return self._cache[key]

    def nodes_and_weights(
        self,
        a: Union[float, Tensor] = -1.0,
        b: Union[float, Tensor] = 1.0,
    ) -> Tuple[Tensor, Tensor]:
        """
        Return nodes and weights scaled to [a, b].

        Parameters
        ----------
        a, b : float or Tensor
            Integration bounds (scalars).

        Returns
        -------
        nodes : Tensor
            Shape (n,).
        weights : Tensor
            Shape (n,).
        """
        a = _as_tensor(a)
        b = _as_tensor(b)

        base_nodes, base_weights = self._get_base_nodes_weights(
            a.dtype, a.device
        )

        # x' = (b - a) / 2 * x + (a + b) / 2, weights scale by (b - a) / 2
        half_width = (b - a) / 2
        center = (a + b) / 2

        return half_width * base_nodes + center, half_width * base_weights

    def integrate(
        self,
        f: Callable[[Tensor], Tensor],
        a: Union[float, Tensor],
        b: Union[float, Tensor],
    ) -> Tensor:
        """
        Integrate f from a to b.

        Parameters
        ----------
        f : callable
            Integrand function. Takes a tensor of shape (n,), returns same.
        a, b : float or Tensor
            Integration bounds.

        Returns
        -------
        Tensor
            Integral value, 0-d.
        """
        nodes, weights = self.nodes_and_weights(a, b)
        values = f(nodes)
        return (values * weights).sum(dim=-1)


def gauss_legendre(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    n: int = 10,
) -> Tensor:
    """
    One-shot Gauss-Legendre quadrature.

    Parameters
    ----------
    f : callable
        Integrand function, elementwise over a 1-D tensor.
    a, b : float or Tensor
        Integration bounds.
    n : int
        Number of quadrature points. The default 10-point rule is exact for
        polynomials of degree <= 19.

    Returns
    -------
    Tensor
        Integral approximation.

    Examples
    --------
    >>> gauss_legendre(torch.sin, 0, torch.pi)  # approximately 2.0
    """
    return GaussLegendre(n).integrate(f, a, b)


def trapezoidal_rule(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    steps: int = 2,
) -> Tensor:
    """
    Composite trapezoidal rule with ``steps`` equal panels.

    Parameters
    ----------
    f : callable
        Integrand function, elementwise over a 1-D tensor.
    a, b : float or Tensor
        Integration bounds.
    steps : int
        Number of panels.

    Returns
    -------
    Tensor
        Integral approximation. Uses ``steps + 1`` evaluations.
    """
    _check_steps(steps)
    a = _as_tensor(a)
    b = _as_tensor(b)
    h = (b - a) / steps
    x = a + h * torch.arange(steps + 1, dtype=a.dtype, device=a.device)
    y = f(x)
    return h * (0.5 * (y[0] + y[-1]) + y[1:-1].sum())


def simpsons_rule(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    steps: int = 2,
) -> Tensor:
    """
    Composite Simpson's rule with ``steps`` panels.

    Each panel is integrated with its endpoints and midpoint:
    ``h/6 * (f(a) + f(b) + 4 * sum(f(mid)) + 2 * sum(f(interior)))``.

    Parameters
    ----------
    f : callable
        Integrand function, elementwise over a 1-D tensor.
    a, b : float or Tensor
        Integration bounds.
    steps : int
        Number of panels. Uses ``2 * steps + 1`` evaluations.

    Returns
    -------
    Tensor
        Integral approximation. Exact for cubic polynomials.

    Examples
    --------
    >>> simpsons_rule(lambda x: x**3, 0, 2)  # 4.0
    """
    _check_steps(steps)
    a = _as_tensor(a)
    b = _as_tensor(b)
    h = (b - a) / steps
    i = torch.arange(steps, dtype=a.dtype, device=a.device)
    midpoints = a + h * i + h / 2
    interior = a + h * i[1:]
    y = f(torch.cat([torch.stack([a, b]), midpoints, interior]))
    y_ends, y_mid, y_interior = y[:2], y[2 : 2 + steps], y[2 + steps :]
    return h / 6 * (y_ends.sum() + 4 * y_mid.sum() + 2 * y_interior.sum())


def midpoint_rule(
    f: Callable[[Tensor], Tensor],
    a: Union[float, Tensor],
    b: Union[float, Tensor],
    *,
    steps: int = 2,
) -> Tensor:
    """
    Composite midpoint rule with ``steps`` panels.

    Returns
    -------
    Tensor
        Integral approximation. Uses ``steps`` evaluations.
    """
    _check_steps(steps)
    a = _as_tensor(a)
    b = _as_tensor(b)
    h = (b - a) / steps
    x = a + h / 2 + h * torch.arange(steps, dtype=a.dtype, device=a.device)
    return h * f(x).sum()
