"""Shared iteration and convergence contract for all integrators."""

import abc
import enum
import logging
import math
import warnings
from dataclasses import dataclass, field, fields
from typing import Callable, Optional

import torch
from torch import Tensor

from torchintegration._exceptions import IntegrationError, QuadratureWarning

logger = logging.getLogger(__name__)

_MIN_TOLERANCE = 1e-15
_MAX_TOLERANCE = 1.0


class IntegrationStatus(enum.Enum):
    """Terminal state of an integration run."""

    NOT_STARTED = "not_started"
    SUCCESS = "success"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    MAX_FUNCTION_EVALUATIONS_REACHED = "max_function_evaluations_reached"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self is not IntegrationStatus.NOT_STARTED


@dataclass
class IntegrationConfig:
    """
    Budgets and tolerances shared by every integrator.

    Parameters
    ----------
    min_iterations, max_iterations : int
        Iteration bounds. Both must be at least 1 and ``min <= max``.
    min_function_evaluations, max_function_evaluations : int
        Integrand evaluation bounds. Both must be at least 1 and ``min <= max``.
    absolute_tolerance, relative_tolerance : float
        Desired tolerances, each in ``[1e-15, 1]``.
    report_failure : bool
        If True, an exception raised during a run is re-raised after the
        status is set to ``FAILURE``. If False, the failure is only recorded.
    """

    min_iterations: int = 1
    max_iterations: int = 10_000_000
    min_function_evaluations: int = 1
    max_function_evaluations: int = 10_000_000
    absolute_tolerance: float = 1e-8
    relative_tolerance: float = 1e-8
    report_failure: bool = True

    def validate(self) -> None:
        """Raise ``ValueError`` if any budget or tolerance is out of range."""
        if self.min_iterations < 1:
            raise ValueError(
                f"min_iterations must be at least 1, got {self.min_iterations}"
            )
        if self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be at least 1, got {self.max_iterations}"
            )
        if self.min_iterations > self.max_iterations:
            raise ValueError(
                f"min_iterations ({self.min_iterations}) cannot exceed "
                f"max_iterations ({self.max_iterations})"
            )
        if self.min_function_evaluations < 1:
            raise ValueError(
                "min_function_evaluations must be at least 1, "
                f"got {self.min_function_evaluations}"
            )
        if self.max_function_evaluations < 1:
            raise ValueError(
                "max_function_evaluations must be at least 1, "
                f"got {self.max_function_evaluations}"
            )
        if self.min_function_evaluations > self.max_function_evaluations:
            raise ValueError(
                f"min_function_evaluations ({self.min_function_evaluations}) "
                "cannot exceed max_function_evaluations "
                f"({self.max_function_evaluations})"
            )
        for name in ("absolute_tolerance", "relative_tolerance"):
            value = getattr(self, name)
            if not _MIN_TOLERANCE <= value <= _MAX_TOLERANCE:
                raise ValueError(
                    f"{name} must be between {_MIN_TOLERANCE} and "
                    f"{_MAX_TOLERANCE}, got {value}"
                )


@dataclass
class IntegrationOutcome:
    """Mutable outcome of the most recent run of one integrator."""

    iterations: int = 0
    function_evaluations: int = 0
    result: float = math.nan
    status: IntegrationStatus = field(default=IntegrationStatus.NOT_STARTED)

    def reset(self) -> None:
        self.iterations = 0
        self.function_evaluations = 0
        self.result = math.nan
        self.status = IntegrationStatus.NOT_STARTED


_CONFIG_FIELDS = frozenset(f.name for f in fields(IntegrationConfig))


class Integrator(abc.ABC):
    """
    Base class for all integration methods.

    Concrete integrators implement ``_integrate`` and call ``_evaluate`` to
    invoke the integrand. ``integrate`` runs the shared lifecycle: the outcome
    is cleared, the configuration validated, the algorithm run, and the
    status left terminal even when the algorithm raises.

    Integrator instances are not reentrant. Run the same algorithm
    concurrently with separate instances.

    Parameters
    ----------
    function : callable
        The integrand.
    **config
        Any field of :class:`IntegrationConfig`.
    """

    def __init__(self, function: Callable[..., Tensor], **config):
        if function is None or not callable(function):
            raise TypeError("The function must be a callable, got None")
        unknown = set(config) - _CONFIG_FIELDS
        if unknown:
            raise TypeError(
                f"Unknown configuration option(s): {', '.join(sorted(unknown))}"
            )
        self.function = function
        self.config = IntegrationConfig(**config)
        self.outcome = IntegrationOutcome()

    @property
    def iterations(self) -> int:
        return self.outcome.iterations

    @property
    def function_evaluations(self) -> int:
        return self.outcome.function_evaluations

    @property
    def result(self) -> float:
        return self.outcome.result

    @property
    def status(self) -> IntegrationStatus:
        return self.outcome.status

    def integrate(self) -> float:
        """
        Evaluate the integral.

        Returns
        -------
        float
            The estimate, also available as :attr:`result`.

        Raises
        ------
        ValueError
            If the configuration is invalid. Raised before any evaluation.
        Exception
            Whatever the run raised, when ``report_failure`` is enabled.
        """
        self.clear_results()
        self.validate()
        try:
            self._integrate()
        except Exception as exc:
            self.update_status(IntegrationStatus.FAILURE, exc)
        finally:
            self._finish()
        return self.outcome.result

    @abc.abstractmethod
    def _integrate(self) -> None:
        """Run the algorithm, leaving ``outcome`` populated."""

    def clear_results(self) -> None:
        """Reset the outcome to the not-started state."""
        self.outcome.reset()

    def validate(self) -> None:
        """Validate the configuration."""
        self.config.validate()

    def evaluate_convergence(self, previous: float, current: float) -> bool:
        """
        Joint absolute and relative convergence test.

        Returns False when either value is NaN or infinite. Otherwise both
        ``|current - previous| < absolute_tolerance`` and
        ``|current - previous| / |current| < relative_tolerance`` must hold.
        """
        if not (math.isfinite(previous) and math.isfinite(current)):
            return False
        difference = abs(current - previous)
        if difference >= self.config.absolute_tolerance:
            return False
        if current == 0.0:
            return False
        return difference / abs(current) < self.config.relative_tolerance

    def update_status(
        self,
        status: IntegrationStatus,
        exception: Optional[BaseException] = None,
    ) -> None:
        """
        Set the status, re-raising ``exception`` on failure if requested.
        """
        self.outcome.status = status
        if (
            status is IntegrationStatus.FAILURE
            and self.config.report_failure
            and exception is not None
        ):
            raise exception

    def _evaluate(self, points: Tensor, *args: Tensor) -> Tensor:
        """Evaluate the integrand at ``points`` and count the evaluations."""
        values = self.function(points, *args)
        if not isinstance(values, Tensor):
            values = torch.as_tensor(values, dtype=points.dtype)
        n = points.shape[0] if points.dim() > 0 else 1
        values = values.to(points.dtype).reshape(-1)
        if values.numel() != n:
            raise ValueError(
                f"The function returned {values.numel()} values for {n} points"
            )
        self.outcome.function_evaluations += n
        return values

    def _budget_exhausted(self) -> bool:
        return (
            self.outcome.function_evaluations
            >= self.config.max_function_evaluations
        )

    def _finish(self) -> None:
        if self.outcome.status is IntegrationStatus.NOT_STARTED:
            self.update_status(
                IntegrationStatus.FAILURE,
                IntegrationError(
                    f"{type(self).__name__} finished without setting a status"
                ),
            )
        logger.debug(
            "%s finished with status=%s iterations=%d evaluations=%d result=%r",
            type(self).__name__,
            self.outcome.status.value,
            self.outcome.iterations,
            self.outcome.function_evaluations,
            self.outcome.result,
        )
        if self.outcome.status in (
            IntegrationStatus.MAX_ITERATIONS_REACHED,
            IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED,
        ):
            warnings.warn(
                f"{type(self).__name__} stopped before converging "
                f"({self.outcome.status.value}) after "
                f"{self.outcome.function_evaluations} evaluations. "
                f"Result: {self.outcome.result:.6g}",
                QuadratureWarning,
                stacklevel=3,
            )
