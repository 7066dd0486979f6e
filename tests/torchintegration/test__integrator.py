import math
import warnings

import pytest
import torch


def _make_counting_integrator(**config):
    from torchintegration import Integrator, IntegrationStatus

    class CountingIntegrator(Integrator):
        """Sums the integrand at ``points`` once per iteration."""

        def __init__(self, function, points, stop_after=None, **config):
            super().__init__(function, **config)
            self.points = points
            self.stop_after = stop_after

        def _integrate(self):
            total = 0.0
            for _ in range(self.config.max_iterations):
                self.outcome.iterations += 1
                total += self._evaluate(self.points).sum().item()
                self.outcome.result = total
                if self._budget_exhausted():
                    self.update_status(
                        IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
                    )
                    return
                if self.stop_after and self.iterations >= self.stop_after:
                    self.update_status(IntegrationStatus.SUCCESS)
                    return
            self.update_status(IntegrationStatus.MAX_ITERATIONS_REACHED)

    return CountingIntegrator


class TestIntegrationConfig:
    def test_defaults(self):
        from torchintegration import IntegrationConfig

        config = IntegrationConfig()

        assert config.min_iterations == 1
        assert config.max_iterations == 10_000_000
        assert config.min_function_evaluations == 1
        assert config.max_function_evaluations == 10_000_000
        assert config.absolute_tolerance == 1e-8
        assert config.relative_tolerance == 1e-8
        assert config.report_failure is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"min_iterations": 0},
            {"max_iterations": 0},
            {"min_iterations": 5, "max_iterations": 4},
            {"min_function_evaluations": 0},
            {"max_function_evaluations": 0},
            {"min_function_evaluations": 10, "max_function_evaluations": 9},
            {"absolute_tolerance": 1e-16},
            {"absolute_tolerance": 2.0},
            {"relative_tolerance": 0.0},
            {"relative_tolerance": 1.5},
        ],
    )
    def test_invalid_values_raise(self, kwargs):
        from torchintegration import IntegrationConfig

        with pytest.raises(ValueError):
            IntegrationConfig(**kwargs).validate()

    def test_tolerance_limits_are_inclusive(self):
        from torchintegration import IntegrationConfig

        IntegrationConfig(
            absolute_tolerance=1e-15, relative_tolerance=1.0
        ).validate()


class TestIntegrator:
    def test_none_function_raises(self):
        CountingIntegrator = _make_counting_integrator()

        with pytest.raises(TypeError, match="callable"):
            CountingIntegrator(None, torch.zeros(1))

    def test_unknown_config_raises(self):
        CountingIntegrator = _make_counting_integrator()

        with pytest.raises(TypeError, match="max_iteration"):
            CountingIntegrator(torch.sin, torch.zeros(1), max_iteration=3)

    def test_initial_state(self):
        from torchintegration import IntegrationStatus

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(torch.sin, torch.zeros(1))

        assert integrator.status is IntegrationStatus.NOT_STARTED
        assert integrator.iterations == 0
        assert integrator.function_evaluations == 0
        assert math.isnan(integrator.result)

    def test_counts_evaluations_per_point(self):
        from torchintegration import IntegrationStatus

        CountingIntegrator = _make_counting_integrator()
        points = torch.linspace(0, 1, 5, dtype=torch.float64)
        integrator = CountingIntegrator(torch.ones_like, points, stop_after=3)

        result = integrator.integrate()

        assert result == 15.0
        assert integrator.iterations == 3
        assert integrator.function_evaluations == 15
        assert integrator.status is IntegrationStatus.SUCCESS

    def test_invalid_config_raises_before_evaluating(self):
        calls = []

        def f(x):
            calls.append(x)
            return x

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            f, torch.zeros(1), min_iterations=3, max_iterations=2
        )

        with pytest.raises(ValueError):
            integrator.integrate()
        assert calls == []
        assert integrator.function_evaluations == 0

    def test_max_iterations_warns(self):
        from torchintegration import IntegrationStatus, QuadratureWarning

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            torch.ones_like, torch.zeros(2), max_iterations=4
        )

        with pytest.warns(QuadratureWarning, match="max_iterations_reached"):
            integrator.integrate()

        assert integrator.status is IntegrationStatus.MAX_ITERATIONS_REACHED
        assert integrator.iterations == 4

    def test_max_function_evaluations_warns(self):
        from torchintegration import IntegrationStatus, QuadratureWarning

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            torch.ones_like, torch.zeros(2), max_function_evaluations=6
        )

        with pytest.warns(QuadratureWarning):
            integrator.integrate()

        assert (
            integrator.status
            is IntegrationStatus.MAX_FUNCTION_EVALUATIONS_REACHED
        )
        assert integrator.function_evaluations == 6

    def test_failure_is_reraised(self):
        from torchintegration import IntegrationStatus

        def f(x):
            raise RuntimeError("boom")

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(f, torch.zeros(1))

        with pytest.raises(RuntimeError, match="boom"):
            integrator.integrate()
        assert integrator.status is IntegrationStatus.FAILURE

    def test_failure_is_recorded_when_not_reported(self):
        from torchintegration import IntegrationStatus

        def f(x):
            raise RuntimeError("boom")

        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            f, torch.zeros(1), report_failure=False
        )

        integrator.integrate()

        assert integrator.status is IntegrationStatus.FAILURE
        assert integrator.status.is_terminal

    def test_wrong_number_of_values_fails(self):
        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            lambda x: torch.zeros(3), torch.zeros(2)
        )

        with pytest.raises(ValueError, match="3 values for 2 points"):
            integrator.integrate()

    def test_rerun_clears_outcome(self):
        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            torch.ones_like, torch.zeros(2), stop_after=2
        )

        integrator.integrate()
        integrator.integrate()

        assert integrator.iterations == 2
        assert integrator.function_evaluations == 4

    def test_success_does_not_warn(self):
        CountingIntegrator = _make_counting_integrator()
        integrator = CountingIntegrator(
            torch.ones_like, torch.zeros(2), stop_after=1
        )

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            integrator.integrate()


    def test_missing_status_fails(self):
        """A run that never sets its status is a failure, not a success"""
        from torchintegration import (
            IntegrationError,
            IntegrationStatus,
            Integrator,
        )

        class SilentIntegrator(Integrator):
            def _integrate(self):
                self.outcome.result = 1.0

        integrator = SilentIntegrator(torch.sin)

        with pytest.raises(IntegrationError, match="without setting a status"):
            integrator.integrate()
        assert integrator.status is IntegrationStatus.FAILURE

    def test_missing_status_recorded_when_not_reported(self):
        """The failure is only recorded when failures are not reported"""
        from torchintegration import IntegrationStatus, Integrator

        class SilentIntegrator(Integrator):
            def _integrate(self):
                self.outcome.result = 1.0

        integrator = SilentIntegrator(torch.sin, report_failure=False)

        assert integrator.integrate() == 1.0
        assert integrator.status is IntegrationStatus.FAILURE


class TestEvaluateConvergence:
    def _integrator(self, **config):
        CountingIntegrator = _make_counting_integrator()
        return CountingIntegrator(torch.sin, torch.zeros(1), **config)

    def test_converged(self):
        integrator = self._integrator()

        assert integrator.evaluate_convergence(1.0, 1.0 + 1e-10)

    def test_absolute_difference_too_large(self):
        integrator = self._integrator(relative_tolerance=1e-2)

        assert not integrator.evaluate_convergence(1000.0, 1000.001)

    def test_relative_difference_too_large(self):
        integrator = self._integrator(absolute_tolerance=1e-2)

        assert not integrator.evaluate_convergence(1e-6, 2e-6)

    @pytest.mark.parametrize(
        "previous, current",
        [
            (math.nan, 1.0),
            (1.0, math.nan),
            (math.inf, math.inf),
            (1.0, -math.inf),
        ],
    )
    def test_non_finite_never_converges(self, previous, current):
        integrator = self._integrator()

        assert not integrator.evaluate_convergence(previous, current)

    def test_zero_estimate_does_not_converge(self):
        integrator = self._integrator()

        assert not integrator.evaluate_convergence(0.0, 0.0)
