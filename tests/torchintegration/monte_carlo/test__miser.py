import math

import pytest
import torch


def _ridge(x):
    """Narrow Gaussian ridge along the first axis, integral ~0.25066"""
    return torch.exp(-0.5 * ((x[:, 0] - 0.5) / 0.1) ** 2)


_RIDGE_INTEGRAL = 0.1 * math.sqrt(2 * math.pi) * math.erf(5 / math.sqrt(2))


class TestMiser:
    def test_ridge(self):
        """Integrate a ridge in the unit cube to 1%"""
        from torchintegration import IntegrationStatus
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge, [0.0] * 3, [1.0] * 3, max_function_evaluations=20_000
        )
        result = miser.integrate()

        assert miser.status is IntegrationStatus.SUCCESS
        assert math.isclose(result, _RIDGE_INTEGRAL, rel_tol=1e-2)
        assert miser.standard_error < 1e-2 * _RIDGE_INTEGRAL

    def test_spends_exact_budget(self):
        """Every point of the budget is spent, no more"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge, [0.0, 0.0], [1.0, 1.0], max_function_evaluations=5_000
        )
        miser.integrate()

        assert miser.function_evaluations == 5_000

    @pytest.mark.parametrize("fraction", [0.1, 0.5, 0.95])
    @pytest.mark.parametrize("budget", [100, 1_000, 5_000])
    def test_never_exceeds_budget(self, fraction, budget):
        """Large preliminary fractions never overspend the budget"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge,
            [0.0, 0.0],
            [1.0, 1.0],
            fraction=fraction,
            max_function_evaluations=budget,
        )
        miser.integrate()

        assert miser.function_evaluations <= budget
        assert miser.function_evaluations == budget

    def test_large_subregions_keep_budget(self):
        """Raised subregion minimum with a matching bisection threshold"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge,
            [0.0, 0.0],
            [1.0, 1.0],
            fraction=0.5,
            min_subregion_points=100,
            min_bisection_points=400,
            max_function_evaluations=1_000,
        )
        miser.integrate()

        assert miser.iterations > 1
        assert miser.function_evaluations == 1_000

    def test_preliminary_sample_too_large_uses_plain_sampling(self):
        """No bisection when the preliminary sample leaves too few points"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge,
            [0.0, 0.0],
            [1.0, 1.0],
            fraction=0.95,
            max_function_evaluations=100,
        )
        miser.integrate()

        assert miser.iterations == 1
        assert miser.function_evaluations == 100

    def test_regions_form_binary_tree(self):
        """Each bisection adds two regions to the root"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge, [0.0, 0.0], [1.0, 1.0], max_function_evaluations=5_000
        )
        miser.integrate()

        assert miser.iterations > 1
        assert miser.iterations % 2 == 1

    def test_lower_error_than_plain_monte_carlo(self):
        """Stratification beats plain sampling at equal cost"""
        from torchintegration.monte_carlo import Miser, MonteCarloIntegrator

        n = 20_000
        miser = Miser(
            _ridge,
            [0.0] * 3,
            [1.0] * 3,
            max_function_evaluations=n,
            use_sobol_sequence=False,
            seed=12345,
        )
        plain = MonteCarloIntegrator(
            _ridge,
            [0.0] * 3,
            [1.0] * 3,
            max_iterations=n,
            seed=12345,
        )
        miser.integrate()
        with pytest.warns(Warning):
            plain.integrate()

        assert miser.standard_error < plain.standard_error

    def test_repeated_runs_are_identical(self):
        """Fresh instances on the Sobol sequence reproduce each other"""
        from torchintegration.monte_carlo import Miser

        runs = []
        for _ in range(2):
            miser = Miser(
                _ridge, [0.0] * 3, [1.0] * 3, max_function_evaluations=5_000
            )
            result = miser.integrate()
            runs.append((result, miser.standard_error, miser.iterations))

        assert runs[0] == runs[1]

    def test_too_few_points_uses_plain_sampling(self):
        """A budget below the bisection threshold samples one region"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            lambda x: x.sum(dim=-1),
            [0.0, 0.0],
            [1.0, 1.0],
            max_function_evaluations=40,
        )
        result = miser.integrate()

        assert miser.iterations == 1
        assert miser.function_evaluations == 40
        assert math.isclose(result, 1.0, rel_tol=0.1)

    def test_max_depth_zero_uses_plain_sampling(self):
        """Zero depth never bisects"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge,
            [0.0, 0.0],
            [1.0, 1.0],
            max_depth=0,
            max_function_evaluations=1_000,
        )
        miser.integrate()

        assert miser.iterations == 1

    def test_dither(self):
        """Dithered bisection points still integrate the ridge"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            _ridge,
            [0.0] * 3,
            [1.0] * 3,
            dither=0.1,
            max_function_evaluations=20_000,
        )

        assert math.isclose(miser.integrate(), _RIDGE_INTEGRAL, rel_tol=2e-2)

    def test_constant_integrand(self):
        """Constant integrand gives the exact volume-weighted value"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(
            lambda x: torch.full((x.shape[0],), 2.0, dtype=x.dtype),
            [0.0, -1.0],
            [1.0, 1.0],
            max_function_evaluations=2_000,
        )

        assert math.isclose(miser.integrate(), 4.0, rel_tol=1e-12)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"fraction": 0.0},
            {"fraction": 1.0},
            {"min_subregion_points": 0},
            {"min_bisection_points": 0},
            {"min_bisection_points": 20},
            {"min_bisection_points": 59},
            {"min_subregion_points": 16},
            {"dither": 0.5},
            {"dither": -0.1},
            {"max_depth": -1},
        ],
    )
    def test_invalid_options_raise(self, kwargs):
        """Invalid options raise before any evaluation"""
        from torchintegration.monte_carlo import Miser

        miser = Miser(_ridge, [0.0], [1.0], **kwargs)

        with pytest.raises(ValueError):
            miser.integrate()
        assert miser.function_evaluations == 0
