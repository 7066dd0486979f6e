import pytest
import torch


class TestMultivariateIntegrator:
    def test_properties(self):
        from torchintegration.monte_carlo import MonteCarloIntegrator

        mc = MonteCarloIntegrator(torch.ones_like, [0.0, 1.0], [2.0, 4.0])

        assert mc.dimensions == 2
        assert mc.volume == 6.0
        assert mc.lower.tolist() == [0.0, 1.0]
        assert mc.upper.tolist() == [2.0, 4.0]

    def test_source_selection(self):
        from torchintegration.monte_carlo import MonteCarloIntegrator
        from torchintegration.sampling import PseudoRandomSource, SobolSource

        mc = MonteCarloIntegrator(torch.ones_like, [0.0], [1.0])

        assert isinstance(mc.source, PseudoRandomSource)
        mc.use_sobol_sequence = True
        assert isinstance(mc.source, SobolSource)

    def test_random_source_can_be_replaced(self):
        from torchintegration.monte_carlo import MonteCarloIntegrator
        from torchintegration.sampling import PseudoRandomSource

        seen = []

        def f(x):
            seen.append(x.clone())
            return x[:, 0]

        mc = MonteCarloIntegrator(f, [0.0], [1.0], max_iterations=10)
        mc.random = PseudoRandomSource(seed=5)
        with pytest.warns(Warning):
            mc.integrate()

        expected = PseudoRandomSource(seed=5).sample(10, 1)
        assert torch.equal(seen[0], expected)

    def test_dimensions_checked(self):
        from torchintegration.monte_carlo import MonteCarloIntegrator

        with pytest.raises(ValueError, match="same length"):
            MonteCarloIntegrator(
                torch.ones_like, [0.0, 0.0], [1.0, 1.0], dimensions=3
            )
