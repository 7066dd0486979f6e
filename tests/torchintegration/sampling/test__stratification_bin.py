import pytest


class TestStratificationBin:
    def test_default_weight_is_width(self):
        from torchintegration.sampling import StratificationBin

        stratum = StratificationBin(1.0, 3.5)

        assert stratum.weight == 2.5
        assert stratum.width == 2.5
        assert stratum.midpoint == 2.25

    def test_explicit_weight(self):
        from torchintegration.sampling import StratificationBin

        assert StratificationBin(0.0, 1.0, 0.25).weight == 0.25

    def test_lower_above_upper_raises(self):
        from torchintegration.sampling import StratificationBin

        with pytest.raises(ValueError, match="greater than or equal"):
            StratificationBin(2.0, 1.0)

    def test_zero_width_allowed(self):
        from torchintegration.sampling import StratificationBin

        stratum = StratificationBin(1.0, 1.0)

        assert stratum.width == 0.0

    def test_immutable(self):
        import dataclasses

        from torchintegration.sampling import StratificationBin

        stratum = StratificationBin(0.0, 1.0)

        with pytest.raises(dataclasses.FrozenInstanceError):
            stratum.lower_bound = 0.5

    def test_sorting(self):
        from torchintegration.sampling import StratificationBin

        bins = [
            StratificationBin(2.0, 3.0),
            StratificationBin(0.0, 1.0),
            StratificationBin(1.0, 2.0),
        ]

        ordered = sorted(bins)

        assert [b.lower_bound for b in ordered] == [0.0, 1.0, 2.0]

    def test_equality_ignores_weight(self):
        from torchintegration.sampling import StratificationBin

        assert StratificationBin(0.0, 1.0, 0.3) == StratificationBin(0.0, 1.0)
        assert len({StratificationBin(0.0, 1.0), StratificationBin(0.0, 1.0, 2.0)}) == 1

    def test_overlapping_comparison_raises(self):
        from torchintegration.sampling import StratificationBin

        with pytest.raises(ValueError, match="overlap"):
            StratificationBin(0.0, 2.0) < StratificationBin(1.0, 3.0)
