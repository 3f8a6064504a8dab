import math

import numpy as np
import pytest

from gmtoptics.centroiding import Centroiding


def _two_star_cog():
    centroids = [
        1.0, 2.0, 3.0, 4.0, 10.0, 20.0, 30.0, 40.0,
        5.0, 6.0, 7.0, 8.0, 50.0, 60.0, 70.0, 80.0,
    ]
    mask = [1, 0, 1, 1, 0, 1, 1, 0]
    return Centroiding(4, n_sensor=2, centroids=centroids, valid_lenslets=mask)


def test_defaults_all_valid():
    cog = Centroiding(9, n_sensor=3)
    assert cog.n_centroids == 54
    assert cog.n_valid_lenslet == [9, 9, 9]
    assert cog.n_valid_lenslet_total() == 27
    assert cog.integrated_flux() == 0.0


def test_wrong_centroid_count_raises():
    with pytest.raises(ValueError):
        Centroiding(4, centroids=[0.0, 1.0])


def test_wrong_flux_count_raises():
    with pytest.raises(ValueError):
        Centroiding(4, flux=[1.0, 2.0, 3.0])


def test_non_positive_lenslet_count_raises():
    with pytest.raises(ValueError):
        Centroiding(0)


def test_valids_filters_x_then_y():
    cog = _two_star_cog()
    v = cog.valids()
    assert v[0] == [1.0, 3.0, 4.0, 10.0, 30.0, 40.0]
    assert v[1] == [6.0, 7.0, 50.0, 60.0]


def test_valids_override_mask():
    cog = _two_star_cog()
    v = cog.valids([1, 1, 1, 1, 1, 1, 1, 1])
    assert v[0] == list(cog.centroids[:8])
    assert v[1] == list(cog.centroids[8:])


def test_valids_short_mask_raises():
    cog = _two_star_cog()
    with pytest.raises(ValueError):
        cog.valids([1, 1, 1, 1])


def test_remove_mean_zero_mean_on_valids():
    cog = _two_star_cog()
    before = cog.valids()
    original = cog.centroids.copy()
    cog.remove_mean()
    after = cog.valids()
    for b, a in zip(before, after):
        half = len(a) // 2
        assert sum(a[:half]) == pytest.approx(0.0, abs=1e-12)
        assert sum(a[half:]) == pytest.approx(0.0, abs=1e-12)
        assert cog.xy_mean is not None
    for (xm, ym), b in zip(cog.xy_mean, before):
        half = len(b) // 2
        assert xm == pytest.approx(np.mean(b[:half]))
        assert ym == pytest.approx(np.mean(b[half:]))
    invalid = np.tile(cog.valid_lenslets.reshape(2, 4), 2).ravel() <= 0
    assert np.array_equal(cog.centroids[invalid], original[invalid])


def test_remove_mean_without_valid_lenslets_gives_nan():
    cog = Centroiding(2, centroids=[1.0, 2.0, 3.0, 4.0], valid_lenslets=[0, 0])
    cog.remove_mean()
    assert math.isnan(cog.xy_mean[0][0])
    assert math.isnan(cog.xy_mean[0][1])
    assert list(cog.centroids) == [1.0, 2.0, 3.0, 4.0]


def test_flux_sums():
    flux = [1.0, 2.0, 3.0, 4.0, 0.5, 0.5, 0.5, 0.5]
    cog = Centroiding(4, n_sensor=2, flux=flux)
    assert cog.lenslet_array_flux() == [sum(flux[:4]), sum(flux[4:])]
    assert cog.integrated_flux() == pytest.approx(sum(flux))
    assert cog.integrated_flux() == pytest.approx(sum(cog.lenslet_array_flux()))


def test_set_valid_lenslets_from_threshold():
    flux = [1.0, 2.0, 3.0, 4.0, 8.0, 1.0, 8.0, 1.0]
    cog = Centroiding(4, n_sensor=2, flux=flux)
    cog.set_valid_lenslets(0.5)
    assert list(cog.valid_lenslets) == [0, 1, 1, 1, 1, 0, 1, 0]
    assert cog.n_valid_lenslet == [3, 2]
    assert cog.n_valid_lenslet_total() == 5


def test_threshold_one_keeps_brightest():
    flux = [1.0, 9.0, 3.0, 4.0]
    cog = Centroiding(4, flux=flux).set_valid_lenslets(1.0)
    assert list(cog.valid_lenslets) == [0, 1, 0, 0]


def test_explicit_mask_overrides_threshold():
    cog = Centroiding(4, flux=[1.0, 2.0, 3.0, 4.0])
    cog.set_valid_lenslets(0.5, [1, 0, 0, 0])
    assert list(cog.valid_lenslets) == [1, 0, 0, 0]
    assert cog.n_valid_lenslet == [1]


def test_threshold_with_nan_flux_raises():
    cog = Centroiding(2, flux=[1.0, float("nan")])
    with pytest.raises(ValueError):
        cog.set_valid_lenslets(0.5)