import math

import pytest

from gmtoptics.atmosphere import (
    AtmosphereBuilder,
    AtmosphereBuilderError,
    RayTracing,
    TurbulenceProfile,
    r0_at_zenith_angle,
)


def test_default_builder_values():
    b = AtmosphereBuilder()
    assert b.r0_at_zenith == 0.16
    assert b.oscale == 25.0
    assert b.zenith_angle == pytest.approx(math.radians(30.0))
    assert b.ray_tracing is None
    assert b.turbulence.n_layer == 7
    assert b.turbulence.altitude == (25.0, 275.0, 425.0, 1250.0, 4000.0, 8000.0, 13000.0)


def test_default_ray_tracing_values():
    rt = RayTracing()
    assert rt.width == 25.5
    assert rt.n_width_px == 512
    assert rt.filepath is None
    assert rt.n_duration is None


def test_r0_at_zenith_is_unchanged():
    assert r0_at_zenith_angle(0.16, 0.0) == pytest.approx(0.16)
    b = AtmosphereBuilder().with_zenith_angle(0.0)
    assert b.r0() == pytest.approx(0.16)


def test_r0_decreases_with_zenith_angle():
    b = AtmosphereBuilder()
    assert b.r0() < b.r0_at_zenith
    assert b.with_zenith_angle(1.0).r0() < b.r0()


def test_r0_scaling_law():
    r, z = 0.2, 0.7
    assert r0_at_zenith_angle(r, z) ** (-5.0 / 3.0) == pytest.approx(
        r ** (-5.0 / 3.0) / math.cos(z)
    )


def test_layer_altitudes_and_speeds_at_zenith():
    b = AtmosphereBuilder().with_zenith_angle(0.0)
    assert b.layer_altitudes() == pytest.approx(list(b.turbulence.altitude))
    assert b.layer_wind_speeds() == pytest.approx(list(b.turbulence.wind_speed))


def test_layer_scaling_invariant():
    b = AtmosphereBuilder()
    products = [a * w for a, w in zip(b.layer_altitudes(), b.layer_wind_speeds())]
    expected = [a * w for a, w in zip(b.turbulence.altitude, b.turbulence.wind_speed)]
    assert products == pytest.approx(expected)
    assert all(a > a0 for a, a0 in zip(b.layer_altitudes(), b.turbulence.altitude))


def test_single_turbulence_layer_defaults():
    b = AtmosphereBuilder().single_turbulence_layer(1000.0)
    t = b.turbulence
    assert t.n_layer == 1
    assert t.altitude == (1000.0,)
    assert t.xi0 == (1.0,)
    assert t.wind_speed == (0.0,)
    assert t.wind_direction == (0.0,)


def test_single_turbulence_layer_with_wind():
    t = AtmosphereBuilder().single_turbulence_layer(0.0, 7.0, 0.5).turbulence
    assert t.wind_speed == (7.0,)
    assert t.wind_direction == (0.5,)


def test_remove_turbulence_layer():
    original = AtmosphereBuilder()
    b = original.remove_turbulence_layer(0)
    assert b.turbulence.n_layer == 6
    assert b.turbulence.altitude == original.turbulence.altitude[1:]
    assert b.turbulence.xi0 == original.turbulence.xi0[1:]
    assert original.turbulence.n_layer == 7


def test_remove_turbulence_layer_out_of_range():
    with pytest.raises(IndexError):
        AtmosphereBuilder().remove_turbulence_layer(7)


def test_builder_setters_do_not_mutate():
    b = AtmosphereBuilder()
    b2 = b.with_r0_at_zenith(0.2).with_oscale(30.0)
    assert (b2.r0_at_zenith, b2.oscale) == (0.2, 30.0)
    assert (b.r0_at_zenith, b.oscale) == (0.16, 25.0)


def test_ray_tracing_setters(tmp_path):
    rt = (
        RayTracing()
        .with_width(26.0)
        .with_n_width_px(401)
        .with_field_size(0.01)
        .with_duration(3.0)
        .with_filepath(tmp_path / "atm.bin")
        .with_n_duration(5)
    )
    assert rt == RayTracing(26.0, 401, 0.01, 3.0, str(tmp_path / "atm.bin"), 5)


def test_save_load_round_trip_default(tmp_path):
    path = tmp_path / "atm_builder.toml"
    b = AtmosphereBuilder()
    b.save(path)
    assert path.read_text().startswith("# AtmosphereBuilder\n\n")
    assert AtmosphereBuilder.load(path) == b


def test_save_load_round_trip_with_ray_tracing(tmp_path):
    path = tmp_path / "atm.toml"
    b = (
        AtmosphereBuilder()
        .remove_turbulence_layer(2)
        .with_ray_tracing(RayTracing().with_filepath("screens.bin").with_n_duration(3))
    )
    b.save(path)
    loaded = AtmosphereBuilder.load(path)
    assert loaded == b
    assert loaded.ray_tracing.filepath == "screens.bin"


def test_load_missing_file(tmp_path):
    with pytest.raises(AtmosphereBuilderError):
        AtmosphereBuilder.load(tmp_path / "missing.toml")


def test_load_invalid_toml(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("r0_at_zenith = = 1")
    with pytest.raises(AtmosphereBuilderError):
        AtmosphereBuilder.load(path)


def test_load_missing_field(tmp_path):
    path = tmp_path / "partial.toml"
    path.write_text("r0_at_zenith = 0.16\noscale = 25.0\n")
    with pytest.raises(AtmosphereBuilderError):
        AtmosphereBuilder.load(path)


def test_save_into_missing_directory(tmp_path):
    with pytest.raises(AtmosphereBuilderError):
        AtmosphereBuilder().save(tmp_path / "nope" / "atm.toml")


def test_turbulence_profile_round_trip_equality():
    t = TurbulenceProfile(2, [1, 2], [0.5, 0.5], [3, 4], [0, 1])
    assert t.altitude == (1.0, 2.0)
    assert AtmosphereBuilder().turbulence_profile(t).turbulence == t