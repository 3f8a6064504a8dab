# gmtoptics

Optical modelling tools for the Giant Magellan Telescope (GMT).

- **`gmtoptics.analytic`**: analytic ray tracing through the GMT
  Gregorian design. It provides conic surfaces (`Conic`, with the
  `Conic.gmt_m1()` and `Conic.gmt_m2()` prescriptions), rays built with
  `new_ray()` (a `NewRay` builder), reflection off a conic
  (`Conic.reflect`), tracing to a conic (`Ray.trace_to`), and the
  two-mirror telescope `Gmt`, whose `focal_point` traces a chief ray and
  marginal rays to their common point by least squares. Small vector
  helpers `dot`, `norm`, `norm_square`, `normalize`, `add` and `sub` work
  on 3-vectors.
- **`gmtoptics.atmosphere`**: atmospheric turbulence descriptions.
  `AtmosphereBuilder` holds the Fried parameter at zenith, the outer
  scale, the zenith angle, a `TurbulenceProfile` and optional
  `RayTracing` settings. It is immutable: the `with_*` methods,
  `turbulence_profile`, `single_turbulence_layer` and
  `remove_turbulence_layer` return new builders. `r0()`,
  `layer_altitudes()` and `layer_wind_speeds()` give the values along
  the line of sight, and `save`/`load` write and read TOML files, raising
  `AtmosphereBuilderError` on failure.
- **`gmtoptics.calibrations`**: mirror and segment functions to
  calibrate: `Mirror`, `Segment` (built with `Segment.txyz`,
  `Segment.rxyz` or `Segment.modes`) and `total_modes`, which counts the
  columns of a seven-segment specification.
- **`gmtoptics.centroiding`**: lenslet-array centroid bookkeeping with
  `Centroiding`: valid-lenslet masks from a flux threshold or an
  explicit mask, extraction of the valid centroids, mean removal and
  flux sums.
- **`gmtoptics.calib`**: segment calibration matrices (`Calib`) for
  active optics, with masking and unmasking, area matching between two
  calibrations, pseudo-inverses (`CalibPinv`) and pickle persistence.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command line

```
gmt-analytic
```

prints the chief and marginal ray traces through M1 and M2, the exit
pupil, Gregorian focus and focal plane heights, the M1 walk, the field
walk and the field curvature.

## Examples

Trace a chief ray 10 arcminutes off axis through both mirrors:

```python
import math
from gmtoptics.analytic import Conic, new_ray

m1 = Conic.gmt_m1()
m2 = Conic.gmt_m2()

ray = new_ray().polar_direction_vector(math.radians(10 / 60), 0.0).build()
m1.reflect(ray)
ray.trace_to(m2)
m2.reflect(ray)
print(ray)
print("exit pupil:", ray.solve_for_z(0.0, 0.0))
```

Describe an atmosphere and keep it in a TOML file:

```python
from gmtoptics.atmosphere import AtmosphereBuilder, RayTracing

builder = (
    AtmosphereBuilder()
    .with_r0_at_zenith(0.15)
    .remove_turbulence_layer(0)
    .with_ray_tracing(RayTracing().with_width(25.5).with_n_width_px(769))
)
print("r0 at the zenith angle:", builder.r0())
builder.save("atmosphere.toml")
assert AtmosphereBuilder.load("atmosphere.toml") == builder
```

Count the columns of a calibration specification (M2 tip and tilt on
every segment):

```python
from gmtoptics.calibrations import Mirror, Segment, total_modes

spec = [(Mirror.M2, [Segment.rxyz(1e-6, (0, 2))])]
print(total_modes([spec] * 7))  # 14
```

Select valid lenslets and read their centroids:

```python
from gmtoptics.centroiding import Centroiding

cog = Centroiding(
    n_lenslet_total=4,
    flux=[10.0, 2.0, 8.0, 9.0],
    centroids=[0.1, 0.2, 0.3, 0.4, -0.1, -0.2, -0.3, -0.4],
)
cog.set_valid_lenslets(flux_threshold=0.5)
print(cog.n_valid_lenslet_total())  # 3
print(cog.remove_mean().valids())
```

Invert a segment calibration and reconstruct command coefficients:

```python
from gmtoptics.calib import Calib, MirrorKind

# two commands, three valid pupil samples out of four, columns stored one after the other
calib = Calib(
    MirrorKind.M2,
    n_mode=2,
    c=[1.0, 0.0, 1.0, 0.0, 1.0, 1.0],
    mask=[True, True, False, True],
)
print(calib)  # Calib M2S1 (3, 2); area = 3
pinv = calib.pseudoinverse()
wavefront = [2.0, 1.0, 0.0, 3.0]
coefficients = pinv @ calib.apply_mask(wavefront)
calib.dump("calib_m2.pkl")
same = Calib.load("calib_m2.pkl")
```

## What the package does not do

The package has no wavefront simulation engine. It does not propagate
light through the segmented telescope, generate atmospheric phase
screens or simulate wavefront-sensor frames:

- `AtmosphereBuilder` only describes an atmosphere and stores it; it
  does not produce turbulence.
- `Centroiding` works on centroids and lenslet fluxes that are given to
  it; it does not compute centroids from detector images.
- `Mirror`, `Segment` and `total_modes` describe a calibration; they do
  not run one.
- `Calib` holds, inverts, masks and saves calibration matrices, but it
  does not measure them: the matrix data and the mask must be supplied.