"""GMT optical modelling: analytic ray tracing, atmosphere descriptions,
calibration specifications, centroid bookkeeping and segment calibration matrices."""

__version__ = "0.1.0"

__all__ = ["analytic", "atmosphere", "calibrations", "centroiding", "calib"]