"""Friction models mapping slip to a Coulomb coefficient."""

from tire_friction.model.friction_curve import (
    LOW_SPEED_FRACTION,
    compute_friction,
    curve_segment,
    friction_from_slip,
)

__all__ = [
    "LOW_SPEED_FRACTION",
    "compute_friction",
    "curve_segment",
    "friction_from_slip",
]
