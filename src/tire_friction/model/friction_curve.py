"""Slip-dependent tire friction curve.

The curve is a piecewise linear approximation of semi-empirical tire models
such as the Pacejka magic formula.  When the reference speed is at least
``speed_static`` the coefficient is a function of the slip ratio alone,
connecting the points::

    (0, 0) -> (slip_static, friction_static)
           -> (slip_dynamic, friction_dynamic) -> (inf, friction_dynamic)

Slip ratios are unreliable close to standstill, so below half of
``speed_static`` the static coefficient is returned unconditionally.  Between
50% and 100% of ``speed_static`` the result is scaled by the speed ratio:

``(friction_from_slip - friction_static) / 0.5 * (speed_ratio - 0.5)``

Note that this blend starts from zero rather than ``friction_static`` at half
the static speed and is therefore discontinuous at both ends of the band.
"""

from __future__ import annotations

from tire_friction.parameters import FrictionParameters

__all__ = [
    "LOW_SPEED_FRACTION",
    "compute_friction",
    "curve_segment",
    "friction_from_slip",
]


LOW_SPEED_FRACTION = 0.5


def curve_segment(slip_ratio: float, params: FrictionParameters) -> str:
    """Return the name of the curve piece evaluated for ``slip_ratio``."""

    if slip_ratio < params.slip_static:
        return "rising"
    if slip_ratio < params.slip_dynamic:
        return "falling"
    return "sliding"


def friction_from_slip(slip_ratio: float, params: FrictionParameters) -> float:
    """Evaluate the piecewise linear slip curve at ``slip_ratio``."""

    mu_static = abs(params.friction_static)
    mu_dynamic = abs(params.friction_dynamic)

    if slip_ratio < params.slip_static:
        return slip_ratio * mu_static / params.slip_static
    if slip_ratio < params.slip_dynamic:
        return mu_dynamic + (mu_static - mu_dynamic) / (
            params.slip_static - params.slip_dynamic
        ) * (slip_ratio - params.slip_dynamic)
    return mu_dynamic


def compute_friction(
    slip_speed: float, reference_speed: float, params: FrictionParameters
) -> float:
    """Return the friction coefficient for a slip and reference speed pair."""

    speed_static = abs(params.speed_static)
    if abs(reference_speed) < LOW_SPEED_FRACTION * speed_static:
        return params.friction_static

    slip_ratio = abs(slip_speed) / abs(reference_speed)
    friction = friction_from_slip(slip_ratio, params)

    speed_ratio = abs(reference_speed) / speed_static
    if LOW_SPEED_FRACTION <= speed_ratio < 1.0:
        # Kept as originally tuned; there is no friction_static offset.
        return (friction - params.friction_static) / LOW_SPEED_FRACTION * (
            speed_ratio - LOW_SPEED_FRACTION
        )

    return friction
