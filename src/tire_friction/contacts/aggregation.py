"""Force-weighted reduction of contact kinematics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from tire_friction.contacts.kinematics import PointKinematics

__all__ = ["SlipAggregate", "aggregate_pair", "combine_pair_frictions"]


def _is_finite(*values: float) -> bool:
    return all(math.isfinite(value) for value in values)


@dataclass(frozen=True, slots=True)
class SlipAggregate:
    """Normal-force weighted slip and reference speeds of a contact pair."""

    slip_speed: float
    reference_speed: float
    normal_force_sum: float


def aggregate_pair(points: Iterable[PointKinematics]) -> Optional[SlipAggregate]:
    """Reduce per-point kinematics into a single :class:`SlipAggregate`.

    Points with a non-finite speed or force are ignored.  Returns ``None``
    when the remaining points carry no normal force at all, in which case the
    pair cannot be weighted and is left out of the estimate.
    """

    scaled_slip = 0.0
    scaled_reference = 0.0
    force_sum = 0.0
    for point in points:
        if not _is_finite(point.slip_speed, point.reference_speed, point.normal_force):
            continue
        force = abs(point.normal_force)
        scaled_slip += point.slip_speed * force
        scaled_reference += point.reference_speed * force
        force_sum += force

    if force_sum == 0.0 or not _is_finite(scaled_slip, scaled_reference, force_sum):
        return None

    return SlipAggregate(
        slip_speed=scaled_slip / force_sum,
        reference_speed=scaled_reference / force_sum,
        normal_force_sum=force_sum,
    )


def combine_pair_frictions(
    contributions: Iterable[Tuple[float, float]],
) -> Optional[float]:
    """Return the force-weighted mean of ``(friction, normal_force_sum)`` pairs."""

    scaled_friction = 0.0
    force_sum = 0.0
    for friction, normal_force_sum in contributions:
        if not _is_finite(friction, normal_force_sum):
            continue
        scaled_friction += friction * normal_force_sum
        force_sum += normal_force_sum

    if force_sum == 0.0 or not _is_finite(scaled_friction, force_sum):
        return None
    return scaled_friction / force_sum
