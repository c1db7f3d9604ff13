"""Per-point slip kinematics of a contact pair."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from tire_friction.contacts.records import ContactPairRecord, ContactPointSample
from tire_friction.errors import InvalidContactRecord
from tire_friction.interfaces import SupportsLink, SupportsPhysicsEngine

__all__ = ["ContactKinematicsEvaluator", "PointKinematics", "evaluate_point"]


@dataclass(frozen=True, slots=True)
class PointKinematics:
    """Slip speed, reference speed and normal force at one contact point."""

    slip_speed: float
    reference_speed: float
    normal_force: float


def _velocity_at(link: SupportsLink, position: np.ndarray) -> np.ndarray:
    offset = position - np.asarray(link.world_pose().position, dtype=float)
    return np.asarray(link.world_linear_velocity(offset), dtype=float)


def evaluate_point(
    sample: ContactPointSample,
    link1: SupportsLink,
    link2: SupportsLink,
    *,
    origin_speed1: float | None = None,
    origin_speed2: float | None = None,
) -> PointKinematics:
    """Evaluate slip and normal force for ``sample`` between two links.

    ``origin_speed1`` and ``origin_speed2`` may be supplied when the caller
    already knows the link origin speeds; they are queried otherwise.
    """

    position = np.asarray(sample.position, dtype=float)
    normal = np.asarray(sample.normal, dtype=float)

    velocity1 = _velocity_at(link1, position)
    velocity2 = _velocity_at(link2, position)

    slip_velocity = velocity1 - velocity2
    slip_velocity = slip_velocity - normal * float(np.dot(slip_velocity, normal))
    slip_speed = float(np.linalg.norm(slip_velocity))

    # Body 1 force is reported in the body frame.
    force1 = np.asarray(sample.wrench.body_1_wrench.force, dtype=float)
    world_force1 = link1.world_pose().rotation.apply(force1)
    normal_force = abs(float(np.dot(world_force1, normal)))

    if origin_speed1 is None:
        origin_speed1 = float(np.linalg.norm(link1.world_linear_velocity()))
    if origin_speed2 is None:
        origin_speed2 = float(np.linalg.norm(link2.world_linear_velocity()))
    reference_speed = max(
        float(np.linalg.norm(velocity1)),
        float(np.linalg.norm(velocity2)),
        origin_speed1,
        origin_speed2,
    )

    return PointKinematics(
        slip_speed=slip_speed,
        reference_speed=reference_speed,
        normal_force=normal_force,
    )


class ContactKinematicsEvaluator:
    """Resolve the links of a contact pair and evaluate each of its points."""

    def __init__(self, physics: SupportsPhysicsEngine) -> None:
        self._physics = physics

    def _resolve_link(self, record: ContactPairRecord, scoped_name: str) -> SupportsLink:
        collision = self._physics.get_collision(scoped_name)
        if collision is None:
            raise InvalidContactRecord(
                f"Unknown collision '{scoped_name}' in contact message",
                collision1=record.collision1,
                collision2=record.collision2,
            )
        return collision.link

    def evaluate_pair(self, record: ContactPairRecord) -> Tuple[PointKinematics, ...]:
        """Return the kinematics of every point of ``record``.

        Raises :class:`InvalidContactRecord` when the record is malformed or
        refers to collisions unknown to the physics engine.
        """

        points = record.points()
        link1 = self._resolve_link(record, record.collision1)
        link2 = self._resolve_link(record, record.collision2)

        origin_speed1 = float(np.linalg.norm(link1.world_linear_velocity()))
        origin_speed2 = float(np.linalg.norm(link2.world_linear_velocity()))

        return tuple(
            evaluate_point(
                sample,
                link1,
                link2,
                origin_speed1=origin_speed1,
                origin_speed2=origin_speed2,
            )
            for sample in points
        )
