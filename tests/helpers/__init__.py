"""Builders shared across the test-suite."""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from tire_friction.contacts.records import (
    ContactBatch,
    ContactPairRecord,
    JointWrench,
    Wrench,
)
from tire_friction.simulation import PhysicsWorld

__all__ = [
    "GROUND_COLLISION",
    "WHEEL_COLLISION",
    "WHEEL_RADIUS",
    "build_batch",
    "build_contact_payload",
    "build_pair_record",
    "build_vehicle_world",
    "contact_frame",
    "rolling_state",
    "write_contact_log",
]


WHEEL_COLLISION = "car::wheel_front_left::collision"
GROUND_COLLISION = "ground_plane::link::collision"
WHEEL_RADIUS = 0.3

Point = Tuple[Sequence[float], Sequence[float], Sequence[float]]


def rolling_state(speed: float, slip_speed: float = 0.0) -> Dict[str, Any]:
    """Link state of a wheel moving along +x whose contact patch slides at ``slip_speed``.

    The wheel origin sits ``WHEEL_RADIUS`` above the contact point at the
    world origin, so the contact point moves at ``speed - WHEEL_RADIUS * omega``.
    """

    omega = (speed - slip_speed) / WHEEL_RADIUS
    return {
        "position": (0.0, 0.0, WHEEL_RADIUS),
        "linear_velocity": (speed, 0.0, 0.0),
        "angular_velocity": (0.0, omega, 0.0),
    }


def build_vehicle_world(
    *,
    engine_type: str = "ode",
    max_step_size: float = 0.001,
    speed: float = 0.0,
    slip_speed: float = 0.0,
) -> PhysicsWorld:
    world = PhysicsWorld("test", engine_type=engine_type, max_step_size=max_step_size)

    car = world.add_model("car")
    car.add_link("wheel_front_left", **rolling_state(speed, slip_speed))
    car.add_collision("wheel_front_left", "collision")
    car.add_link("chassis", position=(0.0, 0.0, 0.6))
    car.add_collision("chassis", "body")

    ground = world.add_model("ground_plane")
    ground.add_link("link")
    ground.add_collision("link", "collision")
    return world


def _vector(values: Sequence[float]) -> Dict[str, float]:
    x, y, z = values
    return {"x": float(x), "y": float(y), "z": float(z)}


def build_contact_payload(
    pairs: Iterable[Tuple[str, str, Sequence[Point]]] | None = None,
    *,
    points: Sequence[Point] | None = None,
    time: float | None = None,
) -> Dict[str, Any]:
    """Return a ``Contacts`` message mapping.

    ``points`` is a shortcut for a single wheel/ground pair; each point is a
    ``(position, normal, body_1_force)`` triple.
    """

    if pairs is None:
        pairs = [(WHEEL_COLLISION, GROUND_COLLISION, points or ())]

    contacts: List[Dict[str, Any]] = []
    for collision1, collision2, pair_points in pairs:
        contacts.append(
            {
                "collision1": collision1,
                "collision2": collision2,
                "position": [_vector(position) for position, _, _ in pair_points],
                "normal": [_vector(normal) for _, normal, _ in pair_points],
                "wrench": [
                    {
                        "body_1_name": collision1,
                        "body_2_name": collision2,
                        "body_1_wrench": {"force": _vector(force), "torque": _vector((0, 0, 0))},
                        "body_2_wrench": {
                            "force": _vector([-component for component in force]),
                            "torque": _vector((0, 0, 0)),
                        },
                    }
                    for _, _, force in pair_points
                ],
            }
        )

    payload: Dict[str, Any] = {"contact": contacts}
    if time is not None:
        payload["time"] = time
    return payload


def build_pair_record(
    points: Sequence[Point],
    *,
    collision1: str = WHEEL_COLLISION,
    collision2: str = GROUND_COLLISION,
) -> ContactPairRecord:
    return ContactPairRecord(
        collision1=collision1,
        collision2=collision2,
        positions=tuple(tuple(map(float, position)) for position, _, _ in points),
        normals=tuple(tuple(map(float, normal)) for _, normal, _ in points),
        wrenches=tuple(
            JointWrench(body_1_wrench=Wrench(force=tuple(map(float, force))))
            for _, _, force in points
        ),
    )


def build_batch(*records: ContactPairRecord) -> ContactBatch:
    return ContactBatch(contacts=tuple(records))


def contact_frame(
    time: float,
    *,
    speed: float = 2.0,
    slip_speed: float = 0.0,
    points: Sequence[Point] | None = None,
) -> Dict[str, Any]:
    """Return one replay log frame for the ``car`` wheel rolling on the ground."""

    frame: Dict[str, Any] = {
        "time": time,
        "links": {
            "car::wheel_front_left": rolling_state(speed, slip_speed),
            "ground_plane::link": {},
        },
    }
    if points is not None:
        frame["contacts"] = build_contact_payload(points=points, time=time)
    return frame


def write_contact_log(path: Path, frames: Iterable[Dict[str, Any]]) -> Path:
    lines = "".join(json.dumps(frame) + "\n" for frame in frames)
    if path.suffix == ".gz":
        with gzip.open(path, "wt", encoding="utf8") as handle:
            handle.write(lines)
    else:
        path.write_text(lines, encoding="utf8")
    return path
