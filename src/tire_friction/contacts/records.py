"""Immutable contact records captured by the physics engine.

A :class:`ContactBatch` is what the transport delivers for one instant: an
ordered sequence of :class:`ContactPairRecord` objects, one per pair of
colliding surfaces.  Each record keeps the positions, normals and wrenches as
separate sequences, mirroring the engine message, so that records with
inconsistent lengths can still be represented and rejected later by
:meth:`ContactPairRecord.points`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

from tire_friction.errors import InvalidContactRecord

__all__ = [
    "ContactBatch",
    "ContactPairRecord",
    "ContactPointSample",
    "JointWrench",
    "Vector3",
    "Wrench",
]


Vector3 = Tuple[float, float, float]

_ZERO: Vector3 = (0.0, 0.0, 0.0)


@dataclass(frozen=True, slots=True)
class Wrench:
    """Force and torque applied to one body, expressed in the body frame."""

    force: Vector3 = _ZERO
    torque: Vector3 = _ZERO


@dataclass(frozen=True, slots=True)
class JointWrench:
    """Pair of wrenches acting on the two bodies at a contact point."""

    body_1_name: str = ""
    body_2_name: str = ""
    body_1_wrench: Wrench = Wrench()
    body_2_wrench: Wrench = Wrench()


@dataclass(frozen=True, slots=True)
class ContactPointSample:
    """Single contact point: world position and unit normal plus the wrenches."""

    position: Vector3
    normal: Vector3
    wrench: JointWrench


@dataclass(frozen=True, slots=True)
class ContactPairRecord:
    """All contact points between two collisions at one instant."""

    collision1: str
    collision2: str
    positions: Tuple[Vector3, ...] = ()
    normals: Tuple[Vector3, ...] = ()
    wrenches: Tuple[JointWrench, ...] = ()
    depths: Tuple[float, ...] = ()

    @property
    def is_valid(self) -> bool:
        count = len(self.positions)
        return count > 0 and count == len(self.normals) == len(self.wrenches)

    def points(self) -> Tuple[ContactPointSample, ...]:
        """Return the zipped contact points.

        Raises :class:`InvalidContactRecord` when the record has no points or
        when its positions, normals and wrenches differ in length.
        """

        if not self.is_valid:
            raise InvalidContactRecord(
                "No contacts or invalid contact message "
                f"(positions={len(self.positions)}, normals={len(self.normals)}, "
                f"wrenches={len(self.wrenches)})",
                collision1=self.collision1,
                collision2=self.collision2,
            )
        return tuple(
            ContactPointSample(position=position, normal=normal, wrench=wrench)
            for position, normal, wrench in zip(self.positions, self.normals, self.wrenches)
        )


@dataclass(frozen=True, slots=True)
class ContactBatch:
    """Ordered contact pair records captured at a single simulation instant."""

    contacts: Tuple[ContactPairRecord, ...] = ()
    time: float | None = None

    def __len__(self) -> int:
        return len(self.contacts)

    def __iter__(self) -> Iterator[ContactPairRecord]:
        return iter(self.contacts)
