"""Structural typing interfaces for the physics engine collaborators.

The estimator never imports a concrete engine.  It talks to links,
collisions, surfaces and the contact transport through the
:class:`typing.Protocol` definitions below so that any engine binding (or the
in-memory implementation in :mod:`tire_friction.simulation`) can be plugged in.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

import numpy as np
from scipy.spatial.transform import Rotation

__all__ = [
    "ContactCallback",
    "SupportsCollision",
    "SupportsContactTransport",
    "SupportsFrictionPyramid",
    "SupportsLink",
    "SupportsModel",
    "SupportsPhysicsEngine",
    "SupportsPose",
    "SupportsSubscription",
    "SupportsSurface",
]


ContactCallback = Callable[[Mapping[str, Any]], None]


@runtime_checkable
class SupportsPose(Protocol):
    """World pose of a link origin."""

    position: np.ndarray
    rotation: Rotation


@runtime_checkable
class SupportsLink(Protocol):
    """Rigid link exposing its pose and velocity queries in world frame."""

    name: str

    def world_pose(self) -> SupportsPose: ...

    def world_linear_velocity(self, offset: Sequence[float] | None = None) -> np.ndarray:
        """Linear velocity of the point at ``offset`` from the link origin.

        ``offset`` is expressed in world axes; ``None`` means the origin.
        """
        ...


@runtime_checkable
class SupportsFrictionPyramid(Protocol):
    """Primary and secondary Coulomb coefficients of a contact surface."""

    def set_mu_primary(self, mu: float) -> None: ...

    def set_mu_secondary(self, mu: float) -> None: ...


@runtime_checkable
class SupportsSurface(Protocol):
    friction_pyramid: SupportsFrictionPyramid | None


@runtime_checkable
class SupportsCollision(Protocol):
    name: str
    scoped_name: str
    link: SupportsLink
    surface: SupportsSurface | None


@runtime_checkable
class SupportsModel(Protocol):
    name: str

    def get_link(self, name: str | None = None) -> SupportsLink | None:
        """Return the named link, or the first link when ``name`` is ``None``."""
        ...

    def get_collision(self, link: SupportsLink, name: str) -> SupportsCollision | None: ...


@runtime_checkable
class SupportsPhysicsEngine(Protocol):
    engine_type: str
    max_step_size: float

    def supports_friction_updates(self) -> bool:
        """Whether surface friction coefficients can be changed at run time."""
        ...

    def get_collision(self, scoped_name: str) -> SupportsCollision | None: ...

    def create_contact_filter(self, name: str, collision: str) -> str:
        """Register a contact filter for ``collision`` and return its topic."""
        ...


@runtime_checkable
class SupportsSubscription(Protocol):
    def unsubscribe(self) -> None: ...


@runtime_checkable
class SupportsContactTransport(Protocol):
    def subscribe(self, topic: str, callback: ContactCallback) -> SupportsSubscription: ...
