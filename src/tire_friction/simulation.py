"""In-memory physics collaborators.

The classes in this module implement the protocols of
:mod:`tire_friction.interfaces` without a real physics engine.  Links carry a
pose and a twist that the embedding application (or the replay driver)
updates explicitly, surfaces expose an ODE style friction pyramid and
:class:`LocalContactTransport` provides a thread-safe publish/subscribe hub for
contact messages.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

from tire_friction.interfaces import ContactCallback

__all__ = [
    "FRICTION_UPDATE_ENGINES",
    "Collision",
    "FrictionPyramid",
    "LocalContactTransport",
    "Model",
    "PhysicsWorld",
    "Pose",
    "RigidLink",
    "SurfaceParams",
    "scoped_name",
]


logger = logging.getLogger(__name__)


FRICTION_UPDATE_ENGINES = frozenset({"ode"})

_SCOPE = "::"


def scoped_name(*parts: str) -> str:
    """Join entity names with the engine scope delimiter."""

    return _SCOPE.join(part for part in parts if part)


def _as_vector(value: Sequence[float] | np.ndarray | None) -> np.ndarray:
    if value is None:
        return np.zeros(3)
    vector = np.asarray(value, dtype=float).reshape(3)
    return vector.copy()


def _as_rotation(value: Sequence[float] | Rotation | None) -> Rotation:
    if value is None:
        return Rotation.identity()
    if isinstance(value, Rotation):
        return value
    # Quaternions are given scalar-last: (x, y, z, w).
    return Rotation.from_quat(np.asarray(value, dtype=float))


@dataclass(frozen=True)
class Pose:
    """Position and orientation of a link origin in world frame."""

    position: np.ndarray
    rotation: Rotation

    @classmethod
    def identity(cls) -> "Pose":
        return cls(position=np.zeros(3), rotation=Rotation.identity())


class RigidLink:
    """Link with a world pose and a rigid-body twist."""

    def __init__(
        self,
        name: str,
        *,
        model_name: str = "",
        position: Sequence[float] | None = None,
        orientation: Sequence[float] | Rotation | None = None,
        linear_velocity: Sequence[float] | None = None,
        angular_velocity: Sequence[float] | None = None,
    ) -> None:
        self.name = name
        self.scoped_name = scoped_name(model_name, name)
        self._lock = threading.Lock()
        self._position = _as_vector(position)
        self._rotation = _as_rotation(orientation)
        self._linear_velocity = _as_vector(linear_velocity)
        self._angular_velocity = _as_vector(angular_velocity)

    def set_state(
        self,
        *,
        position: Sequence[float] | None = None,
        orientation: Sequence[float] | Rotation | None = None,
        linear_velocity: Sequence[float] | None = None,
        angular_velocity: Sequence[float] | None = None,
    ) -> None:
        """Update the supplied parts of the link state; others are kept."""

        with self._lock:
            if position is not None:
                self._position = _as_vector(position)
            if orientation is not None:
                self._rotation = _as_rotation(orientation)
            if linear_velocity is not None:
                self._linear_velocity = _as_vector(linear_velocity)
            if angular_velocity is not None:
                self._angular_velocity = _as_vector(angular_velocity)

    def world_pose(self) -> Pose:
        with self._lock:
            return Pose(position=self._position.copy(), rotation=self._rotation)

    def world_linear_velocity(self, offset: Sequence[float] | None = None) -> np.ndarray:
        """Velocity of the point ``offset`` (world axes) away from the origin."""

        with self._lock:
            velocity = self._linear_velocity.copy()
            if offset is None:
                return velocity
            return velocity + np.cross(self._angular_velocity, _as_vector(offset))

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"RigidLink({self.scoped_name!r})"


@dataclass
class FrictionPyramid:
    """Primary and secondary Coulomb friction coefficients."""

    mu_primary: float = 1.0
    mu_secondary: float = 1.0

    def set_mu_primary(self, mu: float) -> None:
        self.mu_primary = float(mu)

    def set_mu_secondary(self, mu: float) -> None:
        self.mu_secondary = float(mu)


@dataclass
class SurfaceParams:
    friction_pyramid: Optional[FrictionPyramid] = field(default_factory=FrictionPyramid)


@dataclass
class Collision:
    """Collision shape attached to a link."""

    name: str
    link: RigidLink
    surface: Optional[SurfaceParams] = field(default_factory=SurfaceParams)

    @property
    def scoped_name(self) -> str:
        return scoped_name(self.link.scoped_name, self.name)


class Model:
    """Named collection of links and their collisions."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._links: Dict[str, RigidLink] = {}
        self._collisions: Dict[str, Dict[str, Collision]] = {}

    @property
    def links(self) -> List[RigidLink]:
        return list(self._links.values())

    def add_link(self, name: str, **state: Any) -> RigidLink:
        if name in self._links:
            raise ValueError(f"Link '{name}' already exists in model '{self.name}'")
        link = RigidLink(name, model_name=self.name, **state)
        self._links[name] = link
        self._collisions[name] = {}
        return link

    def add_collision(
        self,
        link_name: str,
        name: str,
        *,
        surface: Optional[SurfaceParams] = None,
        with_surface: bool = True,
    ) -> Collision:
        try:
            link = self._links[link_name]
        except KeyError:
            raise KeyError(f"Unknown link '{link_name}' in model '{self.name}'") from None
        if surface is None and with_surface:
            surface = SurfaceParams()
        collision = Collision(name=name, link=link, surface=surface)
        self._collisions[link_name][name] = collision
        return collision

    def get_link(self, name: str | None = None) -> RigidLink | None:
        if name is None:
            return next(iter(self._links.values()), None)
        return self._links.get(name)

    def get_collision(self, link: RigidLink, name: str) -> Collision | None:
        return self._collisions.get(link.name, {}).get(name)

    def collisions(self) -> List[Collision]:
        return [
            collision
            for per_link in self._collisions.values()
            for collision in per_link.values()
        ]


class PhysicsWorld:
    """World registry exposing the engine capabilities used by the estimator."""

    def __init__(
        self,
        name: str = "default",
        *,
        engine_type: str = "ode",
        max_step_size: float = 0.001,
    ) -> None:
        if max_step_size <= 0:
            raise ValueError("max_step_size must be positive")
        self.name = name
        self.engine_type = engine_type
        self.max_step_size = float(max_step_size)
        self._models: Dict[str, Model] = {}
        self._filters: Dict[str, str] = {}

    @property
    def models(self) -> List[Model]:
        return list(self._models.values())

    @property
    def contact_filters(self) -> Mapping[str, str]:
        return dict(self._filters)

    def add_model(self, model: Model | str) -> Model:
        if isinstance(model, str):
            model = Model(model)
        self._models[model.name] = model
        return model

    def get_model(self, name: str) -> Model | None:
        return self._models.get(name)

    def get_collision(self, scoped: str) -> Collision | None:
        parts = scoped.split(_SCOPE)
        if len(parts) < 3:
            return None
        model = self._models.get(_SCOPE.join(parts[:-2]))
        if model is None:
            return None
        link = model.get_link(parts[-2])
        if link is None:
            return None
        return model.get_collision(link, parts[-1])

    def get_link(self, scoped: str) -> RigidLink | None:
        parts = scoped.split(_SCOPE)
        if len(parts) < 2:
            return None
        model = self._models.get(_SCOPE.join(parts[:-1]))
        if model is None:
            return None
        return model.get_link(parts[-1])

    def supports_friction_updates(self) -> bool:
        return self.engine_type in FRICTION_UPDATE_ENGINES

    def create_contact_filter(self, name: str, collision: str) -> str:
        topic = "/".join(("", "world", self.name, *name.split(_SCOPE), "contacts"))
        self._filters[topic] = collision
        return topic


class _Subscription:
    __slots__ = ("_transport", "_topic", "_callback")

    def __init__(
        self, transport: "LocalContactTransport", topic: str, callback: ContactCallback
    ) -> None:
        self._transport = transport
        self._topic = topic
        self._callback = callback

    @property
    def topic(self) -> str:
        return self._topic

    def unsubscribe(self) -> None:
        self._transport._remove(self._topic, self._callback)


class LocalContactTransport:
    """Thread-safe in-process publish/subscribe hub.

    :meth:`publish` runs subscriber callbacks on the publishing thread, so a
    producer thread behaves like the engine's asynchronous delivery context.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[ContactCallback]] = {}

    def subscribe(self, topic: str, callback: ContactCallback) -> _Subscription:
        with self._lock:
            self._subscribers.setdefault(topic, []).append(callback)
        return _Subscription(self, topic, callback)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))

    def publish(self, topic: str, message: Mapping[str, Any]) -> int:
        """Deliver ``message`` to the subscribers of ``topic``.

        Returns the number of callbacks invoked.
        """

        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
        if not callbacks:
            logger.debug(
                "No subscribers for contact topic %s",
                topic,
                extra={"event": "transport.no_subscribers", "topic": topic},
            )
        for callback in callbacks:
            callback(message)
        return len(callbacks)

    def _remove(self, topic: str, callback: ContactCallback) -> None:
        with self._lock:
            callbacks = self._subscribers.get(topic)
            if not callbacks:
                return
            try:
                callbacks.remove(callback)
            except ValueError:
                return
            if not callbacks:
                del self._subscribers[topic]
