"""Replay recorded contact logs through the friction estimator.

Logs are newline-delimited JSON (optionally gzip compressed).  Each line is
one simulation tick::

    {
        "time": 0.001,
        "links": {
            "car::wheel_front_left": {
                "position": [0.0, 0.0, 0.3],
                "orientation": [0.0, 0.0, 0.0, 1.0],
                "linear_velocity": [5.0, 0.0, 0.0],
                "angular_velocity": [0.0, 16.0, 0.0]
            },
            "ground_plane::link": {}
        },
        "contacts": {"contact": [...]}
    }

``links`` updates the state of the named links before the tick, ``contacts``
(optional) is published on the monitored collision's contact topic and the
estimator is then advanced once.  Links and collisions referenced anywhere
in the log are created in an in-memory :class:`PhysicsWorld`.
"""

from __future__ import annotations

import gzip
import json
import logging
import math
from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from tire_friction.estimator import FrictionEstimator
from tire_friction.parameters import EstimatorOptions
from tire_friction.simulation import LocalContactTransport, PhysicsWorld

__all__ = [
    "ReplayFrame",
    "ReplayTick",
    "build_world",
    "iter_frames",
    "replay",
]


logger = logging.getLogger(__name__)


_SCOPE = "::"
_LINK_STATE_KEYS = ("position", "orientation", "linear_velocity", "angular_velocity")


@dataclass(frozen=True, slots=True)
class ReplayFrame:
    """One tick of a recorded contact log."""

    time: Optional[float]
    links: Mapping[str, Mapping[str, Any]]
    contacts: Optional[Mapping[str, Any]]


@dataclass(frozen=True, slots=True)
class ReplayTick:
    """Outcome of a replayed tick."""

    index: int
    time: Optional[float]
    friction: Optional[float]
    mu_primary: Optional[float]
    mu_secondary: Optional[float]

    @property
    def updated(self) -> bool:
        return self.friction is not None

    def as_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "time": self.time,
            "friction": self.friction,
            "mu_primary": self.mu_primary,
            "mu_secondary": self.mu_secondary,
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _decode_link_state(name: str, state: Any, line_number: int) -> dict[str, tuple[float, ...]]:
    if state is None:
        return {}
    if not isinstance(state, ABCMapping):
        raise ValueError(f"Line {line_number}: state of link {name!r} must be an object")
    decoded: dict[str, tuple[float, ...]] = {}
    for key in _LINK_STATE_KEYS:
        if key not in state:
            continue
        value = state[key]
        size = 4 if key == "orientation" else 3
        if (
            not isinstance(value, list)
            or len(value) != size
            or not all(_is_number(component) for component in value)
        ):
            raise ValueError(
                f"Line {line_number}: '{key}' of link {name!r} must be {size} finite numbers"
            )
        decoded[key] = tuple(float(component) for component in value)
    return decoded


def _decode_frame(payload: Any, line_number: int) -> ReplayFrame:
    if not isinstance(payload, ABCMapping):
        raise ValueError(f"Line {line_number}: replay frames must be JSON objects")
    links = payload.get("links") or {}
    if not isinstance(links, ABCMapping):
        raise ValueError(f"Line {line_number}: 'links' must be an object")
    contacts = payload.get("contacts")
    if contacts is not None and not isinstance(contacts, ABCMapping):
        raise ValueError(f"Line {line_number}: 'contacts' must be an object")
    time = payload.get("time")
    if time is not None and not _is_number(time):
        raise ValueError(f"Line {line_number}: 'time' must be a finite number, got {time!r}")
    return ReplayFrame(
        time=float(time) if time is not None else None,
        links={
            str(name): _decode_link_state(str(name), state, line_number)
            for name, state in links.items()
        },
        contacts=contacts,
    )


def _iter_lines(handle: Iterable[str]) -> Iterator[ReplayFrame]:
    for line_number, line in enumerate(handle, start=1):
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Line {line_number}: invalid JSON ({exc.msg})") from exc
        yield _decode_frame(payload, line_number)


def iter_frames(path: str | Path) -> Iterator[ReplayFrame]:
    """Yield the frames stored in ``path``; ``.gz`` files are decompressed."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Contact log {source} does not exist")

    if source.suffix in {".gz", ".gzip"}:
        with gzip.open(source, "rt", encoding="utf8") as handle:
            yield from _iter_lines(handle)
        return

    with source.open("r", encoding="utf8") as handle:
        yield from _iter_lines(handle)


def _ensure_link(world: PhysicsWorld, scoped_link: str) -> None:
    model_name, _, link_name = scoped_link.rpartition(_SCOPE)
    if not model_name or not link_name:
        raise ValueError(f"Link names must be scoped as 'model::link', got {scoped_link!r}")
    model = world.get_model(model_name) or world.add_model(model_name)
    if model.get_link(link_name) is None:
        model.add_link(link_name)


def _ensure_collision(world: PhysicsWorld, scoped_collision: str) -> None:
    scoped_link, _, collision_name = scoped_collision.rpartition(_SCOPE)
    if _SCOPE not in scoped_link or not collision_name:
        raise ValueError(
            "Collision names must be scoped as 'model::link::collision', "
            f"got {scoped_collision!r}"
        )
    _ensure_link(world, scoped_link)
    if world.get_collision(scoped_collision) is None:
        model_name, _, link_name = scoped_link.rpartition(_SCOPE)
        model = world.get_model(model_name)
        assert model is not None
        model.add_collision(link_name, collision_name)


def build_world(
    frames: Sequence[ReplayFrame],
    *,
    name: str = "replay",
    engine_type: str = "ode",
    max_step_size: float = 0.001,
) -> PhysicsWorld:
    """Create a world holding every link and collision referenced by ``frames``."""

    world = PhysicsWorld(name, engine_type=engine_type, max_step_size=max_step_size)
    for frame in frames:
        for scoped_link in frame.links:
            _ensure_link(world, scoped_link)
        if frame.contacts is None:
            continue
        for contact in frame.contacts.get("contact") or ():
            if not isinstance(contact, ABCMapping):
                continue
            for key in ("collision1", "collision2"):
                scoped = contact.get(key)
                if scoped:
                    _ensure_collision(world, str(scoped))
    return world


def _apply_link_states(world: PhysicsWorld, links: Mapping[str, Mapping[str, Any]]) -> None:
    for scoped_link, state in links.items():
        link = world.get_link(scoped_link)
        if link is None:
            logger.warning(
                "Replay frame references unknown link %s",
                scoped_link,
                extra={"event": "replay.unknown_link", "link": scoped_link},
            )
            continue
        link.set_state(**{key: state[key] for key in _LINK_STATE_KEYS if key in state})


def replay(
    frames: Iterable[ReplayFrame],
    options: EstimatorOptions,
    *,
    model_name: str | None = None,
    tick_duration: float | None = None,
    engine_type: str = "ode",
    max_step_size: float = 0.001,
) -> list[ReplayTick]:
    """Run the estimator over ``frames`` and return one result per tick.

    ``model_name`` selects the model owning the monitored link; it defaults to
    the first model found in the log.
    """

    frames = list(frames)
    world = build_world(frames, engine_type=engine_type, max_step_size=max_step_size)
    if model_name is None:
        models = world.models
        if not models:
            raise ValueError("Contact log does not reference any model")
        model = models[0]
    else:
        model = world.get_model(model_name)
        if model is None:
            raise ValueError(f"Model '{model_name}' does not appear in the contact log")

    if options.collision_name is not None:
        link = model.get_link(options.link_name)
        if link is not None and model.get_collision(link, options.collision_name) is None:
            model.add_collision(link.name, options.collision_name)

    transport = LocalContactTransport()
    estimator = FrictionEstimator(world, model, options)
    topic = estimator.connect(transport)
    surface = estimator.collision.surface
    pyramid = surface.friction_pyramid if surface is not None else None

    results: list[ReplayTick] = []
    try:
        for index, frame in enumerate(frames):
            _apply_link_states(world, frame.links)
            if frame.contacts is not None:
                transport.publish(topic, frame.contacts)
            friction = estimator.advance(tick_duration)
            results.append(
                ReplayTick(
                    index=index,
                    time=frame.time,
                    friction=friction,
                    mu_primary=pyramid.mu_primary if pyramid is not None else None,
                    mu_secondary=pyramid.mu_secondary if pyramid is not None else None,
                )
            )
    finally:
        estimator.close()

    logger.info(
        "Replayed %d ticks",
        len(results),
        extra={"event": "replay.completed", "statistics": estimator.statistics},
    )
    return results
