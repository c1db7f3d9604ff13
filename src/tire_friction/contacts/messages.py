"""Decode inbound contact messages into :class:`ContactBatch` objects.

Messages follow the layout of the engine's ``Contacts`` message rendered as
plain mappings (for instance after JSON decoding)::

    {
        "time": {"sec": 12, "nsec": 500000000},
        "contact": [
            {
                "collision1": "car::wheel_front_left::collision",
                "collision2": "ground_plane::link::collision",
                "position": [{"x": 0.0, "y": 0.0, "z": 0.0}],
                "normal": [{"x": 0.0, "y": 0.0, "z": 1.0}],
                "depth": [0.001],
                "wrench": [
                    {
                        "body_1_name": "...",
                        "body_2_name": "...",
                        "body_1_wrench": {"force": {...}, "torque": {...}},
                        "body_2_wrench": {"force": {...}, "torque": {...}},
                    }
                ],
            }
        ],
    }

Vectors may be given either as ``{"x", "y", "z"}`` mappings or as three
element sequences.  NaN and infinite numbers reject the whole message.  Length
mismatches between the per-point sequences are preserved; they are detected
when the record is evaluated.
"""

from __future__ import annotations

import math
from collections.abc import Mapping as ABCMapping
from collections.abc import Sequence as ABCSequence
from typing import Any, Mapping

from tire_friction.contacts.records import (
    ContactBatch,
    ContactPairRecord,
    JointWrench,
    Vector3,
    Wrench,
)
from tire_friction.errors import ContactMessageError

__all__ = ["decode_contacts", "decode_vector"]


def _finite(value: Any, what: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ContactMessageError(f"Invalid {what}: {value!r}") from exc
    if not math.isfinite(number):
        raise ContactMessageError(f"Non-finite {what}: {value!r}")
    return number


def decode_vector(value: Any) -> Vector3:
    """Return ``value`` as a finite float triple."""

    if isinstance(value, ABCMapping):
        components = (value.get("x", 0.0), value.get("y", 0.0), value.get("z", 0.0))
    elif isinstance(value, ABCSequence) and not isinstance(value, (str, bytes)):
        if len(value) != 3:
            raise ContactMessageError(f"Vectors require three components, got {len(value)}")
        components = tuple(value)
    else:
        raise ContactMessageError(f"Unsupported vector payload: {value!r}")
    x, y, z = (_finite(component, "vector component") for component in components)
    return (x, y, z)


def _decode_wrench(value: Any) -> Wrench:
    if value is None:
        return Wrench()
    if not isinstance(value, ABCMapping):
        raise ContactMessageError(f"Invalid wrench payload: {value!r}")
    force = value.get("force")
    torque = value.get("torque")
    return Wrench(
        force=decode_vector(force) if force is not None else (0.0, 0.0, 0.0),
        torque=decode_vector(torque) if torque is not None else (0.0, 0.0, 0.0),
    )


def _decode_joint_wrench(value: Any) -> JointWrench:
    if not isinstance(value, ABCMapping):
        raise ContactMessageError(f"Invalid joint wrench payload: {value!r}")
    return JointWrench(
        body_1_name=str(value.get("body_1_name", "")),
        body_2_name=str(value.get("body_2_name", "")),
        body_1_wrench=_decode_wrench(value.get("body_1_wrench")),
        body_2_wrench=_decode_wrench(value.get("body_2_wrench")),
    )


def _as_list(value: Any, field: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, ABCSequence) and not isinstance(value, (str, bytes)):
        return list(value)
    raise ContactMessageError(f"Field '{field}' must be a sequence")


def _decode_time(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, ABCMapping):
        seconds = _finite(value.get("sec", 0), "time seconds")
        return seconds + _finite(value.get("nsec", 0), "time nanoseconds") * 1e-9
    return _finite(value, "time")


def _decode_pair(payload: Any) -> ContactPairRecord:
    if not isinstance(payload, ABCMapping):
        raise ContactMessageError(f"Invalid contact payload: {payload!r}")
    try:
        collision1 = str(payload["collision1"])
        collision2 = str(payload["collision2"])
    except KeyError as exc:
        raise ContactMessageError(f"Contact payload is missing {exc.args[0]!r}") from exc

    depths = [_finite(depth, "contact depth") for depth in _as_list(payload.get("depth"), "depth")]

    return ContactPairRecord(
        collision1=collision1,
        collision2=collision2,
        positions=tuple(decode_vector(item) for item in _as_list(payload.get("position"), "position")),
        normals=tuple(decode_vector(item) for item in _as_list(payload.get("normal"), "normal")),
        wrenches=tuple(
            _decode_joint_wrench(item) for item in _as_list(payload.get("wrench"), "wrench")
        ),
        depths=tuple(depths),
    )


def decode_contacts(payload: Mapping[str, Any]) -> ContactBatch:
    """Decode a ``Contacts`` message mapping into a :class:`ContactBatch`."""

    if isinstance(payload, ContactBatch):
        return payload
    if not isinstance(payload, ABCMapping):
        raise ContactMessageError(f"Contacts message must be a mapping, got {type(payload)!r}")
    contacts = tuple(_decode_pair(item) for item in _as_list(payload.get("contact"), "contact"))
    return ContactBatch(contacts=contacts, time=_decode_time(payload.get("time")))

