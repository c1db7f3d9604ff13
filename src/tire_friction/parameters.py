"""Friction model parameters and estimator options."""

from __future__ import annotations

import logging
from collections.abc import Mapping as ABCMapping
from dataclasses import dataclass, field
from typing import Any, Mapping

__all__ = [
    "DEFAULT_FRICTION_DYNAMIC",
    "DEFAULT_FRICTION_STATIC",
    "DEFAULT_SLIP_DYNAMIC",
    "DEFAULT_SLIP_STATIC",
    "DEFAULT_SPEED_STATIC",
    "EstimatorOptions",
    "FrictionParameters",
]


logger = logging.getLogger(__name__)


DEFAULT_FRICTION_STATIC = 1.1
DEFAULT_FRICTION_DYNAMIC = 1.0
DEFAULT_SLIP_STATIC = 0.1
DEFAULT_SLIP_DYNAMIC = 0.2
DEFAULT_SPEED_STATIC = 1.0

_SLIP_DYNAMIC_MARGIN = 0.1


def _warn_out_of_range(name: str, value: Any, message: str, replacement: float) -> None:
    logger.warning(
        "%s parameter value [%s] %s, using [%s]",
        name,
        value,
        message,
        replacement,
        extra={
            "event": "friction.config_out_of_range",
            "parameter": name,
            "value": value,
            "replacement": replacement,
        },
    )


def _coerce_float(name: str, value: Any, fallback: float) -> float:
    if isinstance(value, bool):
        _warn_out_of_range(name, value, "is not a number", fallback)
        return fallback
    try:
        return float(value)
    except (TypeError, ValueError):
        _warn_out_of_range(name, value, "is not a number", fallback)
        return fallback


@dataclass(frozen=True, slots=True)
class FrictionParameters:
    """Immutable parameters of the slip-to-friction curve.

    Instances built directly are taken as given; use :meth:`from_config` to
    apply the range checks and fallbacks used when loading configuration.
    """

    friction_static: float = DEFAULT_FRICTION_STATIC
    friction_dynamic: float = DEFAULT_FRICTION_DYNAMIC
    slip_static: float = DEFAULT_SLIP_STATIC
    slip_dynamic: float = DEFAULT_SLIP_DYNAMIC
    speed_static: float = DEFAULT_SPEED_STATIC

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "FrictionParameters":
        """Build parameters from a raw mapping, recovering out-of-range values.

        ``friction_static`` and ``friction_dynamic`` accept any number.
        ``slip_static`` and ``speed_static`` must be positive; otherwise the
        default is retained.  ``slip_dynamic`` must exceed ``slip_static`` and is
        coerced to ``slip_static + 0.1`` when it does not.  Every recovery is
        reported as a warning and never aborts.
        """

        config = config if isinstance(config, ABCMapping) else {}

        friction_static = DEFAULT_FRICTION_STATIC
        if "friction_static" in config:
            friction_static = _coerce_float(
                "friction_static", config["friction_static"], friction_static
            )

        friction_dynamic = DEFAULT_FRICTION_DYNAMIC
        if "friction_dynamic" in config:
            friction_dynamic = _coerce_float(
                "friction_dynamic", config["friction_dynamic"], friction_dynamic
            )

        slip_static = DEFAULT_SLIP_STATIC
        if "slip_static" in config:
            candidate = _coerce_float("slip_static", config["slip_static"], slip_static)
            if candidate <= 0:
                _warn_out_of_range(
                    "slip_static", candidate, "must be positive", slip_static
                )
            else:
                slip_static = candidate

        slip_dynamic = DEFAULT_SLIP_DYNAMIC
        if "slip_dynamic" in config:
            slip_dynamic = _coerce_float("slip_dynamic", config["slip_dynamic"], slip_dynamic)
        if slip_dynamic <= slip_static:
            replacement = slip_static + _SLIP_DYNAMIC_MARGIN
            _warn_out_of_range(
                "slip_dynamic",
                slip_dynamic,
                f"must be greater than slip_static [{slip_static}]",
                replacement,
            )
            slip_dynamic = replacement

        speed_static = DEFAULT_SPEED_STATIC
        if "speed_static" in config:
            candidate = _coerce_float("speed_static", config["speed_static"], speed_static)
            if candidate <= 0:
                _warn_out_of_range(
                    "speed_static", candidate, "must be positive", speed_static
                )
            else:
                speed_static = candidate

        return cls(
            friction_static=friction_static,
            friction_dynamic=friction_dynamic,
            slip_static=slip_static,
            slip_dynamic=slip_dynamic,
            speed_static=speed_static,
        )

    def as_dict(self) -> dict[str, float]:
        return {
            "friction_static": self.friction_static,
            "friction_dynamic": self.friction_dynamic,
            "slip_static": self.slip_static,
            "slip_dynamic": self.slip_dynamic,
            "speed_static": self.speed_static,
        }


@dataclass(frozen=True, slots=True)
class EstimatorOptions:
    """Selection of the monitored link and collision plus curve parameters."""

    collision_name: str | None = None
    link_name: str | None = None
    parameters: FrictionParameters = field(default_factory=FrictionParameters)

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | None = None) -> "EstimatorOptions":
        """Coerce a ``[tool.tire_friction]`` style mapping into options."""

        config = config if isinstance(config, ABCMapping) else {}

        def _optional_name(key: str) -> str | None:
            value = config.get(key)
            if value is None:
                return None
            text = str(value).strip()
            return text or None

        return cls(
            collision_name=_optional_name("collision_name"),
            link_name=_optional_name("link_name"),
            parameters=FrictionParameters.from_config(config),
        )
