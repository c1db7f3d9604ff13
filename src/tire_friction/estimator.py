"""Per-tick tire friction estimation.

:class:`FrictionEstimator` monitors one collision of a vehicle model.  Contact
messages for that collision arrive asynchronously through the transport and
are parked in a :class:`~tire_friction.contacts.buffer.ContactBuffer`.  Each
call to :meth:`FrictionEstimator.advance` consumes the newest batch (if any),
computes a normal-force weighted friction coefficient for every contact pair
and writes the combined value to both friction pyramid slots of the monitored
surface.

Ticks without a new batch are normal.  They only accumulate the staleness
timer, which is reported once it exceeds one simulated second.  Malformed
contact pairs are logged and skipped, pairs without normal force are skipped
silently and nothing is written when no pair contributes.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from tire_friction.contacts.aggregation import aggregate_pair, combine_pair_frictions
from tire_friction.contacts.buffer import ContactBuffer
from tire_friction.contacts.kinematics import ContactKinematicsEvaluator
from tire_friction.contacts.messages import decode_contacts
from tire_friction.contacts.records import ContactBatch
from tire_friction.errors import ContactMessageError, EstimatorConfigError, InvalidContactRecord
from tire_friction.interfaces import (
    SupportsCollision,
    SupportsContactTransport,
    SupportsFrictionPyramid,
    SupportsLink,
    SupportsModel,
    SupportsPhysicsEngine,
    SupportsSubscription,
)
from tire_friction.model.friction_curve import compute_friction
from tire_friction.parameters import EstimatorOptions, FrictionParameters

__all__ = ["STALE_INPUT_THRESHOLD", "FrictionEstimator"]


logger = logging.getLogger(__name__)


STALE_INPUT_THRESHOLD = 1.0


class FrictionEstimator:
    """Estimate and apply a slip-dependent friction coefficient every tick."""

    def __init__(
        self,
        physics: SupportsPhysicsEngine,
        model: SupportsModel,
        options: EstimatorOptions | None = None,
    ) -> None:
        """Resolve the monitored link, collision and surface.

        Parameters
        ----------
        physics:
            Engine used to resolve contact collisions, create the contact
            filter and report the default step size.
        model:
            Model owning the monitored link.  When ``options.link_name`` is
            omitted the model's first link is used.
        options:
            Link and collision selection plus the friction curve parameters.

        Raises
        ------
        EstimatorConfigError
            When the link or the collision cannot be resolved.
        """

        self._physics = physics
        self._model = model
        self._options = options or EstimatorOptions()

        self._link = self._resolve_link()
        self._collision = self._resolve_collision(self._link)
        self._pyramid, self._unsupported_event = self._resolve_friction_pyramid()

        self._buffer = ContactBuffer()
        self._kinematics = ContactKinematicsEvaluator(physics)
        self._subscription: SupportsSubscription | None = None
        self._topic: str | None = None

        self._staleness = 0.0
        self._last_friction: Optional[float] = None
        self._ticks = 0
        self._batches = 0
        self._invalid_records = 0
        self._degenerate_pairs = 0
        self._stale_waits = 0
        self._applied = 0
        self._unapplied = 0

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------
    def _resolve_link(self) -> SupportsLink:
        link_name = self._options.link_name
        link = self._model.get_link(link_name)
        if link is None:
            if link_name is None:
                raise EstimatorConfigError(f"Model '{self._model.name}' has no links")
            raise EstimatorConfigError(
                f"Link '{link_name}' not found in model '{self._model.name}'"
            )
        return link

    def _resolve_collision(self, link: SupportsLink) -> SupportsCollision:
        collision_name = self._options.collision_name
        if collision_name is None:
            raise EstimatorConfigError("collision_name is required")
        collision = self._model.get_collision(link, collision_name)
        if collision is None:
            raise EstimatorConfigError(
                f"Collision '{collision_name}' not found on link '{link.name}'"
            )
        return collision

    def _resolve_friction_pyramid(self) -> tuple[SupportsFrictionPyramid | None, str | None]:
        if not self._physics.supports_friction_updates():
            logger.error(
                "Physics engine '%s' does not support friction updates",
                self._physics.engine_type,
                extra={
                    "event": "friction.unsupported_backend",
                    "engine": self._physics.engine_type,
                    "collision": self._collision.scoped_name,
                },
            )
            return None, "friction.unsupported_backend"

        surface = self._collision.surface
        pyramid = surface.friction_pyramid if surface is not None else None
        if pyramid is None:
            logger.error(
                "Collision '%s' has no friction pyramid surface",
                self._collision.scoped_name,
                extra={
                    "event": "friction.surface_missing",
                    "collision": self._collision.scoped_name,
                },
            )
            return None, "friction.surface_missing"
        return pyramid, None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def parameters(self) -> FrictionParameters:
        return self._options.parameters

    @property
    def link(self) -> SupportsLink:
        return self._link

    @property
    def collision(self) -> SupportsCollision:
        return self._collision

    @property
    def buffer(self) -> ContactBuffer:
        return self._buffer

    @property
    def topic(self) -> str | None:
        """Contact topic the estimator is subscribed to, if connected."""

        return self._topic

    @property
    def supports_updates(self) -> bool:
        """Whether computed coefficients can be written to the surface."""

        return self._pyramid is not None

    @property
    def last_friction(self) -> Optional[float]:
        """Most recently computed global coefficient."""

        return self._last_friction

    @property
    def staleness(self) -> float:
        """Simulated seconds accumulated since the last consumed batch."""

        return self._staleness

    @property
    def statistics(self) -> dict[str, int]:
        return {
            "ticks": self._ticks,
            "batches": self._batches,
            "invalid_records": self._invalid_records,
            "degenerate_pairs": self._degenerate_pairs,
            "stale_waits": self._stale_waits,
            "rejected_messages": self._buffer.statistics["rejected"],
            "applied": self._applied,
            "unapplied": self._unapplied,
        }

    def connect(self, transport: SupportsContactTransport) -> str:
        """Subscribe to the contacts of the monitored collision.

        A contact filter restricted to the monitored collision is created on
        the physics engine and its topic is returned.
        """

        if self._subscription is not None:
            self._subscription.unsubscribe()
        scoped_name = self._collision.scoped_name
        topic = self._physics.create_contact_filter(scoped_name, scoped_name)
        self._subscription = transport.subscribe(topic, self.on_contacts)
        self._topic = topic
        return topic

    def close(self) -> None:
        """Drop the transport subscription."""

        subscription, self._subscription = self._subscription, None
        self._topic = None
        if subscription is not None:
            subscription.unsubscribe()

    def on_contacts(self, message: Mapping[str, Any] | ContactBatch) -> None:
        """Transport callback storing the decoded batch in the buffer."""

        try:
            batch = decode_contacts(message)  # type: ignore[arg-type]
        except ContactMessageError as exc:
            self._buffer.reject()
            logger.error(
                "Dropped undecodable contact message: %s",
                exc,
                extra={
                    "event": "friction.invalid_message",
                    "collision": self._collision.scoped_name,
                },
            )
            return
        self._buffer.put(batch)

    def estimate(self, batch: ContactBatch) -> Optional[float]:
        """Return the global friction coefficient for ``batch``.

        Invalid pairs are logged and skipped, pairs without normal force are
        skipped silently.  ``None`` is returned when no pair contributes.
        """

        params = self._options.parameters
        contributions: list[tuple[float, float]] = []
        for record in batch.contacts:
            try:
                points = self._kinematics.evaluate_pair(record)
            except InvalidContactRecord as exc:
                self._invalid_records += 1
                logger.error(
                    "%s",
                    exc,
                    extra={
                        "event": "friction.invalid_contact",
                        "collision1": exc.collision1,
                        "collision2": exc.collision2,
                    },
                )
                continue

            aggregate = aggregate_pair(points)
            if aggregate is None:
                self._degenerate_pairs += 1
                continue

            friction = compute_friction(
                aggregate.slip_speed, aggregate.reference_speed, params
            )
            contributions.append((friction, aggregate.normal_force_sum))

        return combine_pair_frictions(contributions)

    def advance(self, tick_duration: float | None = None) -> Optional[float]:
        """Run one simulation tick.

        ``tick_duration`` defaults to the physics engine's maximum step size.
        Returns the friction coefficient computed this tick, or ``None`` when
        no new batch was available or no contact pair contributed.
        """

        self._ticks += 1
        batch = self._buffer.take()
        if batch is None:
            dt = self._physics.max_step_size if tick_duration is None else tick_duration
            self._staleness += float(dt)
            if self._staleness > STALE_INPUT_THRESHOLD:
                self._stale_waits += 1
                logger.info(
                    "Waited %.3f s without a contact message",
                    self._staleness,
                    extra={
                        "event": "friction.stale_input",
                        "wait": self._staleness,
                        "collision": self._collision.scoped_name,
                    },
                )
                self._staleness = 0.0
            return None

        self._staleness = 0.0
        self._batches += 1

        friction = self.estimate(batch)
        if friction is None:
            return None

        self._last_friction = friction
        self._apply(friction)
        return friction

    def _apply(self, friction: float) -> None:
        pyramid = self._pyramid
        if pyramid is None:
            self._unapplied += 1
            logger.error(
                "Friction coefficient %.4f not applied to '%s': surface does not accept updates",
                friction,
                self._collision.scoped_name,
                extra={
                    "event": self._unsupported_event,
                    "engine": self._physics.engine_type,
                    "collision": self._collision.scoped_name,
                    "friction": friction,
                },
            )
            return

        pyramid.set_mu_primary(friction)
        pyramid.set_mu_secondary(friction)
        self._applied += 1
        logger.debug(
            "Applied friction coefficient %.4f to '%s'",
            friction,
            self._collision.scoped_name,
            extra={
                "event": "friction.applied",
                "collision": self._collision.scoped_name,
                "friction": friction,
            },
        )
