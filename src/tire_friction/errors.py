"""Exception hierarchy for the tire friction estimator."""

from __future__ import annotations

__all__ = [
    "ContactMessageError",
    "EstimatorConfigError",
    "InvalidContactRecord",
    "TireFrictionError",
]


class TireFrictionError(RuntimeError):
    """Base class for errors raised by :mod:`tire_friction`."""


class EstimatorConfigError(TireFrictionError):
    """Raised when the monitored link or collision cannot be resolved."""


class InvalidContactRecord(TireFrictionError, ValueError):
    """Raised when a contact pair record cannot contribute to the estimate.

    The record either carries no contact points, its position, normal and
    wrench sequences differ in length, or its collisions are unknown to the
    physics engine.
    """

    def __init__(self, message: str, *, collision1: str = "", collision2: str = "") -> None:
        super().__init__(message)
        self.collision1 = collision1
        self.collision2 = collision2


class ContactMessageError(TireFrictionError, ValueError):
    """Raised when an inbound contact message cannot be decoded."""
