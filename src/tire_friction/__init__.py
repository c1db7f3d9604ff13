"""Top-level package for the tire friction estimator.

The estimator turns the contact data reported by a physics engine for a
wheel collision into a slip-dependent Coulomb friction coefficient and
writes it back to the collision surface once per simulation tick.
"""

from ._version import __version__
from .contacts import (
    ContactBatch,
    ContactBuffer,
    ContactKinematicsEvaluator,
    ContactPairRecord,
    ContactPointSample,
    JointWrench,
    SlipAggregate,
    Wrench,
    aggregate_pair,
    combine_pair_frictions,
    decode_contacts,
)
from .errors import (
    ContactMessageError,
    EstimatorConfigError,
    InvalidContactRecord,
    TireFrictionError,
)
from .estimator import FrictionEstimator
from .model import compute_friction, friction_from_slip
from .parameters import EstimatorOptions, FrictionParameters

__all__ = [
    "ContactBatch",
    "ContactBuffer",
    "ContactKinematicsEvaluator",
    "ContactMessageError",
    "ContactPairRecord",
    "ContactPointSample",
    "EstimatorConfigError",
    "EstimatorOptions",
    "FrictionEstimator",
    "FrictionParameters",
    "InvalidContactRecord",
    "JointWrench",
    "SlipAggregate",
    "TireFrictionError",
    "Wrench",
    "__version__",
    "aggregate_pair",
    "combine_pair_frictions",
    "compute_friction",
    "decode_contacts",
    "friction_from_slip",
]
