"""Contact records, decoding, kinematics and aggregation."""

from tire_friction.contacts.aggregation import (
    SlipAggregate,
    aggregate_pair,
    combine_pair_frictions,
)
from tire_friction.contacts.buffer import ContactBuffer
from tire_friction.contacts.kinematics import (
    ContactKinematicsEvaluator,
    PointKinematics,
    evaluate_point,
)
from tire_friction.contacts.messages import decode_contacts, decode_vector
from tire_friction.contacts.records import (
    ContactBatch,
    ContactPairRecord,
    ContactPointSample,
    JointWrench,
    Wrench,
)

__all__ = [
    "ContactBatch",
    "ContactBuffer",
    "ContactKinematicsEvaluator",
    "ContactPairRecord",
    "ContactPointSample",
    "JointWrench",
    "PointKinematics",
    "SlipAggregate",
    "Wrench",
    "aggregate_pair",
    "combine_pair_frictions",
    "decode_contacts",
    "decode_vector",
    "evaluate_point",
]
