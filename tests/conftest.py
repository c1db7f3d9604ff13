from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = ROOT / "src"
for _path in (SRC_ROOT, ROOT):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from tire_friction.parameters import EstimatorOptions, FrictionParameters  # noqa: E402
from tire_friction.simulation import LocalContactTransport, PhysicsWorld  # noqa: E402

from tests.helpers import build_vehicle_world  # noqa: E402


@pytest.fixture
def default_params() -> FrictionParameters:
    return FrictionParameters()


@pytest.fixture
def vehicle_world() -> PhysicsWorld:
    """World with a ``car`` wheel rolling over a static ``ground_plane``."""

    return build_vehicle_world()


@pytest.fixture
def transport() -> LocalContactTransport:
    return LocalContactTransport()


@pytest.fixture
def wheel_options() -> EstimatorOptions:
    return EstimatorOptions(collision_name="collision", link_name="wheel_front_left")


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    logger = logging.getLogger("tire_friction")
    for handler in list(logger.handlers):
        if getattr(handler, "_tire_friction_handler", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)
