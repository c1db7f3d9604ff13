"""Failures of the ``tire-friction`` command and their exit statuses.

Each category corresponds to one way a run can go wrong:

* ``usage``: the command line (or the log it names) does not describe a
  replayable estimator, for instance a missing collision name or model.
* ``io``: a configuration file or contact log exists but cannot be parsed.
* ``not_found``: the contact log does not exist.
* ``config``: the estimator rejected its options, typically an unknown link
  or collision.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from ..errors import TireFrictionError

__all__ = ["EXIT_STATUS", "CliError", "reraise_as"]

logger = logging.getLogger("tire_friction.cli")

EXIT_STATUS: Mapping[str, int] = {
    "usage": 2,
    "io": 3,
    "not_found": 4,
    "config": 5,
}


class CliError(TireFrictionError):
    """A failure that ends the command with ``EXIT_STATUS[category]``."""

    def __init__(
        self,
        message: str,
        *,
        category: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if category not in EXIT_STATUS:
            raise ValueError(f"Unknown CLI error category {category!r}")
        super().__init__(message)
        self.category = category
        self.status_code = EXIT_STATUS[category]
        # Paths and other objects are rendered so JSON log records stay serialisable.
        self.context = {
            key: value if value is None or isinstance(value, (str, int, float, bool)) else str(value)
            for key, value in (context or {}).items()
        }
        self.logged = False

    def log(self, exc_info: Optional[BaseException] = None) -> None:
        """Report the failure once as a ``cli.error`` event."""

        if self.logged:
            return
        logger.error(
            str(self),
            extra={
                "event": "cli.error",
                "category": self.category,
                "status_code": self.status_code,
                "context": dict(self.context),
            },
            exc_info=exc_info if exc_info is not None else self,
        )
        self.logged = True


@contextmanager
def reraise_as(
    rules: Mapping[type[BaseException] | tuple[type[BaseException], ...], str],
    *,
    context: Optional[Mapping[str, Any]] = None,
) -> Iterator[None]:
    """Translate exceptions raised in the block into :class:`CliError`.

    ``rules`` maps exception types to categories and is checked in order, so
    more specific types must come first.
    """

    try:
        yield
    except CliError:
        raise
    except Exception as exc:
        for types, category in rules.items():
            if isinstance(exc, types):
                raise CliError(str(exc), category=category, context=context) from exc
        raise
