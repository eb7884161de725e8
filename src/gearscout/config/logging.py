"""Shared logging helpers for gearscout."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: we default
    to INFO level and a terse format suitable for batch runs. Pass ``force=True`` to
    reconfigure during tests or when the CLI overrides the level.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    # httpx logs every request at INFO; page-level progress is logged by the feed client
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
