"""Shared logging helpers for ordnance."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with a terse CLI format.

    Pass ``force=True`` to reconfigure during tests or specialised entry points.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def level_from_name(name: str | None, *, default: int = logging.INFO) -> int:
    """Resolve ``ORDNANCE_LOG_LEVEL``-style names ("debug", "WARNING") to a level."""

    if not name:
        return default
    resolved = logging.getLevelNamesMapping().get(name.strip().upper())
    return default if resolved is None else resolved
