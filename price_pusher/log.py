"""Logging setup and the update correlation tag."""

from __future__ import annotations

import logging
from collections.abc import Iterable

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logging once for the pusher process."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def update_tag(update_id: str, price_ids: Iterable[str]) -> str:
    """Correlation tag placed at the start of every update log line.

    >>> update_tag("u1", ["aa", "bb"])
    '[UM] (u1) [aa,bb]'
    """
    return f"[UM] ({update_id}) [{','.join(price_ids)}]"
