"""
Logging Setup
=============

One call configures the root logger for training runs, optionally
mirroring records to a file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: Union[str, int] = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure the root logger for training runs.

    Args:
        level: Level name (``"DEBUG"``, ``"INFO"``, ...) or number
        log_file: Also write records to this file
    """
    if isinstance(level, str):
        lvl = getattr(logging, level.upper(), logging.INFO)
    else:
        lvl = int(level)
    logging.basicConfig(level=lvl, format=LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(lvl)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path, mode="w", encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(fh)


__all__ = ["setup_logging", "LOG_FORMAT"]
