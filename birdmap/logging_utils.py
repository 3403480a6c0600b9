# MIT License
#
# Copyright (c) 2025 Jonas Waldeck
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND.

from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


def setup_logger(name: str, logs_dir: Path, level: str = "INFO", to_console: bool = True) -> logging.Logger:
    """
    Script logger: one file per script name under logs_dir, rotated daily (UTC).
    The `birdmap` library loggers are routed to the same handlers.
    """
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"{name}.log"

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03dZ %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    fh = TimedRotatingFileHandler(
        str(log_path),
        when="D",
        interval=1,
        backupCount=14,
        encoding="utf-8",
        utc=True,
    )
    fh.setFormatter(fmt)

    handlers: list[logging.Handler] = [fh]
    if to_console:
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(fmt)
        handlers.append(ch)

    lvl = getattr(logging, level.upper(), logging.INFO)
    for logger_name in (name, "birdmap"):
        lg = logging.getLogger(logger_name)
        lg.setLevel(lvl)
        lg.propagate = False
        if lg.handlers:
            lg.handlers.clear()
        for h in handlers:
            lg.addHandler(h)

    return logging.getLogger(name)
