# server/logging_utils.py

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

# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

# library loggers that should end up in the server log next to the request lines
SERVER_LOGGERS = ("birdmap-server", "birdmap")


class _UTCZFormatter(logging.Formatter):
    # 2026-01-03T18:43:55.067Z
    converter = time.gmtime

    def formatTime(self, record, datefmt=None):
        base = time.strftime("%Y-%m-%dT%H:%M:%S", self.converter(record.created))
        return f"{base}.{int(record.msecs):03d}Z"


def _server_handlers(log_dir: Path | None, fmt: logging.Formatter) -> list[logging.Handler]:
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    handlers: list[logging.Handler] = [ch]
    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_dir / "birdmap-server.log", maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(fmt)
        handlers.append(fh)
    return handlers


def setup_server_logger(
    log_dir: Path | None = None,
    level: int = logging.INFO,
    names: Iterable[str] = SERVER_LOGGERS,
) -> logging.Logger:
    """
    Console plus size-rotated file logging for the API server. The handlers
    are shared by every name in `names`; the first one is returned.
    Calling it again is a no-op for loggers that already have handlers.
    """
    names = list(names)
    fmt = _UTCZFormatter("%(asctime)s %(levelname)-5s %(name)s [%(threadName)s]: %(message)s")
    handlers = _server_handlers(log_dir, fmt)

    for name in names:
        lg = logging.getLogger(name)
        lg.setLevel(level)
        if lg.handlers:
            continue
        lg.propagate = False
        for h in handlers:
            lg.addHandler(h)

    # werkzeug repeats every request we already log in before_request
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    return logging.getLogger(names[0])
