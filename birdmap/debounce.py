# birdmap:debounce.py

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
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delayed task scheduler where every schedule() supersedes the previous one.

    Each call takes a new token and cancels the pending timer. When a timer
    fires it runs only if its token is still the latest, so a timer that was
    already past cancel() when superseded does nothing.
    """

    def __init__(self, delay_s: float) -> None:
        self.delay_s = delay_s
        self._lock = threading.Lock()
        self._token = 0
        self._timer: Optional[threading.Timer] = None
        self._closed = False

    @property
    def token(self) -> int:
        with self._lock:
            return self._token

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> int:
        with self._lock:
            if self._closed:
                raise RuntimeError("debouncer is shut down")
            self._token += 1
            token = self._token
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay_s, self._fire, args=(token, fn, args, kwargs))
            timer.daemon = True
            self._timer = timer
        timer.start()
        return token

    def _fire(self, token: int, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        with self._lock:
            if token != self._token or self._closed:
                return
            self._timer = None
        try:
            fn(*args, **kwargs)
        except Exception:
            logger.exception("debounced task token=%d failed", token)

    def cancel(self) -> None:
        with self._lock:
            self._token += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def shutdown(self) -> None:
        self.cancel()
        with self._lock:
            self._closed = True
