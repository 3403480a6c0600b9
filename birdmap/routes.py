# birdmap:routes.py

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

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from birdmap.config import ROUTES_KEY
from birdmap.models import Coordinate

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]: ...
    def set(self, key: str, value: bytes) -> None: ...


class InvalidRouteError(ValueError):
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_iso(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


@dataclass(frozen=True)
class SavedRoute:
    id: str
    name: str
    coords: Tuple[Coordinate, ...]
    created_at: datetime

    @property
    def start(self) -> Coordinate:
        return self.coords[0]

    @property
    def end(self) -> Coordinate:
        return self.coords[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "coords": [c.to_dict() for c in self.coords],
            "date": _iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SavedRoute":
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            coords=tuple(Coordinate.from_dict(c) for c in d["coords"]),
            created_at=_parse_iso(str(d["date"])),
        )


class RouteStore:
    """
    Ordered, named routes persisted as one JSON blob under a fixed key.

    The selection is a weak reference by id: deleting the selected route
    clears it, and a dangling id reads back as "no selection".
    """

    def __init__(
        self,
        kv: KeyValueStore,
        key: str = ROUTES_KEY,
        *,
        clock: Callable[[], datetime] = _utc_now,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        autoload: bool = True,
    ) -> None:
        self._kv = kv
        self._key = key
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._routes: List[SavedRoute] = []
        self.selected_route_id: Optional[str] = None
        if autoload:
            self.load()

    @property
    def routes(self) -> List[SavedRoute]:
        with self._lock:
            return list(self._routes)

    def load(self) -> List[SavedRoute]:
        with self._lock:
            self._routes = self._read()
            return list(self._routes)

    def _read(self) -> List[SavedRoute]:
        raw = self._kv.get(self._key)
        if raw is None:
            return []
        try:
            items = json.loads(raw.decode("utf-8"))
            return [SavedRoute.from_dict(d) for d in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Saved routes unreadable under key=%s, starting empty: %s", self._key, e)
            return []

    def save(self) -> None:
        with self._lock:
            blob = json.dumps([r.to_dict() for r in self._routes], ensure_ascii=False, separators=(",", ":"))
            self._kv.set(self._key, blob.encode("utf-8"))

    def add_route(self, name: str, coords: Sequence[Coordinate]) -> SavedRoute:
        if len(coords) < 2:
            raise InvalidRouteError(f"a route needs at least 2 coordinates, got {len(coords)}")
        with self._lock:
            route = SavedRoute(
                id=self._id_factory(),
                name=(name or "").strip() or f"Route {len(self._routes) + 1}",
                coords=tuple(coords),
                created_at=self._clock(),
            )
            self._routes.append(route)
            try:
                self.save()
            except Exception:
                self._routes.pop()
                raise
        logger.info("Saved route id=%s name=%r points=%d", route.id, route.name, len(route.coords))
        return route

    def delete_route(self, route_id: str) -> bool:
        with self._lock:
            kept = [r for r in self._routes if r.id != route_id]
            removed = len(kept) != len(self._routes)
            if removed:
                previous, self._routes = self._routes, kept
                try:
                    self.save()
                except Exception:
                    self._routes = previous
                    raise
            if self.selected_route_id == route_id:
                self.selected_route_id = None
            return removed

    def get(self, route_id: str) -> Optional[SavedRoute]:
        with self._lock:
            return next((r for r in self._routes if r.id == route_id), None)

    def select_route(self, route_id: str) -> SavedRoute:
        with self._lock:
            route = self.get(route_id)
            if route is None:
                raise KeyError(route_id)
            self.selected_route_id = route_id
            return route

    def clear_selection(self) -> None:
        with self._lock:
            self.selected_route_id = None

    def selected_route(self) -> Optional[SavedRoute]:
        with self._lock:
            if self.selected_route_id is None:
                return None
            return self.get(self.selected_route_id)
