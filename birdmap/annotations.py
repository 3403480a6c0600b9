# birdmap:annotations.py

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

import threading
import uuid
from typing import Callable, Dict, Iterable, Optional

from birdmap.models import Annotation, Coordinate, Observation


def _new_id() -> str:
    return str(uuid.uuid4())


class AnnotationArena:
    """
    Owns annotation identity and the one mutable field (image URL).

    Annotations themselves are frozen values; late image results are patched
    in by id, from any thread. Ids that have been retired (no longer part of
    the published snapshot) silently ignore late patches.
    """

    def __init__(self, id_factory: Callable[[], str] = _new_id) -> None:
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._live: Dict[str, Annotation] = {}
        self._image_urls: Dict[str, str] = {}
        self._issued: set[str] = set()

    def _issue_id(self) -> str:
        new_id = self._id_factory()
        if new_id in self._issued:
            raise RuntimeError(f"id factory reused an id: {new_id}")
        self._issued.add(new_id)
        return new_id

    def create(self, obs: Observation) -> Annotation:
        c = obs.coordinate
        with self._lock:
            ann = Annotation(
                id=self._issue_id(),
                lat=c.lat,
                lon=c.lon,
                common_name=obs.common_name,
                sci_name=obs.sci_name,
                obs_dt=obs.obs_dt,
            )
            self._live[ann.id] = ann
        return ann

    def create_route_marker(self, coord: Coordinate, title: str) -> Annotation:
        with self._lock:
            ann = Annotation(
                id=self._issue_id(),
                lat=coord.lat,
                lon=coord.lon,
                common_name=title,
                is_route_point=True,
            )
            self._live[ann.id] = ann
        return ann

    def get(self, annotation_id: str) -> Optional[Annotation]:
        with self._lock:
            return self._live.get(annotation_id)

    def image_url(self, annotation_id: str) -> Optional[str]:
        with self._lock:
            return self._image_urls.get(annotation_id)

    def image_urls(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._image_urls)

    def set_image_url(self, annotation_id: str, url: str) -> bool:
        with self._lock:
            if annotation_id not in self._live:
                return False
            self._image_urls[annotation_id] = url
            return True

    def retain(self, keep_ids: Iterable[str]) -> int:
        """Retire every live annotation not in keep_ids. Returns how many were dropped."""
        keep = set(keep_ids)
        with self._lock:
            dropped = [k for k in self._live if k not in keep]
            for k in dropped:
                del self._live[k]
                self._image_urls.pop(k, None)
        return len(dropped)

    def __len__(self) -> int:
        with self._lock:
            return len(self._live)
