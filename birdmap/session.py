# birdmap:session.py

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
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from birdmap.annotations import AnnotationArena
from birdmap.clustering import Cluster, cluster_annotations
from birdmap.debounce import Debouncer
from birdmap.ebird_client import FetchError
from birdmap.image_cache import ImageCache
from birdmap.models import Annotation, Observation
from birdmap.ranking import DisplayItem, layout_clusters
from birdmap.rarity import resolve_rarity
from birdmap.routes import SavedRoute
from birdmap.viewport import Viewport
from birdmap.wikimedia_client import ImageError

logger = logging.getLogger(__name__)


class ObservationSource(Protocol):
    def fetch_recent_observations(
        self, lat: float, lng: float, dist_km: int = ..., max_results: int = ...
    ) -> List[Observation]: ...


class ImageSource(Protocol):
    def fetch_species_image_url(self, sci_name: Optional[str], common_name: Optional[str]) -> str: ...


@dataclass(frozen=True)
class MapSnapshot:
    """Everything one fetch cycle published. Replaced wholesale, never mutated."""
    generation: int = 0
    viewport: Optional[Viewport] = None
    annotations: Tuple[Annotation, ...] = ()
    frequencies: Dict[str, int] = field(default_factory=dict)
    clusters: Tuple[Cluster, ...] = ()
    threshold_m: float = 0.0
    fetched_at: Optional[datetime] = None
    dropped_duplicates: int = 0


class MapSession:
    """
    One map view's state: observation fetch -> rarity dedup -> clustering,
    with images patched in late and viewport changes debounced into refetches.

    Every fetch takes a monotonically increasing sequence id; a result is only
    published if no newer fetch has published already.
    """

    def __init__(
        self,
        observations: ObservationSource,
        images: Optional[ImageSource] = None,
        *,
        arena: Optional[AnnotationArena] = None,
        image_cache: Optional[ImageCache] = None,
        image_loader: Optional[Callable[[str], bytes]] = None,
        radius_km: int = 10,
        max_results: int = 50,
        debounce_s: float = 0.8,
        image_workers: int = 4,
    ) -> None:
        self._observations = observations
        self._images = images
        self.arena = arena if arena is not None else AnnotationArena()
        self.image_cache = image_cache
        self._image_loader = image_loader
        self.radius_km = radius_km
        self.max_results = max_results

        self._lock = threading.Lock()
        self._seq = 0
        self._snapshot = MapSnapshot()
        self._species_images: Dict[str, str] = {}
        self._markers: Dict[str, Tuple[Annotation, Annotation]] = {}
        self._pending: List[Future] = []
        self.last_error: Optional[Exception] = None

        self._debouncer = Debouncer(debounce_s)
        self._executor: Optional[ThreadPoolExecutor] = None
        if images is not None:
            self._executor = ThreadPoolExecutor(max_workers=max(1, image_workers), thread_name_prefix="birdmap-img")

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> MapSnapshot:
        with self._lock:
            return self._snapshot

    def display_items(self) -> List[DisplayItem]:
        snap = self.snapshot
        return layout_clusters(snap.clusters, snap.frequencies, self.arena.image_urls())

    # ------------------------------------------------------------------
    # Fetch cycle
    # ------------------------------------------------------------------

    def next_sequence(self) -> int:
        with self._lock:
            self._seq += 1
            return self._seq

    def refresh(self, viewport: Viewport) -> MapSnapshot:
        """
        Fetch around the viewport center and publish. On FetchError the
        previous snapshot stays in place and the error is re-raised.
        """
        seq = self.next_sequence()
        c = viewport.center
        logger.info("fetch seq=%d lat=%.5f lon=%.5f dist=%dkm", seq, c.lat, c.lon, self.radius_km)
        try:
            raw = self._observations.fetch_recent_observations(
                c.lat, c.lon, dist_km=self.radius_km, max_results=self.max_results
            )
        except FetchError as e:
            self.last_error = e
            logger.warning("fetch seq=%d failed, keeping generation=%d: %s", seq, self.snapshot.generation, e)
            raise
        return self.apply_observations(seq, viewport, raw)

    def apply_observations(self, seq: int, viewport: Viewport, raw: Sequence[Observation]) -> MapSnapshot:
        """
        Publish one fetch result unless a newer one already went out. Annotation
        ids are issued and older ones retired under the session lock, so a
        concurrent publish never retires ids that are about to go live.
        """
        result = resolve_rarity(raw)
        threshold = viewport.threshold_m

        with self._lock:
            if seq <= self._snapshot.generation:
                logger.info("dropping stale fetch seq=%d (published generation=%d)", seq, self._snapshot.generation)
                return self._snapshot

            annotations = tuple(self.arena.create(o) for o in result.observations)
            clusters = tuple(cluster_annotations(annotations, threshold))
            self._snapshot = MapSnapshot(
                generation=seq,
                viewport=viewport,
                annotations=annotations,
                frequencies=dict(result.frequencies),
                clusters=clusters,
                threshold_m=threshold,
                fetched_at=datetime.now(timezone.utc),
                dropped_duplicates=result.dropped,
            )
            self.last_error = None
            self.arena.retain(self._live_ids_locked())
            snap = self._snapshot

        logger.info(
            "published generation=%d raw=%d kept=%d clusters=%d threshold=%.1fm",
            seq, len(raw), len(annotations), len(clusters), threshold,
        )
        self._start_image_fanout(annotations)
        return snap

    def _live_ids_locked(self) -> List[str]:
        ids = [a.id for a in self._snapshot.annotations]
        for start, end in self._markers.values():
            ids.extend((start.id, end.id))
        return ids

    # ------------------------------------------------------------------
    # Viewport changes
    # ------------------------------------------------------------------

    def recluster(self, viewport: Viewport) -> MapSnapshot:
        """Re-run clustering on the current data for a new zoom level. No I/O."""
        threshold = viewport.threshold_m
        with self._lock:
            snap = self._snapshot
            clusters = tuple(cluster_annotations(snap.annotations, threshold))
            self._snapshot = replace(snap, viewport=viewport, clusters=clusters, threshold_m=threshold)
            return self._snapshot

    def on_viewport_change(self, viewport: Viewport) -> int:
        """Recluster immediately, refetch once the viewport has been quiet for debounce_s."""
        self.recluster(viewport)
        return self._debouncer.schedule(self._debounced_refresh, viewport)

    def _debounced_refresh(self, viewport: Viewport) -> None:
        try:
            self.refresh(viewport)
        except FetchError:
            # already logged and kept in last_error
            return

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def _start_image_fanout(self, annotations: Sequence[Annotation]) -> List[Future]:
        if self._executor is None:
            return []
        futures = []
        for ann in annotations:
            if ann.is_route_point or self.arena.image_url(ann.id):
                continue
            futures.append(self._executor.submit(self._resolve_image, ann))
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()] + futures
        return futures

    def _resolve_image(self, ann: Annotation) -> Optional[str]:
        key = ann.species_key
        with self._lock:
            url = self._species_images.get(key) if key else None

        if url is None:
            try:
                url = self._images.fetch_species_image_url(ann.sci_name, ann.common_name)  # type: ignore[union-attr]
            except ImageError as e:
                logger.debug("no image for annotation=%s species=%r: %s", ann.id, key, e)
                return None
            if key:
                with self._lock:
                    self._species_images[key] = url

        if not self.arena.set_image_url(ann.id, url):
            logger.debug("image for retired annotation=%s ignored", ann.id)
            return None
        return url

    def wait_for_images(self, timeout: Optional[float] = None) -> bool:
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def image_bytes(self, annotation_id: str) -> Optional[bytes]:
        url = self.arena.image_url(annotation_id)
        if url is None or self.image_cache is None:
            return None
        if self._image_loader is None:
            return self.image_cache.get(url)
        return self.image_cache.get_or_fetch(url, self._image_loader)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def route_markers(self, route: SavedRoute) -> Tuple[Annotation, Annotation]:
        """Start/end flags for a route; same annotations for the same route id."""
        with self._lock:
            markers = self._markers.get(route.id)
            if markers is None:
                markers = (
                    self.arena.create_route_marker(route.start, f"{route.name} (start)"),
                    self.arena.create_route_marker(route.end, f"{route.name} (end)"),
                )
                self._markers[route.id] = markers
            return markers

    def forget_route(self, route_id: str) -> None:
        with self._lock:
            self._markers.pop(route_id, None)
            self.arena.retain(self._live_ids_locked())

    def close(self) -> None:
        self._debouncer.shutdown()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
