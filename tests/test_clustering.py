"""
Tests for the zoom-adaptive threshold and greedy centroid clustering.
"""

from __future__ import annotations

import unittest

from birdmap.annotations import AnnotationArena
from birdmap.clustering import cluster_annotations, threshold_for_span
from birdmap.distance import haversine_m
from birdmap.models import Annotation

from .test_common import counter_ids, make_obs, north_of


def ann(ann_id: str, lat: float, lon: float = -122.0, name: str = "Crow") -> Annotation:
    return Annotation(id=ann_id, lat=lat, lon=lon, common_name=name)


class TestThreshold(unittest.TestCase):

    def test_scales_with_span(self):
        self.assertAlmostEqual(threshold_for_span(1.0), 111.0)

    def test_clamped_low_when_zoomed_in(self):
        self.assertEqual(threshold_for_span(0.01), 8.0)
        self.assertEqual(threshold_for_span(0.0), 8.0)

    def test_clamped_high_when_zoomed_out(self):
        self.assertEqual(threshold_for_span(100.0), 2000.0)


class TestClusterAnnotations(unittest.TestCase):

    def test_empty_input(self):
        self.assertEqual(cluster_annotations([], 50.0), [])

    def test_point_exactly_at_threshold_joins(self):
        a = ann("a", 37.0)
        b = ann("b", 37.0005)
        threshold = haversine_m(a.lat, a.lon, b.lat, b.lon)
        clusters = cluster_annotations([a, b], threshold)
        self.assertEqual(len(clusters), 1)
        self.assertEqual(clusters[0].members, (a, b))

    def test_point_just_beyond_threshold_starts_new_cluster(self):
        a = ann("a", 37.0)
        b = ann("b", 37.0005)
        threshold = haversine_m(a.lat, a.lon, b.lat, b.lon)
        clusters = cluster_annotations([a, b], threshold - 1e-6)
        self.assertEqual(len(clusters), 2)

    def test_centroid_is_mean_of_members(self):
        members = [ann("a", 37.0, -122.0), ann("b", 37.0001, -122.0002), ann("c", 37.0002, -122.0001)]
        (c,) = cluster_annotations(members, 2000.0)
        self.assertAlmostEqual(c.centroid.lat, 37.0001, places=9)
        self.assertAlmostEqual(c.centroid.lon, -122.0001, places=9)
        self.assertEqual(c.id, "a")

    def test_joins_first_matching_cluster(self):
        x = ann("x", 37.0)
        y = ann("y", north_of(37.0, 150.0))
        p = ann("p", north_of(37.0, 75.0))
        clusters = cluster_annotations([x, y, p], 100.0)
        self.assertEqual([c.id for c in clusters], ["x", "y"])
        self.assertEqual(clusters[0].members, (x, p))

    def test_reordering_can_change_membership(self):
        a = ann("a", 37.0)
        b = ann("b", north_of(37.0, 80.0))
        c = ann("c", north_of(37.0, 160.0))

        forward = cluster_annotations([a, b, c], 100.0)
        backward = cluster_annotations([c, b, a], 100.0)

        as_sets = lambda cs: sorted(sorted(m.id for m in cl.members) for cl in cs)
        self.assertEqual(as_sets(forward), [["a", "b"], ["c"]])
        self.assertEqual(as_sets(backward), [["a"], ["b", "c"]])

    def test_same_order_same_partition(self):
        pts = [ann(str(i), north_of(37.0, i * 37.0)) for i in range(20)]
        self.assertEqual(cluster_annotations(pts, 60.0), cluster_annotations(pts, 60.0))


class TestAnnotationArena(unittest.TestCase):

    def test_ids_unique_and_image_patch_by_id(self):
        arena = AnnotationArena(id_factory=counter_ids())
        a = arena.create(make_obs("Crow"))
        b = arena.create(make_obs("Kite"))
        self.assertNotEqual(a.id, b.id)
        self.assertTrue(arena.set_image_url(a.id, "https://img/crow.jpg"))
        self.assertEqual(arena.image_url(a.id), "https://img/crow.jpg")
        self.assertIsNone(arena.image_url(b.id))

    def test_retired_ids_ignore_late_images(self):
        arena = AnnotationArena(id_factory=counter_ids())
        a = arena.create(make_obs("Crow"))
        b = arena.create(make_obs("Kite"))
        self.assertEqual(arena.retain([b.id]), 1)
        self.assertFalse(arena.set_image_url(a.id, "https://img/late.jpg"))
        self.assertIsNone(arena.get(a.id))
        self.assertEqual(len(arena), 1)

    def test_reused_id_is_rejected(self):
        arena = AnnotationArena(id_factory=lambda: "same")
        arena.create(make_obs("Crow"))
        with self.assertRaises(RuntimeError):
            arena.create(make_obs("Kite"))
