"""
HTTP client tests with requests.get patched out: eBird, Wikipedia page
images, OSRM directions and raw image downloads.
"""

from __future__ import annotations

import unittest
from unittest.mock import patch

import requests

from birdmap.directions import DirectionsClient, DirectionsError
from birdmap.ebird_client import (
    BadRequestError,
    EbirdClient,
    FetchError,
    HttpStatusError,
    MissingCredentialsError,
    NoDataError,
)
from birdmap.image_cache import download_image
from birdmap.models import Coordinate
from birdmap.wikimedia_client import ImageNetworkError, NoImageFoundError, WikimediaClient

from .test_common import mock_response

EBIRD_RECORDS = [
    {"comName": "American Crow", "sciName": "Corvus brachyrhynchos", "lat": 37.0, "lng": -122.0,
     "obsDt": "2025-05-01 08:00", "speciesCode": "amecro", "howMany": 3},
    {"comName": "Mystery", "lat": None, "lng": -122.0},
    "not a record",
]


class TestEbirdClient(unittest.TestCase):

    def setUp(self):
        self.client = EbirdClient(base_url="https://api.ebird.org/v2/", api_key="k3y", timeout_s=5)

    @patch("birdmap.ebird_client.requests.get")
    def test_parses_records(self, get):
        get.return_value = mock_response(200, EBIRD_RECORDS)

        obs = self.client.fetch_recent_observations(37.0, -122.0, dist_km=7, max_results=20)

        self.assertEqual(len(obs), 2)
        crow = obs[0]
        self.assertEqual(crow.common_name, "American Crow")
        self.assertEqual(crow.species_code, "amecro")
        self.assertEqual(crow.how_many, 3)
        self.assertEqual((crow.lat, crow.lon), (37.0, -122.0))
        self.assertFalse(obs[1].has_location)

        args, kwargs = get.call_args
        self.assertEqual(args[0], "https://api.ebird.org/v2/data/obs/geo/recent")
        self.assertEqual(kwargs["headers"]["X-eBirdApiToken"], "k3y")
        self.assertEqual(kwargs["params"], {"lat": "37.0", "lng": "-122.0", "dist": "7", "maxResults": "20"})
        self.assertEqual(kwargs["timeout"], 5)

    @patch("birdmap.ebird_client.requests.get")
    def test_missing_key_never_hits_network(self, get):
        client = EbirdClient(base_url="https://api.ebird.org/v2", api_key="")
        with self.assertRaises(MissingCredentialsError):
            client.fetch_recent_observations(37.0, -122.0)
        get.assert_not_called()

    @patch("birdmap.ebird_client.requests.get")
    def test_rejects_bad_parameters(self, get):
        for kwargs in (
            {"lat": 91.0, "lng": 0.0},
            {"lat": 0.0, "lng": -181.0},
            {"lat": 0.0, "lng": 0.0, "dist_km": 51},
            {"lat": 0.0, "lng": 0.0, "max_results": 0},
        ):
            with self.subTest(**kwargs):
                with self.assertRaises(BadRequestError):
                    self.client.fetch_recent_observations(**kwargs)
        get.assert_not_called()

    @patch("birdmap.ebird_client.requests.get")
    def test_http_status_error(self, get):
        get.return_value = mock_response(403, None, text="forbidden")
        with self.assertRaises(HttpStatusError) as ctx:
            self.client.fetch_recent_observations(37.0, -122.0)
        self.assertEqual(ctx.exception.status_code, 403)

    @patch("birdmap.ebird_client.requests.get")
    def test_empty_body(self, get):
        get.return_value = mock_response(200, None, content=b"")
        with self.assertRaises(NoDataError):
            self.client.fetch_recent_observations(37.0, -122.0)

    @patch("birdmap.ebird_client.requests.get")
    def test_transport_and_decode_failures(self, get):
        get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(FetchError):
            self.client.fetch_recent_observations(37.0, -122.0)

        get.side_effect = None
        get.return_value = mock_response(200, ValueError("bad json"))
        with self.assertRaises(FetchError):
            self.client.fetch_recent_observations(37.0, -122.0)

        get.return_value = mock_response(200, {"errors": []})
        with self.assertRaises(FetchError):
            self.client.fetch_recent_observations(37.0, -122.0)


def page_payload(src=None):
    page = {"pageid": 1, "title": "x"}
    if src:
        page["original"] = {"source": src, "width": 800, "height": 600}
    return {"query": {"pages": {"1": page}}}


class TestWikimediaClient(unittest.TestCase):

    def setUp(self):
        self.client = WikimediaClient(api_url="https://en.wikipedia.org/w/api.php", timeout_s=3)

    @patch("birdmap.wikimedia_client.requests.get")
    def test_image_url(self, get):
        get.return_value = mock_response(200, page_payload("https://upload/kite.jpg"))
        self.assertEqual(self.client.fetch_image_url(" Elanus leucurus "), "https://upload/kite.jpg")
        params = get.call_args.kwargs["params"]
        self.assertEqual(params["titles"], "Elanus leucurus")
        self.assertEqual(params["prop"], "pageimages")
        self.assertEqual(params["piprop"], "original")

    @patch("birdmap.wikimedia_client.requests.get")
    def test_missing_page_image(self, get):
        get.return_value = mock_response(200, {"query": {"pages": {"-1": {"missing": ""}}}})
        with self.assertRaises(NoImageFoundError):
            self.client.fetch_image_url("Nope")

    @patch("birdmap.wikimedia_client.requests.get")
    def test_network_errors(self, get):
        get.return_value = mock_response(500, None)
        with self.assertRaises(ImageNetworkError):
            self.client.fetch_image_url("Elanus leucurus")

        get.side_effect = requests.Timeout("slow")
        with self.assertRaises(ImageNetworkError):
            self.client.fetch_image_url("Elanus leucurus")

    @patch("birdmap.wikimedia_client.requests.get")
    def test_species_falls_back_to_common_name(self, get):
        get.side_effect = [
            mock_response(200, page_payload()),
            mock_response(200, page_payload("https://upload/heron.jpg")),
        ]
        url = self.client.fetch_species_image_url("Ardea herodias", "Great Blue Heron")
        self.assertEqual(url, "https://upload/heron.jpg")
        titles = [c.kwargs["params"]["titles"] for c in get.call_args_list]
        self.assertEqual(titles, ["Ardea herodias", "Great Blue Heron"])

    @patch("birdmap.wikimedia_client.requests.get")
    def test_species_without_names(self, get):
        with self.assertRaises(NoImageFoundError):
            self.client.fetch_species_image_url(None, "")
        get.assert_not_called()


class TestDirectionsClient(unittest.TestCase):

    def setUp(self):
        self.client = DirectionsClient(base_url="https://osrm.example/", timeout_s=4)

    @patch("birdmap.directions.requests.get")
    def test_route(self, get):
        get.return_value = mock_response(200, {
            "code": "Ok",
            "routes": [{
                "distance": 1234.5,
                "duration": 98.0,
                "geometry": {"type": "LineString", "coordinates": [[-122.0, 37.0], [-122.05, 37.02], [-122.1, 37.05]]},
            }],
        })

        route = self.client.driving_route(Coordinate(37.0, -122.0), Coordinate(37.05, -122.1))

        self.assertEqual(route.coordinates[0], Coordinate(37.0, -122.0))
        self.assertEqual(route.coordinates[-1], Coordinate(37.05, -122.1))
        self.assertEqual(len(route.coordinates), 3)
        self.assertEqual(route.distance_m, 1234.5)
        self.assertEqual(route.duration_s, 98.0)
        self.assertEqual(
            get.call_args.args[0],
            "https://osrm.example/route/v1/driving/-122.000000,37.000000;-122.100000,37.050000",
        )
        self.assertEqual(get.call_args.kwargs["params"]["geometries"], "geojson")

    @patch("birdmap.directions.requests.get")
    def test_no_route(self, get):
        get.return_value = mock_response(200, {"code": "NoRoute", "routes": []})
        with self.assertRaises(DirectionsError):
            self.client.driving_route(Coordinate(0.0, 0.0), Coordinate(1.0, 1.0))

    @patch("birdmap.directions.requests.get")
    def test_degenerate_geometry(self, get):
        get.return_value = mock_response(200, {
            "code": "Ok",
            "routes": [{"geometry": {"coordinates": [[-122.0, 37.0]]}}],
        })
        with self.assertRaises(DirectionsError):
            self.client.driving_route(Coordinate(37.0, -122.0), Coordinate(37.0, -122.0))

    @patch("birdmap.directions.requests.get")
    def test_http_failure(self, get):
        get.return_value = mock_response(429, None, text="slow down")
        with self.assertRaises(DirectionsError):
            self.client.driving_route(Coordinate(37.0, -122.0), Coordinate(37.1, -122.1))


class TestDownloadImage(unittest.TestCase):

    @patch("birdmap.image_cache.requests.get")
    def test_download(self, get):
        get.return_value = mock_response(200, None, content=b"\xff\xd8jpeg")
        self.assertEqual(download_image("https://upload/kite.jpg"), b"\xff\xd8jpeg")

    @patch("birdmap.image_cache.requests.get")
    def test_download_failure(self, get):
        get.return_value = mock_response(404, None)
        with self.assertRaises(RuntimeError):
            download_image("https://upload/missing.jpg")
