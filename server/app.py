#!/usr/bin/env python3

# server/app.py

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

import math
import mimetypes
import os
from pathlib import Path
from typing import Any, Optional

from flask import Flask, Response, request, jsonify
from flask_cors import CORS


# repo root resolution
REPO_ROOT = Path(__file__).resolve().parents[1]
import sys

sys.path.insert(0, str(REPO_ROOT))

from birdmap.config import Config
from birdmap.directions import DirectionsClient, DirectionsError
from birdmap.ebird_client import EbirdClient, FetchError, HttpStatusError, MissingCredentialsError
from birdmap.export_geojson import display_geojson
from birdmap.image_cache import ImageCache, download_image
from birdmap.models import Coordinate
from birdmap.routes import InvalidRouteError, RouteStore, SavedRoute
from birdmap.session import MapSession
from birdmap.storage import SqliteKeyValueStore
from birdmap.viewport import Viewport
from birdmap.wikimedia_client import WikimediaClient

import logging
logger = logging.getLogger("birdmap-server")

from werkzeug.exceptions import BadRequest, HTTPException, NotFound


def parse_float(value: Any, *, name: str, lo: float, hi: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise BadRequest(description=f"{name} must be a number")
    if not math.isfinite(v) or v < lo or v > hi:
        raise BadRequest(description=f"{name} out of range: {v} (valid: {lo}..{hi})")
    return v


def parse_coordinate(value: Any, *, name: str) -> Coordinate:
    """
    Accepts {"lat": .., "lon"|"lng": ..} or a [lat, lon] pair.
    """
    if isinstance(value, dict):
        lat = value.get("lat")
        lon = value.get("lon", value.get("lng"))
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lon = value
    else:
        raise BadRequest(description=f"{name} must be {{lat, lon}} or [lat, lon]")
    return Coordinate(
        lat=parse_float(lat, name=f"{name}.lat", lo=-90.0, hi=90.0),
        lon=parse_float(lon, name=f"{name}.lon", lo=-180.0, hi=180.0),
    )


def parse_coords(value: Any, *, name: str = "coords") -> list[Coordinate]:
    if not isinstance(value, (list, tuple)):
        raise BadRequest(description=f"{name} must be a list of coordinates")
    return [parse_coordinate(v, name=f"{name}[{i}]") for i, v in enumerate(value)]


def parse_viewport(body: Any) -> Viewport:
    if not isinstance(body, dict):
        raise BadRequest(description="viewport body must be a JSON object")
    center = parse_coordinate(body, name="center")
    lat_span = parse_float(body.get("lat_span"), name="lat_span", lo=1e-9, hi=180.0)
    lon_span = parse_float(body.get("lon_span", lat_span), name="lon_span", lo=1e-9, hi=360.0)
    return Viewport(center=center, lat_span=lat_span, lon_span=lon_span)


def json_object_body() -> dict[str, Any]:
    body = request.get_json(force=True, silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise BadRequest(description="request body must be a JSON object")
    return body


def route_json(r: SavedRoute) -> dict[str, Any]:
    d = r.to_dict()
    d["points"] = len(r.coords)
    return d


def _path_status(p: Path) -> str:
    try:
        if not p.exists():
            return "missing"
        if p.is_dir():
            return "dir"
        return f"file size={p.stat().st_size}"
    except OSError as e:
        return f"error({e})"


def make_app(
    cfg: Optional[Config] = None,
    *,
    session: Optional[MapSession] = None,
    routes: Optional[RouteStore] = None,
    directions: Optional[DirectionsClient] = None,
) -> Flask:
    app = Flask(__name__)
    CORS(app)  # keep it simple for local dev

    cfg = cfg or Config(repo_root=REPO_ROOT)

    logger.info("Resolved logs_dir=%s", cfg.logs_dir)
    logger.info("Resolved db_path=%s (%s)", cfg.db_path, _path_status(cfg.db_path))
    if not cfg.ebird_api_key:
        logger.warning("EBIRD_API_KEY is not set; observation fetches will fail")

    if session is None:
        session = MapSession(
            EbirdClient(base_url=cfg.ebird_base_url, api_key=cfg.ebird_api_key, timeout_s=cfg.http_timeout_s),
            WikimediaClient(api_url=cfg.wikipedia_api_url, timeout_s=cfg.http_timeout_s),
            image_cache=ImageCache(cfg.image_cache_entries),
            image_loader=lambda url: download_image(url, cfg.http_timeout_s),
            radius_km=cfg.search_radius_km,
            max_results=cfg.max_results,
            debounce_s=cfg.debounce_s,
            image_workers=cfg.image_workers,
        )
    if routes is None:
        routes = RouteStore(SqliteKeyValueStore(cfg.db_path))
    if directions is None:
        directions = DirectionsClient(base_url=cfg.osrm_base_url, timeout_s=cfg.http_timeout_s)

    app.config["BIRDMAP_SESSION"] = session
    app.config["BIRDMAP_ROUTES"] = routes

    def map_geojson() -> dict[str, Any]:
        snap = session.snapshot
        extra = []
        selected = routes.selected_route()
        if selected is not None:
            extra.extend(session.route_markers(selected))
        fc = display_geojson(session.display_items(), snap.frequencies, session.arena.image_urls(), extra)
        fc["properties"] = {
            "generation": snap.generation,
            "threshold_m": snap.threshold_m,
            "annotations": len(snap.annotations),
            "clusters": len(snap.clusters),
            "dropped_duplicates": snap.dropped_duplicates,
            "viewport": snap.viewport.to_dict() if snap.viewport else None,
            "fetched_at": snap.fetched_at.isoformat().replace("+00:00", "Z") if snap.fetched_at else None,
            "last_error": str(session.last_error) if session.last_error else None,
        }
        return fc

    @app.before_request
    def log_request():
        logger.info(
            "REQUEST %s %s from %s",
            request.method,
            request.path,
            request.remote_addr,
        )

    @app.errorhandler(Exception)
    def handle_any_exception(e: Exception):
        logger.exception("Unhandled exception: %s", e)
        return jsonify({"ok": False, "code": "internal_error", "error": str(e), "status": 500}), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return jsonify({
            "ok": False,
            "code": "bad_request" if e.code == 400 else "not_found" if e.code == 404 else "http_error",
            "error": e.description,
            "status": e.code,
        }), e.code

    @app.errorhandler(FetchError)
    def handle_fetch_error(e: FetchError):
        if isinstance(e, MissingCredentialsError):
            code = "missing_credentials"
        elif isinstance(e, HttpStatusError):
            code = f"upstream_http_{e.status_code}"
        else:
            code = "fetch_failed"
        return jsonify({"ok": False, "code": code, "error": str(e), "status": 502}), 502

    @app.errorhandler(DirectionsError)
    def handle_directions_error(e: DirectionsError):
        return jsonify({"ok": False, "code": "directions_failed", "error": str(e), "status": 502}), 502

    @app.errorhandler(InvalidRouteError)
    def handle_invalid_route(e: InvalidRouteError):
        return jsonify({"ok": False, "code": "invalid_route", "error": str(e), "status": 400}), 400

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True, "generation": session.snapshot.generation})

    @app.post("/api/viewport")
    def viewport_changed():
        vp = parse_viewport(request.get_json(force=True, silent=True))
        token = session.on_viewport_change(vp)
        snap = session.snapshot
        logger.info("viewport lat_span=%.5f threshold=%.1fm token=%d", vp.lat_span, snap.threshold_m, token)
        return jsonify({
            "ok": True,
            "token": token,
            "generation": snap.generation,
            "threshold_m": snap.threshold_m,
            "clusters": len(snap.clusters),
        }), 202

    @app.post("/api/refresh")
    def refresh():
        vp = parse_viewport(request.get_json(force=True, silent=True))
        session.refresh(vp)
        return jsonify(map_geojson())

    @app.get("/api/map")
    def map_view():
        return jsonify(map_geojson())

    @app.get("/api/annotations/<annotation_id>/image")
    def annotation_image(annotation_id: str):
        if session.arena.get(annotation_id) is None:
            raise NotFound(description=f"unknown annotation: {annotation_id}")
        try:
            data = session.image_bytes(annotation_id)
        except Exception as e:
            logger.warning("image download failed for annotation=%s: %s", annotation_id, e)
            return jsonify({"ok": False, "code": "image_failed", "error": str(e), "status": 502}), 502
        if data is None:
            raise NotFound(description=f"no image for annotation: {annotation_id}")
        url = session.arena.image_url(annotation_id) or ""
        mimetype = mimetypes.guess_type(url)[0] or "application/octet-stream"
        return Response(data, mimetype=mimetype)

    @app.get("/api/routes")
    def list_routes():
        return jsonify({
            "routes": [route_json(r) for r in routes.routes],
            "selected_route_id": routes.selected_route_id if routes.selected_route() else None,
        })

    @app.post("/api/routes")
    def add_route():
        body = json_object_body()
        coords = parse_coords(body.get("coords"))
        r = routes.add_route(str(body.get("name") or ""), coords)
        return jsonify({"ok": True, "route": route_json(r)}), 201

    @app.post("/api/routes/plan")
    def plan_route():
        body = json_object_body()
        start = parse_coordinate(body.get("from"), name="from")

        to_id = body.get("to_annotation_id")
        if to_id:
            target = session.arena.get(str(to_id))
            if target is None:
                raise NotFound(description=f"unknown annotation: {to_id}")
            end = target.coordinate
            default_name = f"To {target.title}" if target.title else ""
        else:
            end = parse_coordinate(body.get("to"), name="to")
            default_name = ""

        planned = directions.driving_route(start, end)
        logger.info(
            "planned route points=%d distance=%.0fm duration=%.0fs",
            len(planned.coordinates), planned.distance_m, planned.duration_s,
        )
        r = routes.add_route(str(body.get("name") or default_name), planned.coordinates)
        if body.get("select", True):
            routes.select_route(r.id)
        return jsonify({
            "ok": True,
            "route": route_json(r),
            "distance_m": planned.distance_m,
            "duration_s": planned.duration_s,
        }), 201

    @app.delete("/api/routes/<route_id>")
    def delete_route(route_id: str):
        removed = routes.delete_route(route_id)
        session.forget_route(route_id)
        return jsonify({"ok": True, "removed": removed})

    @app.post("/api/routes/<route_id>/select")
    def select_route(route_id: str):
        try:
            r = routes.select_route(route_id)
        except KeyError:
            raise NotFound(description=f"unknown route: {route_id}")
        return jsonify({"ok": True, "route": route_json(r)})

    @app.get("/api/routes/selected")
    def selected_route():
        r = routes.selected_route()
        if r is None:
            return jsonify({"ok": True, "route": None})
        start, end = session.route_markers(r)
        return jsonify({
            "ok": True,
            "route": route_json(r),
            "markers": [
                {"id": m.id, "title": m.title, "lat": m.lat, "lon": m.lon} for m in (start, end)
            ],
            "viewport": Viewport.fit(list(r.coords)).to_dict(),
        })

    return app


if __name__ == "__main__":
    import argparse

    ap = argparse.ArgumentParser(description="Birdmap dev API server.")
    ap.add_argument("--host", default=os.environ.get("HOST", "0.0.0.0"))
    ap.add_argument("--port", type=int, default=int(os.environ.get("PORT", "8088")))
    ap.add_argument("--db-dir", default=None, help="Override DB directory (expects birdmap.sqlite).")
    ap.add_argument("--logs-dir", default=None, help="Override logs directory.")
    args = ap.parse_args()

    # Map CLI dirs into BIRDMAP_* env vars so Config sees them
    from birdmap.cli_paths import apply_path_overrides
    apply_path_overrides(
        db_dir=args.db_dir,
        logs_dir=args.logs_dir,
    )

    from server.logging_utils import setup_server_logger
    log_dir = Path(args.logs_dir).expanduser().resolve() if args.logs_dir else None
    logger = setup_server_logger(log_dir=log_dir)

    logger.info("Starting server with host=%s port=%d", args.host, args.port)
    if args.db_dir:
        logger.info("DB dir override: %s", args.db_dir)

    app = make_app()

    debug = bool(os.environ.get("BIRDMAP_SERVER_DEBUG", "1") == "1")
    use_reloader = bool(os.environ.get("BIRDMAP_SERVER_RELOAD", "0") == "1")

    app.run(
        host=args.host,
        port=args.port,
        debug=debug,
        use_reloader=use_reloader,
    )
