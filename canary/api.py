"""Flask application serving the canary dashboard API."""

import os
import time

from flask import Flask, jsonify, request, send_from_directory

from canary.models import Category
from canary.store import CategorizedStore


def _parse_from(value):
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def create_app(store: CategorizedStore, rooms_provider=None, metadata=None, static_dir=None):
    """Flask application factory.

    Args:
        store: The live categorized store to read from.
        rooms_provider: Callable returning the list of rooms the client is in.
        metadata: Extra fields for ``/api/metadata`` (e.g. ``showdownUsername``).
        static_dir: Directory of the built dashboard, served at ``/``. A relative
            path is taken from the working directory.
    """
    app = Flask(__name__, static_folder=None)

    metadata = dict(metadata or {})
    metadata.setdefault("startTime", int(time.time() * 1000))
    metadata.setdefault("showdownUsername", "")
    rooms_provider = rooms_provider or list
    if static_dir:
        static_dir = os.path.abspath(static_dir)

    # Store components on app for access in tests
    app.config["components"] = {
        "store": store,
        "metadata": metadata,
        "static_dir": static_dir,
    }

    @app.route("/health")
    def health():
        return jsonify({"status": "healthy", "seen": store.total_seen})

    @app.route("/api/metadata")
    def api_metadata():
        return jsonify(metadata)

    @app.route("/api/metrics")
    def api_metrics():
        counts = store.counts()
        return jsonify({
            "seen": store.total_seen,
            "unhandled": counts[Category.UNHANDLED],
            "undeserializable": counts[Category.UNDESERIALIZABLE],
            "unserializable": counts[Category.UNSERIALIZABLE],
            "inequal": counts[Category.INEQUAL],
        })

    @app.route("/api/rooms")
    def api_rooms():
        return jsonify(list(rooms_provider()))

    @app.route("/api/logs")
    def api_logs():
        try:
            category = Category(request.args.get("type", ""))
        except ValueError:
            return jsonify({"last": 0, "data": []})

        page = store.read(category, _parse_from(request.args.get("from")))
        return jsonify(page.to_dict(lambda record: record.to_dict()))

    @app.route("/", defaults={"path": "index.html"})
    @app.route("/<path:path>")
    def dashboard(path):
        if not static_dir or not os.path.isdir(static_dir):
            return jsonify({"error": "dashboard assets not configured"}), 404
        if os.path.isdir(os.path.join(static_dir, path)):
            path = os.path.join(path, "index.html")
        return send_from_directory(static_dir, path)

    return app
