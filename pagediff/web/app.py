"""HTTP interface: a comparison endpoint plus static serving of stored artifacts."""

from __future__ import annotations

import logging

from flask import Flask, abort, jsonify, request, send_file

from pagediff.errors import ArtifactNotFoundError, EmptyRegion, ValidationError
from pagediff.models.comparison import CaptureRequest
from pagediff.models.config import CompareConfig

from .background import ComparisonService

logger = logging.getLogger(__name__)

COMPARE_FAILED_MESSAGE = "Failed to compare screenshots."
EMPTY_REGION_MESSAGE = "Pages produced an empty comparison region."


def create_app(
    config: CompareConfig | None = None,
    service: ComparisonService | None = None,
) -> Flask:
    config = config or CompareConfig()
    service = service or ComparisonService(config)

    app = Flask(__name__)
    app.extensions["pagediff"] = service

    @app.post("/api/compare")
    def compare():
        payload = request.get_json(silent=True)
        try:
            capture_request = CaptureRequest.from_payload(payload, config.default_viewport)
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

        try:
            summary = service.compare(capture_request)
        except EmptyRegion:
            logger.exception("Empty comparison region for %s vs %s",
                             capture_request.url_a, capture_request.url_b)
            return jsonify({"error": EMPTY_REGION_MESSAGE}), 500
        except Exception:
            logger.exception("Error in /api/compare for %s vs %s",
                             capture_request.url_a, capture_request.url_b)
            return jsonify({"error": COMPARE_FAILED_MESSAGE}), 500

        return jsonify(summary.to_response())

    @app.get(f"{service.artifact_store.public_prefix}/<path:name>")
    def artifact(name: str):
        try:
            stream = service.artifact_store.retrieve(name)
        except ArtifactNotFoundError:
            abort(404)
        return send_file(stream, mimetype="image/png", download_name=name)

    return app
