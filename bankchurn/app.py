"""
Single-record scoring endpoint for the web front end.

POST /predict with a JSON customer record; the response carries the churn
probability of the selected model and the label at the saved threshold.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from .data_io import FeatureSchema
from .errors import DataIntegrityError
from .predict import score_record

logger = logging.getLogger(__name__)


def create_app(model, schema: FeatureSchema, threshold: float = 0.5) -> Flask:
    app = Flask(__name__)

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/predict", methods=["POST"])
    def predict():
        record = request.get_json(silent=True)
        if not isinstance(record, dict):
            return jsonify({"error": "Expected a JSON object with one customer record"}), 400

        try:
            probability = score_record(model, record, schema)
        except DataIntegrityError as exc:
            logger.info("Rejected record: %s", exc)
            return jsonify({"error": str(exc)}), 400

        return jsonify(
            {
                "churn_probability": round(probability, 6),
                "churn_pred": int(probability >= threshold),
                "threshold": threshold,
            }
        )

    return app
