"""
Serve the selected model for single-record scoring.

Run:
  python scripts/serve.py --port 8000
  curl -X POST localhost:8000/predict -H 'Content-Type: application/json' \
       -d '{"CreditScore": 600, "Geography": "France", ...}'
"""

from __future__ import annotations

import argparse
import logging

from bankchurn.app import create_app
from bankchurn.config import MODELS_DIR
from bankchurn.data_io import load_schema
from bankchurn.predict import load_model, load_threshold


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    model = load_model(MODELS_DIR / "best_model.joblib")
    schema = load_schema(MODELS_DIR / "feature_schema.json")
    threshold = load_threshold(MODELS_DIR / "best_threshold.json")

    app = create_app(model, schema, threshold=threshold)
    app.run(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
