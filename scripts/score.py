"""
Score a CSV of customers (same feature columns as training, Exited optional).
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from bankchurn.config import MODELS_DIR
from bankchurn.predict import score_file


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--in", dest="input_csv", required=True, help="Input CSV to score")
    parser.add_argument("--out", dest="output_csv", required=True, help="Output CSV path")
    parser.add_argument("--model", default=str(MODELS_DIR / "best_model.joblib"), help="Fitted model path")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    score_file(
        model_path=Path(args.model),
        input_csv=Path(args.input_csv),
        output_csv=Path(args.output_csv),
        threshold_path=MODELS_DIR / "best_threshold.json",
    )

    print("Scoring complete.")
    print(f"Output -> {args.output_csv}")


if __name__ == "__main__":
    main()
