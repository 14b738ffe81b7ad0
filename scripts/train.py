"""
Train + compare churn classifiers end-to-end.

Run:
  python scripts/train.py --csv data/raw/Churn_Modelling.csv [--config run.json]

This script will:
- Load and clean data, run EDA and save plots
- Chi-square test the categorical fields and drop the non-significant ones
- Split train/test (stratified, seeded)
- Rebalance train with SMOTE oversampling + majority undersampling
- Grid-search logistic regression, decision tree, random forest and gradient
  boosting with k-fold cross-validation
- Evaluate each winner on test, rank them, save plots + metrics
- Save the top-ranked fitted pipeline to models/best_model.joblib
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict, replace
from pathlib import Path

from bankchurn.config import (
    DEFAULT_RAW_CSV,
    FIGURES_DIR,
    MODELS_DIR,
    REPORTS_DIR,
    RunConfig,
    load_run_config,
)
from bankchurn.data_io import get_feature_schema, load_churn_csv, save_schema
from bankchurn.modeling import make_adapters
from bankchurn.plots import plot_chi_square, plot_confusion, plot_roc_curves, run_eda
from bankchurn.predict import save_json, save_model
from bankchurn.preparation import chi_square_selection, describe_dataset, drop_flagged_features, prepare_dataset
from bankchurn.sampling import balance_classes, stratified_split
from bankchurn.training import compare_classifiers


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--csv",
        type=str,
        default=str(DEFAULT_RAW_CSV),
        help="Path to the raw churn CSV. Default: data/raw/Churn_Modelling.csv",
    )
    parser.add_argument("--config", type=str, default=None, help="JSON file overriding RunConfig fields")
    parser.add_argument("--random_state", type=int, default=None, help="Overrides the config seed")
    parser.add_argument("--n_jobs", type=int, default=None, help="Parallel grid-search workers")
    parser.add_argument(
        "--keep_flagged",
        action="store_true",
        help="Keep categorical fields the chi-square test flags as non-significant",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = load_run_config(Path(args.config)) if args.config else RunConfig()
    overrides = {}
    if args.random_state is not None:
        overrides["random_state"] = args.random_state
    if args.n_jobs is not None:
        overrides["n_jobs"] = args.n_jobs
    if overrides:
        config = replace(config, **overrides)

    # -------------------------
    # 1) Load + clean data
    # -------------------------
    schema = get_feature_schema()
    raw = load_churn_csv(Path(args.csv), schema)
    df, diagnostics = prepare_dataset(raw, schema)
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    diagnostics.to_csv(REPORTS_DIR / "column_diagnostics.csv")

    # -------------------------
    # 2) EDA (save figures + tables)
    # -------------------------
    run_eda(df, schema, FIGURES_DIR)
    tables = describe_dataset(df, schema)
    for table_name, table in tables.items():
        table.to_csv(REPORTS_DIR / f"eda_{table_name}.csv")

    # -------------------------
    # 3) Chi-square feature selection
    # -------------------------
    selection = chi_square_selection(df, schema.categorical_cols, schema.target, config.significance)
    selection.to_csv(REPORTS_DIR / "chi_square.csv", index=False)
    plot_chi_square(selection, config.significance, FIGURES_DIR / "chi_square.png")
    if not args.keep_flagged:
        df, schema = drop_flagged_features(df, selection, schema)

    save_schema(schema, MODELS_DIR / "feature_schema.json")

    # -------------------------
    # 4) Split + rebalance train
    # -------------------------
    train, test = stratified_split(df, schema.target, config.split_ratio, config.random_state)
    train = balance_classes(
        train,
        schema.target,
        over_pct=config.over_pct,
        under_pct=config.under_pct,
        k_neighbors=config.k_neighbors,
        random_state=config.random_state,
    )

    # -------------------------
    # 5) Grid search + evaluate every candidate
    # -------------------------
    adapters = make_adapters(schema, random_state=config.random_state)
    searches, report = compare_classifiers(
        adapters,
        config.param_grids,
        train,
        test,
        n_folds=config.n_folds,
        selection_metric=config.selection_metric,
        threshold=config.threshold,
        primary_metric=config.primary_metric,
        random_state=config.random_state,
        n_jobs=config.n_jobs,
    )

    table = report.table()
    table.to_csv(REPORTS_DIR / "model_comparison.csv")

    best = report.best()
    save_json(
        {
            "best_model_name": best.name,
            "comparison": report.to_dict(),
            "grid_search": {
                name: {
                    "selection_metric": s.selection_metric,
                    "best_config": s.best_config,
                    "best_cv_score": s.best_score,
                }
                for name, s in searches.items()
            },
            "run_config": asdict(config),
        },
        REPORTS_DIR / "metrics.json",
    )

    plot_roc_curves(report.roc_curves(), FIGURES_DIR / "roc_curves.png")
    plot_confusion(best, FIGURES_DIR / "confusion_matrix.png")

    # -------------------------
    # 6) Save the selected model
    # -------------------------
    save_model(searches[best.name].model, MODELS_DIR / "best_model.joblib")
    save_json({"model": best.name, "threshold": config.threshold}, MODELS_DIR / "best_threshold.json")

    print("\nTraining complete.")
    print(table.to_string(float_format=lambda v: f"{v:.4f}"))
    print(f"\nBest model: {best.name}")
    print(f"Saved model -> {MODELS_DIR / 'best_model.joblib'}")
    print(f"Saved metrics -> {REPORTS_DIR / 'metrics.json'}")
    print(f"Saved figures -> {FIGURES_DIR}")


if __name__ == "__main__":
    main()
