"""
Figures for the churn report.

EDA:
- Class balance (churn rate)
- Churn rate by categorical fields
- Numeric distributions split by churn
- Correlation heatmap (numeric only)
- Chi-square p-values per categorical field

Models:
- ROC curves of every compared classifier on one chart
- Confusion matrix of one classifier
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .data_io import FeatureSchema
from .evaluation import EvaluationResult


def _savefig(fig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)


def plot_class_balance(df: pd.DataFrame, target: str, out_path: Path) -> None:
    counts = df[target].value_counts().reindex([0, 1], fill_value=0)

    fig = plt.figure(figsize=(6, 4))
    plt.bar(["Stayed (0)", "Churned (1)"], counts.values)
    plt.title("Class Balance (Churn vs Non-churn)")
    plt.ylabel("Number of customers")
    _savefig(fig, out_path)


def plot_churn_by_categorical(df: pd.DataFrame, schema: FeatureSchema, out_path: Path) -> None:
    cat_cols = schema.categorical_cols
    n = len(cat_cols)
    if n == 0:
        return
    fig = plt.figure(figsize=(7, 3.5 * n))

    for i, col in enumerate(cat_cols, start=1):
        ax = plt.subplot(n, 1, i)
        rates = df.groupby(col, observed=True)[schema.target].mean().sort_values(ascending=False)
        ax.bar(rates.index.astype(str), rates.values)
        ax.set_title(f"Churn rate by {col}")
        ax.set_ylabel("Churn rate")
        ax.set_ylim(0, max(0.05, rates.max() * 1.15))

    _savefig(fig, out_path)


def plot_numeric_distributions(df: pd.DataFrame, schema: FeatureSchema, out_path: Path) -> None:
    """
    Histogram overlays of each numeric field for churners and non-churners.
    """
    num_cols = schema.numeric_cols
    n = len(num_cols)
    if n == 0:
        return
    churn = df[df[schema.target] == 1]
    stayed = df[df[schema.target] == 0]

    fig = plt.figure(figsize=(7, 2.8 * n))
    for i, col in enumerate(num_cols, start=1):
        ax = plt.subplot(n, 1, i)

        # Shared bins for a fair comparison
        values = df[col].dropna().values
        bins = np.histogram_bin_edges(values, bins=min(30, max(10, int(np.sqrt(len(values))))))

        ax.hist(stayed[col].dropna(), bins=bins, alpha=0.6, label="Stayed (0)")
        ax.hist(churn[col].dropna(), bins=bins, alpha=0.6, label="Churned (1)")
        ax.set_title(f"Distribution of {col}")
        ax.set_ylabel("Count")
        ax.legend()

    _savefig(fig, out_path)


def plot_correlation_heatmap(df: pd.DataFrame, schema: FeatureSchema, out_path: Path) -> None:
    corr_df = df[schema.numeric_cols + [schema.target]].corr(numeric_only=True)

    fig = plt.figure(figsize=(8, 7))
    plt.imshow(corr_df.values, aspect="auto", vmin=-1, vmax=1, cmap="coolwarm")
    plt.xticks(range(len(corr_df.columns)), corr_df.columns, rotation=90)
    plt.yticks(range(len(corr_df.index)), corr_df.index)
    plt.title("Correlation heatmap (numeric features + target)")
    plt.colorbar()
    _savefig(fig, out_path)


def plot_chi_square(selection: pd.DataFrame, significance: float, out_path: Path) -> None:
    fig = plt.figure(figsize=(7, 4))
    plt.barh(selection["feature"][::-1], selection["p_value"][::-1])
    plt.axvline(significance, linestyle="--", color="red")
    plt.title("Chi-square p-value vs churn")
    plt.xlabel("p-value")
    _savefig(fig, out_path)


def run_eda(df: pd.DataFrame, schema: FeatureSchema, figures_dir: Path) -> None:
    """
    Generate all EDA plots to the figures directory.
    """
    plot_class_balance(df, schema.target, figures_dir / "class_balance.png")
    plot_churn_by_categorical(df, schema, figures_dir / "churn_by_category.png")
    plot_numeric_distributions(df, schema, figures_dir / "numeric_distributions.png")
    plot_correlation_heatmap(df, schema, figures_dir / "correlation_heatmap.png")


def plot_roc_curves(curves: Dict[str, Tuple[Tuple[float, ...], Tuple[float, ...]]], out_path: Path) -> None:
    """
    Overlay the ROC curve of every classifier (see ComparisonReport.roc_curves).
    """
    fig = plt.figure(figsize=(6, 5))
    for name, (fpr, tpr) in curves.items():
        if len(fpr):
            plt.plot(fpr, tpr, label=name)
    plt.plot([0, 1], [0, 1], linestyle="--", color="grey")
    plt.title("ROC Curves")
    plt.xlabel("False Positive Rate")
    plt.ylabel("True Positive Rate")
    plt.legend(loc="lower right")
    _savefig(fig, out_path)


def plot_confusion(result: EvaluationResult, out_path: Path) -> None:
    cm = np.array(result.confusion)

    fig = plt.figure(figsize=(5.5, 4.8))
    plt.imshow(cm, aspect="auto")
    plt.title(f"{result.name} confusion matrix (threshold={result.threshold:.2f})")
    plt.xticks([0, 1], ["Pred 0", "Pred 1"])
    plt.yticks([0, 1], ["True 0", "True 1"])
    plt.colorbar()

    for (i, j), val in np.ndenumerate(cm):
        plt.text(j, i, str(val), ha="center", va="center")

    _savefig(fig, out_path)
