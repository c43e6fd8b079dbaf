"""
Visualization utilities for the model comparison.
"""

from pathlib import Path
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .logging_utils import get_logger

logger = get_logger(__name__)

sns.set_style("whitegrid")


def _save(save_path: Optional[Path]) -> None:
    if save_path:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info("Saved figure to %s", save_path)
    plt.close()


def plot_target_distribution(
    df: pd.DataFrame,
    target_column: str,
    save_path: Optional[Path] = None
) -> None:
    """
    Plot the distribution of the (log) price per area.

    Args:
        df: Feature table containing ``target_column``
        target_column: Column to plot
        save_path: Optional path to save the figure
    """
    plt.figure(figsize=(10, 6))
    sns.histplot(df[target_column], kde=True)
    plt.title(f'Distribution of {target_column}')
    plt.xlabel(target_column)
    plt.ylabel('Count')
    _save(save_path)


def plot_correlation_heatmap(
    df: pd.DataFrame,
    save_path: Optional[Path] = None,
    figsize: tuple = (12, 10)
) -> None:
    """
    Plot correlation heatmap for the continuous columns.

    Indicator columns are left out so the map stays readable.
    """
    continuous = [c for c in df.columns if not df[c].isin([0, 1]).all()]
    plt.figure(figsize=figsize)
    sns.heatmap(df[continuous].corr(), cmap='coolwarm', annot=True, fmt='.2f')
    plt.title('Correlation Heatmap')
    _save(save_path)


def plot_predictions_vs_actual(
    y_actual,
    y_pred,
    title: str,
    save_path: Optional[Path] = None
) -> None:
    """
    Plot predicted vs actual price per area.

    Args:
        y_actual: Actual values
        y_pred: Predicted values
        title: Figure title, usually the method name
        save_path: Optional path to save the figure
    """
    y_actual = np.asarray(y_actual)
    y_pred = np.asarray(y_pred)
    plt.figure(figsize=(8, 8))
    plt.scatter(y_actual, y_pred, alpha=0.3, s=8)
    plt.plot([y_actual.min(), y_actual.max()],
             [y_actual.min(), y_actual.max()],
             'r--', lw=2, label='Perfect Prediction')
    plt.xlabel('Actual price per area')
    plt.ylabel('Predicted price per area')
    plt.title(title)
    plt.legend()
    _save(save_path)


def plot_cv_errors(
    cv_error_table: pd.DataFrame,
    family: str,
    save_path: Optional[Path] = None
) -> None:
    """Bar chart of cross-validated RMSE per grid combination."""
    param_columns = [
        c for c in cv_error_table.columns
        if c not in ('cv_rmse', 'cv_rmse_std', 'failed_folds', 'method')
    ]
    labels = cv_error_table[param_columns].astype(str).agg(', '.join, axis=1) if param_columns else cv_error_table.index.astype(str)
    plt.figure(figsize=(10, max(3, 0.4 * len(cv_error_table))))
    plt.barh(labels, cv_error_table['cv_rmse'], xerr=cv_error_table['cv_rmse_std'].fillna(0))
    plt.xlabel('Cross-validated RMSE (log price per area)')
    plt.title(f'{family} grid search')
    _save(save_path)


def plot_feature_importances(
    importances,
    feature_names,
    save_path: Optional[Path] = None,
    top_n: int = 20
) -> None:
    """Horizontal bar chart of the ``top_n`` largest importances."""
    series = pd.Series(importances, index=feature_names).sort_values(ascending=False).head(top_n)
    plt.figure(figsize=(10, 0.35 * len(series) + 1))
    sns.barplot(x=series.values, y=series.index, orient='h')
    plt.xlabel('Importance')
    plt.title('Random forest feature importances')
    _save(save_path)
