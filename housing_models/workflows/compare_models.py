"""End-to-end workflow: clean, encode, split, select each model family and compare."""

from __future__ import annotations

import argparse
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import mlflow
import numpy as np
import pandas as pd

from .. import plots
from ..config import ModelConfig, ProjectConfig, load_config
from ..data import load_feature_snapshot, load_raw_data, save_feature_snapshot, save_json_artifact
from ..errors import HousingModelError
from ..feature_engineering import log_metadata_to_mlflow, transform_with_metadata
from ..logging_utils import configure_logging, get_logger
from ..metrics import report
from ..mlflow_utils import log_metrics_if_active, tracking_run
from ..models import get_regressor
from ..partition import split
from ..registry import FitCache, build_run_name, fit_signature, table_fingerprint
from ..selection import ModelFitResult, evaluate

logger = get_logger(__name__)

COMPARISON_COLUMNS = ["method", "partition", "mse", "rmse", "mae", "mape", "medae", "cv_rmse", "cv_method"]


@contextmanager
def _stage(name: str, detail: str) -> Iterator[None]:
    logger.info("Stage %s started (%s)", name, detail)
    try:
        yield
    except (HousingModelError, FileNotFoundError) as exc:
        logger.error("Stage %s failed for %s: %s", name, detail, exc)
        raise


def _apply_data_override(config: ProjectConfig, data_path: Optional[Path]) -> ProjectConfig:
    if data_path is None:
        return config
    data = replace(config.data, raw_data_path=data_path)
    return replace(config, data=data)


def _load_features(config: ProjectConfig) -> Tuple[pd.DataFrame, int]:
    snapshot_path = config.data.snapshot_path
    if snapshot_path and config.data.reuse_snapshot:
        snapshot = load_feature_snapshot(snapshot_path)
        if snapshot is not None:
            return snapshot

    with _stage("load", str(config.data.raw_data_path)):
        raw = load_raw_data(config.data)
    with _stage("cleaning", str(config.data.raw_data_path)):
        feature_table, rejected, metadata = transform_with_metadata(raw, config.cleaning)

    logger.info("Feature table has %d rows and %d columns; %d rows rejected", *feature_table.shape, rejected)
    log_metadata_to_mlflow(metadata, rejected)
    if snapshot_path:
        save_feature_snapshot(feature_table, rejected, snapshot_path)
    return feature_table, rejected


def _select_model(
    model_config: ModelConfig,
    train_table: pd.DataFrame,
    config: ProjectConfig,
    cache: FitCache,
    use_cache: bool,
) -> Tuple[ModelFitResult, pd.DataFrame]:
    selection = config.selection
    feature_names = [c for c in train_table.columns if c != selection.target_column]
    key = fit_signature(
        model_config.family,
        model_config.grid,
        cv_folds=selection.cv_folds,
        seed=selection.random_state,
        use_oob=model_config.use_oob,
        feature_names=feature_names,
        n_rows=len(train_table),
        data_hash=table_fingerprint(train_table),
    )

    if use_cache and model_config.reuse_cached:
        cached = cache.load(key)
        if cached is not None:
            return cached["best_fit"], cached["cv_error_table"]

    best_fit, cv_error_table = evaluate(
        train_table,
        model_config.family,
        model_config.grid,
        selection.cv_folds,
        target_column=selection.target_column,
        seed=selection.random_state,
        use_oob=model_config.use_oob,
    )
    cache.save(key, {"best_fit": best_fit, "cv_error_table": cv_error_table})
    return best_fit, cv_error_table


def _report_rows(
    best_fit: ModelFitResult,
    tables: List[Tuple[str, pd.DataFrame]],
    config: ProjectConfig,
) -> Tuple[List[dict], dict]:
    """Metric rows per partition on the price-per-area scale, plus test predictions."""

    target = config.selection.target_column
    regressor = get_regressor(best_fit.family, config.selection.random_state)
    rows = []
    predictions = {}
    for partition, table in tables:
        X = table.drop(columns=[target])
        real = np.exp(table[target].to_numpy(dtype=float))
        predicted = np.exp(regressor.predict(best_fit.model, X))
        metric_report = report(real, predicted, best_fit.family)
        rows.append({
            **metric_report._asdict(),
            "partition": partition,
            "cv_rmse": best_fit.cv_error,
            "cv_method": best_fit.cv_method,
        })
        predictions[partition] = (real, predicted)
        log_metrics_if_active(
            {k: v for k, v in metric_report._asdict().items() if k != "method"},
            prefix=f"{best_fit.family}_{partition}",
        )
    return rows, predictions


def _save_family_outputs(
    best_fit: ModelFitResult,
    cv_error_table: pd.DataFrame,
    predictions: dict,
    config: ProjectConfig,
) -> None:
    results_dir = config.output.results_dir
    family = best_fit.family
    cv_path = results_dir / f"cv_{family}.csv"
    cv_path.parent.mkdir(parents=True, exist_ok=True)
    cv_error_table.to_csv(cv_path, index=False)

    if not config.output.save_plots:
        return

    real, predicted = predictions["test"]
    plots.plot_predictions_vs_actual(real, predicted, f"{family} (test)", results_dir / f"pred_vs_real_{family}.png")
    plots.plot_cv_errors(cv_error_table, family, results_dir / f"cv_{family}.png")
    importances = getattr(best_fit.model.estimator, "feature_importances_", None)
    if importances is not None:
        plots.plot_feature_importances(
            importances,
            best_fit.model.feature_names,
            results_dir / f"importances_{family}.png",
        )


def run_comparison(
    config: ProjectConfig,
    *,
    data_path: Optional[Path] = None,
    run_name: Optional[str] = None,
    use_cache: bool = True,
) -> pd.DataFrame:
    """Run every stage in order and return the comparison table.

    The table has one row per (method, partition) with errors measured on the
    price-per-area scale, and is written to ``<results_dir>/comparison.csv``.
    """

    configure_logging()
    config = _apply_data_override(config, data_path)
    effective_run_name = run_name or build_run_name(config.mlflow.run_name_template)
    results_dir = config.output.results_dir
    results_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Running model comparison '%s'", effective_run_name)

    with tracking_run(config.mlflow, effective_run_name):
        if mlflow.active_run() is not None:
            mlflow.set_tag("workflow", "compare_models")
            mlflow.log_param("dataset_path", str(config.data.raw_data_path))

        feature_table, rejected = _load_features(config)

        with _stage("split", f"train_fraction={config.split.train_fraction}"):
            train_table, test_table = split(feature_table, config.split.train_fraction, config.split.random_state)

        if config.output.save_plots:
            plots.plot_target_distribution(
                feature_table, config.selection.target_column, results_dir / "target_distribution.png"
            )
            plots.plot_correlation_heatmap(feature_table, results_dir / "correlation_heatmap.png")

        cache = FitCache(config.selection.cache_dir)
        rows: List[dict] = []
        for model_config in config.enabled_models():
            with _stage("model_selection", model_config.family):
                best_fit, cv_error_table = _select_model(model_config, train_table, config, cache, use_cache)
            family_rows, predictions = _report_rows(
                best_fit, [("train", train_table), ("test", test_table)], config
            )
            rows.extend(family_rows)
            _save_family_outputs(best_fit, cv_error_table, predictions, config)

        comparison = pd.DataFrame(rows, columns=COMPARISON_COLUMNS)
        comparison_path = results_dir / "comparison.csv"
        comparison.to_csv(comparison_path, index=False)

        summary = {
            "run_name": effective_run_name,
            "dataset_path": str(config.data.raw_data_path),
            "feature_rows": len(feature_table),
            "rejected_rows": rejected,
            "train_rows": len(train_table),
            "test_rows": len(test_table),
            "methods": [m.family for m in config.enabled_models()],
        }
        save_json_artifact(summary, results_dir / "run_summary.json")
        if mlflow.active_run() is not None:
            mlflow.log_artifact(str(comparison_path), artifact_path="comparison")
            mlflow.log_dict(summary, "run_summary.json")

    logger.info("Model comparison complete; table saved to %s", comparison_path)
    return comparison


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compare price-per-area regression models")
    parser.add_argument("--config", type=Path, help="Optional path to configuration YAML")
    parser.add_argument("--data-path", type=Path, help="Override dataset CSV path")
    parser.add_argument("--run-name", type=str, help="Optional run name")
    parser.add_argument("--no-cache", action="store_true", help="Refit every family instead of reusing cached fits")
    return parser.parse_args(args)


def main(argv: Optional[List[str]] = None) -> int:
    cli_args = parse_args(argv)
    config = load_config(path=cli_args.config)
    try:
        comparison = run_comparison(
            config,
            data_path=cli_args.data_path,
            run_name=cli_args.run_name,
            use_cache=not cli_args.no_cache,
        )
    except HousingModelError as exc:
        logger.error("Model comparison aborted: %s", exc)
        return 1

    print(comparison.to_string(index=False))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
