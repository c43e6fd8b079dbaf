"""Helper utilities for MLflow run management."""

from __future__ import annotations

import math
from contextlib import contextmanager, nullcontext
from typing import Iterator, Optional

import mlflow

from .config import MLflowConfig


@contextmanager
def ensure_run(run_name: str, *, nested: bool = False) -> Iterator[mlflow.ActiveRun]:
    """Return an MLflow run context, reusing the active run when present.

    Args:
        run_name: Name for the run if a new one is started.
        nested: When True, force creation of a nested run even if one is active.
    """

    active = mlflow.active_run()
    if active and not nested:
        yield active
    else:
        with mlflow.start_run(run_name=run_name, nested=nested) as new_run:
            yield new_run


def tracking_run(config: MLflowConfig, run_name: str):
    """``ensure_run`` when tracking is enabled, otherwise a no-op context yielding ``None``."""

    if not config.enabled:
        return nullcontext(None)

    if config.tracking_uri:
        mlflow.set_tracking_uri(config.tracking_uri)
    mlflow.set_experiment(config.experiment_name)
    return ensure_run(run_name)


def log_metrics_if_active(metrics: dict, prefix: Optional[str] = None) -> None:
    if mlflow.active_run() is None:
        return
    finite = {
        f"{prefix}_{k}" if prefix else k: float(v) for k, v in metrics.items() if math.isfinite(v)
    }
    mlflow.log_metrics(finite)
