"""Configuration loader for the housing model comparison pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import os

import yaml

UNRECOGNIZED = "unrecognized"

DEFAULT_RENAME_COLUMNS: Dict[str, str] = {
    "tradeTime": "trade_date",
    "totalPrice": "total_price",
    "price": "price_per_area",
    "square": "area",
    "livingRoom": "bedrooms",
    "drawingRoom": "living_rooms",
    "kitchen": "kitchen",
    "bathRoom": "bathrooms",
    "buildingType": "building_type",
    "constructionTime": "construction_year",
    "renovationCondition": "renovation_condition",
    "buildingStructure": "building_structure",
    "ladderRatio": "ladder_ratio",
    "elevator": "elevator",
    "fiveYearsProperty": "five_years_property",
    "subway": "subway",
    "district": "district",
    "floor": "floor",
}

DEFAULT_DROP_COLUMNS: List[str] = [
    "url",
    "id",
    "Lng",
    "Lat",
    "Cid",
    "DOM",
    "followers",
    "total_price",
    "kitchen",
    "ladder_ratio",
    "communityAverage",
]

DEFAULT_RECODE_TABLES: Dict[str, Dict[int, str]] = {
    "building_type": {1: "Tower", 2: "Bungalow", 3: "Plate/Tower", 4: "Plate"},
    "renovation_condition": {1: "Other", 2: "Rough", 3: "Simplicity", 4: "Hardcover"},
    "building_structure": {
        1: "Unknown",
        2: "Mixed",
        3: "Brick/Wood",
        4: "Brick/Concrete",
        5: "Steel",
        6: "Steel/Concrete",
    },
    "elevator": {0: "No", 1: "Yes"},
    "five_years_property": {0: "No", 1: "Yes"},
    "subway": {0: "No", 1: "Yes"},
    "district": {
        1: "DongCheng",
        2: "FengTai",
        3: "DaXing",
        4: "FaXing",
        5: "FangShan",
        6: "ChangPing",
        7: "ChaoYang",
        8: "HaiDian",
        9: "ShiJingShan",
        10: "XiCheng",
        11: "TongZhou",
        12: "ShunYi",
        13: "MenTouGou",
    },
}

DEFAULT_MERGE_TABLES: Dict[str, Dict[str, str]] = {
    "building_structure": {"Unknown": "Mixed", "Brick/Wood": "Mixed"},
    "building_type": {"Bungalow": "Plate"},
}

# Raw floor strings look like "高 26": a position marker followed by the building height.
DEFAULT_FLOOR_LEVELS: Dict[str, str] = {
    "底": "bottom",
    "低": "low",
    "中": "middle",
    "高": "high",
    "顶": "top",
}

DEFAULT_MODEL_GRIDS: Dict[str, Dict[str, Any]] = {
    "linear": {
        "grid": {"fit_intercept": [True]},
    },
    "random_forest": {
        "grid": {
            "n_estimators": [300],
            "max_features": [0.33, 0.5],
            "min_samples_leaf": [5],
            "n_jobs": [-1],
        },
        "use_oob": True,
    },
    "gradient_boosting": {
        "grid": {
            "n_estimators": [500],
            "learning_rate": [0.05, 0.1],
            "max_depth": [3, 5],
            "subsample": [0.8],
        },
    },
    "mlp": {
        "grid": {
            "hidden_layer_sizes": [[5], [10]],
            "alpha": [0.001, 0.01],
            "max_iter": [500],
        },
    },
    "neural_network": {
        "grid": {
            "hidden_units": [[32, 16]],
            "activation": ["relu"],
            "learning_rate": [0.001],
            "epochs": [100],
            "batch_size": [64],
        },
    },
}


@dataclass(frozen=True)
class DataConfig:
    raw_data_path: Path
    encoding: str = "utf-8"
    snapshot_path: Optional[Path] = None
    reuse_snapshot: bool = False


@dataclass(frozen=True)
class CleaningConfig:
    rename_columns: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RENAME_COLUMNS))
    drop_columns: List[str] = field(default_factory=lambda: list(DEFAULT_DROP_COLUMNS))
    recode_tables: Dict[str, Dict[int, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_RECODE_TABLES.items()}
    )
    merge_tables: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_MERGE_TABLES.items()}
    )
    floor_levels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FLOOR_LEVELS))
    min_price_per_area: float = 10000.0
    area_min: float = 20.0
    area_max: float = 300.0
    window_start: int = 2010
    window_end: int = 2017
    target_year: Optional[int] = 2017
    reference_year: int = 2017


@dataclass(frozen=True)
class SplitConfig:
    train_fraction: float = 0.7
    random_state: int = 42


@dataclass(frozen=True)
class ModelConfig:
    family: str
    grid: Dict[str, List[Any]]
    enabled: bool = True
    reuse_cached: bool = True
    use_oob: bool = False


@dataclass(frozen=True)
class SelectionConfig:
    target_column: str = "log_price_per_area"
    cv_folds: int = 5
    random_state: int = 42
    cache_dir: Path = Path("artifacts/fits")
    models: Dict[str, ModelConfig] = field(default_factory=dict)


@dataclass(frozen=True)
class MLflowConfig:
    enabled: bool = False
    experiment_name: str = "housing_model_comparison"
    tracking_uri: Optional[str] = None
    run_name_template: str = "run_{timestamp}"


@dataclass(frozen=True)
class OutputConfig:
    results_dir: Path = Path("results")
    save_plots: bool = False


@dataclass(frozen=True)
class ProjectConfig:
    project_name: str
    data: DataConfig
    cleaning: CleaningConfig
    split: SplitConfig
    selection: SelectionConfig
    mlflow: MLflowConfig
    output: OutputConfig

    def enabled_models(self) -> List[ModelConfig]:
        return [model for model in self.selection.models.values() if model.enabled]

    def to_dict(self) -> Dict[str, Any]:
        """Return config as a serialisable dictionary."""

        return {
            "project_name": self.project_name,
            "data": {
                "raw_data_path": str(self.data.raw_data_path),
                "encoding": self.data.encoding,
                "snapshot_path": str(self.data.snapshot_path) if self.data.snapshot_path else None,
                "reuse_snapshot": self.data.reuse_snapshot,
            },
            "cleaning": {
                "min_price_per_area": self.cleaning.min_price_per_area,
                "area_min": self.cleaning.area_min,
                "area_max": self.cleaning.area_max,
                "window_start": self.cleaning.window_start,
                "window_end": self.cleaning.window_end,
                "target_year": self.cleaning.target_year,
                "reference_year": self.cleaning.reference_year,
                "merge_tables": self.cleaning.merge_tables,
            },
            "split": {
                "train_fraction": self.split.train_fraction,
                "random_state": self.split.random_state,
            },
            "selection": {
                "target_column": self.selection.target_column,
                "cv_folds": self.selection.cv_folds,
                "random_state": self.selection.random_state,
                "cache_dir": str(self.selection.cache_dir),
                "models": {
                    name: {
                        "grid": model.grid,
                        "enabled": model.enabled,
                        "reuse_cached": model.reuse_cached,
                        "use_oob": model.use_oob,
                    }
                    for name, model in self.selection.models.items()
                },
            },
            "mlflow": {
                "enabled": self.mlflow.enabled,
                "experiment_name": self.mlflow.experiment_name,
                "tracking_uri": self.mlflow.tracking_uri,
                "run_name_template": self.mlflow.run_name_template,
            },
            "output": {
                "results_dir": str(self.output.results_dir),
                "save_plots": self.output.save_plots,
            },
        }


def _resolve_config_path(explicit_path: Optional[Path] = None) -> Path:
    if explicit_path:
        return explicit_path

    env_path = os.getenv("HOUSING_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    return Path("config/config.yaml")


def _optional_path(value: Optional[str]) -> Optional[Path]:
    return Path(value) if value else None


def _build_recode_tables(raw: Optional[Mapping[str, Mapping[Any, str]]]) -> Dict[str, Dict[int, str]]:
    if raw is None:
        return {k: dict(v) for k, v in DEFAULT_RECODE_TABLES.items()}
    return {column: {int(code): str(label) for code, label in table.items()} for column, table in raw.items()}


def _build_models(raw: Optional[Mapping[str, Mapping[str, Any]]]) -> Dict[str, ModelConfig]:
    source = raw if raw is not None else DEFAULT_MODEL_GRIDS
    models = {}
    for name, entry in source.items():
        entry = entry or {}
        models[name] = ModelConfig(
            family=entry.get("family", name),
            grid=dict(entry.get("grid", {})),
            enabled=bool(entry.get("enabled", True)),
            reuse_cached=bool(entry.get("reuse_cached", True)),
            use_oob=bool(entry.get("use_oob", False)),
        )
    return models


def config_from_dict(raw_config: Mapping[str, Any]) -> ProjectConfig:
    """Build a ``ProjectConfig`` from a parsed YAML mapping, filling defaults."""

    project = raw_config.get("project", {}) or {}
    data_cfg = raw_config.get("data", {}) or {}
    cleaning_cfg = raw_config.get("cleaning", {}) or {}
    split_cfg = raw_config.get("split", {}) or {}
    selection_cfg = raw_config.get("selection", {}) or {}
    mlflow_cfg = raw_config.get("mlflow", {}) or {}
    output_cfg = raw_config.get("output", {}) or {}

    target_year = cleaning_cfg.get("target_year", 2017)

    return ProjectConfig(
        project_name=project.get("name", "beijing-housing-models"),
        data=DataConfig(
            raw_data_path=Path(data_cfg.get("raw_data_path", "data/new.csv")),
            encoding=data_cfg.get("encoding", "utf-8"),
            snapshot_path=_optional_path(data_cfg.get("snapshot_path")),
            reuse_snapshot=bool(data_cfg.get("reuse_snapshot", False)),
        ),
        cleaning=CleaningConfig(
            rename_columns=dict(cleaning_cfg.get("rename_columns", DEFAULT_RENAME_COLUMNS)),
            drop_columns=list(cleaning_cfg.get("drop_columns", DEFAULT_DROP_COLUMNS)),
            recode_tables=_build_recode_tables(cleaning_cfg.get("recode_tables")),
            merge_tables={
                column: dict(table)
                for column, table in (cleaning_cfg.get("merge_tables", DEFAULT_MERGE_TABLES) or {}).items()
            },
            floor_levels=dict(cleaning_cfg.get("floor_levels", DEFAULT_FLOOR_LEVELS)),
            min_price_per_area=float(cleaning_cfg.get("min_price_per_area", 10000.0)),
            area_min=float(cleaning_cfg.get("area_min", 20.0)),
            area_max=float(cleaning_cfg.get("area_max", 300.0)),
            window_start=int(cleaning_cfg.get("window_start", 2010)),
            window_end=int(cleaning_cfg.get("window_end", 2017)),
            target_year=int(target_year) if target_year is not None else None,
            reference_year=int(cleaning_cfg.get("reference_year", 2017)),
        ),
        split=SplitConfig(
            train_fraction=float(split_cfg.get("train_fraction", 0.7)),
            random_state=int(split_cfg.get("random_state", 42)),
        ),
        selection=SelectionConfig(
            target_column=selection_cfg.get("target_column", "log_price_per_area"),
            cv_folds=int(selection_cfg.get("cv_folds", 5)),
            random_state=int(selection_cfg.get("random_state", 42)),
            cache_dir=Path(selection_cfg.get("cache_dir", "artifacts/fits")),
            models=_build_models(selection_cfg.get("models")),
        ),
        mlflow=MLflowConfig(
            enabled=bool(mlflow_cfg.get("enabled", False)),
            experiment_name=mlflow_cfg.get("experiment_name", "housing_model_comparison"),
            tracking_uri=mlflow_cfg.get("tracking_uri"),
            run_name_template=mlflow_cfg.get("run_name_template", "run_{timestamp}"),
        ),
        output=OutputConfig(
            results_dir=Path(output_cfg.get("results_dir", "results")),
            save_plots=bool(output_cfg.get("save_plots", False)),
        ),
    )


def load_config(path: Optional[Path] = None) -> ProjectConfig:
    """Load project configuration from YAML and apply env overrides."""

    config_path = _resolve_config_path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw_config = yaml.safe_load(handle) or {}

    data_cfg = dict(raw_config.get("data", {}) or {})
    mlflow_cfg = dict(raw_config.get("mlflow", {}) or {})
    if os.getenv("HOUSING_DATA_PATH"):
        data_cfg["raw_data_path"] = os.environ["HOUSING_DATA_PATH"]
    if os.getenv("MLFLOW_TRACKING_URI"):
        mlflow_cfg["tracking_uri"] = os.environ["MLFLOW_TRACKING_URI"]

    return config_from_dict({**raw_config, "data": data_cfg, "mlflow": mlflow_cfg})
