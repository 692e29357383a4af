"""
Model Trainer Module
====================

Grid-searches the candidate churn classifiers, selects the best family
and refits it on the full training split, with MLflow experiment tracking.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import joblib
import mlflow
import mlflow.sklearn
import numpy as np
import pandas as pd
from loguru import logger
from sklearn.base import clone
from sklearn.ensemble import BaggingClassifier, RandomForestClassifier
from sklearn.model_selection import BaseCrossValidator, KFold, StratifiedKFold
from sklearn.pipeline import Pipeline
from sklearn.tree import DecisionTreeClassifier

from config import MLFLOW_DIR, MODELS_DIR, get_config
from retail_insights.data.preprocessor import ChurnPreprocessor
from retail_insights.utils import get_timestamp

from .grid import ParameterDomain, TrialResult, best_trial, grid_search
from .mars import MarsClassifier

PARAM_PREFIX = "model__"


class TrainingStage(str, Enum):
    """Lifecycle of a candidate model family."""

    SPLIT = "split"
    RECIPE_BUILT = "recipe_built"
    GRID_SEARCHED = "grid_searched"
    MODEL_SELECTED = "model_selected"
    FINAL_FIT = "final_fit"
    EVALUATED = "evaluated"


@dataclass(frozen=True)
class FamilySearchResult:
    """All grid-search trials of one model family."""

    family: str
    trials: Tuple[TrialResult, ...]
    best: TrialResult
    stratified: bool
    pipeline: Pipeline
    stage: TrainingStage = TrainingStage.GRID_SEARCHED

    def leaderboard(self, n: Optional[int] = None) -> pd.DataFrame:
        """Trials ranked by mean AUC, best first."""
        rows = [
            {"family": self.family, **trial.params, "mean_auc": trial.mean_auc, "std_auc": trial.std_auc}
            for trial in self.trials
        ]
        board = pd.DataFrame(rows).sort_values("mean_auc", ascending=False, kind="stable")
        board = board.reset_index(drop=True)
        return board.head(n) if n else board


@dataclass(frozen=True)
class SelectedModel:
    """The winning family and configuration, not yet refit."""

    family: str
    params: Mapping[str, Any]
    cv_auc: float
    pipeline: Pipeline
    stage: TrainingStage = TrainingStage.MODEL_SELECTED

    def build(self) -> Pipeline:
        """A fresh, unfitted pipeline carrying the selected configuration."""
        pipeline = clone(self.pipeline)
        pipeline.set_params(**{f"{PARAM_PREFIX}{k}": v for k, v in self.params.items()})
        return pipeline


@dataclass(frozen=True)
class FittedModel:
    """The selected configuration refit on the full training split."""

    selected: SelectedModel
    pipeline: Pipeline
    positive_label: str
    negative_label: str
    stage: TrainingStage = TrainingStage.FINAL_FIT

    @property
    def family(self) -> str:
        return self.selected.family

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Probability of the positive label for each row."""
        return self.pipeline.predict_proba(X)[:, 1]


def encode_target(y: pd.Series, positive_label: str) -> np.ndarray:
    """1 for the positive label, 0 otherwise."""
    return (np.asarray(y).astype(str) == str(positive_label)).astype(int)


class ModelTrainer:
    """Train and select churn classifiers with MLflow tracking."""

    FAMILIES = ("mars", "bagging", "random_forest")

    def __init__(
        self,
        config: Optional[dict] = None,
        preprocessor: Optional[ChurnPreprocessor] = None
    ):
        """
        Initialize ModelTrainer.

        Args:
            config: Configuration dictionary
            preprocessor: Recipe builder; created from config when omitted
        """
        self.config = config or get_config()
        self.churn_config = self.config.get("churn", {})
        self.models_config = self.churn_config.get("models", {})
        self.mlflow_config = self.config.get("mlflow", {})
        self.preprocessor = preprocessor or ChurnPreprocessor(self.config)

        self.random_state = self.config.get("random_state", 123)
        self.cv_folds = self.churn_config.get("cv_folds", 5)
        self.n_jobs = self.churn_config.get("n_jobs")
        self.positive_label = self.churn_config.get("positive_label", "Left")
        self.negative_label = self.churn_config.get("negative_label", "Current")
        self.log_to_mlflow = self.mlflow_config.get("enabled", False)

        if self.log_to_mlflow:
            self._setup_mlflow()

    def _setup_mlflow(self):
        """Setup MLflow tracking."""
        tracking_uri = self.mlflow_config.get("tracking_uri", "mlflow_runs")
        mlflow_path = MLFLOW_DIR / tracking_uri

        mlflow.set_tracking_uri(f"file://{mlflow_path}")
        experiment_name = self.mlflow_config.get("experiment_name", "churn_model_selection")

        # Create experiment if it doesn't exist
        experiment = mlflow.get_experiment_by_name(experiment_name)
        if experiment is None:
            mlflow.create_experiment(experiment_name)
        mlflow.set_experiment(experiment_name)

        logger.info(f"MLflow tracking URI: {mlflow_path}")
        logger.info(f"MLflow experiment: {experiment_name}")

    def enabled_families(self) -> List[str]:
        return [
            name for name in self.FAMILIES
            if self.models_config.get(name, {}).get("enabled", True)
        ]

    def _family_config(self, family: str) -> dict:
        if family not in self.FAMILIES:
            logger.error(f"Unknown model family: {family}")
            raise ValueError(f"Unknown model family: {family}. Available: {list(self.FAMILIES)}")
        return self.models_config.get(family, {})

    def build_estimator(self, family: str):
        """Unfitted estimator for a family with default hyperparameters."""
        self._family_config(family)
        if family == "mars":
            return MarsClassifier()
        if family == "bagging":
            return BaggingClassifier(
                estimator=DecisionTreeClassifier(random_state=self.random_state),
                random_state=self.random_state,
            )
        return RandomForestClassifier(random_state=self.random_state)

    def build_pipeline(self, family: str) -> Pipeline:
        """
        Recipe plus estimator for a family.

        Only MARS gets the power transform and standardization; the tree
        families see untransformed numeric predictors.
        """
        recipe = self.preprocessor.create_recipe(transform_numeric=(family == "mars"))
        return Pipeline([("recipe", recipe), ("model", self.build_estimator(family))])

    def get_domains(self, family: str) -> List[ParameterDomain]:
        """Hyperparameter domains for a family from config."""
        family_config = self._family_config(family)
        levels = family_config.get("levels", 5)
        grid = family_config.get("grid", {})
        if not grid:
            raise ValueError(f"No hyperparameter grid configured for {family}")
        return [ParameterDomain.from_config(name, spec, levels) for name, spec in grid.items()]

    def get_cv(self, family: str) -> BaseCrossValidator:
        """
        Fold splitter for a family. MARS folds are stratified by label; the
        tree families use plain shuffled folds.
        """
        stratify = self._family_config(family).get("stratify", family == "mars")
        if stratify:
            return StratifiedKFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)
        return KFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)

    def search_family(
        self,
        family: str,
        X_train: pd.DataFrame,
        y_train: pd.Series
    ) -> FamilySearchResult:
        """
        Grid-search one family on mean cross-validated AUC.

        Args:
            family: Model family name
            X_train: Training features
            y_train: Training labels

        Returns:
            FamilySearchResult with every trial and the best one
        """
        self.preprocessor.resolve_features(X_train)
        pipeline = self.build_pipeline(family)
        domains = self.get_domains(family)
        cv = self.get_cv(family)
        y = encode_target(y_train, self.positive_label)

        n_configs = int(np.prod([len(d.values) for d in domains]))
        logger.info(f"Grid search for {family}: {n_configs} configurations x {self.cv_folds} folds")

        trials = grid_search(
            pipeline, domains, X_train, y, cv,
            param_prefix=PARAM_PREFIX,
            n_jobs=self.n_jobs,
        )
        best = best_trial(trials)
        logger.info(f"{family} best params: {best.params} (CV AUC={best.mean_auc:.4f})")

        result = FamilySearchResult(
            family=family,
            trials=tuple(trials),
            best=best,
            stratified=isinstance(cv, StratifiedKFold),
            pipeline=pipeline,
        )

        if self.log_to_mlflow:
            with mlflow.start_run(run_name=f"{family}_grid_{get_timestamp()}"):
                mlflow.log_params(best.params)
                mlflow.log_metric("cv_auc_mean", best.mean_auc)
                mlflow.log_metric("cv_auc_std", best.std_auc)
                mlflow.log_metric("n_configurations", len(trials))
                mlflow.set_tag("model_type", family)
                mlflow.set_tag("stratified_cv", str(result.stratified))

        return result

    def search_all(
        self,
        X_train: pd.DataFrame,
        y_train: pd.Series
    ) -> Dict[str, FamilySearchResult]:
        """Grid-search every enabled family."""
        logger.info("Searching all model families...")
        return {
            family: self.search_family(family, X_train, y_train)
            for family in self.enabled_families()
        }

    def select_model(self, results: Mapping[str, FamilySearchResult]) -> SelectedModel:
        """
        Promote the family whose best trial has the highest mean AUC.

        Args:
            results: Search results keyed by family

        Returns:
            SelectedModel for the winning family
        """
        if not results:
            raise ValueError("No model families were searched")

        winner = max(results.values(), key=lambda result: result.best.mean_auc)
        logger.info(f"Selected {winner.family} with CV AUC={winner.best.mean_auc:.4f}")
        return SelectedModel(
            family=winner.family,
            params=dict(winner.best.params),
            cv_auc=winner.best.mean_auc,
            pipeline=winner.pipeline,
        )

    def fit_final(
        self,
        selected: SelectedModel,
        X_train: pd.DataFrame,
        y_train: pd.Series
    ) -> FittedModel:
        """
        Refit the selected configuration on the complete training split.

        Args:
            selected: Output of select_model
            X_train: Training features
            y_train: Training labels

        Returns:
            FittedModel
        """
        pipeline = selected.build()
        y = encode_target(y_train, self.positive_label)

        logger.info(f"Fitting final {selected.family} model on {len(X_train)} rows...")
        pipeline.fit(X_train, y)

        if self.log_to_mlflow:
            with mlflow.start_run(run_name=f"{selected.family}_final_{get_timestamp()}"):
                mlflow.log_params(dict(selected.params))
                mlflow.log_metric("cv_auc_mean", selected.cv_auc)
                mlflow.set_tag("model_type", selected.family)
                mlflow.sklearn.log_model(pipeline, f"{selected.family}_final")

        return FittedModel(
            selected=selected,
            pipeline=pipeline,
            positive_label=self.positive_label,
            negative_label=self.negative_label,
        )

    def leaderboard(
        self,
        results: Mapping[str, FamilySearchResult],
        n: Optional[int] = None
    ) -> pd.DataFrame:
        """Top ``n`` trials per family, families in search order."""
        n = n or self.churn_config.get("leaderboard_size", 5)
        return pd.concat(
            [result.leaderboard(n) for result in results.values()],
            ignore_index=True
        )

    def save_model(
        self,
        fitted: FittedModel,
        model_name: str = "best_model",
        filepath: Optional[Path] = None
    ) -> Path:
        """
        Save a fitted model to disk.

        Args:
            fitted: Model to save
            model_name: Name for the model file
            filepath: Optional custom filepath

        Returns:
            Path to saved model
        """
        if filepath is None:
            filepath = MODELS_DIR / f"{model_name}.joblib"

        filepath.parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(fitted, filepath)
        logger.info(f"Model saved to {filepath}")

        return filepath

    def load_model(
        self,
        model_name: str = "best_model",
        filepath: Optional[Path] = None
    ) -> FittedModel:
        """
        Load a fitted model from disk.

        Args:
            model_name: Name of the model
            filepath: Optional custom filepath

        Returns:
            Loaded FittedModel
        """
        if filepath is None:
            filepath = MODELS_DIR / f"{model_name}.joblib"

        if not filepath.exists():
            raise FileNotFoundError(f"Model not found: {filepath}")

        fitted = joblib.load(filepath)
        logger.info(f"Model loaded from {filepath}")

        return fitted
