"""Models module for training and evaluation."""

from .grid import ParameterDomain, TrialResult, best_trial, grid_search, regular_grid, regular_levels
from .mars import MarsClassifier
from .trainer import (
    FamilySearchResult,
    FittedModel,
    ModelTrainer,
    SelectedModel,
    TrainingStage,
    encode_target,
)
from .evaluator import EvaluationReport, ModelEvaluator, revenue_at_risk

__all__ = [
    "ParameterDomain",
    "TrialResult",
    "best_trial",
    "grid_search",
    "regular_grid",
    "regular_levels",
    "MarsClassifier",
    "FamilySearchResult",
    "FittedModel",
    "ModelTrainer",
    "SelectedModel",
    "TrainingStage",
    "encode_target",
    "EvaluationReport",
    "ModelEvaluator",
    "revenue_at_risk",
]
