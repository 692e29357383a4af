"""
Regular Grid Search
===================

Cartesian hyperparameter grids and cross-validated AUC scoring.

``grid_search`` returns one ``TrialResult`` per configuration and keeps no
state between trials, so the underlying ``GridSearchCV`` may run them in
parallel through ``n_jobs``.
"""

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.base import BaseEstimator
from sklearn.model_selection import BaseCrossValidator, GridSearchCV


@dataclass(frozen=True)
class ParameterDomain:
    """A finite set of values for one hyperparameter, with its bounds."""

    name: str
    values: Tuple[Any, ...]
    lower: Any
    upper: Any

    def __post_init__(self):
        if not self.values:
            raise ValueError(f"Parameter '{self.name}' has an empty domain")
        outside = [v for v in self.values if not self.contains(v)]
        if outside:
            raise ValueError(f"Parameter '{self.name}' values {outside} outside [{self.lower}, {self.upper}]")

    def contains(self, value: Any) -> bool:
        return self.lower <= value <= self.upper

    @classmethod
    def from_range(cls, name: str, lower: int, upper: int, levels: int) -> "ParameterDomain":
        """Integer domain of ``levels`` evenly spaced points (duplicates collapse)."""
        return cls(name=name, values=tuple(regular_levels(lower, upper, levels)), lower=lower, upper=upper)

    @classmethod
    def from_values(cls, name: str, values: Sequence[Any]) -> "ParameterDomain":
        """Domain over an explicit discrete set."""
        values = tuple(sorted(set(values)))
        return cls(name=name, values=values, lower=values[0], upper=values[-1])

    @classmethod
    def from_config(cls, name: str, spec: dict, levels: int) -> "ParameterDomain":
        """
        Parse a domain from config: either ``{values: [...]}`` or
        ``{min: a, max: b}`` expanded to ``levels`` points.
        """
        if "values" in spec:
            return cls.from_values(name, spec["values"])
        if "min" in spec and "max" in spec:
            return cls.from_range(name, int(spec["min"]), int(spec["max"]), int(spec.get("levels", levels)))
        raise ValueError(f"Grid entry '{name}' needs either 'values' or 'min'/'max'")


@dataclass(frozen=True)
class TrialResult:
    """Cross-validated AUC of one hyperparameter configuration."""

    params: Dict[str, Any]
    mean_auc: float
    std_auc: float
    fold_aucs: Tuple[float, ...] = field(default_factory=tuple)


def regular_levels(lower: int, upper: int, levels: int) -> List[int]:
    """Evenly spaced integers from ``lower`` to ``upper`` inclusive."""
    if lower > upper:
        raise ValueError(f"Lower bound {lower} exceeds upper bound {upper}")
    if levels < 1:
        raise ValueError("levels must be at least 1")
    if levels == 1:
        return [int(lower)]
    points = np.round(np.linspace(lower, upper, levels)).astype(int)
    return sorted(set(int(p) for p in points))


def regular_grid(domains: Sequence[ParameterDomain]) -> List[Dict[str, Any]]:
    """Cartesian product of the domains as a list of configurations."""
    names = [domain.name for domain in domains]
    return [
        dict(zip(names, combo))
        for combo in itertools.product(*(domain.values for domain in domains))
    ]


def grid_search(
    estimator: BaseEstimator,
    domains: Sequence[ParameterDomain],
    X: pd.DataFrame,
    y: np.ndarray,
    cv: BaseCrossValidator,
    param_prefix: str = "",
    scoring: str = "roc_auc",
    n_jobs: Optional[int] = None
) -> List[TrialResult]:
    """
    Score every configuration of the regular grid by cross-validation.

    Args:
        estimator: Unfitted estimator or pipeline
        domains: Hyperparameter domains
        X: Training features
        y: Encoded training labels
        cv: Cross-validation splitter (fixed random_state for reproducibility)
        param_prefix: Prefix routing parameters into a pipeline step, e.g. ``model__``
        scoring: sklearn scoring name
        n_jobs: Parallel jobs for GridSearchCV

    Returns:
        TrialResult per configuration, in grid order
    """
    configurations = regular_grid(domains)
    param_grid = [
        {f"{param_prefix}{name}": [value] for name, value in config.items()}
        for config in configurations
    ]

    search = GridSearchCV(
        estimator,
        param_grid,
        scoring=scoring,
        cv=cv,
        refit=False,
        n_jobs=n_jobs,
        error_score=np.nan,
    )
    search.fit(X, y)

    results = search.cv_results_
    n_splits = search.n_splits_
    trials = []
    for i, config in enumerate(configurations):
        folds = tuple(float(results[f"split{k}_test_score"][i]) for k in range(n_splits))
        trials.append(TrialResult(
            params=config,
            mean_auc=float(results["mean_test_score"][i]),
            std_auc=float(results["std_test_score"][i]),
            fold_aucs=folds,
        ))

    logger.debug(f"Evaluated {len(trials)} configurations x {n_splits} folds")
    return trials


def best_trial(trials: Sequence[TrialResult]) -> TrialResult:
    """The trial with the highest mean AUC; earlier trials win ties."""
    scored = [trial for trial in trials if np.isfinite(trial.mean_auc)]
    if not scored:
        raise ValueError("No trial produced a finite cross-validated AUC")
    return max(scored, key=lambda trial: trial.mean_auc)
