"""
Model Evaluator Module
======================

Test-set evaluation of the selected churn model: AUC, confusion matrix,
feature importance and projected revenue at risk.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from loguru import logger
from sklearn.inspection import permutation_importance
from sklearn.metrics import confusion_matrix, roc_auc_score, roc_curve

from config import FIGURES_DIR, get_config
from retail_insights.utils import safe_divide

from .trainer import FittedModel, TrainingStage, encode_target


@dataclass(frozen=True)
class EvaluationReport:
    """Held-out evaluation of the final model."""

    family: str
    test_auc: float
    confusion: pd.DataFrame
    feature_importance: pd.DataFrame
    revenue_at_risk: float
    threshold: float
    n_test: int
    stage: TrainingStage = TrainingStage.EVALUATED


def revenue_at_risk(
    predicted: pd.Series,
    charges: pd.Series,
    positive_label: str = "Left"
) -> float:
    """
    Share of monthly charges held by customers predicted to leave.

    Args:
        predicted: Predicted status labels
        charges: Monthly charges aligned with ``predicted``
        positive_label: Label marking a customer predicted to leave

    Returns:
        Fraction in [0, 1]; 0.0 when total charges are zero
    """
    predicted = np.asarray(predicted).astype(str)
    charges = np.asarray(charges, dtype=float)
    at_risk = charges[predicted == str(positive_label)].sum()
    return float(safe_divide(at_risk, charges.sum()))


class ModelEvaluator:
    """Evaluate the final churn model on the held-out split."""

    def __init__(self, config: Optional[dict] = None, output_dir: Optional[Path] = None):
        """
        Initialize ModelEvaluator.

        Args:
            config: Configuration dictionary
            output_dir: Directory for figures, defaults to reports/figures
        """
        self.config = config or get_config()
        self.eval_config = self.config.get("evaluation", {})
        self.threshold = self.eval_config.get("threshold", 0.5)
        self.importance_repeats = self.eval_config.get("importance_repeats", 5)
        self.top_features = self.eval_config.get("top_features", 10)
        self.charge_column = self.config.get("churn", {}).get("charge_column", "MonthlyCharges")
        self.random_state = self.config.get("random_state", 123)
        self.output_dir = Path(output_dir or FIGURES_DIR)
        self.saved_figures: Dict[str, Path] = {}

    def predict_labels(
        self,
        fitted: FittedModel,
        X: pd.DataFrame,
        threshold: Optional[float] = None
    ) -> pd.Series:
        """Status labels at the probability threshold."""
        threshold = self.threshold if threshold is None else threshold
        probabilities = fitted.predict_proba(X)
        labels = np.where(probabilities >= threshold, fitted.positive_label, fitted.negative_label)
        return pd.Series(labels, index=X.index, name="predicted")

    def get_confusion_matrix(
        self,
        y_true: pd.Series,
        y_pred: pd.Series,
        labels: Tuple[str, str] = ("Current", "Left")
    ) -> pd.DataFrame:
        """
        Confusion matrix with actual labels as rows and predictions as columns.
        """
        cm = confusion_matrix(
            np.asarray(y_true).astype(str), np.asarray(y_pred).astype(str), labels=list(labels)
        )
        return pd.DataFrame(
            cm,
            index=[f"actual_{label}" for label in labels],
            columns=[f"predicted_{label}" for label in labels],
        )

    def compute_feature_importance(
        self,
        fitted: FittedModel,
        X: pd.DataFrame,
        y: pd.Series
    ) -> pd.DataFrame:
        """
        Permutation importance of each input column, scored on AUC.

        Args:
            fitted: Final model
            X: Features (normally the training split)
            y: Labels

        Returns:
            DataFrame with feature, importance, importance_std, best first
        """
        result = permutation_importance(
            fitted.pipeline,
            X,
            encode_target(y, fitted.positive_label),
            scoring="roc_auc",
            n_repeats=self.importance_repeats,
            random_state=self.random_state,
        )
        importance = pd.DataFrame({
            "feature": X.columns,
            "importance": result.importances_mean,
            "importance_std": result.importances_std,
        })
        return importance.sort_values("importance", ascending=False).reset_index(drop=True)

    def evaluate(
        self,
        fitted: FittedModel,
        X_train: pd.DataFrame,
        y_train: pd.Series,
        X_test: pd.DataFrame,
        y_test: pd.Series
    ) -> EvaluationReport:
        """
        Evaluate the final model.

        Args:
            fitted: Final model from ModelTrainer.fit_final
            X_train: Training features, for feature importance
            y_train: Training labels
            X_test: Held-out features
            y_test: Held-out labels

        Returns:
            EvaluationReport
        """
        y_true = encode_target(y_test, fitted.positive_label)
        probabilities = fitted.predict_proba(X_test)
        test_auc = float(roc_auc_score(y_true, probabilities))

        predicted = self.predict_labels(fitted, X_test)
        labels = (fitted.negative_label, fitted.positive_label)
        confusion = self.get_confusion_matrix(y_test, predicted, labels=labels)

        importance = self.compute_feature_importance(fitted, X_train, y_train)

        if self.charge_column not in X_test.columns:
            logger.error(f"Charge column '{self.charge_column}' missing from test features")
            raise ValueError(f"Charge column '{self.charge_column}' missing from test features")
        loss_ratio = revenue_at_risk(predicted, X_test[self.charge_column], fitted.positive_label)

        logger.info(f"{fitted.family} - Test AUC: {test_auc:.4f}, revenue at risk: {loss_ratio:.2%}")

        return EvaluationReport(
            family=fitted.family,
            test_auc=test_auc,
            confusion=confusion,
            feature_importance=importance,
            revenue_at_risk=loss_ratio,
            threshold=self.threshold,
            n_test=len(X_test),
        )

    def _save(self, fig: plt.Figure, name: str) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.output_dir / f"{name}.png"
        fig.savefig(filepath, dpi=150, bbox_inches="tight")
        self.saved_figures[name] = filepath
        logger.info(f"Saved {name} plot to {filepath}")
        return filepath

    def plot_confusion_matrix(
        self,
        report: EvaluationReport,
        save: bool = True,
        figsize: Tuple[int, int] = (6, 5)
    ) -> plt.Figure:
        """
        Plot confusion matrix heatmap.

        Args:
            report: Evaluation output
            save: Whether to save figure
            figsize: Figure size

        Returns:
            Matplotlib figure
        """
        cm = report.confusion
        fig, ax = plt.subplots(figsize=figsize)
        sns.heatmap(
            cm.values, annot=True, fmt="d", cmap="Blues",
            xticklabels=[c.replace("predicted_", "") for c in cm.columns],
            yticklabels=[i.replace("actual_", "") for i in cm.index],
            ax=ax
        )
        ax.set_title(f"{report.family} - Confusion Matrix")
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")
        plt.tight_layout()

        if save:
            self._save(fig, "confusion_matrix")
        return fig

    def plot_roc_curve(
        self,
        fitted: FittedModel,
        X_test: pd.DataFrame,
        y_test: pd.Series,
        save: bool = True,
        figsize: Tuple[int, int] = (7, 6)
    ) -> plt.Figure:
        """Plot the test-set ROC curve of the final model."""
        y_true = encode_target(y_test, fitted.positive_label)
        y_prob = fitted.predict_proba(X_test)
        fpr, tpr, _ = roc_curve(y_true, y_prob)
        auc = roc_auc_score(y_true, y_prob)

        fig, ax = plt.subplots(figsize=figsize)
        ax.plot(fpr, tpr, label=f"{fitted.family} (AUC={auc:.3f})")
        ax.plot([0, 1], [0, 1], "k--", label="Random (AUC=0.500)")
        ax.set_xlabel("False Positive Rate")
        ax.set_ylabel("True Positive Rate")
        ax.set_title("ROC Curve")
        ax.legend(loc="lower right")
        ax.grid(True, alpha=0.3)
        plt.tight_layout()

        if save:
            self._save(fig, "roc_curve")
        return fig

    def plot_feature_importance(
        self,
        report: EvaluationReport,
        save: bool = True,
        figsize: Tuple[int, int] = (8, 6)
    ) -> plt.Figure:
        """Horizontal bar chart of the top features."""
        top = report.feature_importance.head(self.top_features)

        fig, ax = plt.subplots(figsize=figsize)
        sns.barplot(data=top, x="importance", y="feature", color="steelblue", ax=ax)
        ax.set_xlabel("Drop in AUC when permuted")
        ax.set_ylabel("")
        ax.set_title(f"{report.family} - Feature Importance")
        ax.grid(True, alpha=0.3, axis="x")
        plt.tight_layout()

        if save:
            self._save(fig, "feature_importance")
        return fig
