"""
Tests for model selection
=========================
"""

import numpy as np
import pytest
from sklearn.ensemble import BaggingClassifier, RandomForestClassifier
from sklearn.model_selection import KFold, StratifiedKFold

from retail_insights.data import DataLoader
from retail_insights.models import (
    FittedModel,
    MarsClassifier,
    ModelTrainer,
    TrainingStage,
    encode_target,
)


@pytest.fixture
def split(test_config, customer_records):
    loader = DataLoader(test_config)
    df = loader.prepare_customer_records(customer_records)
    return loader.get_train_test_split(df)


@pytest.fixture
def trainer(test_config):
    return ModelTrainer(test_config)


def test_encode_target():
    encoded = encode_target(np.array(["Left", "Current", "Left"]), "Left")

    assert encoded.tolist() == [1, 0, 1]


class TestModelTrainer:
    def test_estimators_per_family(self, trainer):
        assert isinstance(trainer.build_estimator("mars"), MarsClassifier)
        assert isinstance(trainer.build_estimator("bagging"), BaggingClassifier)
        assert isinstance(trainer.build_estimator("random_forest"), RandomForestClassifier)

    def test_unknown_family(self, trainer):
        with pytest.raises(ValueError):
            trainer.build_estimator("xgboost")

    def test_fold_splitters(self, trainer):
        assert isinstance(trainer.get_cv("mars"), StratifiedKFold)
        assert isinstance(trainer.get_cv("bagging"), KFold)
        assert isinstance(trainer.get_cv("random_forest"), KFold)
        assert trainer.get_cv("mars").n_splits == 3

    def test_only_mars_transforms_numerics(self, trainer, split):
        X_train = split[0]
        trainer.preprocessor.resolve_features(X_train)

        mars_recipe = trainer.build_pipeline("mars").named_steps["recipe"]
        forest_recipe = trainer.build_pipeline("random_forest").named_steps["recipe"]

        assert mars_recipe.transformers[0][1] != "passthrough"
        assert forest_recipe.transformers[0][1] == "passthrough"

    def test_domains_from_config(self, trainer):
        domains = {d.name: d for d in trainer.get_domains("random_forest")}

        assert set(domains) == {"n_estimators", "max_features", "min_samples_leaf"}
        assert domains["n_estimators"].values == (5, 10)

    def test_search_family_trials_within_domains(self, trainer, split):
        X_train, _, y_train, _ = split

        result = trainer.search_family("mars", X_train, y_train)

        assert result.stage == TrainingStage.GRID_SEARCHED
        assert result.stratified
        assert len(result.trials) == 4
        domains = {d.name: d for d in trainer.get_domains("mars")}
        for trial in result.trials:
            assert all(domains[name].contains(value) for name, value in trial.params.items())
        assert result.best.mean_auc == max(t.mean_auc for t in result.trials)

    def test_search_all_and_select(self, trainer, split):
        X_train, _, y_train, _ = split

        results = trainer.search_all(X_train, y_train)
        selected = trainer.select_model(results)

        assert set(results) == {"mars", "bagging", "random_forest"}
        assert not results["bagging"].stratified
        assert selected.stage == TrainingStage.MODEL_SELECTED
        assert selected.cv_auc == max(r.best.mean_auc for r in results.values())
        assert dict(selected.params) == results[selected.family].best.params

    def test_leaderboard(self, trainer, split):
        X_train, _, y_train, _ = split

        results = trainer.search_all(X_train, y_train)
        board = trainer.leaderboard(results)

        assert set(board["family"]) == {"mars", "bagging", "random_forest"}
        # bagging has two configurations, the others are capped at three rows
        assert len(board) == 3 + 2 + 3
        mars_rows = board[board["family"] == "mars"]["mean_auc"].tolist()
        assert mars_rows == sorted(mars_rows, reverse=True)

    def test_disabled_family_skipped(self, test_config, split):
        test_config["churn"]["models"]["mars"]["enabled"] = False
        trainer = ModelTrainer(test_config)

        assert trainer.enabled_families() == ["bagging", "random_forest"]

    def test_select_without_results(self, trainer):
        with pytest.raises(ValueError):
            trainer.select_model({})

    def test_fit_final(self, trainer, split):
        X_train, X_test, y_train, _ = split
        selected = trainer.select_model({"bagging": trainer.search_family("bagging", X_train, y_train)})

        fitted = trainer.fit_final(selected, X_train, y_train)

        assert isinstance(fitted, FittedModel)
        assert fitted.stage == TrainingStage.FINAL_FIT
        assert fitted.family == "bagging"
        assert fitted.pipeline.named_steps["model"].n_estimators == selected.params["n_estimators"]
        proba = fitted.predict_proba(X_test)
        assert proba.shape == (len(X_test),)
        assert ((proba >= 0) & (proba <= 1)).all()

    def test_search_is_reproducible(self, test_config, split):
        X_train, _, y_train, _ = split

        first = ModelTrainer(test_config).search_family("random_forest", X_train, y_train)
        second = ModelTrainer(test_config).search_family("random_forest", X_train, y_train)

        assert [t.mean_auc for t in first.trials] == [t.mean_auc for t in second.trials]

    def test_save_and_load(self, trainer, split, tmp_path):
        X_train, X_test, y_train, _ = split
        selected = trainer.select_model({"bagging": trainer.search_family("bagging", X_train, y_train)})
        fitted = trainer.fit_final(selected, X_train, y_train)

        path = trainer.save_model(fitted, filepath=tmp_path / "model.joblib")
        loaded = trainer.load_model(filepath=path)

        np.testing.assert_allclose(loaded.predict_proba(X_test), fitted.predict_proba(X_test))

    def test_load_missing_model(self, trainer, tmp_path):
        with pytest.raises(FileNotFoundError):
            trainer.load_model(filepath=tmp_path / "missing.joblib")
