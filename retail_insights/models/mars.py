"""
MARS-style Classifier
=====================

Multivariate adaptive regression splines for binary classification, built
from scikit-learn parts:

1. degree-1 spline basis (piecewise-linear hinge functions) for continuous
   features; 0/1 indicator columns enter as they are,
2. the ``max_candidates`` basis terms with the strongest univariate signal,
3. products of those candidates up to ``prod_degree``,
4. the ``num_terms`` strongest terms, fed to a logistic link.
"""

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.compose import ColumnTransformer
from sklearn.feature_selection import SelectKBest, VarianceThreshold, f_classif
from sklearn.linear_model import LogisticRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import PolynomialFeatures, SplineTransformer
from sklearn.utils.validation import check_is_fitted


def indicator_columns(X: np.ndarray) -> np.ndarray:
    """Boolean mask of columns whose values are all 0 or 1."""
    return np.array([np.isin(column, (0.0, 1.0)).all() for column in X.T], dtype=bool)


class MarsClassifier(ClassifierMixin, BaseEstimator):
    """
    Hinge-basis logistic classifier with a term budget and interaction degree.

    Args:
        num_terms: Maximum number of basis terms kept in the model
        prod_degree: Highest interaction degree between basis functions
        n_knots: Knots per continuous feature for the hinge basis
        max_candidates: Basis terms allowed into the interaction step
        C: Inverse regularization strength of the logistic link
        max_iter: Iterations for the logistic solver
    """

    def __init__(
        self,
        num_terms: int = 10,
        prod_degree: int = 1,
        n_knots: int = 5,
        max_candidates: int = 50,
        C: float = 1.0,
        max_iter: int = 1000
    ):
        self.num_terms = num_terms
        self.prod_degree = prod_degree
        self.n_knots = n_knots
        self.max_candidates = max_candidates
        self.C = C
        self.max_iter = max_iter

    def fit(self, X, y):
        if self.num_terms < 1:
            raise ValueError(f"num_terms must be >= 1, got {self.num_terms}")
        if self.prod_degree < 1:
            raise ValueError(f"prod_degree must be >= 1, got {self.prod_degree}")
        if self.max_candidates < 1:
            raise ValueError(f"max_candidates must be >= 1, got {self.max_candidates}")

        X = np.asarray(X, dtype=float)
        varying = VarianceThreshold(0.0).fit_transform(X)
        indicators = indicator_columns(varying)
        self.hinge_columns_ = np.flatnonzero(~indicators)
        self.indicator_columns_ = np.flatnonzero(indicators)

        # degree-1 splines give n_knots basis functions per column
        n_candidates = len(self.hinge_columns_) * self.n_knots + len(self.indicator_columns_)
        k = "all" if n_candidates <= self.max_candidates else self.max_candidates

        self.basis_ = Pipeline([
            ("constant", VarianceThreshold(0.0)),
            ("expand", ColumnTransformer([
                ("hinges", SplineTransformer(n_knots=self.n_knots, degree=1), self.hinge_columns_),
                ("indicators", "passthrough", self.indicator_columns_),
            ])),
            ("candidates", SelectKBest(f_classif, k=k)),
            ("interactions", PolynomialFeatures(
                degree=self.prod_degree, interaction_only=True, include_bias=False
            )),
        ])
        terms = self.basis_.fit_transform(X, y)

        self.n_terms_ = min(self.num_terms, terms.shape[1])
        self.selector_ = SelectKBest(f_classif, k=self.n_terms_)
        selected = self.selector_.fit_transform(terms, y)

        self.link_ = LogisticRegression(C=self.C, max_iter=self.max_iter)
        self.link_.fit(selected, y)
        self.classes_ = self.link_.classes_
        self.n_features_in_ = X.shape[1]
        return self

    def _terms(self, X):
        check_is_fitted(self, "link_")
        X = np.asarray(X, dtype=float)
        return self.selector_.transform(self.basis_.transform(X))

    def decision_function(self, X):
        return self.link_.decision_function(self._terms(X))

    def predict_proba(self, X):
        return self.link_.predict_proba(self._terms(X))

    def predict(self, X):
        return self.link_.predict(self._terms(X))
