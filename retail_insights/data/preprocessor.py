"""
Data Preprocessor Module
========================

Package-size normalization for the pricing analysis and the preprocessing
recipes for the churn models.
"""

import re
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, PowerTransformer, StandardScaler

from config import get_config


class ProductNormalizer:
    """Split the combined package size field into magnitude and unit."""

    def __init__(
        self,
        config: Optional[dict] = None,
        known_units: Optional[Sequence[str]] = None,
        size_column: str = "package_size_raw"
    ):
        """
        Initialize ProductNormalizer.

        Args:
            config: Configuration dictionary
            known_units: Unit tokens to keep (substring match). Defaults to
                ``pricing.known_units``; an empty list keeps every unit.
            size_column: Name of the raw package size column
        """
        self.config = config or get_config()
        if known_units is None:
            known_units = self.config.get("pricing", {}).get("known_units", [])
        self.known_units = list(known_units or [])
        self.size_column = size_column

    def normalize(self, products: pd.DataFrame) -> pd.DataFrame:
        """
        Add ``size_value`` and ``size_unit`` columns to the product table.

        Rows with no package size, or with no unit after the first
        whitespace, are dropped. A non-numeric magnitude becomes NaN and is
        left for downstream aggregates to ignore.

        Args:
            products: Raw product rows

        Returns:
            New DataFrame with the two extra columns
        """
        initial_rows = len(products)
        df = products.dropna(subset=[self.size_column]).copy()
        if df.empty:
            df["size_value"] = pd.Series(dtype=float)
            df["size_unit"] = pd.Series(dtype=object)
            logger.warning("No products carry a package size")
            return df.reset_index(drop=True)

        parts = df[self.size_column].astype(str).str.strip().str.split(n=1, expand=True)
        magnitude = parts[0]
        if 1 in parts.columns:
            unit = parts[1]
        else:
            unit = pd.Series(np.nan, index=parts.index, dtype=object)

        df["size_value"] = pd.to_numeric(magnitude, errors="coerce")
        df["size_unit"] = unit.str.strip()
        df = df[df["size_unit"].notna() & (df["size_unit"] != "")]

        if self.known_units:
            pattern = "|".join(re.escape(token) for token in self.known_units)
            df = df[df["size_unit"].str.contains(pattern, regex=True)]

        df = df.reset_index(drop=True)
        logger.info(
            f"Normalized package sizes: kept {len(df)} of {initial_rows} products "
            f"({int(df['size_value'].isna().sum())} with non-numeric magnitude)"
        )
        return df


class ChurnPreprocessor:
    """Build the per-family preprocessing recipes for the churn models."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize ChurnPreprocessor.

        Args:
            config: Configuration dictionary
        """
        self.config = config or get_config()
        feature_config = self.config.get("churn", {}).get("features", {})
        self.numerical_features: List[str] = list(feature_config.get("numerical") or [])
        self.categorical_features: List[str] = list(feature_config.get("categorical") or [])
        self.drop_columns: List[str] = list(feature_config.get("drop_columns") or [])

    def resolve_features(self, X: pd.DataFrame) -> "ChurnPreprocessor":
        """
        Fill in numeric and categorical predictor lists from dtypes when the
        configuration leaves them empty.

        Args:
            X: Predictor frame (target already removed)

        Returns:
            self
        """
        candidates = [col for col in X.columns if col not in self.drop_columns]
        if not self.numerical_features:
            self.numerical_features = [
                col for col in candidates if pd.api.types.is_numeric_dtype(X[col])
            ]
        if not self.categorical_features:
            self.categorical_features = [
                col for col in candidates if col not in self.numerical_features
            ]

        missing = [
            col for col in self.numerical_features + self.categorical_features
            if col not in X.columns
        ]
        if missing:
            logger.error(f"Configured features not found in data: {missing}")
            raise ValueError(f"Configured features not found in data: {missing}")

        logger.info(f"Numerical features: {self.numerical_features}")
        logger.info(f"Categorical features: {self.categorical_features}")
        return self

    def create_recipe(self, transform_numeric: bool = False) -> ColumnTransformer:
        """
        Create the sklearn preprocessing recipe.

        Args:
            transform_numeric: Apply a Yeo-Johnson power transform followed
                by standardization to the numeric predictors. Tree models
                get them untransformed.

        Returns:
            Unfitted ColumnTransformer
        """
        if transform_numeric:
            numerical = Pipeline([
                ("yeo_johnson", PowerTransformer(method="yeo-johnson", standardize=False)),
                ("scaler", StandardScaler()),
            ])
        else:
            numerical = "passthrough"

        categorical = OneHotEncoder(handle_unknown="ignore", sparse_output=False)

        return ColumnTransformer(
            transformers=[
                ("numerical", numerical, self.numerical_features),
                ("categorical", categorical, self.categorical_features),
            ],
            remainder="drop"
        )
