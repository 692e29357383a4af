"""
Tests for package-size normalization and churn recipes
======================================================
"""

import numpy as np
import pandas as pd
import pytest

from retail_insights.data import ChurnPreprocessor, DataLoader, ProductNormalizer


class TestProductNormalizer:
    """Splitting "<number> <unit>" package sizes."""

    def test_well_formed_sizes_parsed(self, test_config, products):
        normalized = ProductNormalizer(test_config).normalize(products).set_index("product_id")

        assert normalized.loc["P1", "size_value"] == 12.0
        assert normalized.loc["P1", "size_unit"] == "OZ"
        assert normalized.loc["P5", "size_value"] == 1.5
        assert normalized.loc["P5", "size_unit"] == "LB"
        assert normalized.loc["P4", "size_unit"] == "CT"

    def test_malformed_rows_absent(self, test_config, products):
        normalized = ProductNormalizer(test_config).normalize(products)

        # P6 has no size, P8 has no unit token
        assert "P6" not in set(normalized["product_id"])
        assert "P8" not in set(normalized["product_id"])

    def test_non_numeric_magnitude_kept_as_nan(self, test_config, products):
        normalized = ProductNormalizer(test_config).normalize(products).set_index("product_id")

        assert np.isnan(normalized.loc["P7", "size_value"])
        assert normalized.loc["P7", "size_unit"] == "OZ"

    def test_unknown_units_filtered(self, test_config, products):
        normalized = ProductNormalizer(test_config).normalize(products)

        assert "P9" not in set(normalized["product_id"])

    def test_empty_known_units_keeps_all(self, test_config, products):
        normalized = ProductNormalizer(test_config, known_units=[]).normalize(products)

        assert "P9" in set(normalized["product_id"])

    def test_multi_word_unit_kept_whole(self, test_config):
        products = pd.DataFrame({
            "product_id": ["A"],
            "product_category": ["JUICE"],
            "package_size_raw": ["64 FL OZ"],
        })

        normalized = ProductNormalizer(test_config).normalize(products)

        assert normalized.loc[0, "size_value"] == 64.0
        assert normalized.loc[0, "size_unit"] == "FL OZ"

    def test_original_columns_preserved(self, test_config, products):
        normalized = ProductNormalizer(test_config).normalize(products)

        for col in products.columns:
            assert col in normalized.columns

    def test_all_missing_sizes(self, test_config):
        products = pd.DataFrame({
            "product_id": ["A", "B"],
            "product_category": ["X", "Y"],
            "package_size_raw": [None, None],
        })

        normalized = ProductNormalizer(test_config).normalize(products)

        assert normalized.empty
        assert {"size_value", "size_unit"} <= set(normalized.columns)


class TestChurnPreprocessor:
    """Recipe construction for the churn models."""

    @pytest.fixture
    def train_features(self, test_config, customer_records):
        loader = DataLoader(test_config)
        df = loader.prepare_customer_records(customer_records)
        X_train, _, _, _ = loader.get_train_test_split(df)
        return X_train

    def test_features_inferred_from_dtypes(self, test_config, train_features):
        preprocessor = ChurnPreprocessor(test_config).resolve_features(train_features)

        assert set(preprocessor.numerical_features) == {
            "SeniorCitizen", "Tenure", "MonthlyCharges", "TotalCharges"
        }
        assert set(preprocessor.categorical_features) == {"Contract", "PaymentMethod"}

    def test_configured_feature_missing(self, test_config, train_features):
        test_config["churn"]["features"]["numerical"] = ["NotAColumn"]

        with pytest.raises(ValueError, match="NotAColumn"):
            ChurnPreprocessor(test_config).resolve_features(train_features)

    def test_transformed_recipe_standardizes_numeric(self, test_config, train_features):
        preprocessor = ChurnPreprocessor(test_config).resolve_features(train_features)
        recipe = preprocessor.create_recipe(transform_numeric=True)

        transformed = recipe.fit_transform(train_features)
        numeric = transformed[:, : len(preprocessor.numerical_features)]

        np.testing.assert_allclose(numeric.mean(axis=0), 0.0, atol=1e-8)
        np.testing.assert_allclose(numeric.std(axis=0), 1.0, atol=1e-6)

    def test_untransformed_recipe_passes_numeric_through(self, test_config, train_features):
        preprocessor = ChurnPreprocessor(test_config).resolve_features(train_features)
        recipe = preprocessor.create_recipe(transform_numeric=False)

        transformed = recipe.fit_transform(train_features)
        numeric = transformed[:, : len(preprocessor.numerical_features)]

        expected = train_features[preprocessor.numerical_features].to_numpy(dtype=float)
        np.testing.assert_allclose(numeric, expected)

    def test_one_hot_width(self, test_config, train_features):
        preprocessor = ChurnPreprocessor(test_config).resolve_features(train_features)
        transformed = preprocessor.create_recipe().fit_transform(train_features)

        n_levels = sum(train_features[col].nunique() for col in preprocessor.categorical_features)
        assert transformed.shape[1] == len(preprocessor.numerical_features) + n_levels
