"""
Tests for the data loader
=========================
"""

import pandas as pd
import pytest

from retail_insights.data import DataLoader, JourneyTables, ProductNormalizer


def write_tables(directory, products, transactions, demographics):
    products.to_csv(directory / "products.csv", index=False)
    transactions.to_csv(directory / "transactions.csv", index=False)
    demographics.to_csv(directory / "demographics.csv", index=False)


class TestJourneyTables:
    """Loading the pricing tables from a directory."""

    def test_load_from_directory(self, tmp_path, test_config, products, transactions, demographics):
        write_tables(tmp_path, products, transactions, demographics)

        tables = DataLoader(test_config).load_journey_tables(directory=tmp_path)

        assert isinstance(tables, JourneyTables)
        assert len(tables.products) == len(products)
        assert len(tables.transactions) == len(transactions)
        assert list(tables.demographics.columns) == list(demographics.columns)

    def test_minimal_products_schema(self, tmp_path, test_config, transactions, demographics):
        products = pd.DataFrame({
            "product_id": ["A", "B"],
            "product_category": ["BEER", "BREAD"],
            "package_size_raw": ["12 OZ", "20 OZ"],
        })
        write_tables(tmp_path, products, transactions, demographics)

        tables = DataLoader(test_config).load_journey_tables(directory=tmp_path)
        normalized = ProductNormalizer(test_config).normalize(tables.products)

        assert list(tables.products.columns) == ["product_id", "product_category", "package_size_raw"]
        assert normalized["size_value"].tolist() == [12.0, 20.0]
        assert normalized["size_unit"].tolist() == ["OZ", "OZ"]

    def test_old_size_column_rejected(self, tmp_path, test_config, products, transactions, demographics):
        renamed = products.rename(columns={"package_size_raw": "package_size"})
        write_tables(tmp_path, renamed, transactions, demographics)

        with pytest.raises(ValueError, match="package_size_raw"):
            DataLoader(test_config).load_journey_tables(directory=tmp_path)

    def test_missing_table_is_fatal(self, tmp_path, test_config, products, transactions, demographics):
        write_tables(tmp_path, products, transactions, demographics)
        (tmp_path / "demographics.csv").unlink()

        with pytest.raises(FileNotFoundError):
            DataLoader(test_config).load_journey_tables(directory=tmp_path)

    def test_missing_column_is_fatal(self, tmp_path, test_config, products, transactions, demographics):
        write_tables(tmp_path, products, transactions.drop(columns=["quantity"]), demographics)

        with pytest.raises(ValueError, match="quantity"):
            DataLoader(test_config).load_journey_tables(directory=tmp_path)

    def test_parquet_tables(self, tmp_path, test_config, products, transactions, demographics):
        products.to_parquet(tmp_path / "products.parquet", index=False)
        transactions.to_parquet(tmp_path / "transactions.parquet", index=False)
        demographics.to_parquet(tmp_path / "demographics.parquet", index=False)
        test_config["pricing"]["source"]["tables"] = {
            "products": "products.parquet",
            "transactions": "transactions.parquet",
            "demographics": "demographics.parquet",
        }

        tables = DataLoader(test_config).load_journey_tables(directory=tmp_path)

        assert len(tables.transactions) == len(transactions)


class TestCustomerRecords:
    """Preparing the churn CSV."""

    def test_blank_total_charges_dropped(self, test_config, customer_records):
        df = DataLoader(test_config).prepare_customer_records(customer_records)

        assert len(df) == len(customer_records) - 3
        assert df["TotalCharges"].notna().all()
        assert pd.api.types.is_float_dtype(df["TotalCharges"])

    def test_status_is_categorical(self, test_config, customer_records):
        df = DataLoader(test_config).prepare_customer_records(customer_records)

        assert isinstance(df["Status"].dtype, pd.CategoricalDtype)
        assert list(df["Status"].cat.categories) == ["Current", "Left"]

    def test_input_not_mutated(self, test_config, customer_records):
        before = customer_records.copy()
        DataLoader(test_config).prepare_customer_records(customer_records)

        pd.testing.assert_frame_equal(customer_records, before)

    def test_unexpected_status_rejected(self, test_config, customer_records):
        customer_records.loc[5, "Status"] = "Maybe"

        with pytest.raises(ValueError, match="Maybe"):
            DataLoader(test_config).prepare_customer_records(customer_records)

    def test_missing_required_column(self, test_config, customer_records):
        with pytest.raises(ValueError, match="PaymentMethod"):
            DataLoader(test_config).prepare_customer_records(
                customer_records.drop(columns=["PaymentMethod"])
            )

    def test_load_customer_records_from_csv(self, tmp_path, test_config, customer_records):
        path = tmp_path / "customers.csv"
        customer_records.to_csv(path, index=False)

        df = DataLoader(test_config).load_customer_records(str(path))

        assert len(df) == len(customer_records) - 3

    def test_missing_csv_is_fatal(self, tmp_path, test_config):
        with pytest.raises(FileNotFoundError):
            DataLoader(test_config).load_customer_records(str(tmp_path / "absent.csv"))


class TestTrainTestSplit:
    """Stratified, seeded 70/30 split."""

    def test_split_sizes(self, test_config, customer_records):
        loader = DataLoader(test_config)
        df = loader.prepare_customer_records(customer_records)

        X_train, X_test, y_train, y_test = loader.get_train_test_split(df)

        assert len(X_train) + len(X_test) == len(df)
        assert len(X_test) == pytest.approx(0.3 * len(df), abs=1)
        assert "Status" not in X_train.columns

    def test_split_is_reproducible(self, test_config, customer_records):
        loader = DataLoader(test_config)
        df = loader.prepare_customer_records(customer_records)

        first = loader.get_train_test_split(df)
        second = loader.get_train_test_split(df)

        assert list(first[0].index) == list(second[0].index)
        assert list(first[1].index) == list(second[1].index)

    def test_split_is_stratified(self, test_config, customer_records):
        loader = DataLoader(test_config)
        df = loader.prepare_customer_records(customer_records)

        _, _, y_train, y_test = loader.get_train_test_split(df)

        overall = (df["Status"] == "Left").mean()
        assert (y_train == "Left").mean() == pytest.approx(overall, abs=0.02)
        assert (y_test == "Left").mean() == pytest.approx(overall, abs=0.03)


class TestValidateData:
    def test_validation_summary(self, test_config, customer_records):
        results = DataLoader(test_config).validate_data(customer_records)

        assert results["total_rows"] == len(customer_records)
        assert set(results["target_distribution"]) == {"Left", "Current"}
