"""
Data Loader Module
==================

Loads the Complete Journey retail tables and the customer retention CSV,
validates their schemas and produces the train/test split.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import pandas as pd
from loguru import logger
from sklearn.model_selection import train_test_split

from config import RAW_DATA_DIR, ROOT_DIR, get_config

PRODUCT_COLUMNS = ["product_id", "product_category", "package_size_raw"]
TRANSACTION_COLUMNS = ["product_id", "household_id", "sales_value", "quantity"]
DEMOGRAPHIC_COLUMNS = ["household_id", "income", "household_size"]
CUSTOMER_COLUMNS = ["Tenure", "TotalCharges", "MonthlyCharges", "PaymentMethod", "Status"]


@dataclass(frozen=True)
class JourneyTables:
    """The three tables the pricing analysis reads."""

    products: pd.DataFrame
    transactions: pd.DataFrame
    demographics: pd.DataFrame


def _require_columns(df: pd.DataFrame, required: list, table: str) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        logger.error(f"Table '{table}' is missing columns: {missing}")
        raise ValueError(f"Table '{table}' is missing required columns: {missing}")


class DataLoader:
    """Load and manage datasets for the pricing and churn analyses."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize DataLoader.

        Args:
            config: Configuration dictionary. If None, loads from config.yaml
        """
        self.config = config or get_config()
        self.raw_data_path = RAW_DATA_DIR
        self.churn_config = self.config.get("churn", {})
        self.random_state = self.config.get("random_state", 123)

    def _read_table(self, location: Union[str, Path], **kwargs) -> pd.DataFrame:
        """Read a CSV or Parquet table from a path or URL."""
        location = str(location)
        if location.lower().endswith(".parquet"):
            return pd.read_parquet(location, **kwargs)
        if location.lower().endswith(".csv"):
            return pd.read_csv(location, **kwargs)
        raise ValueError(f"Unsupported file format: {location}")

    def load_raw_data(self, filename: str, **kwargs) -> pd.DataFrame:
        """
        Load a raw data file from data/raw/.

        Args:
            filename: Name of the data file, or an absolute path
            **kwargs: Additional arguments passed to the pandas reader

        Returns:
            DataFrame containing raw data
        """
        file_path = Path(filename)
        if not file_path.is_absolute():
            file_path = self.raw_data_path / filename

        if not file_path.exists():
            logger.error(f"Data file not found: {file_path}")
            raise FileNotFoundError(f"Data file not found: {file_path}")

        logger.info(f"Loading data from {file_path}")
        df = self._read_table(file_path, **kwargs)

        logger.info(f"Loaded {len(df)} rows and {len(df.columns)} columns")
        return df

    def load_journey_tables(
        self,
        directory: Optional[Union[str, Path]] = None,
        base_url: Optional[str] = None
    ) -> JourneyTables:
        """
        Load products, transactions and demographics from the dataset provider.

        The provider is either a local directory or a base URL; both default
        to the ``pricing.source`` section of the configuration. Any missing
        table or column aborts the run.

        Args:
            directory: Directory holding the table files
            base_url: Base URL serving the table files (takes precedence)

        Returns:
            JourneyTables with the three validated tables
        """
        source = self.config.get("pricing", {}).get("source", {})
        tables = source.get("tables", {})
        base_url = base_url or source.get("base_url")

        if base_url is None:
            directory = Path(directory or source.get("directory", "data/raw/complete_journey"))
            if not directory.is_absolute():
                directory = ROOT_DIR / directory

        frames = {}
        for name, required in [
            ("products", PRODUCT_COLUMNS),
            ("transactions", TRANSACTION_COLUMNS),
            ("demographics", DEMOGRAPHIC_COLUMNS),
        ]:
            filename = tables.get(name, f"{name}.csv")
            if base_url is not None:
                location = f"{base_url.rstrip('/')}/{filename}"
            else:
                location = directory / filename
                if not location.exists():
                    logger.error(f"Table not found: {location}")
                    raise FileNotFoundError(f"Table not found: {location}")

            logger.info(f"Loading {name} from {location}")
            df = self._read_table(location)
            _require_columns(df, required, name)
            logger.info(f"Loaded {name}: {len(df)} rows")
            frames[name] = df

        return JourneyTables(**frames)

    def load_customer_records(self, filename: Optional[str] = None) -> pd.DataFrame:
        """
        Load the customer retention CSV and prepare it for modeling.

        Status is coerced to a categorical label and rows whose TotalCharges
        is missing or non-numeric are dropped.

        Args:
            filename: CSV file name in data/raw/ (defaults to config)

        Returns:
            Cleaned customer records
        """
        filename = filename or self.churn_config.get("data_file", "customer_retention.csv")
        df = self.load_raw_data(filename)
        return self.prepare_customer_records(df)

    def prepare_customer_records(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Coerce the status label and drop rows without TotalCharges.

        Args:
            df: Raw customer records

        Returns:
            New DataFrame ready for splitting
        """
        _require_columns(df, CUSTOMER_COLUMNS, "customer_records")
        target_col = self.churn_config.get("target_column", "Status")
        labels = [
            self.churn_config.get("negative_label", "Current"),
            self.churn_config.get("positive_label", "Left"),
        ]

        df = df.copy()
        df["TotalCharges"] = pd.to_numeric(df["TotalCharges"], errors="coerce")

        initial_rows = len(df)
        df = df.dropna(subset=["TotalCharges"]).reset_index(drop=True)
        dropped = initial_rows - len(df)
        if dropped > 0:
            logger.info(f"Dropped {dropped} rows with missing TotalCharges")

        unknown = set(df[target_col].dropna().unique()) - set(labels)
        if unknown:
            logger.error(f"Unexpected {target_col} values: {sorted(unknown)}")
            raise ValueError(f"Unexpected {target_col} values: {sorted(unknown)}")
        df[target_col] = pd.Categorical(df[target_col], categories=labels)

        logger.info(f"Customer records ready: {len(df)} rows")
        return df

    def get_train_test_split(
        self,
        df: pd.DataFrame,
        target_col: Optional[str] = None,
        test_size: Optional[float] = None,
        random_state: Optional[int] = None
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
        """
        Split data into stratified train and test sets.

        Args:
            df: Input DataFrame
            target_col: Name of target column
            test_size: Proportion for test set
            random_state: Random seed

        Returns:
            Tuple of (X_train, X_test, y_train, y_test)
        """
        target_col = target_col or self.churn_config.get("target_column", "Status")
        test_size = test_size or self.churn_config.get("test_size", 0.3)
        random_state = random_state if random_state is not None else self.random_state

        X = df.drop(columns=[target_col])
        y = df[target_col]

        X_train, X_test, y_train, y_test = train_test_split(
            X, y,
            test_size=test_size,
            random_state=random_state,
            stratify=y
        )

        logger.info(f"Train set: {len(X_train)} samples")
        logger.info(f"Test set: {len(X_test)} samples")

        return X_train, X_test, y_train, y_test

    def validate_data(self, df: pd.DataFrame) -> dict:
        """
        Validate data quality.

        Args:
            df: DataFrame to validate

        Returns:
            Dictionary with validation results
        """
        validation_results = {
            "total_rows": len(df),
            "total_columns": len(df.columns),
            "missing_values": df.isnull().sum().to_dict(),
            "duplicates": int(df.duplicated().sum()),
            "dtypes": df.dtypes.astype(str).to_dict(),
        }

        target_col = self.churn_config.get("target_column", "Status")
        if target_col in df.columns:
            validation_results["target_distribution"] = df[target_col].value_counts().to_dict()
            validation_results["target_balance"] = df[target_col].value_counts(normalize=True).to_dict()

        return validation_results
