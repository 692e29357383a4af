"""
Pytest Configuration and Fixtures
=================================
Shared fixtures for Retail Insights tests.
"""

import copy

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from config import get_config
from retail_insights.data import JourneyTables


@pytest.fixture
def test_config():
    """Project config with MLflow off and grids small enough for unit tests."""
    config = copy.deepcopy(get_config())
    config["mlflow"]["enabled"] = False
    config["evaluation"]["importance_repeats"] = 2

    churn = config["churn"]
    churn["cv_folds"] = 3
    churn["leaderboard_size"] = 3
    churn["models"] = {
        "mars": {
            "enabled": True,
            "stratify": True,
            "levels": 2,
            "grid": {
                "num_terms": {"min": 2, "max": 6},
                "prod_degree": {"min": 1, "max": 2},
            },
        },
        "bagging": {
            "enabled": True,
            "stratify": False,
            "grid": {"n_estimators": {"values": [5, 10]}},
        },
        "random_forest": {
            "enabled": True,
            "stratify": False,
            "levels": 2,
            "grid": {
                "n_estimators": {"min": 5, "max": 10},
                "max_features": {"min": 2, "max": 3},
                "min_samples_leaf": {"min": 1, "max": 5},
            },
        },
    }
    return config


@pytest.fixture
def products():
    """Products covering well-formed, malformed and unknown package sizes."""
    return pd.DataFrame({
        "product_id": ["P1", "P2", "P3", "P4", "P5", "P6", "P7", "P8", "P9", "P10"],
        "product_category": [
            "BEER", "BEER LIGHT", "BREAD", "EGGS", "BEEF",
            "MISC", "SNACKS", "SNACKS", "MILK", "BREAD WHITE",
        ],
        "package_size_raw": [
            "12 OZ", "16 OZ", "20 OZ", "12 CT", "1.5 LB",
            None, "ABC OZ", "OZ", "5 GAL", "8 OZ",
        ],
    })


@pytest.fixture
def transactions():
    """Hand-computed transactions; expected averages are noted per product."""
    return pd.DataFrame(
        [
            # P1 -> 0.5, 0.5; zero quantity excluded -> avg 0.5
            ("P1", "H1", 6.0, 1),
            ("P1", "H2", 12.0, 2),
            ("P1", "H1", 3.0, 0),
            # P2 -> 0.5, 0.25 -> avg 0.375
            ("P2", "H2", 8.0, 1),
            ("P2", "H3", 4.0, 1),
            # P3 -> 0.2
            ("P3", "H1", 4.0, 1),
            # P4 -> 0.25, 0.5 -> avg 0.375
            ("P4", "H3", 3.0, 1),
            ("P4", "H1", 6.0, 1),
            # P5 -> 3.0
            ("P5", "H2", 9.0, 2),
            # P7 has no numeric size
            ("P7", "H1", 5.0, 1),
        ],
        columns=["product_id", "household_id", "sales_value", "quantity"],
    )


@pytest.fixture
def demographics():
    """H3 has no demographic record."""
    return pd.DataFrame({
        "household_id": ["H1", "H2"],
        "income": ["50-74K", "25-34K"],
        "household_size": ["2", "1"],
    })


@pytest.fixture
def journey_tables(products, transactions, demographics):
    return JourneyTables(products=products, transactions=transactions, demographics=demographics)


def generate_customer_records(n_rows: int, seed: int = 42) -> pd.DataFrame:
    """Synthetic customer records where short tenure drives leaving."""
    rng = np.random.default_rng(seed)

    tenure = rng.integers(0, 72, n_rows)
    monthly = rng.uniform(20, 110, n_rows).round(2)
    leave_prob = np.where(tenure < 12, 0.8, 0.1)
    status = np.where(rng.random(n_rows) < leave_prob, "Left", "Current")

    total = (tenure * monthly).round(2).astype(object)
    total[:3] = " "

    return pd.DataFrame({
        "SeniorCitizen": rng.integers(0, 2, n_rows),
        "Tenure": tenure,
        "Contract": rng.choice(["Month-to-month", "One year", "Two year"], n_rows),
        "PaymentMethod": rng.choice(
            ["Electronic check", "Mailed check", "Bank transfer", "Credit card"], n_rows
        ),
        "MonthlyCharges": monthly,
        "TotalCharges": total,
        "Status": status,
    })


@pytest.fixture
def customer_records():
    return generate_customer_records(240)


@pytest.fixture
def separable_records():
    """Two customer profiles: short-tenure leavers and long-tenure stayers."""
    left = {"Tenure": 1, "MonthlyCharges": 50.0, "TotalCharges": "50.0",
            "PaymentMethod": "Electronic check", "Status": "Left"}
    current = {"Tenure": 40, "MonthlyCharges": 80.0, "TotalCharges": "3200.0",
               "PaymentMethod": "Credit card", "Status": "Current"}
    return pd.DataFrame([left] * 20 + [current] * 20)
