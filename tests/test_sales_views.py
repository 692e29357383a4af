"""
Tests for the sales value views
===============================
"""

import pytest

from retail_insights.data import ProductNormalizer
from retail_insights.pricing import SalesViews, UnitAnalyzer, UnitGroup
from retail_insights.pricing.unit_analyzer import AVG_PRICE_COL, PRICE_COL


@pytest.fixture
def ounce_products(test_config, products):
    normalized = ProductNormalizer(test_config).normalize(products)
    return normalized[UnitGroup("ounces", "OZ").matches(normalized["size_unit"])]


@pytest.fixture
def views(test_config, transactions):
    return SalesViews(UnitAnalyzer(transactions, None, test_config))


class TestSalesViews:
    def test_average_sales_view(self, views, ounce_products):
        view = views.average_sales_view(ounce_products).set_index("product_id")

        assert list(view.index) == ["P1", "P2", "P3"]
        assert view.loc["P1", "avg_sales_value"] == pytest.approx(9.0)
        assert view.loc["P2", "avg_sales_value"] == pytest.approx(6.0)
        assert view.loc["P2", AVG_PRICE_COL] == pytest.approx(0.375)

    def test_total_sales_view(self, views, ounce_products):
        view = views.total_sales_view(ounce_products).set_index("product_id")

        # the zero-quantity P1 transaction carries no price and is excluded
        assert view.loc["P1", "total_sales_value"] == pytest.approx(18.0)
        assert view.loc["P2", "total_sales_value"] == pytest.approx(12.0)

    def test_total_sales_cap(self, views, ounce_products):
        view = views.total_sales_view(ounce_products, max_total_sales=15.0)

        assert set(view["product_id"]) == {"P2", "P3"}

    def test_price_cutoff(self, views, ounce_products):
        view = views.average_sales_view(ounce_products, max_price=0.3)

        assert view["product_id"].tolist() == ["P3"]

    def test_quantity_scatter(self, views, ounce_products):
        view = views.quantity_scatter(ounce_products, price_ceiling=0.45)

        assert list(view.columns) == ["product_id", "quantity", PRICE_COL]
        assert (view[PRICE_COL] <= 0.45).all()
        assert (view["quantity"] > 0).all()
        # only the 0.25 (P2) and 0.2 (P3) transactions fall under the ceiling
        assert len(view) == 2
