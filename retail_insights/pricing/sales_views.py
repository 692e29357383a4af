"""
Sales Value Views
=================

Scatter-ready frames relating price per unit to sales value and quantity.
"""

from typing import Optional

import pandas as pd
from loguru import logger

from .unit_analyzer import AVG_PRICE_COL, PRICE_COL, UnitAnalyzer


class SalesViews:
    """Build the sales-value scatter frames for a set of products."""

    def __init__(self, analyzer: UnitAnalyzer):
        self.analyzer = analyzer

    def _per_product(self, products: pd.DataFrame, how: str, value_col: str) -> pd.DataFrame:
        priced = self.analyzer.transaction_prices(products)
        return (
            priced.groupby("product_id")
            .agg(**{
                value_col: ("sales_value", how),
                AVG_PRICE_COL: (PRICE_COL, "mean"),
            })
            .reset_index()
        )

    def average_sales_view(
        self,
        products: pd.DataFrame,
        max_price: Optional[float] = None
    ) -> pd.DataFrame:
        """
        One point per product: mean sales value vs average price per unit.

        Args:
            products: Normalized products (usually one unit group)
            max_price: Optional price-per-unit cutoff

        Returns:
            DataFrame with product_id, avg_sales_value, avg_price_per_unit
        """
        view = self._per_product(products, "mean", "avg_sales_value")
        if max_price is not None:
            view = view[view[AVG_PRICE_COL] <= max_price]
        logger.info(f"Average sales view: {len(view)} products")
        return view.reset_index(drop=True)

    def total_sales_view(
        self,
        products: pd.DataFrame,
        max_price: Optional[float] = None,
        max_total_sales: Optional[float] = None
    ) -> pd.DataFrame:
        """
        One point per product: total sales value vs average price per unit.

        Args:
            products: Normalized products
            max_price: Optional price-per-unit cutoff
            max_total_sales: Drops top sellers above this total

        Returns:
            DataFrame with product_id, total_sales_value, avg_price_per_unit
        """
        view = self._per_product(products, "sum", "total_sales_value")
        if max_price is not None:
            view = view[view[AVG_PRICE_COL] <= max_price]
        if max_total_sales is not None:
            view = view[view["total_sales_value"] <= max_total_sales]
        logger.info(f"Total sales view: {len(view)} products")
        return view.reset_index(drop=True)

    def quantity_scatter(
        self,
        products: pd.DataFrame,
        price_ceiling: float
    ) -> pd.DataFrame:
        """
        Per-transaction price per unit vs quantity, capped at ``price_ceiling``.

        Returns:
            DataFrame with product_id, quantity, price_per_unit
        """
        priced = self.analyzer.transaction_prices(products)
        view = priced.loc[priced[PRICE_COL] <= price_ceiling, ["product_id", "quantity", PRICE_COL]]
        logger.info(f"Quantity scatter: {len(view)} transactions")
        return view.reset_index(drop=True)
