"""Pricing module: price-per-unit analysis over retail transactions."""

from .unit_analyzer import (
    PriceSummary,
    UnitAnalyzer,
    UnitGroup,
    compute_price_per_unit,
    quantile_summary,
    unit_groups_from_config,
)
from .category_analyzer import CategoryAnalyzer, CategoryMatcher, CategorySpec, categories_from_config
from .sales_views import SalesViews
from .plots import PricingPlotter

__all__ = [
    "PriceSummary",
    "UnitAnalyzer",
    "UnitGroup",
    "compute_price_per_unit",
    "quantile_summary",
    "unit_groups_from_config",
    "CategoryAnalyzer",
    "CategoryMatcher",
    "CategorySpec",
    "categories_from_config",
    "SalesViews",
    "PricingPlotter",
]
