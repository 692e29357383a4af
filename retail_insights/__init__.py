"""
Retail Insights
===============

Price-per-unit analysis of retail transactions and churn model selection
for telecom customers.

Modules:
    - data: Table loading, package-size normalization, churn recipes
    - pricing: Unit and category price analyzers, sales views, plots
    - models: Grid search, MARS-style classifier, training and evaluation
    - reporting: Markdown report writer
    - pipeline: End-to-end pricing and churn runs
    - utils: Utility functions
"""

__version__ = "1.0.0"
