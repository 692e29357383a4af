"""Data module for loading and preprocessing data."""

from .data_loader import DataLoader, JourneyTables
from .preprocessor import ChurnPreprocessor, ProductNormalizer

__all__ = ["DataLoader", "JourneyTables", "ChurnPreprocessor", "ProductNormalizer"]
