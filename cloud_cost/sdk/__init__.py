"""
SDK for Cloud Cost.

Provides programmatic access to cross-cloud cost comparison.
"""

from .client import CloudCostClient

__all__ = ["CloudCostClient"]
