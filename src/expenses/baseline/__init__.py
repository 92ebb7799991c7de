"""
Baseline Package

Historical expenses from the CSV export and their per-bucket totals.
"""

from .loader import BaselineSource, CsvBaselineSource, bucket_totals, last_covered_date

__all__ = ["BaselineSource", "CsvBaselineSource", "bucket_totals", "last_covered_date"]
