"""
Utility helpers shared by the services.
"""

from .dates import normalize_date, utc_midnight, utc_today

__all__ = [
    "normalize_date",
    "utc_midnight",
    "utc_today",
]
