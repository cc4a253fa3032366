"""
Model exports.

- catalog.py: catalog perfumes, collection entries, Parfumo dataset rows, settings
"""

from models.catalog import (
    AppSetting,
    CollectionEntry,
    CollectionEntryUpdate,
    ParfumoEntry,
    PerfumeRecord,
    PriceEstimate,
    as_utc,
    utcnow,
)

__all__ = [
    "AppSetting",
    "CollectionEntry",
    "CollectionEntryUpdate",
    "ParfumoEntry",
    "PerfumeRecord",
    "PriceEstimate",
    "as_utc",
    "utcnow",
]
