"""
Load the Parfumo dataset into the ``parfumo_entry`` table.

The dataset file is a JSON array of arrays:
    [name, brand, year, concentration, rating, accords, topNotes, midNotes, baseNotes]

Safe to run repeatedly: rows are upserted by identity key and a version
marker in ``app_setting`` turns later calls into no-ops.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import weakref
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from exceptions import DatasetLoadError
from models import AppSetting, ParfumoEntry, utcnow
from sourcing.identity import build_key
from sourcing.parfumo_provider import DATASET_VERSION, DATASET_VERSION_KEY, ParfumoDatasetProvider

logger = logging.getLogger(__name__)

BATCH_SIZE = 5000
DEFAULT_DATASET_PATH = Path(__file__).resolve().parent.parent / "data" / "parfumo-dataset.json"
COLUMNS = ("name", "brand", "year", "concentration", "rating", "accords", "top_notes", "mid_notes", "base_notes")

# One lock per event loop; concurrent loads in the same loop share it.
_load_locks = weakref.WeakKeyDictionary()


def _load_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _load_locks.get(loop)
    if lock is None:
        lock = _load_locks[loop] = asyncio.Lock()
    return lock


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _number(value: Any, cast):
    try:
        return cast(float(value))
    except (TypeError, ValueError, OverflowError):
        return cast(0)


def row_to_entry(row: Any) -> Optional[Dict[str, Any]]:
    """Convert one dataset row; rows without a name or brand are skipped."""
    if not isinstance(row, (list, tuple)) or len(row) < 2:
        return None
    padded = list(row) + [None] * (len(COLUMNS) - len(row))
    values = dict(zip(COLUMNS, padded))

    name = _text(values["name"])
    brand = _text(values["brand"])
    if not name or not brand:
        return None
    concentration = _text(values["concentration"])

    return {
        "id": build_key(brand, name, concentration),
        "name": name,
        "brand": brand,
        "year": _number(values["year"], int),
        "concentration": concentration,
        "rating": _number(values["rating"], float),
        "accords": _text(values["accords"]),
        "top_notes": _text(values["top_notes"]),
        "mid_notes": _text(values["mid_notes"]),
        "base_notes": _text(values["base_notes"]),
    }


async def read_dataset(source: str) -> List[Any]:
    """Read the raw dataset from an http(s) URL or a local path."""
    try:
        if source.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=60.0) as client:
                response = await client.get(source)
            if response.status_code != 200:
                raise DatasetLoadError(
                    f"Failed to load dataset: {response.status_code}",
                    detail={"source": source},
                )
            raw = response.json()
        else:
            text = await asyncio.to_thread(Path(source).read_text, encoding="utf-8")
            raw = json.loads(text)
    except DatasetLoadError:
        raise
    except (httpx.HTTPError, OSError, ValueError) as e:
        raise DatasetLoadError(
            f"Failed to load dataset: {type(e).__name__}", detail={"source": source}
        ) from e

    if not isinstance(raw, list):
        raise DatasetLoadError("Dataset must be a JSON array", detail={"source": source})
    return raw


def _upsert_statement(engine: AsyncEngine):
    table = ParfumoEntry.__table__
    dialect = engine.dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table)
    elif dialect == "sqlite":
        stmt = sqlite.insert(table)
    else:
        raise DatasetLoadError(f"Unsupported database dialect: {dialect}")
    updates = {col: stmt.excluded[col] for col in COLUMNS}
    return stmt.on_conflict_do_update(index_elements=[table.c.id], set_=updates)


async def is_dataset_loaded(engine: AsyncEngine) -> bool:
    table = AppSetting.__table__
    async with engine.connect() as conn:
        result = await conn.execute(sa.select(table.c.value).where(table.c.key == DATASET_VERSION_KEY))
        return result.scalar_one_or_none() == str(DATASET_VERSION)


async def _write_version_marker(conn) -> None:
    table = AppSetting.__table__
    await conn.execute(sa.delete(table).where(table.c.key == DATASET_VERSION_KEY))
    await conn.execute(
        sa.insert(table).values(key=DATASET_VERSION_KEY, value=str(DATASET_VERSION), updated_at=utcnow())
    )


async def load_parfumo_dataset(
    engine: AsyncEngine,
    source: Optional[str] = None,
    *,
    provider: Optional[ParfumoDatasetProvider] = None,
    force: bool = False,
) -> int:
    """Load the dataset once. Returns the number of rows written (0 when
    already loaded). Concurrent callers wait for the same load."""
    async with _load_lock():
        if not force and await is_dataset_loaded(engine):
            logger.info("[ParfumoLoader] Dataset already loaded")
            if provider:
                provider.mark_loaded()
            return 0

        source = source or os.getenv("PARFUMO_DATASET_URL") or str(DEFAULT_DATASET_PATH)
        logger.info(f"[ParfumoLoader] Loading dataset from {source}")
        raw = await read_dataset(source)

        entries: Dict[str, Dict[str, Any]] = {}
        skipped = 0
        for row in raw:
            entry = row_to_entry(row)
            if entry is None:
                skipped += 1
                continue
            entries[entry["id"]] = entry
        rows = list(entries.values())

        try:
            async with engine.begin() as conn:
                upsert = _upsert_statement(engine)
                for start in range(0, len(rows), BATCH_SIZE):
                    batch = rows[start:start + BATCH_SIZE]
                    await conn.execute(upsert, batch)
                    logger.info(f"[ParfumoLoader] Wrote {start + len(batch)}/{len(rows)} rows")
                await _write_version_marker(conn)
        except sa.exc.SQLAlchemyError as e:
            raise DatasetLoadError(f"Failed to store dataset: {type(e).__name__}") from e

        if provider:
            provider.mark_loaded()
        logger.info(f"[ParfumoLoader] Loaded {len(rows)} rows ({skipped} skipped)")
        return len(rows)
